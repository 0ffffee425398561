"""
Tests for the logging helpers.
"""

import logging

import pytest

from PagePoseEstimation.logger import (
    ROOT_LOGGER_NAME,
    configure_root_logger,
    disable_console_logging,
    get_logger,
    set_level,
    setup_logger,
)


def test_module_logger_names():
    logger = get_logger("pose.pnp_solver")
    assert logger.name == "PagePoseEstimation.pose.pnp_solver"


def test_setup_logger_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "pose.log"
    logger = setup_logger("PagePoseEstimation.test_file", level="DEBUG",
                          log_file=str(log_file), console=False, force=True)

    logger.debug("refinement started")
    for handler in logger.handlers:
        handler.flush()

    content = log_file.read_text()
    assert "[DEBUG] [PagePoseEstimation.test_file] refinement started" in content

    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


def test_setup_logger_is_idempotent():
    first = setup_logger("PagePoseEstimation.test_idempotent", console=True, force=True)
    handlers = list(first.handlers)

    second = setup_logger("PagePoseEstimation.test_idempotent", level="DEBUG")

    assert second is first
    assert second.handlers == handlers
    first.handlers = []


def test_set_level():
    root = logging.getLogger(ROOT_LOGGER_NAME)
    previous = root.level
    try:
        set_level("error")
        assert root.level == logging.ERROR
    finally:
        root.setLevel(previous)


@pytest.fixture
def package_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(logger.handlers), logger.level)
    yield logger
    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers = saved[0]
    logger.setLevel(saved[1])


def test_configure_root_logger(package_logger, tmp_path):
    log_file = tmp_path / "pose.log"
    configure_root_logger(level="DEBUG", log_file=str(log_file))

    assert package_logger.level == logging.DEBUG
    kinds = {type(handler) for handler in package_logger.handlers}
    assert kinds == {logging.StreamHandler, logging.FileHandler}

    get_logger("pose.pnp_solver").debug("solving")
    for handler in package_logger.handlers:
        handler.flush()
    assert "[PagePoseEstimation.pose.pnp_solver] solving" in log_file.read_text()


def test_disable_console_logging_keeps_file(package_logger, tmp_path):
    configure_root_logger(level="INFO", log_file=str(tmp_path / "pose.log"))

    disable_console_logging()

    assert [type(handler) for handler in package_logger.handlers] == [logging.FileHandler]

from .corners import (
    PageConfig,
    PagePose,
    DefaultParams,
    estimate_page_pose,
    get_default_params,
    pix2norm,
    norm2pix,
)

__all__ = [
    'PageConfig',
    'PagePose',
    'DefaultParams',
    'estimate_page_pose',
    'get_default_params',
    'pix2norm',
    'norm2pix',
]

# Utilities module

from .image_utils import (
    ImageProcessingError,
    as_rgb_array,
    normalize_frame,
    pack_pixels,
    resize_nearest,
    to_luma,
)

__all__ = [
    "ImageProcessingError",
    "as_rgb_array",
    "normalize_frame",
    "pack_pixels",
    "resize_nearest",
    "to_luma",
]

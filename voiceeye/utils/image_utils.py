"""
Image processing utilities for iris capture frames.

This module provides functions for:
- Normalizing captured frames to RGB uint8 arrays
- Nearest-neighbour resizing to a fixed grid
- Luma conversion used by the iris feature extractor
- Canonical pixel serialization used by the sample hasher
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class ImageProcessingError(ValueError):
    """Raised when a frame cannot be interpreted as an image."""
    pass


def as_rgb_array(frame) -> np.ndarray:
    """
    Convert a captured frame to an RGB uint8 array.

    Accepts grayscale (H, W), RGB (H, W, 3) and RGBA (H, W, 4) input.
    The alpha channel is dropped.

    Args:
        frame: Array-like image data

    Returns:
        numpy.ndarray of shape (H, W, 3) and dtype uint8

    Raises:
        ImageProcessingError: If the frame is empty or has an unsupported shape
    """
    if frame is None:
        raise ImageProcessingError("Frame is empty")

    image = np.asarray(frame)
    if image.size == 0:
        raise ImageProcessingError("Frame is empty")

    if image.ndim == 2:
        image = np.repeat(image[:, :, np.newaxis], 3, axis=2)
    elif image.ndim == 3 and image.shape[2] in (3, 4):
        image = image[:, :, :3]
    else:
        raise ImageProcessingError(f"Unsupported frame shape: {image.shape}")

    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    return image


def resize_nearest(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resize an image with nearest-neighbour sampling (no filtering).

    Args:
        image: RGB array of shape (H, W, 3)
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        Resized array of shape (height, width, 3)
    """
    src_height, src_width = image.shape[:2]
    rows = (np.arange(height) * src_height) // height
    cols = (np.arange(width) * src_width) // width
    return image[rows[:, np.newaxis], cols[np.newaxis, :]]


def normalize_frame(frame, size: int) -> np.ndarray:
    """Convert a frame to RGB and resize it to a size x size grid."""
    image = as_rgb_array(frame)
    if image.shape[0] != size or image.shape[1] != size:
        logger.debug(f"Resizing frame from {image.shape[1]}x{image.shape[0]} to {size}x{size}")
        image = resize_nearest(image, size, size)
    return image


def to_luma(image: np.ndarray) -> np.ndarray:
    """
    Compute per-pixel luma as the integer mean of the R, G and B channels.

    Args:
        image: RGB uint8 array of shape (H, W, 3)

    Returns:
        int32 array of shape (H, W) with values in [0, 255]
    """
    channels = image.astype(np.int32)
    return (channels[:, :, 0] + channels[:, :, 1] + channels[:, :, 2]) // 3


def pack_pixels(image: np.ndarray) -> np.ndarray:
    """Pack RGB pixels into 0xRRGGBB integers, row-major."""
    channels = image.astype(np.int64)
    packed = (channels[:, :, 0] << 16) | (channels[:, :, 1] << 8) | channels[:, :, 2]
    return packed.ravel()

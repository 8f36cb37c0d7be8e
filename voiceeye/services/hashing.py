"""
Sample digests used as a coarse secondary matching signal.

Images are down-sampled to a small grid before hashing so that the positional
comparison in the similarity scorer degrades gracefully under small capture
variance. Digests are not a security mechanism.
"""

import hashlib
import logging
from typing import Any

from voiceeye.utils.image_utils import normalize_frame, pack_pixels

logger = logging.getLogger(__name__)


def hash_string(value: str) -> str:
    """Return the lowercase hex SHA-256 digest of a string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class SampleHasher:
    """Computes fixed-length digests for voice and image samples."""

    def __init__(self, grid_size: int = 32):
        self.grid_size = grid_size

    def digest(self, sample: Any) -> str:
        """
        Compute the digest of a sample.

        Args:
            sample: Transcribed voice text or an image frame

        Returns:
            64-character hex digest
        """
        if isinstance(sample, str):
            return self.digest_text(sample)
        return self.digest_image(sample)

    def digest_text(self, text: str) -> str:
        return hash_string(text)

    def digest_image(self, frame: Any) -> str:
        grid = normalize_frame(frame, self.grid_size)
        pixel_string = ",".join(str(pixel) for pixel in pack_pixels(grid).tolist())
        return hash_string(pixel_string)

"""
Feature extraction for the voice and iris modalities.

Both extractors are pure: the same sample always yields the same vector.
Callers must validate that samples are non-empty before extraction.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, List

import numpy as np

from voiceeye.models.internal_models import Modality
from voiceeye.utils.image_utils import normalize_frame, to_luma

logger = logging.getLogger(__name__)

VOWELS = "aeiou"

# Luma delta above which adjacent pixels count as an edge
EDGE_THRESHOLD = 30
# Luma delta below which mirrored pixels count as symmetric
SYMMETRY_THRESHOLD = 20
RADIAL_ANGLE_STEP = 30
RADIAL_RADIUS_STEP = 10


class FeatureExtractor(ABC):
    """Maps a raw sample to a fixed-length feature vector."""

    modality: Modality
    dimension: int

    @abstractmethod
    def extract(self, sample: Any) -> np.ndarray:
        pass

    def validate_features(self, features: np.ndarray) -> bool:
        """
        Validate that a feature vector has the correct format and dimension.

        Args:
            features: Feature vector to validate

        Returns:
            bool: True if the vector is valid, False otherwise
        """
        if not isinstance(features, np.ndarray):
            return False
        if features.ndim != 1 or features.shape[0] != self.dimension:
            return False
        return bool(np.isfinite(features).all())


class VoiceFeatureExtractor(FeatureExtractor):
    """
    Extracts a 6-dimensional vector from the transcribed voice sample.

    Features, in order: sample length, mean word length, word count, number of
    distinct case-folded characters, vowel/consonant ratio and
    uppercase/lowercase ratio.
    """

    modality = Modality.VOICE
    dimension = 6

    def extract(self, sample: str) -> np.ndarray:
        if not sample:
            raise ValueError("Voice sample must not be empty")

        words = [word for word in sample.split(" ") if word]
        avg_word_length = sum(len(word) for word in words) / len(words) if words else 0.0

        unique_chars = {char.casefold() for char in sample}

        vowels = sum(1 for char in sample if char.lower() in VOWELS)
        consonants = sum(1 for char in sample if char.isalpha() and char.lower() not in VOWELS)
        vowel_ratio = vowels / consonants if consonants > 0 else 0.0

        uppercase = sum(1 for char in sample if char.isupper())
        lowercase = sum(1 for char in sample if char.islower())
        case_ratio = uppercase / lowercase if lowercase > 0 else 0.0

        features = np.array([
            len(sample),
            avg_word_length,
            len(words),
            len(unique_chars),
            vowel_ratio,
            case_ratio,
        ], dtype=np.float64)

        logger.debug(f"Extracted voice features: {features.tolist()}")
        return features


class IrisFeatureExtractor(FeatureExtractor):
    """
    Extracts an 8-dimensional vector from an eye image.

    The frame is first resized to a fixed square grid. Features, in order:
    mean luma, luma standard deviation (contrast), mean R, G and B, edge
    density, left/right mirror symmetry and the mean luma sampled along
    concentric rings around the image centre.
    """

    modality = Modality.IRIS
    dimension = 8

    def __init__(self, image_size: int = 100):
        self.image_size = image_size
        self._radial_points = self._ring_sample_points(image_size, image_size)

    def extract(self, sample: Any) -> np.ndarray:
        image = normalize_frame(sample, self.image_size)
        luma = to_luma(image)

        brightness = float(luma.mean())
        contrast = float(luma.std())
        red, green, blue = (float(image[:, :, channel].mean()) for channel in range(3))

        features = np.array([
            brightness,
            contrast,
            red,
            green,
            blue,
            self._edge_density(luma),
            self._symmetry(luma),
            self._radial_mean(luma),
        ], dtype=np.float64)

        logger.debug(f"Extracted iris features: {features.tolist()}")
        return features

    @staticmethod
    def _edge_density(luma: np.ndarray) -> float:
        height, width = luma.shape
        if height < 2 or width < 2:
            return 0.0
        current = luma[:-1, :-1]
        right = np.abs(current - luma[:-1, 1:]) > EDGE_THRESHOLD
        bottom = np.abs(current - luma[1:, :-1]) > EDGE_THRESHOLD
        return float(np.count_nonzero(right | bottom)) / ((width - 1) * (height - 1))

    @staticmethod
    def _symmetry(luma: np.ndarray) -> float:
        half = luma.shape[1] // 2
        if half == 0:
            return 0.0
        left = luma[:, :half]
        mirrored = luma[:, ::-1][:, :half]
        return float(np.count_nonzero(np.abs(left - mirrored) < SYMMETRY_THRESHOLD)) / left.size

    @staticmethod
    def _ring_sample_points(width: int, height: int) -> List[tuple]:
        center_x, center_y = width // 2, height // 2
        points = []
        for angle in range(0, 360, RADIAL_ANGLE_STEP):
            radians = math.radians(angle)
            for radius in range(RADIAL_RADIUS_STEP, min(center_x, center_y), RADIAL_RADIUS_STEP):
                x = int(center_x + radius * math.cos(radians))
                y = int(center_y + radius * math.sin(radians))
                if 0 <= x < width and 0 <= y < height:
                    points.append((y, x))
        return points

    def _radial_mean(self, luma: np.ndarray) -> float:
        if not self._radial_points:
            return 0.0
        rows, cols = zip(*self._radial_points)
        return float(luma[list(rows), list(cols)].mean())

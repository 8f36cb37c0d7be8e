"""
Similarity scoring between a live sample and an enrolled record.

The overall score is the mean of a positional digest similarity and a
normalized L1 feature similarity, always within [0, 1]. Matching is a fuzzy
acceptance test: captures are never bit-identical between enrollment and
verification, so the decision is `overall >= threshold`.
"""

import logging
from typing import Sequence, Union

import numpy as np

from voiceeye.models.results import SimilarityScore

logger = logging.getLogger(__name__)

VectorLike = Union[np.ndarray, Sequence[float]]


def digest_similarity(digest1: str, digest2: str) -> float:
    """
    Fraction of positions at which two digests hold the same character.

    Returns 0.0 when the lengths differ or both digests are empty.
    """
    if len(digest1) != len(digest2) or not digest1:
        return 0.0
    matching = sum(1 for a, b in zip(digest1, digest2) if a == b)
    return matching / len(digest1)


def feature_similarity(features1: VectorLike, features2: VectorLike) -> float:
    """
    Normalized L1 similarity between two feature vectors.

    Computes `1 - sum(|a_i - b_i|) / (max_abs * n)` clamped to [0, 1], where
    `max_abs` is the largest absolute value found in either vector. Vectors of
    different lengths score 0.0; all-zero vectors score 1.0.
    """
    a = np.asarray(features1, dtype=np.float64).ravel()
    b = np.asarray(features2, dtype=np.float64).ravel()

    if a.shape != b.shape:
        logger.warning(f"Feature size mismatch: {a.shape[0]} vs {b.shape[0]}")
        return 0.0
    if a.size == 0:
        return 1.0

    total_difference = float(np.abs(a - b).sum())
    max_feature = float(max(np.abs(a).max(), np.abs(b).max()))
    if max_feature == 0:
        return 1.0

    similarity = 1.0 - total_difference / (max_feature * a.size)
    return float(np.clip(similarity, 0.0, 1.0))


class SimilarityScorer:
    """Combines digest and feature similarity into a single bounded score."""

    def evaluate(
        self,
        live_features: VectorLike,
        stored_features: VectorLike,
        live_digest: str,
        stored_digest: str
    ) -> SimilarityScore:
        hash_score = digest_similarity(live_digest, stored_digest)
        feature_score = feature_similarity(live_features, stored_features)
        overall = float(np.clip((hash_score + feature_score) / 2, 0.0, 1.0))

        logger.debug(
            f"Similarity - digest: {hash_score:.4f}, features: {feature_score:.4f}, overall: {overall:.4f}"
        )
        return SimilarityScore(
            digest_similarity=hash_score,
            feature_similarity=feature_score,
            overall=overall
        )

    def score(
        self,
        live_features: VectorLike,
        stored_features: VectorLike,
        live_digest: str,
        stored_digest: str
    ) -> float:
        """Overall similarity in [0, 1]."""
        return self.evaluate(live_features, stored_features, live_digest, stored_digest).overall

    @staticmethod
    def is_match(similarity: float, threshold: float) -> bool:
        """Accept when the similarity reaches the threshold (inclusive)."""
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got: {threshold}")
        return similarity >= threshold

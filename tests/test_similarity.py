"""
Tests for similarity scoring and sample digests.
"""

import hashlib

import numpy as np
import pytest

from voiceeye.services.hashing import SampleHasher, hash_string
from voiceeye.services.similarity import SimilarityScorer, digest_similarity, feature_similarity

from tests.fakes import make_frame


class TestDigestSimilarity:
    """Test cases for positional digest comparison."""

    def test_identical_digests(self):
        digest = hash_string("open phone")
        assert digest_similarity(digest, digest) == 1.0

    def test_completely_different(self):
        assert digest_similarity("aaaa", "bbbb") == 0.0

    def test_partial_match(self):
        assert digest_similarity("ab", "ax") == 0.5

    def test_length_mismatch_scores_zero(self):
        assert digest_similarity("abc", "ab") == 0.0

    def test_empty_digests_score_zero(self):
        assert digest_similarity("", "") == 0.0


class TestFeatureSimilarity:
    """Test cases for normalized L1 feature comparison."""

    def test_identical_vectors(self):
        assert feature_similarity([10, 2, 3, 4, 0.5, 0], [10, 2, 3, 4, 0.5, 0]) == 1.0

    def test_normalized_difference(self):
        assert feature_similarity([1, 2], [1, 4]) == pytest.approx(0.75)

    def test_all_zero_vectors(self):
        assert feature_similarity(np.zeros(6), np.zeros(6)) == 1.0

    def test_maximally_distant(self):
        assert feature_similarity([0, 0], [10, 10]) == 0.0

    def test_clamped_to_zero(self):
        assert feature_similarity([-10, 10], [10, -10]) == 0.0

    def test_length_mismatch_scores_zero(self):
        assert feature_similarity([1, 2, 3], [1, 2]) == 0.0

    def test_symmetric(self):
        a = [10, 2, 3, 4, 0.5, 0]
        b = [9, 2.5, 3, 5, 0.4, 0.1]
        assert feature_similarity(a, b) == feature_similarity(b, a)


class TestSimilarityScorer:
    """Test cases for SimilarityScorer."""

    @pytest.fixture
    def scorer(self):
        return SimilarityScorer()

    def test_reflexive(self, scorer):
        features = np.array([10, 2, 3, 4, 0.5, 0])
        digest = hash_string("open phone")

        assert scorer.score(features, features, digest, digest) == 1.0

    def test_identical_voice_sample_authenticates(self, scorer):
        features = [10, 2, 3, 4, 0.5, 0]
        digest = hash_string("open phone")

        similarity = scorer.score(features, list(features), digest, digest)

        assert similarity == 1.0
        assert scorer.is_match(similarity, 0.85)

    def test_overall_is_mean_of_components(self, scorer):
        result = scorer.evaluate([1, 2], [1, 4], "ab", "ax")

        assert result.digest_similarity == 0.5
        assert result.feature_similarity == pytest.approx(0.75)
        assert result.overall == pytest.approx(0.625)

    def test_threshold_is_inclusive(self, scorer):
        features = [1.0, 2.0, 3.0]

        similarity = scorer.score(features, features, "ab", "ax")

        assert similarity == 0.75
        assert scorer.is_match(similarity, 0.75)
        assert not scorer.is_match(similarity, 0.76)

    def test_symmetric(self, scorer):
        a, b = [10, 2, 3, 4, 0.5, 0], [8, 2, 4, 4, 0.6, 0]
        d1, d2 = hash_string("open phone"), hash_string("Open phone")

        assert scorer.score(a, b, d1, d2) == scorer.score(b, a, d2, d1)

    def test_mismatched_lengths_never_raise(self, scorer):
        result = scorer.evaluate([1, 2, 3], [1, 2], "abc", "ab")

        assert result.overall == 0.0

    def test_scores_are_bounded(self, scorer):
        rng = np.random.default_rng(11)
        for _ in range(20):
            a = rng.normal(scale=50, size=8)
            b = rng.normal(scale=50, size=8)
            assert 0.0 <= scorer.score(a, b, "abcd", "abce") <= 1.0

    @pytest.mark.parametrize("threshold", [-0.1, 1.1])
    def test_invalid_threshold(self, scorer, threshold):
        with pytest.raises(ValueError, match="Threshold must be between"):
            scorer.is_match(0.5, threshold)


class TestSampleHasher:
    """Test cases for SampleHasher."""

    @pytest.fixture
    def hasher(self):
        return SampleHasher()

    def test_text_digest_is_sha256(self, hasher):
        expected = hashlib.sha256("open phone".encode("utf-8")).hexdigest()

        assert hasher.digest("open phone") == expected
        assert len(expected) == 64

    def test_image_digest_shape(self, hasher):
        digest = hasher.digest(make_frame())

        assert len(digest) == 64
        assert digest == digest.lower()

    def test_image_digest_ignores_capture_resolution(self, hasher):
        small = make_frame(size=32)
        large = np.repeat(np.repeat(small, 2, axis=0), 2, axis=1)

        assert hasher.digest(small) == hasher.digest(large)

    def test_image_digest_differs_between_frames(self, hasher):
        assert hasher.digest(make_frame(seed=1)) != hasher.digest(make_frame(seed=2))

    def test_image_digest_uses_packed_pixels(self, hasher):
        frame = np.zeros((32, 32, 3), dtype=np.uint8)
        frame[:, :, 0] = 1

        expected = hash_string(",".join([str(1 << 16)] * 32 * 32))

        assert hasher.digest(frame) == expected

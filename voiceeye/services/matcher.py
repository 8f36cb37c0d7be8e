"""
Per-modality biometric matching against the enrolled reference record.

A matcher owns one storage key. Enrollment extracts features and a digest
from a sample and overwrites the stored record; authentication compares a
live sample with the stored record and reports a MatchResult outcome.
"""

import logging
from typing import Any, Optional

import numpy as np

from voiceeye.clients.enrollment_store import CorruptRecordError, EnrollmentStore, StorageError
from voiceeye.config import Settings, settings as default_settings
from voiceeye.models.internal_models import EnrollmentRecord, Modality
from voiceeye.models.results import AuthError, MatchResult
from voiceeye.observability import record_match_metrics
from voiceeye.services.feature_extraction import (
    FeatureExtractor,
    IrisFeatureExtractor,
    VoiceFeatureExtractor
)
from voiceeye.services.hashing import SampleHasher
from voiceeye.services.similarity import SimilarityScorer
from voiceeye.utils.image_utils import ImageProcessingError

logger = logging.getLogger(__name__)


def is_empty_sample(sample: Any) -> bool:
    """True for None, empty strings and zero-size frames."""
    if sample is None:
        return True
    if isinstance(sample, str):
        return not sample
    return np.asarray(sample).size == 0


class BiometricMatcher:
    """Enrolls and verifies samples for a single modality."""

    def __init__(
        self,
        extractor: FeatureExtractor,
        store: EnrollmentStore,
        storage_key: str,
        threshold: float,
        hasher: Optional[SampleHasher] = None,
        scorer: Optional[SimilarityScorer] = None
    ):
        self.extractor = extractor
        self.store = store
        self.storage_key = storage_key
        self.threshold = threshold
        self.hasher = hasher or SampleHasher()
        self.scorer = scorer or SimilarityScorer()

    @property
    def modality(self) -> Modality:
        return self.extractor.modality

    def build_record(self, sample: Any) -> EnrollmentRecord:
        """
        Build an enrollment record from a raw sample.

        Raises:
            ValueError: If the sample is empty or cannot be processed
        """
        if is_empty_sample(sample):
            raise ValueError(f"Cannot enroll an empty {self.modality.value} sample")

        features = self.extractor.extract(sample)
        if not self.extractor.validate_features(features):
            raise ValueError(f"Extracted {self.modality.value} features failed validation")

        return EnrollmentRecord(
            modality=self.modality,
            digest=self.hasher.digest(sample),
            features=features
        )

    async def enroll(self, sample: Any) -> EnrollmentRecord:
        """Store a new reference record, replacing any previous one."""
        record = self.build_record(sample)
        await self.store.put(self.storage_key, record)
        logger.info(f"{self.modality.value} enrollment stored under {self.storage_key}")
        return record

    async def is_enrolled(self) -> bool:
        return await self.store.get(self.storage_key) is not None

    async def clear(self) -> bool:
        removed = await self.store.delete(self.storage_key)
        logger.info(f"{self.modality.value} enrollment cleared")
        return removed

    async def authenticate(self, sample: Any) -> MatchResult:
        """
        Compare a live sample with the enrolled record.

        Args:
            sample: Voice text or eye frame, depending on the modality

        Returns:
            MatchResult; `authenticated` is True only when the overall
            similarity reaches the modality threshold
        """
        modality = self.modality

        if is_empty_sample(sample):
            logger.warning(f"Empty {modality.value} sample supplied for authentication")
            return self._failure(AuthError.CAPTURE_UNAVAILABLE, "empty sample")

        try:
            record = await self.store.get(self.storage_key)
        except CorruptRecordError as e:
            logger.error(f"Stored {modality.value} record is corrupted: {e}")
            return self._failure(AuthError.CORRUPT_RECORD, str(e))
        except StorageError as e:
            logger.error(f"Enrollment storage unavailable for {modality.value}: {e}")
            return self._failure(AuthError.STORAGE_UNAVAILABLE, str(e))
        except Exception as e:
            logger.error(f"Unexpected error reading {modality.value} enrollment: {e}")
            return self._failure(AuthError.STORAGE_UNAVAILABLE, str(e))

        if record is None:
            logger.warning(f"No {modality.value} enrollment found for authentication")
            return self._failure(AuthError.NO_ENROLLMENT, f"{modality.value} not enrolled")

        if record.modality != modality or record.features.shape[0] != self.extractor.dimension:
            logger.error(
                f"Stored {modality.value} record has {record.features.shape[0]} features, "
                f"expected {self.extractor.dimension}"
            )
            return self._failure(AuthError.CORRUPT_RECORD, "record shape mismatch")

        try:
            live_features = self.extractor.extract(sample)
            live_digest = self.hasher.digest(sample)
        except ImageProcessingError as e:
            logger.error(f"Could not process live {modality.value} sample: {e}")
            return self._failure(AuthError.CAPTURE_UNAVAILABLE, str(e))

        score = self.scorer.evaluate(live_features, record.features, live_digest, record.digest)
        authenticated = self.scorer.is_match(score.overall, self.threshold)

        logger.info(
            f"{modality.value} authentication - digest similarity: {score.digest_similarity:.4f}, "
            f"feature similarity: {score.feature_similarity:.4f}, overall: {score.overall:.4f}, "
            f"threshold: {self.threshold}, match: {authenticated}"
        )
        record_match_metrics(modality.value, authenticated, score.overall)

        return MatchResult(
            modality=modality,
            authenticated=authenticated,
            score=score,
            threshold=self.threshold,
            error=None if authenticated else AuthError.SIMILARITY_BELOW_THRESHOLD,
            message="match" if authenticated else (
                f"similarity {score.overall:.3f} below threshold {self.threshold}"
            )
        )

    def _failure(self, error: AuthError, message: str) -> MatchResult:
        record_match_metrics(self.modality.value, False, None)
        return MatchResult(
            modality=self.modality,
            authenticated=False,
            threshold=self.threshold,
            error=error,
            message=message
        )


def create_voice_matcher(store: EnrollmentStore, config: Optional[Settings] = None) -> BiometricMatcher:
    config = config or default_settings
    return BiometricMatcher(
        extractor=VoiceFeatureExtractor(),
        store=store,
        storage_key=config.voice_storage_key,
        threshold=config.voice_threshold,
        hasher=SampleHasher(grid_size=config.digest_grid_size)
    )


def create_iris_matcher(store: EnrollmentStore, config: Optional[Settings] = None) -> BiometricMatcher:
    config = config or default_settings
    return BiometricMatcher(
        extractor=IrisFeatureExtractor(image_size=config.iris_image_size),
        store=store,
        storage_key=config.iris_storage_key,
        threshold=config.iris_threshold,
        hasher=SampleHasher(grid_size=config.digest_grid_size)
    )

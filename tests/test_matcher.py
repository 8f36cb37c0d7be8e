"""
Tests for per-modality biometric matching.
"""

import numpy as np
import pytest
from unittest.mock import AsyncMock, patch

from voiceeye.clients.enrollment_store import CorruptRecordError, StorageUnavailableError
from voiceeye.models.internal_models import EnrollmentRecord, Modality
from voiceeye.models.results import AuthError
from voiceeye.services.matcher import create_iris_matcher, create_voice_matcher, is_empty_sample

from tests.fakes import make_frame


class TestVoiceMatcher:
    """Test cases for the voice matcher."""

    @pytest.fixture
    def matcher(self, store, config):
        return create_voice_matcher(store, config)

    def test_configuration(self, matcher, config):
        assert matcher.modality == Modality.VOICE
        assert matcher.threshold == 0.85
        assert matcher.storage_key == config.voice_storage_key

    @pytest.mark.asyncio
    async def test_enroll_then_authenticate_same_sample(self, matcher):
        await matcher.enroll("open phone")

        result = await matcher.authenticate("open phone")

        assert result.authenticated
        assert result.similarity == 1.0
        assert result.error is None

    @pytest.mark.asyncio
    async def test_different_sample_rejected(self, matcher):
        await matcher.enroll("open phone")

        result = await matcher.authenticate("OPEN PHONE PLEASE RIGHT NOW")

        assert not result.authenticated
        assert result.error == AuthError.SIMILARITY_BELOW_THRESHOLD
        assert result.similarity < 0.85

    @pytest.mark.asyncio
    async def test_not_enrolled(self, matcher):
        result = await matcher.authenticate("open phone")

        assert not result.authenticated
        assert result.error == AuthError.NO_ENROLLMENT
        assert result.score is None

    @pytest.mark.asyncio
    async def test_empty_sample(self, matcher):
        await matcher.enroll("open phone")

        result = await matcher.authenticate("")

        assert result.error == AuthError.CAPTURE_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_reenrollment_overwrites(self, matcher, store, config):
        await matcher.enroll("first sample")
        record = await matcher.enroll("open phone")

        stored = await store.get(config.voice_storage_key)

        assert stored.digest == record.digest
        np.testing.assert_array_equal(stored.features, record.features)
        assert (await matcher.authenticate("open phone")).authenticated

    @pytest.mark.asyncio
    async def test_reenrollment_is_idempotent(self, matcher, store, config):
        first = await matcher.enroll("open phone")
        second = await matcher.enroll("open phone")

        assert first.digest == second.digest
        np.testing.assert_array_equal(first.features, second.features)

    @pytest.mark.asyncio
    async def test_enroll_empty_sample_raises(self, matcher):
        with pytest.raises(ValueError):
            await matcher.enroll("")

    @pytest.mark.asyncio
    async def test_wrong_dimension_is_corrupt(self, matcher, store, config):
        await store.put(
            config.voice_storage_key,
            EnrollmentRecord(modality=Modality.VOICE, digest="ab" * 32, features=np.ones(3))
        )

        result = await matcher.authenticate("open phone")

        assert result.error == AuthError.CORRUPT_RECORD
        assert result.score is None

    @pytest.mark.asyncio
    async def test_store_corruption_reported(self, matcher):
        with patch.object(matcher.store, "get", AsyncMock(side_effect=CorruptRecordError("bad row"))):
            result = await matcher.authenticate("open phone")

        assert result.error == AuthError.CORRUPT_RECORD

    @pytest.mark.asyncio
    async def test_store_unavailable(self, matcher):
        with patch.object(matcher.store, "get", AsyncMock(side_effect=StorageUnavailableError("offline"))):
            result = await matcher.authenticate("open phone")

        assert result.error == AuthError.STORAGE_UNAVAILABLE
        assert not result.error.recoverable

    @pytest.mark.asyncio
    async def test_clear(self, matcher):
        await matcher.enroll("open phone")

        assert await matcher.is_enrolled()
        assert await matcher.clear()
        assert not await matcher.is_enrolled()
        assert not await matcher.clear()


class TestIrisMatcher:
    """Test cases for the iris matcher."""

    @pytest.fixture
    def matcher(self, store, config):
        return create_iris_matcher(store, config)

    def test_configuration(self, matcher):
        assert matcher.modality == Modality.IRIS
        assert matcher.threshold == 0.80
        assert matcher.extractor.dimension == 8

    @pytest.mark.asyncio
    async def test_same_frame_authenticates(self, matcher, frame):
        await matcher.enroll(frame)

        result = await matcher.authenticate(frame.copy())

        assert result.authenticated
        assert result.similarity == 1.0

    @pytest.mark.asyncio
    async def test_dark_frame_rejected(self, matcher, frame):
        await matcher.enroll(frame)

        result = await matcher.authenticate(np.zeros_like(frame))

        assert not result.authenticated
        assert result.error == AuthError.SIMILARITY_BELOW_THRESHOLD

    @pytest.mark.asyncio
    async def test_unsupported_frame_shape(self, matcher, frame):
        await matcher.enroll(frame)

        result = await matcher.authenticate(np.zeros((4, 4, 2), dtype=np.uint8))

        assert result.error == AuthError.CAPTURE_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_record_from_other_modality_is_corrupt(self, matcher, store, config):
        voice_record = create_voice_matcher(store, config).build_record("open phone")
        await store.put(config.iris_storage_key, voice_record)

        result = await matcher.authenticate(make_frame())

        assert result.error == AuthError.CORRUPT_RECORD


class TestIsEmptySample:
    """Test cases for is_empty_sample."""

    def test_empty_values(self):
        assert is_empty_sample(None)
        assert is_empty_sample("")
        assert is_empty_sample(np.zeros((0, 3)))

    def test_non_empty_values(self):
        assert not is_empty_sample("open phone")
        assert not is_empty_sample(make_frame(size=2))

"""
Tests for capture step handling and enrollment record models.
"""

import asyncio
from datetime import datetime

import numpy as np
import pytest
from unittest.mock import Mock

from voiceeye.clients.capture import CaptureUnavailableError, capture_with_timeout
from voiceeye.clients.enrollment_store import InMemoryEnrollmentStore
from voiceeye.models.internal_models import AuthSession, AuthState, EnrollmentRecord, Modality
from voiceeye.models.results import AuthError, AuthResult, AuthStatus
from voiceeye.models.storage_models import EnrollmentPayload


class TestCaptureWithTimeout:
    """Test cases for capture_with_timeout."""

    @pytest.mark.asyncio
    async def test_success(self):
        release = Mock()

        async def capture():
            return "open phone"

        outcome = await capture_with_timeout(capture, timeout=1.0, release=release, step="wake word")

        assert outcome.ok
        assert outcome.value == "open phone"
        release.assert_not_called()

    @pytest.mark.asyncio
    async def test_timeout_releases(self):
        release = Mock()

        async def capture():
            await asyncio.sleep(1.0)

        outcome = await capture_with_timeout(capture, timeout=0.01, release=release, step="eye scan")

        assert outcome.error == AuthError.CAPTURE_TIMEOUT
        assert outcome.message == "eye scan timeout"
        release.assert_called_once()

    @pytest.mark.asyncio
    async def test_none_result_is_timeout(self):
        release = Mock()

        async def capture():
            return None

        outcome = await capture_with_timeout(capture, timeout=1.0, release=release, step="iris capture")

        assert outcome.error == AuthError.CAPTURE_TIMEOUT
        release.assert_called_once()

    @pytest.mark.asyncio
    async def test_hardware_unavailable(self):
        release = Mock()

        async def capture():
            raise CaptureUnavailableError("camera in use")

        outcome = await capture_with_timeout(capture, timeout=1.0, release=release, step="eye scan")

        assert outcome.error == AuthError.CAPTURE_UNAVAILABLE
        assert outcome.message == "eye scan unavailable"
        release.assert_called_once()

    @pytest.mark.asyncio
    async def test_release_errors_are_swallowed(self):
        release = Mock(side_effect=RuntimeError("already released"))

        async def capture():
            return None

        outcome = await capture_with_timeout(capture, timeout=1.0, release=release, step="wake word")

        assert outcome.error == AuthError.CAPTURE_TIMEOUT

    @pytest.mark.asyncio
    async def test_cancellation_releases_and_propagates(self):
        release = Mock()

        async def capture():
            await asyncio.sleep(5.0)

        task = asyncio.ensure_future(capture_with_timeout(capture, timeout=10.0, release=release, step="wake word"))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        release.assert_called_once()


class TestEnrollmentRecord:
    """Test cases for EnrollmentRecord and its persisted form."""

    def test_coerces_features(self):
        record = EnrollmentRecord(modality="iris", digest="ab", features=[1, 2, 3])

        assert record.modality == Modality.IRIS
        assert record.features.dtype == np.float64

    @pytest.mark.parametrize("features", [[], [[1.0, 2.0]], [float("nan")]])
    def test_invalid_features(self, features):
        with pytest.raises(ValueError):
            EnrollmentRecord(modality=Modality.VOICE, digest="ab", features=features)

    def test_empty_digest(self):
        with pytest.raises(ValueError):
            EnrollmentRecord(modality=Modality.VOICE, digest="", features=[1.0])

    def test_payload_conversion(self):
        record = EnrollmentRecord(
            modality=Modality.VOICE,
            digest="0f" * 32,
            features=[10, 4.5, 2, 6, 0.8, 0],
            enrolled_at=datetime(2024, 1, 1)
        )

        restored = EnrollmentPayload.from_record(record).to_record()

        assert restored.modality == record.modality
        assert restored.digest == record.digest
        assert restored.enrolled_at == record.enrolled_at
        np.testing.assert_array_equal(restored.features, record.features)

    @pytest.mark.asyncio
    async def test_in_memory_store_returns_copies(self):
        store = InMemoryEnrollmentStore()
        record = EnrollmentRecord(modality=Modality.VOICE, digest="ab", features=[1.0, 2.0])
        await store.put("key", record)

        fetched = await store.get("key")
        fetched.features[0] = 99.0

        assert (await store.get("key")).features[0] == 1.0


class TestAuthResult:
    """Test cases for AuthResult serialization."""

    def test_to_dict(self):
        session = AuthSession()
        session.state = AuthState.FAILED
        session.step_timings["wake_word_wait"] = 0.5
        result = AuthResult(
            status=AuthStatus.FAILED,
            session=session,
            reason="wake word not detected",
            error=AuthError.WAKE_WORD_NOT_DETECTED
        )

        data = result.to_dict()

        assert data["status"] == "failed"
        assert data["state"] == "failed"
        assert data["reason"] == "wake word not detected"
        assert data["error"] == "wake_word_not_detected"
        assert data["step_timings"] == {"wake_word_wait": 0.5}
        assert "fallback" not in data
        assert not result.authenticated

    def test_recoverable_errors(self):
        assert AuthError.CAPTURE_TIMEOUT.recoverable
        assert AuthError.LIVENESS_REJECTED.recoverable
        assert not AuthError.STORAGE_UNAVAILABLE.recoverable
        assert not AuthError.CORRUPT_RECORD.recoverable

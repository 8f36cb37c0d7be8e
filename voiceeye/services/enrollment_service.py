"""
Enrollment service for voice and iris setup flows.

This module provides:
- Guided enrollment that captures a sample from the hardware collaborators
- Direct enrollment from an already captured sample
- Setup status queries and clearing of stored enrollments
"""

import logging
from typing import Any, List, Optional

from voiceeye.clients.capture import EyeCapture, VoiceCapture, capture_with_timeout, release_quietly
from voiceeye.clients.enrollment_store import CorruptRecordError, EnrollmentStore, StorageError
from voiceeye.config import Settings, settings as default_settings
from voiceeye.models.internal_models import Modality
from voiceeye.models.results import AuthError, EnrollmentResult, SetupStatus
from voiceeye.observability import record_enrollment_metrics, trace_function
from voiceeye.services.liveness import LivenessGate
from voiceeye.services.matcher import BiometricMatcher, create_iris_matcher, create_voice_matcher

logger = logging.getLogger(__name__)


class EnrollmentService:
    """
    Stores reference templates for both modalities.

    Expected negatives (timeouts, liveness rejection, storage trouble) are
    returned as EnrollmentResult values rather than raised.
    """

    def __init__(
        self,
        store: EnrollmentStore,
        voice_capture: Optional[VoiceCapture] = None,
        eye_capture: Optional[EyeCapture] = None,
        config: Optional[Settings] = None,
        voice_matcher: Optional[BiometricMatcher] = None,
        iris_matcher: Optional[BiometricMatcher] = None,
        liveness_gate: Optional[LivenessGate] = None
    ):
        self.config = config or default_settings
        self.store = store
        self.voice_capture = voice_capture
        self.eye_capture = eye_capture
        self.voice_matcher = voice_matcher or create_voice_matcher(store, self.config)
        self.iris_matcher = iris_matcher or create_iris_matcher(store, self.config)
        self.liveness_gate = liveness_gate or LivenessGate(
            eye_open_threshold=self.config.eye_open_threshold,
            max_pose_angle=self.config.max_pose_angle,
            min_face_ratio=self.config.min_face_ratio
        )

    def matcher_for(self, modality: Modality) -> BiometricMatcher:
        if Modality(modality) == Modality.VOICE:
            return self.voice_matcher
        return self.iris_matcher

    @trace_function("enrollment.enroll_voice")
    async def enroll_voice(self) -> EnrollmentResult:
        """
        Capture a voice print from the microphone and store it.

        Returns:
            EnrollmentResult for the voice modality
        """
        if self.voice_capture is None:
            return self._result(Modality.VOICE, False, AuthError.CAPTURE_UNAVAILABLE, "voice print unavailable")

        logger.info("Starting voice enrollment")
        outcome = await capture_with_timeout(
            lambda: self.voice_capture.capture_print(self.config.voice_print_timeout),
            timeout=self.config.voice_print_timeout,
            release=self.voice_capture.release,
            step="voice print"
        )
        if not outcome.ok:
            return self._result(Modality.VOICE, False, outcome.error, outcome.message)

        release_quietly(self.voice_capture.release, "voice print")
        return await self.enroll_voice_sample(outcome.value)

    async def enroll_voice_sample(self, text: str) -> EnrollmentResult:
        """Store a voice sample that was captured elsewhere."""
        return await self._enroll(self.voice_matcher, text)

    @trace_function("enrollment.enroll_iris")
    async def enroll_iris(self) -> EnrollmentResult:
        """
        Scan for a live, open-eyed face and store an iris template.

        Flow: face scan, liveness gate, then a high-resolution capture
        (or the scan frame itself when high-res capture is disabled).

        Returns:
            EnrollmentResult for the iris modality
        """
        if self.eye_capture is None:
            return self._result(Modality.IRIS, False, AuthError.CAPTURE_UNAVAILABLE, "eye scan unavailable")

        logger.info("Starting iris enrollment")
        scan_outcome = await capture_with_timeout(
            lambda: self.eye_capture.scan_face(self.config.eye_scan_timeout),
            timeout=self.config.eye_scan_timeout,
            release=self.eye_capture.release,
            step="eye scan"
        )
        if not scan_outcome.ok:
            return self._result(Modality.IRIS, False, scan_outcome.error, scan_outcome.message)

        try:
            decision = self.liveness_gate.evaluate(scan_outcome.value)
            if not decision.is_live:
                logger.warning(f"Iris enrollment rejected by liveness gate: {decision.reason}")
                return self._result(
                    Modality.IRIS, False, AuthError.LIVENESS_REJECTED, f"liveness detection failed: {decision.reason}"
                )

            if self.config.capture_high_res_iris:
                frame_outcome = await capture_with_timeout(
                    lambda: self.eye_capture.capture_high_res_frame(self.config.iris_capture_timeout),
                    timeout=self.config.iris_capture_timeout,
                    release=self.eye_capture.release,
                    step="iris capture"
                )
                if not frame_outcome.ok:
                    return self._result(Modality.IRIS, False, frame_outcome.error, frame_outcome.message)
                frame = frame_outcome.value
            else:
                frame = scan_outcome.value.frame
                if frame is None:
                    return self._result(Modality.IRIS, False, AuthError.CAPTURE_UNAVAILABLE, "iris capture unavailable")
        finally:
            # The camera is not needed once a frame is in hand or the flow has failed
            release_quietly(self.eye_capture.release, "iris capture")

        return await self.enroll_iris_frame(frame)

    async def enroll_iris_frame(self, frame: Any) -> EnrollmentResult:
        """Store an iris template built from a given frame."""
        return await self._enroll(self.iris_matcher, frame)

    async def is_enrolled(self, modality: Modality) -> bool:
        """
        Check whether a record is stored for a modality.

        Raises:
            StorageError: If the store cannot be read
        """
        try:
            return await self.matcher_for(modality).is_enrolled()
        except CorruptRecordError:
            # A corrupt record still occupies the key.
            return True

    async def setup_status(self) -> SetupStatus:
        """
        Report which modalities are enrolled.

        Raises:
            StorageError: If the store cannot be read
        """
        return SetupStatus(
            voice=await self.is_enrolled(Modality.VOICE),
            iris=await self.is_enrolled(Modality.IRIS)
        )

    async def clear(self, modality: Modality) -> EnrollmentResult:
        modality = Modality(modality)
        try:
            removed = await self.matcher_for(modality).clear()
        except StorageError as e:
            logger.error(f"Failed to clear {modality.value} enrollment: {e}")
            return EnrollmentResult(modality, False, AuthError.STORAGE_UNAVAILABLE, str(e))
        return EnrollmentResult(modality, True, message="cleared" if removed else "not enrolled")

    async def clear_all(self) -> List[EnrollmentResult]:
        """Clear every stored enrollment."""
        return [await self.clear(Modality.VOICE), await self.clear(Modality.IRIS)]

    async def _enroll(self, matcher: BiometricMatcher, sample: Any) -> EnrollmentResult:
        modality = matcher.modality
        try:
            await matcher.enroll(sample)
        except ValueError as e:
            logger.error(f"Invalid {modality.value} enrollment sample: {e}")
            return self._result(modality, False, AuthError.CAPTURE_UNAVAILABLE, str(e))
        except StorageError as e:
            logger.error(f"Failed to store {modality.value} enrollment: {e}")
            return self._result(modality, False, AuthError.STORAGE_UNAVAILABLE, "storage unavailable")
        except Exception as e:
            logger.error(f"Unexpected error during {modality.value} enrollment: {e}")
            return self._result(modality, False, AuthError.STORAGE_UNAVAILABLE, f"enrollment failed: {e}")

        logger.info(f"{modality.value} enrollment completed successfully")
        return self._result(modality, True, message="enrolled")

    def _result(
        self,
        modality: Modality,
        success: bool,
        error: Optional[AuthError] = None,
        message: str = ""
    ) -> EnrollmentResult:
        record_enrollment_metrics(modality.value, success)
        return EnrollmentResult(modality=modality, success=success, error=error, message=message)

"""
Authentication orchestrator for the two-factor voice + eye unlock pipeline.

This module sequences one authentication session:
- Enrollment check, then wake-word capture and voice verification
- Eye scan, single-frame liveness gate and iris verification
- Device unlock on success, or fallback escalation on a recoverable failure

Each step runs under its own deadline. A session ends in COMPLETE, FAILED
or CANCELLED; sessions that cannot start because a modality is not enrolled
report SETUP_REQUIRED instead.
"""

import asyncio
import time
from typing import List, Optional

import structlog

from voiceeye.clients.capture import EyeCapture, VoiceCapture, capture_with_timeout
from voiceeye.clients.device import DeviceUnlock, ProgressSink
from voiceeye.clients.enrollment_store import CorruptRecordError, EnrollmentStore, StorageError
from voiceeye.config import Settings, settings as default_settings
from voiceeye.models.internal_models import AuthSession, AuthState, Modality
from voiceeye.models.results import (
    AuthError,
    AuthResult,
    AuthStatus,
    MatchResult
)
from voiceeye.observability import record_authentication_metrics, trace_function
from voiceeye.services.fallback import FallbackEscalation
from voiceeye.services.liveness import LivenessGate
from voiceeye.services.matcher import BiometricMatcher, create_iris_matcher, create_voice_matcher

logger = structlog.get_logger(__name__)


class SessionInProgressError(RuntimeError):
    """Raised when a session is started while another one is running."""
    pass


class AuthenticationOrchestrator:
    """
    Runs authentication sessions, one at a time.

    The orchestrator is the only writer of AuthSession state. Progress and
    terminal notifications go to the ProgressSink; exceptions raised by the
    sink are logged and never change the outcome.
    """

    def __init__(
        self,
        voice_capture: VoiceCapture,
        eye_capture: EyeCapture,
        store: EnrollmentStore,
        device: DeviceUnlock,
        sink: Optional[ProgressSink] = None,
        config: Optional[Settings] = None,
        fallback: Optional[FallbackEscalation] = None,
        voice_matcher: Optional[BiometricMatcher] = None,
        iris_matcher: Optional[BiometricMatcher] = None,
        liveness_gate: Optional[LivenessGate] = None
    ):
        self.config = config or default_settings
        self.voice_capture = voice_capture
        self.eye_capture = eye_capture
        self.store = store
        self.device = device
        self.sink = sink or ProgressSink()
        self.fallback = fallback or FallbackEscalation(device)
        self.voice_matcher = voice_matcher or create_voice_matcher(store, self.config)
        self.iris_matcher = iris_matcher or create_iris_matcher(store, self.config)
        self.liveness_gate = liveness_gate or LivenessGate(
            eye_open_threshold=self.config.eye_open_threshold,
            max_pose_angle=self.config.max_pose_angle,
            min_face_ratio=self.config.min_face_ratio
        )

        self._task: Optional[asyncio.Task] = None
        self._cancel_requested = False
        self._failed_result: Optional[AuthResult] = None
        self._session: Optional[AuthSession] = None
        self._state_started = 0.0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def session(self) -> Optional[AuthSession]:
        """The current session, or the last finished one."""
        return self._session

    @trace_function("auth.authenticate")
    async def authenticate(self) -> AuthResult:
        """
        Run one authentication session to a terminal state.

        Returns:
            AuthResult with status COMPLETE, FAILED, CANCELLED or SETUP_REQUIRED

        Raises:
            SessionInProgressError: If a session is already running
        """
        if self.is_running:
            raise SessionInProgressError("An authentication session is already running")

        session = AuthSession()
        self._session = session
        self._cancel_requested = False
        self._failed_result = None
        self._state_started = time.monotonic()
        started = self._state_started

        logger.info("Authentication session started", session_id=session.session_id)

        self._task = asyncio.ensure_future(self._run(session))
        try:
            result = await self._task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                # The caller's own task was cancelled.
                self._finish_cancelled(session)
                raise
            if self._failed_result is not None:
                # on_failure already fired; only the fallback prompt was interrupted
                logger.info("Fallback cancelled", session_id=session.session_id)
                result = self._failed_result
            else:
                result = self._finish_cancelled(session)
                self._notify("on_cancelled")
        finally:
            self._task = None

        duration = time.monotonic() - started
        record_authentication_metrics(
            result.status.value,
            duration,
            result.error.value if result.error else None
        )
        logger.info(
            "Authentication session finished",
            session_id=session.session_id,
            status=result.status.value,
            reason=result.reason,
            duration_seconds=round(duration, 3)
        )
        return result

    def cancel(self) -> bool:
        """
        Cancel the running session.

        Returns:
            True if a running session was cancelled
        """
        if not self.is_running:
            return False

        logger.info("Cancelling authentication session", session_id=self._session.session_id)
        self._cancel_requested = True
        self._task.cancel()
        return True

    async def _run(self, session: AuthSession) -> AuthResult:
        config = self.config

        # Both modalities must be enrolled before any capture starts
        missing: List[Modality] = []
        for modality, matcher in ((Modality.VOICE, self.voice_matcher), (Modality.IRIS, self.iris_matcher)):
            try:
                if not await matcher.is_enrolled():
                    missing.append(modality)
            except CorruptRecordError as e:
                logger.error("Corrupt enrollment record", session_id=session.session_id, error=str(e))
                return await self._fail(session, AuthError.CORRUPT_RECORD, f"{modality.value} enrollment record corrupted")
            except StorageError as e:
                logger.error("Enrollment storage unavailable", session_id=session.session_id, error=str(e))
                return await self._fail(session, AuthError.STORAGE_UNAVAILABLE, "storage unavailable")

        if missing:
            return self._setup_required(session, missing)

        # Step 1: wake word
        self._transition(session, AuthState.WAKE_WORD_WAIT, f"Say '{config.wake_phrase}' to unlock")
        outcome = await capture_with_timeout(
            lambda: self.voice_capture.listen_for_phrase(config.wake_word_timeout),
            timeout=config.wake_word_timeout,
            release=self.voice_capture.release,
            step="wake word"
        )
        if not outcome.ok:
            return await self._fail(session, outcome.error, outcome.message)

        utterance = outcome.value
        self._release(self.voice_capture, "wake word")
        if config.wake_phrase not in utterance.lower():
            logger.info("Wake word not detected", session_id=session.session_id)
            return await self._fail(session, AuthError.WAKE_WORD_NOT_DETECTED, "wake word not detected")

        # Step 2: voice verification on the wake-word utterance
        self._transition(session, AuthState.VOICE_AUTH, "Verifying voice...")
        voice_match = await self.voice_matcher.authenticate(utterance)
        if not voice_match.authenticated:
            return await self._match_failed(session, voice_match, "voice authentication failed")

        # Step 3: eye scan
        self._transition(session, AuthState.EYE_SCAN, "Look at the camera")
        scan_outcome = await capture_with_timeout(
            lambda: self.eye_capture.scan_face(config.eye_scan_timeout),
            timeout=config.eye_scan_timeout,
            release=self.eye_capture.release,
            step="eye scan"
        )
        if not scan_outcome.ok:
            return await self._fail(session, scan_outcome.error, scan_outcome.message, voice_match=voice_match)

        # Step 4: liveness
        self._transition(session, AuthState.LIVENESS_CHECK, "Checking liveness...")
        decision = self.liveness_gate.evaluate(scan_outcome.value)
        if not decision.is_live:
            logger.info("Liveness rejected", session_id=session.session_id, reason=decision.reason)
            self._release(self.eye_capture, "liveness check")
            return await self._fail(
                session, AuthError.LIVENESS_REJECTED, "liveness detection failed", voice_match=voice_match
            )

        # Step 5: iris verification
        self._transition(session, AuthState.IRIS_AUTH, "Verifying iris...")
        if config.capture_high_res_iris:
            frame_outcome = await capture_with_timeout(
                lambda: self.eye_capture.capture_high_res_frame(config.iris_capture_timeout),
                timeout=config.iris_capture_timeout,
                release=self.eye_capture.release,
                step="iris capture"
            )
            if not frame_outcome.ok:
                return await self._fail(session, frame_outcome.error, frame_outcome.message, voice_match=voice_match)
            frame = frame_outcome.value
        else:
            frame = scan_outcome.value.frame
            if frame is None:
                self._release(self.eye_capture, "iris capture")
                return await self._fail(
                    session, AuthError.CAPTURE_UNAVAILABLE, "iris capture unavailable", voice_match=voice_match
                )

        self._release(self.eye_capture, "iris capture")
        iris_match = await self.iris_matcher.authenticate(frame)
        if not iris_match.authenticated:
            return await self._match_failed(
                session, iris_match, "iris authentication failed", voice_match=voice_match
            )

        # Step 6: unlock
        self._transition(session, AuthState.UNLOCKING, "Unlocking device...")
        try:
            if self.device.is_device_locked():
                unlock_result = await self.device.unlock()
                if not unlock_result.ok:
                    return await self._fail(
                        session,
                        AuthError.UNLOCK_FAILED,
                        f"unlock failed: {unlock_result.message}",
                        voice_match=voice_match,
                        iris_match=iris_match
                    )
            else:
                logger.info("Device already unlocked", session_id=session.session_id)
        except Exception as e:
            logger.error("Device unlock raised", session_id=session.session_id, error=str(e))
            return await self._fail(
                session, AuthError.UNLOCK_FAILED, f"unlock failed: {e}", voice_match=voice_match, iris_match=iris_match
            )

        self._transition(session, AuthState.COMPLETE)
        self._notify("on_success")
        return AuthResult(
            status=AuthStatus.COMPLETE,
            session=session,
            voice_match=voice_match,
            iris_match=iris_match
        )

    def _transition(self, session: AuthSession, state: AuthState, message: Optional[str] = None) -> None:
        now = time.monotonic()
        previous = session.state
        if previous != AuthState.IDLE:
            session.step_timings[previous.value] = now - self._state_started
        self._state_started = now

        session.state = state
        session.transitions.append(state)
        logger.debug(
            "State transition",
            session_id=session.session_id,
            from_state=previous.value,
            to_state=state.value
        )

        if message is not None:
            self._notify("on_progress", state.value, message)

    async def _match_failed(
        self,
        session: AuthSession,
        match: MatchResult,
        reason: str,
        voice_match: Optional[MatchResult] = None
    ) -> AuthResult:
        if match.modality == Modality.VOICE:
            voice_match = match
        iris_match = match if match.modality == Modality.IRIS else None

        if match.error == AuthError.NO_ENROLLMENT:
            return self._setup_required(session, [match.modality])
        if match.error == AuthError.STORAGE_UNAVAILABLE:
            reason = "storage unavailable"
        elif match.error == AuthError.CORRUPT_RECORD:
            reason = f"{match.modality.value} enrollment record corrupted"

        return await self._fail(
            session,
            match.error or AuthError.SIMILARITY_BELOW_THRESHOLD,
            reason,
            voice_match=voice_match,
            iris_match=iris_match
        )

    async def _fail(
        self,
        session: AuthSession,
        error: AuthError,
        reason: str,
        voice_match: Optional[MatchResult] = None,
        iris_match: Optional[MatchResult] = None
    ) -> AuthResult:
        failed_step = session.state
        session.last_error = error
        session.failure_reason = reason
        self._transition(session, AuthState.FAILED)

        logger.warning(
            "Authentication failed",
            session_id=session.session_id,
            step=failed_step.value,
            error=error.value,
            reason=reason
        )
        self._notify("on_failure", reason)

        result = AuthResult(
            status=AuthStatus.FAILED,
            session=session,
            reason=reason,
            error=error,
            voice_match=voice_match,
            iris_match=iris_match
        )

        if self.config.auto_fallback and error.recoverable:
            self._failed_result = result
            result.fallback = await self.fallback.execute_automatic()
            logger.info(
                "Fallback finished",
                session_id=session.session_id,
                method=result.fallback.method.value if result.fallback.method else None,
                success=result.fallback.success
            )

        return result

    def _setup_required(self, session: AuthSession, missing: List[Modality]) -> AuthResult:
        session.last_error = AuthError.NO_ENROLLMENT
        session.failure_reason = "setup required"
        self._transition(session, AuthState.FAILED)

        logger.warning(
            "Setup required",
            session_id=session.session_id,
            missing=[m.value for m in missing]
        )
        self._notify("on_setup_required", list(missing))

        return AuthResult(
            status=AuthStatus.SETUP_REQUIRED,
            session=session,
            reason="setup required",
            error=AuthError.NO_ENROLLMENT,
            missing_modalities=list(missing)
        )

    def _finish_cancelled(self, session: AuthSession) -> AuthResult:
        if not session.is_terminal:
            session.last_error = AuthError.CANCELLED
            session.failure_reason = None
            self._transition(session, AuthState.CANCELLED)
        return AuthResult(
            status=AuthStatus.CANCELLED,
            session=session,
            reason="cancelled",
            error=AuthError.CANCELLED
        )

    def _release(self, capture, step: str) -> None:
        try:
            capture.release()
        except Exception as e:
            logger.warning("Failed to release capture", step=step, error=str(e))

    def _notify(self, method: str, *args) -> None:
        try:
            getattr(self.sink, method)(*args)
        except Exception as e:
            logger.error("Progress sink raised", callback=method, error=str(e))

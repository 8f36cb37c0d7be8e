"""Composition root wiring the unlock engine from settings."""

from dataclasses import dataclass
from typing import Optional

import structlog

from voiceeye.clients.capture import EyeCapture, VoiceCapture
from voiceeye.clients.device import DeviceUnlock, LoggingProgressSink, ProgressSink
from voiceeye.clients.enrollment_store import EnrollmentStore, InMemoryEnrollmentStore
from voiceeye.config import Settings, settings as default_settings
from voiceeye.models.storage_models import HealthCheckResult
from voiceeye.observability import configure_logging, setup_observability
from voiceeye.services.enrollment_service import EnrollmentService
from voiceeye.services.fallback import FallbackEscalation
from voiceeye.services.health import run_health_check
from voiceeye.services.liveness import LivenessGate
from voiceeye.services.matcher import create_iris_matcher, create_voice_matcher
from voiceeye.services.orchestrator import AuthenticationOrchestrator

logger = structlog.get_logger()


@dataclass
class UnlockSystem:
    """Engine components sharing one store, matcher pair and device."""

    config: Settings
    store: EnrollmentStore
    device: DeviceUnlock
    orchestrator: AuthenticationOrchestrator
    enrollment: EnrollmentService
    fallback: FallbackEscalation

    async def health_check(self) -> HealthCheckResult:
        return await run_health_check(self.enrollment, self.device, self.store)


def create_store(config: Settings) -> EnrollmentStore:
    """Use Supabase when credentials are configured, otherwise keep records in memory."""
    if config.supabase_enabled:
        from voiceeye.clients.supabase_client import SupabaseEnrollmentStore

        logger.info("Using Supabase enrollment store", table=config.supabase_table)
        return SupabaseEnrollmentStore.from_settings(config)

    logger.info("Using in-memory enrollment store")
    return InMemoryEnrollmentStore()


def create_system(
    voice_capture: VoiceCapture,
    eye_capture: EyeCapture,
    device: DeviceUnlock,
    store: Optional[EnrollmentStore] = None,
    sink: Optional[ProgressSink] = None,
    config: Optional[Settings] = None,
    configure_observability: bool = True
) -> UnlockSystem:
    """
    Build a ready-to-use unlock engine.

    Args:
        voice_capture: Microphone + speech recognizer collaborator
        eye_capture: Camera + face detector collaborator
        device: Platform unlock capability
        store: Enrollment store; chosen from settings when omitted
        sink: Progress receiver; logs notifications when omitted
        config: Settings instance; the module-level settings when omitted
        configure_observability: Whether to configure logging and OpenTelemetry

    Returns:
        UnlockSystem holding the orchestrator, enrollment service and fallback
    """
    config = config or default_settings

    if configure_observability:
        configure_logging(config.log_level)
        setup_observability(
            service_name="voice-eye-auth",
            service_version="1.0.0",
            otlp_endpoint=config.otlp_endpoint
        )

    store = store or create_store(config)
    voice_matcher = create_voice_matcher(store, config)
    iris_matcher = create_iris_matcher(store, config)
    liveness_gate = LivenessGate(
        eye_open_threshold=config.eye_open_threshold,
        max_pose_angle=config.max_pose_angle,
        min_face_ratio=config.min_face_ratio
    )
    fallback = FallbackEscalation(device)

    orchestrator = AuthenticationOrchestrator(
        voice_capture=voice_capture,
        eye_capture=eye_capture,
        store=store,
        device=device,
        sink=sink or LoggingProgressSink(),
        config=config,
        fallback=fallback,
        voice_matcher=voice_matcher,
        iris_matcher=iris_matcher,
        liveness_gate=liveness_gate
    )
    enrollment = EnrollmentService(
        store=store,
        voice_capture=voice_capture,
        eye_capture=eye_capture,
        config=config,
        voice_matcher=voice_matcher,
        iris_matcher=iris_matcher,
        liveness_gate=liveness_gate
    )

    logger.info(
        "Unlock engine ready",
        voice_threshold=config.voice_threshold,
        iris_threshold=config.iris_threshold,
        auto_fallback=config.auto_fallback
    )

    return UnlockSystem(
        config=config,
        store=store,
        device=device,
        orchestrator=orchestrator,
        enrollment=enrollment,
        fallback=fallback
    )

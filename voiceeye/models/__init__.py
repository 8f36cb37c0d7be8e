"""Data models for the voice + eye unlock engine."""

from .internal_models import (
    AuthSession,
    AuthState,
    EnrollmentRecord,
    FaceScan,
    Modality
)
from .results import (
    AuthError,
    AuthResult,
    AuthStatus,
    EnrollmentResult,
    FallbackMethod,
    FallbackResult,
    LivenessDecision,
    MatchResult,
    SetupStatus,
    SimilarityScore,
    StepOutcome,
    UnlockResult,
    UnlockStatus
)
from .storage_models import (
    EnrollmentPayload,
    HealthCheckResult
)

__all__ = [
    "AuthSession",
    "AuthState",
    "EnrollmentRecord",
    "FaceScan",
    "Modality",
    "AuthError",
    "AuthResult",
    "AuthStatus",
    "EnrollmentResult",
    "FallbackMethod",
    "FallbackResult",
    "LivenessDecision",
    "MatchResult",
    "SetupStatus",
    "SimilarityScore",
    "StepOutcome",
    "UnlockResult",
    "UnlockStatus",
    "EnrollmentPayload",
    "HealthCheckResult"
]

"""Outcome values returned by capture steps, matchers and the orchestrator.

Expected negative outcomes (timeouts, mismatches, liveness rejection, missing
enrollment, storage trouble) are modeled as values so that the orchestrator
can inspect them and decide the next transition. Exceptions are reserved for
programmer errors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from .internal_models import AuthSession, Modality

T = TypeVar("T")


class AuthError(str, Enum):
    """Error taxonomy for authentication and enrollment steps."""

    CAPTURE_TIMEOUT = "capture_timeout"
    CAPTURE_UNAVAILABLE = "capture_unavailable"
    NO_ENROLLMENT = "no_enrollment"
    SIMILARITY_BELOW_THRESHOLD = "similarity_below_threshold"
    LIVENESS_REJECTED = "liveness_rejected"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    CORRUPT_RECORD = "corrupt_record"
    WAKE_WORD_NOT_DETECTED = "wake_word_not_detected"
    UNLOCK_FAILED = "unlock_failed"
    CANCELLED = "cancelled"

    @property
    def recoverable(self) -> bool:
        """Whether a fallback path may be attempted after this error."""
        return self not in (AuthError.STORAGE_UNAVAILABLE, AuthError.CORRUPT_RECORD)


class AuthStatus(str, Enum):
    """Terminal status of an authentication attempt."""

    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SETUP_REQUIRED = "setup_required"


class FallbackMethod(str, Enum):
    """Alternate authentication paths, highest priority first."""

    BIOMETRIC = "biometric"
    DEVICE_CREDENTIAL = "device_credential"
    PIN = "pin"


class UnlockStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    BIOMETRIC_AVAILABLE = "biometric_available"
    SYSTEM_UNLOCK_SHOWN = "system_unlock_shown"


@dataclass
class StepOutcome(Generic[T]):
    """Result of a single capture step."""

    value: Optional[T] = None
    error: Optional[AuthError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StepOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AuthError, message: str = "") -> "StepOutcome[T]":
        return cls(error=error, message=message)


@dataclass
class SimilarityScore:
    """Component scores from comparing a live sample with a stored record."""

    digest_similarity: float
    feature_similarity: float
    overall: float


@dataclass
class MatchResult:
    """Outcome of matching a live sample against the enrolled record."""

    modality: Modality
    authenticated: bool
    score: Optional[SimilarityScore] = None
    threshold: Optional[float] = None
    error: Optional[AuthError] = None
    message: str = ""

    @property
    def similarity(self) -> Optional[float]:
        return self.score.overall if self.score else None


@dataclass
class LivenessDecision:
    is_live: bool
    reason: str


@dataclass
class UnlockResult:
    status: UnlockStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status != UnlockStatus.ERROR


@dataclass
class FallbackResult:
    method: Optional[FallbackMethod]
    success: bool
    message: str = ""


@dataclass
class EnrollmentResult:
    """Outcome of an enrollment flow."""

    modality: Modality
    success: bool
    error: Optional[AuthError] = None
    message: str = ""


@dataclass
class SetupStatus:
    voice: bool
    iris: bool

    @property
    def complete(self) -> bool:
        return self.voice and self.iris

    @property
    def missing(self) -> List[Modality]:
        missing = []
        if not self.voice:
            missing.append(Modality.VOICE)
        if not self.iris:
            missing.append(Modality.IRIS)
        return missing


@dataclass
class AuthResult:
    """Terminal result of an authentication session."""

    status: AuthStatus
    session: AuthSession
    reason: Optional[str] = None
    error: Optional[AuthError] = None
    voice_match: Optional[MatchResult] = None
    iris_match: Optional[MatchResult] = None
    missing_modalities: List[Modality] = field(default_factory=list)
    fallback: Optional[FallbackResult] = None

    @property
    def authenticated(self) -> bool:
        return self.status == AuthStatus.COMPLETE

    def to_dict(self) -> dict:
        data: dict = {
            "session_id": self.session.session_id,
            "status": self.status.value,
            "state": self.session.state.value,
            "reason": self.reason,
            "error": self.error.value if self.error else None,
            "step_timings": dict(self.session.step_timings),
        }
        if self.voice_match and self.voice_match.similarity is not None:
            data["voice_score"] = self.voice_match.similarity
        if self.iris_match and self.iris_match.similarity is not None:
            data["iris_score"] = self.iris_match.similarity
        if self.missing_modalities:
            data["missing_modalities"] = [m.value for m in self.missing_modalities]
        if self.fallback:
            data["fallback"] = {
                "method": self.fallback.method.value if self.fallback.method else None,
                "success": self.fallback.success,
                "message": self.fallback.message,
            }
        return data

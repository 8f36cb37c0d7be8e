"""Internal data models for the voice + eye unlock engine."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np

if TYPE_CHECKING:
    from .results import AuthError


class Modality(str, Enum):
    """A biometric factor."""

    VOICE = "voice"
    IRIS = "iris"


class AuthState(str, Enum):
    """States of the authentication pipeline."""

    IDLE = "idle"
    WAKE_WORD_WAIT = "wake_word_wait"
    VOICE_AUTH = "voice_auth"
    EYE_SCAN = "eye_scan"
    LIVENESS_CHECK = "liveness_check"
    IRIS_AUTH = "iris_auth"
    UNLOCKING = "unlocking"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (AuthState.COMPLETE, AuthState.FAILED, AuthState.CANCELLED)


@dataclass
class EnrollmentRecord:
    """Reference template stored for one modality."""

    modality: Modality
    digest: str  # Hex digest of the size-normalized sample
    features: np.ndarray  # Fixed-length feature vector for the modality
    enrolled_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        """Validate record shape after initialization."""
        self.modality = Modality(self.modality)
        self.features = np.asarray(self.features, dtype=np.float64)
        if self.features.ndim != 1 or self.features.size == 0:
            raise ValueError(f"Features must be a non-empty 1-D vector, got shape {self.features.shape}")
        if not np.isfinite(self.features).all():
            raise ValueError("Features must be finite")
        if not self.digest:
            raise ValueError("Digest must not be empty")


@dataclass
class FaceScan:
    """Signals produced by a single face-scan frame."""

    eye_open_left: Optional[float]
    eye_open_right: Optional[float]
    pose_angle: float  # Head yaw in degrees, 0 when facing the camera
    frame: Optional[np.ndarray] = None
    face_ratio: Optional[float] = None  # Face area / frame area, if known


@dataclass
class AuthSession:
    """State of one authentication attempt. Mutated only by the orchestrator."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: AuthState = AuthState.IDLE
    step_timings: Dict[str, float] = field(default_factory=dict)
    last_error: Optional["AuthError"] = None
    failure_reason: Optional[str] = None
    transitions: List[AuthState] = field(default_factory=lambda: [AuthState.IDLE])
    started_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

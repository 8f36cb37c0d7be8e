"""Pydantic models for persisted enrollment payloads and health reports."""

import re
from datetime import datetime
from typing import Dict, List

import numpy as np
from pydantic import BaseModel, Field, field_validator

from .internal_models import EnrollmentRecord, Modality

_HEX_DIGEST = re.compile(r"^[0-9a-f]+$")


class EnrollmentPayload(BaseModel):
    """Serialized form of an EnrollmentRecord as held by a backing store."""

    modality: Modality = Field(..., description="Biometric modality of the record")
    digest: str = Field(..., min_length=1, description="Hex digest of the normalized sample")
    features: List[float] = Field(..., min_length=1, description="Feature vector")
    enrolled_at: datetime = Field(..., description="Enrollment timestamp")

    @field_validator('digest')
    @classmethod
    def validate_digest(cls, v):
        """Digests are lowercase hexadecimal strings."""
        if not _HEX_DIGEST.match(v):
            raise ValueError('Digest must be a lowercase hexadecimal string')
        return v

    @field_validator('features')
    @classmethod
    def validate_features(cls, v):
        if not np.isfinite(np.asarray(v, dtype=np.float64)).all():
            raise ValueError('Features must be finite numbers')
        return v

    @classmethod
    def from_record(cls, record: EnrollmentRecord) -> "EnrollmentPayload":
        return cls(
            modality=record.modality,
            digest=record.digest,
            features=record.features.tolist(),
            enrolled_at=record.enrolled_at,
        )

    def to_record(self) -> EnrollmentRecord:
        return EnrollmentRecord(
            modality=self.modality,
            digest=self.digest,
            features=np.array(self.features, dtype=np.float64),
            enrolled_at=self.enrolled_at,
        )


class HealthCheckResult(BaseModel):
    """Result of the engine health check."""

    healthy: bool = Field(..., description="Whether every check passed")
    checks: Dict[str, bool] = Field(default_factory=dict, description="Individual check results")
    message: str = Field(..., description="Human-readable summary")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

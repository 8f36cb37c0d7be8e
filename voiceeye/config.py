"""Configuration management for the voice + eye unlock engine."""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Instances are immutable; pass a custom instance to the orchestrator or
    enrollment service to swap thresholds and timeouts.
    """

    model_config = SettingsConfigDict(
        env_prefix="VOICEEYE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
        frozen=True,
    )

    # Matching thresholds
    voice_threshold: float = 0.85
    iris_threshold: float = 0.80

    # Wake word
    wake_phrase: str = "open phone"

    # Step timeouts (seconds)
    wake_word_timeout: float = 10.0
    voice_print_timeout: float = 10.0
    eye_scan_timeout: float = 15.0
    iris_capture_timeout: float = 5.0

    # Liveness
    eye_open_threshold: float = 0.70
    max_pose_angle: float = 30.0
    min_face_ratio: float = 0.30

    # Image normalization
    iris_image_size: int = 100
    digest_grid_size: int = 32

    # Enrollment storage keys
    voice_storage_key: str = "user_voice_enrollment"
    iris_storage_key: str = "user_iris_enrollment"

    # Pipeline behaviour
    auto_fallback: bool = True
    capture_high_res_iris: bool = True

    # Logging / observability
    log_level: str = "INFO"
    otlp_endpoint: Optional[str] = None

    # Optional Supabase-backed enrollment store
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_table: str = "enrollments"

    @field_validator('voice_threshold', 'iris_threshold', 'eye_open_threshold', 'min_face_ratio')
    @classmethod
    def validate_unit_interval(cls, v, info):
        if not 0.0 <= v <= 1.0:
            raise ValueError(f'{info.field_name.upper()} must be between 0.0 and 1.0')
        return v

    @field_validator('wake_word_timeout', 'voice_print_timeout', 'eye_scan_timeout', 'iris_capture_timeout')
    @classmethod
    def validate_timeout(cls, v, info):
        if v <= 0:
            raise ValueError(f'{info.field_name.upper()} must be positive')
        return v

    @field_validator('iris_image_size', 'digest_grid_size')
    @classmethod
    def validate_image_size(cls, v, info):
        if v < 2:
            raise ValueError(f'{info.field_name.upper()} must be at least 2 pixels')
        return v

    @field_validator('wake_phrase')
    @classmethod
    def validate_wake_phrase(cls, v):
        phrase = v.strip().lower()
        if not phrase:
            raise ValueError('WAKE_PHRASE must not be empty')
        return phrase

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


# Global settings instance
settings = Settings()

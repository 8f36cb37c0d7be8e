"""Client modules for external collaborator integrations."""

from voiceeye.clients.capture import (
    CaptureError,
    CaptureUnavailableError,
    EyeCapture,
    VoiceCapture,
    capture_with_timeout
)

from voiceeye.clients.device import (
    DeviceUnlock,
    LoggingProgressSink,
    ProgressSink
)

from voiceeye.clients.enrollment_store import (
    CorruptRecordError,
    EnrollmentStore,
    InMemoryEnrollmentStore,
    StorageError,
    StorageUnavailableError
)

__all__ = [
    "CaptureError",
    "CaptureUnavailableError",
    "EyeCapture",
    "VoiceCapture",
    "capture_with_timeout",
    "DeviceUnlock",
    "LoggingProgressSink",
    "ProgressSink",
    "CorruptRecordError",
    "EnrollmentStore",
    "InMemoryEnrollmentStore",
    "StorageError",
    "StorageUnavailableError"
]

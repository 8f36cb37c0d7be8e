"""Device unlock capability and progress sink interfaces."""

import logging
from abc import ABC, abstractmethod
from typing import List

from voiceeye.models.internal_models import Modality
from voiceeye.models.results import UnlockResult

logger = logging.getLogger(__name__)


class DeviceUnlock(ABC):
    """Platform keyguard / biometric prompt capability."""

    @abstractmethod
    async def unlock(self) -> UnlockResult:
        """Dismiss the lock screen."""

    @abstractmethod
    def is_device_locked(self) -> bool:
        pass

    @abstractmethod
    def is_device_secure(self) -> bool:
        """Whether a PIN, pattern or password is configured."""

    @abstractmethod
    def biometric_available(self) -> bool:
        """Whether the platform biometric prompt can be shown."""

    @abstractmethod
    async def prompt_biometric(self) -> bool:
        """Show the platform biometric prompt. Returns True on success."""

    @abstractmethod
    async def show_system_unlock(self) -> bool:
        """Show the device-credential confirmation screen."""


class ProgressSink:
    """
    Receiver for orchestrator notifications.

    All methods are no-ops by default; subclass and override the ones you
    need. Cancellation is reported through `on_cancelled`, never through
    `on_failure`.
    """

    def on_progress(self, step: str, message: str) -> None:
        pass

    def on_success(self) -> None:
        pass

    def on_failure(self, reason: str) -> None:
        pass

    def on_cancelled(self) -> None:
        pass

    def on_setup_required(self, modalities: List[Modality]) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    """Progress sink that writes every notification to the log."""

    def on_progress(self, step: str, message: str) -> None:
        logger.info(f"Progress: {step} - {message}")

    def on_success(self) -> None:
        logger.info("Authentication successful")

    def on_failure(self, reason: str) -> None:
        logger.error(f"Authentication failed: {reason}")

    def on_cancelled(self) -> None:
        logger.info("Authentication cancelled")

    def on_setup_required(self, modalities: List[Modality]) -> None:
        logger.warning(f"Setup required for: {', '.join(m.value for m in modalities)}")

"""
Capture collaborators for voice and eye samples.

Hardware acquisition lives outside this package. Implementations of
`VoiceCapture` and `EyeCapture` wrap the platform's microphone, speech
recognizer and camera; the engine only awaits them under a deadline and
releases them on timeout or cancellation.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, TypeVar

import numpy as np

from voiceeye.models.internal_models import FaceScan
from voiceeye.models.results import AuthError, StepOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CaptureError(Exception):
    """Raised when a capture collaborator fails."""
    pass


class CaptureUnavailableError(CaptureError):
    """Raised when the capture hardware is busy or access was denied."""
    pass


class VoiceCapture(ABC):
    """Microphone + speech recognizer collaborator."""

    @abstractmethod
    async def listen_for_phrase(self, timeout: float) -> Optional[str]:
        """Listen for an utterance. Returns None if nothing was heard in time."""

    @abstractmethod
    async def capture_print(self, timeout: float) -> Optional[str]:
        """Capture a voice-print sample for enrollment."""

    @abstractmethod
    def release(self) -> None:
        """Stop listening and release the microphone."""


class EyeCapture(ABC):
    """Front camera + face detector collaborator."""

    @abstractmethod
    async def scan_face(self, timeout: float) -> Optional[FaceScan]:
        """Scan for a face and report eye-openness, pose and the frame."""

    @abstractmethod
    async def capture_high_res_frame(self, timeout: float) -> Optional[np.ndarray]:
        """Capture a high-resolution frame for iris analysis."""

    @abstractmethod
    def release(self) -> None:
        """Stop analysis and release the camera."""


def release_quietly(release: Callable[[], None], step: str) -> None:
    """Release a capture collaborator, logging instead of raising on failure."""
    try:
        release()
    except Exception as e:
        logger.warning(f"Failed to release capture hardware after {step}: {e}")


async def capture_with_timeout(
    operation: Callable[[], Awaitable[Optional[T]]],
    timeout: float,
    release: Callable[[], None],
    step: str
) -> StepOutcome[T]:
    """
    Await a capture collaborator under a deadline.

    The collaborator is released whenever the step does not produce a sample:
    on timeout, on hardware errors and on cancellation. Cancellation is
    re-raised after release so the caller can resolve the session as
    cancelled.

    Args:
        operation: Zero-argument callable returning the capture coroutine
        timeout: Deadline in seconds
        release: Callable releasing the hardware resource
        step: Human-readable step name used in failure messages

    Returns:
        StepOutcome holding the sample, or a CAPTURE_TIMEOUT /
        CAPTURE_UNAVAILABLE failure
    """
    try:
        value = await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Timeout waiting for {step} after {timeout}s")
        release_quietly(release, step)
        return StepOutcome.failure(AuthError.CAPTURE_TIMEOUT, f"{step} timeout")
    except asyncio.CancelledError:
        logger.info(f"{step} capture cancelled")
        release_quietly(release, step)
        raise
    except CaptureUnavailableError as e:
        logger.error(f"Capture hardware unavailable for {step}: {e}")
        release_quietly(release, step)
        return StepOutcome.failure(AuthError.CAPTURE_UNAVAILABLE, f"{step} unavailable")
    except Exception as e:
        logger.error(f"Capture failed for {step}: {e}")
        release_quietly(release, step)
        return StepOutcome.failure(AuthError.CAPTURE_UNAVAILABLE, f"{step} unavailable")

    if value is None:
        logger.warning(f"No sample returned for {step}")
        release_quietly(release, step)
        return StepOutcome.failure(AuthError.CAPTURE_TIMEOUT, f"{step} timeout")

    return StepOutcome.success(value)

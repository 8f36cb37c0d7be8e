"""
Fake collaborators used across the unlock engine tests.
"""

import asyncio
from typing import List, Optional

import numpy as np

from voiceeye.clients.capture import EyeCapture, VoiceCapture
from voiceeye.clients.device import DeviceUnlock, ProgressSink
from voiceeye.models.internal_models import FaceScan
from voiceeye.models.results import UnlockResult, UnlockStatus


def make_frame(seed: int = 7, size: int = 120) -> np.ndarray:
    """Deterministic pseudo-random RGB frame."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(size, size, 3), dtype=np.uint8)


def live_scan(frame: Optional[np.ndarray] = None, left: float = 0.95, right: float = 0.95,
              pose: float = 0.0) -> FaceScan:
    return FaceScan(eye_open_left=left, eye_open_right=right, pose_angle=pose, frame=frame, face_ratio=0.5)


class FakeVoiceCapture(VoiceCapture):
    """Voice collaborator returning canned utterances."""

    def __init__(self, phrase: Optional[str] = "open phone", voice_print: Optional[str] = None,
                 delay: float = 0.0, error: Optional[Exception] = None):
        self.phrase = phrase
        self.voice_print = voice_print if voice_print is not None else phrase
        self.delay = delay
        self.error = error
        self.listen_timeouts: List[float] = []
        self.print_timeouts: List[float] = []
        self.release_count = 0

    async def listen_for_phrase(self, timeout: float) -> Optional[str]:
        self.listen_timeouts.append(timeout)
        if self.error:
            raise self.error
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.phrase

    async def capture_print(self, timeout: float) -> Optional[str]:
        self.print_timeouts.append(timeout)
        if self.error:
            raise self.error
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.voice_print

    def release(self) -> None:
        self.release_count += 1


class FakeEyeCapture(EyeCapture):
    """Eye collaborator returning a canned scan and frame."""

    def __init__(self, scan: Optional[FaceScan] = None, frame: Optional[np.ndarray] = None,
                 scan_delay: float = 0.0, frame_delay: float = 0.0, error: Optional[Exception] = None):
        self.scan = scan
        self.frame = frame
        self.scan_delay = scan_delay
        self.frame_delay = frame_delay
        self.error = error
        self.scan_timeouts: List[float] = []
        self.frame_timeouts: List[float] = []
        self.release_count = 0

    async def scan_face(self, timeout: float) -> Optional[FaceScan]:
        self.scan_timeouts.append(timeout)
        if self.error:
            raise self.error
        if self.scan_delay:
            await asyncio.sleep(self.scan_delay)
        return self.scan

    async def capture_high_res_frame(self, timeout: float) -> Optional[np.ndarray]:
        self.frame_timeouts.append(timeout)
        if self.frame_delay:
            await asyncio.sleep(self.frame_delay)
        return self.frame

    def release(self) -> None:
        self.release_count += 1


class FakeDevice(DeviceUnlock):
    """Device capability with configurable answers."""

    def __init__(self, locked: bool = True, secure: bool = True, biometric: bool = False,
                 unlock_result: Optional[UnlockResult] = None, biometric_result: bool = True,
                 system_unlock_result: bool = True):
        self.locked = locked
        self.secure = secure
        self.biometric = biometric
        self.unlock_result = unlock_result or UnlockResult(UnlockStatus.SUCCESS, "Phone unlocked successfully")
        self.biometric_result = biometric_result
        self.system_unlock_result = system_unlock_result
        self.unlock_calls = 0
        self.biometric_prompts = 0
        self.system_unlock_prompts = 0

    async def unlock(self) -> UnlockResult:
        self.unlock_calls += 1
        return self.unlock_result

    def is_device_locked(self) -> bool:
        return self.locked

    def is_device_secure(self) -> bool:
        return self.secure

    def biometric_available(self) -> bool:
        return self.biometric

    async def prompt_biometric(self) -> bool:
        self.biometric_prompts += 1
        return self.biometric_result

    async def show_system_unlock(self) -> bool:
        self.system_unlock_prompts += 1
        return self.system_unlock_result


class RecordingSink(ProgressSink):
    """Progress sink that remembers every notification."""

    def __init__(self):
        self.progress = []
        self.successes = 0
        self.failures = []
        self.cancellations = 0
        self.setup_required = []

    def on_progress(self, step: str, message: str) -> None:
        self.progress.append((step, message))

    def on_success(self) -> None:
        self.successes += 1

    def on_failure(self, reason: str) -> None:
        self.failures.append(reason)

    def on_cancelled(self) -> None:
        self.cancellations += 1

    def on_setup_required(self, modalities) -> None:
        self.setup_required.append(list(modalities))

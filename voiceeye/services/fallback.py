"""
Fallback escalation to alternate authentication methods.

Available methods are recomputed on every call because the device's
biometric and credential configuration can change between attempts.
"""

import logging
from typing import Dict, List, Optional

from voiceeye.clients.device import DeviceUnlock
from voiceeye.models.results import FallbackMethod, FallbackResult
from voiceeye.observability import record_fallback_metrics, trace_function

logger = logging.getLogger(__name__)

_DISPLAY_NAMES: Dict[FallbackMethod, str] = {
    FallbackMethod.BIOMETRIC: "Fingerprint/Face",
    FallbackMethod.DEVICE_CREDENTIAL: "PIN/Pattern/Password",
    FallbackMethod.PIN: "PIN Code",
}


class FallbackEscalation:
    """Chooses and runs the best available alternate authentication path."""

    def __init__(self, device: DeviceUnlock):
        self.device = device

    def available_methods(self) -> List[FallbackMethod]:
        """
        List usable fallback methods in priority order.

        PIN is always present as the last resort.
        """
        methods = []

        try:
            if self.device.biometric_available():
                methods.append(FallbackMethod.BIOMETRIC)
        except Exception as e:
            logger.warning(f"Could not query biometric availability: {e}")

        try:
            if self.device.is_device_secure():
                methods.append(FallbackMethod.DEVICE_CREDENTIAL)
        except Exception as e:
            logger.warning(f"Could not query device security: {e}")

        methods.append(FallbackMethod.PIN)
        return methods

    def recommended_method(self) -> Optional[FallbackMethod]:
        methods = self.available_methods()
        return methods[0] if methods else None

    def is_available(self) -> bool:
        return bool(self.available_methods())

    @staticmethod
    def display_name(method: FallbackMethod) -> str:
        return _DISPLAY_NAMES[method]

    @trace_function("fallback.execute")
    async def execute(self, method: FallbackMethod) -> FallbackResult:
        """
        Run one fallback method.

        Args:
            method: The method to run

        Returns:
            FallbackResult describing whether the user passed the fallback
        """
        logger.info(f"Executing {method.value} fallback")

        try:
            if method == FallbackMethod.BIOMETRIC:
                success = await self.device.prompt_biometric()
                message = "biometric authentication succeeded" if success else "Biometric authentication failed"
            elif method == FallbackMethod.DEVICE_CREDENTIAL:
                success = await self.device.show_system_unlock()
                message = "device credential screen shown" if success else "Failed to show device credential screen"
            else:
                # No PIN entry UI exists; this path always passes.
                logger.warning("PIN fallback is a stub and always succeeds")
                success = True
                message = "PIN fallback accepted"
        except Exception as e:
            logger.error(f"Fallback authentication failed: {e}")
            success = False
            message = f"Fallback authentication failed: {e}"

        record_fallback_metrics(method.value, success)

        if success:
            logger.info(f"{self.display_name(method)} fallback succeeded")
        else:
            logger.warning(f"{self.display_name(method)} fallback failed: {message}")

        return FallbackResult(method=method, success=success, message=message)

    async def execute_automatic(self) -> FallbackResult:
        """Run the recommended fallback method."""
        method = self.recommended_method()
        if method is None:
            record_fallback_metrics(None, False)
            return FallbackResult(method=None, success=False, message="No fallback authentication methods available")
        return await self.execute(method)

"""Engine health check."""

import logging
from typing import Dict

from voiceeye.clients.device import DeviceUnlock
from voiceeye.clients.enrollment_store import EnrollmentStore
from voiceeye.models.storage_models import HealthCheckResult
from voiceeye.services.enrollment_service import EnrollmentService

logger = logging.getLogger(__name__)


async def run_health_check(
    enrollment_service: EnrollmentService,
    device: DeviceUnlock,
    store: EnrollmentStore
) -> HealthCheckResult:
    """
    Check that the engine can authenticate.

    Checks:
        storage: the enrollment store answers
        setup: both modalities are enrolled
        device_secure: the device has a lock credential configured

    Returns:
        HealthCheckResult; `healthy` is True only when every check passes
    """
    checks: Dict[str, bool] = {}

    try:
        checks["storage"] = await store.health_check()

        if checks["storage"]:
            checks["setup"] = (await enrollment_service.setup_status()).complete
        else:
            checks["setup"] = False

        checks["device_secure"] = device.is_device_secure()

        healthy = all(checks.values())
        return HealthCheckResult(
            healthy=healthy,
            checks=checks,
            message="All systems operational" if healthy else "Some issues detected"
        )

    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return HealthCheckResult(
            healthy=False,
            checks=checks,
            message=f"Health check failed: {e}"
        )

"""Enrollment record storage.

The backing store is responsible for confidentiality and encryption at rest;
the engine only performs single-key get/put/delete operations.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from voiceeye.models.internal_models import EnrollmentRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for enrollment storage errors."""
    pass


class StorageUnavailableError(StorageError):
    """Raised when the backing store cannot be reached."""
    pass


class CorruptRecordError(StorageError):
    """Raised when a stored record cannot be decoded into a valid shape."""
    pass


class EnrollmentStore(ABC):
    """Single-key store holding one EnrollmentRecord per modality key."""

    @abstractmethod
    async def get(self, key: str) -> Optional[EnrollmentRecord]:
        pass

    @abstractmethod
    async def put(self, key: str, record: EnrollmentRecord) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    async def health_check(self) -> bool:
        return True


class InMemoryEnrollmentStore(EnrollmentStore):
    """Process-local store, used for tests and when no backend is configured."""

    def __init__(self):
        self._records: Dict[str, EnrollmentRecord] = {}

    async def get(self, key: str) -> Optional[EnrollmentRecord]:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, key: str, record: EnrollmentRecord) -> None:
        self._records[key] = copy.deepcopy(record)
        logger.debug(f"Stored enrollment record under {key}")

    async def delete(self, key: str) -> bool:
        removed = self._records.pop(key, None) is not None
        if not removed:
            logger.debug(f"No enrollment record to delete under {key}")
        return removed

"""Supabase-backed enrollment store."""

import logging
from typing import Optional

from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client, create_client

from voiceeye.clients.enrollment_store import (
    CorruptRecordError,
    EnrollmentStore,
    StorageUnavailableError
)
from voiceeye.config import Settings, settings as default_settings
from voiceeye.models.internal_models import EnrollmentRecord
from voiceeye.models.storage_models import EnrollmentPayload

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Lazily created Supabase client."""

    def __init__(self, url: str, key: str):
        self._client: Optional[Client] = None
        self._url = url
        self._key = key

    @property
    def client(self) -> Client:
        """Get or create Supabase client instance."""
        if self._client is None:
            self._client = create_client(self._url, self._key)
        return self._client


class SupabaseEnrollmentStore(EnrollmentStore):
    """
    Enrollment store persisting one row per storage key.

    Expected table layout: `key` (primary key), `modality`, `digest`,
    `features` (float array) and `enrolled_at`.
    """

    def __init__(self, supabase_client: SupabaseClient, table: str = "enrollments"):
        self.client = supabase_client
        self.table = table

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "SupabaseEnrollmentStore":
        config = config or default_settings
        if not config.supabase_enabled:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be configured")
        return cls(SupabaseClient(config.supabase_url, config.supabase_key), table=config.supabase_table)

    async def get(self, key: str) -> Optional[EnrollmentRecord]:
        """Retrieve the record stored under a key."""
        try:
            result = self.client.client.table(self.table).select("*").eq("key", key).execute()
        except APIError as e:
            logger.error(f"Database error retrieving enrollment {key}: {e}")
            raise StorageUnavailableError(f"Failed to read enrollment {key}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error retrieving enrollment {key}: {e}")
            raise StorageUnavailableError(f"Failed to read enrollment {key}: {e}")

        if not result.data:
            return None

        row = result.data[0]
        try:
            payload = EnrollmentPayload(
                modality=row.get("modality"),
                digest=row.get("digest"),
                features=row.get("features"),
                enrolled_at=row.get("enrolled_at"),
            )
            return payload.to_record()
        except (ValidationError, ValueError, TypeError) as e:
            logger.error(f"Stored enrollment {key} has an invalid shape: {e}")
            raise CorruptRecordError(f"Enrollment {key} is corrupted: {e}")

    async def put(self, key: str, record: EnrollmentRecord) -> None:
        """Create or replace the record stored under a key (upsert operation)."""
        payload = EnrollmentPayload.from_record(record)
        row = {"key": key, **payload.model_dump(mode="json")}

        try:
            result = self.client.client.table(self.table).upsert(row, on_conflict="key").execute()
        except APIError as e:
            logger.error(f"Database error storing enrollment {key}: {e}")
            raise StorageUnavailableError(f"Failed to store enrollment {key}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error storing enrollment {key}: {e}")
            raise StorageUnavailableError(f"Failed to store enrollment {key}: {e}")

        if not result.data:
            raise StorageUnavailableError(f"Failed to store enrollment {key}")

        logger.info(f"Successfully upserted enrollment {key}")

    async def delete(self, key: str) -> bool:
        """Delete the record stored under a key."""
        try:
            result = self.client.client.table(self.table).delete().eq("key", key).execute()
        except APIError as e:
            logger.error(f"Database error deleting enrollment {key}: {e}")
            raise StorageUnavailableError(f"Failed to delete enrollment {key}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error deleting enrollment {key}: {e}")
            raise StorageUnavailableError(f"Failed to delete enrollment {key}: {e}")

        success = len(result.data) > 0
        if success:
            logger.info(f"Successfully deleted enrollment {key}")
        else:
            logger.warning(f"Enrollment {key} not found for deletion")
        return success

    async def health_check(self) -> bool:
        """Check if database connection is healthy."""
        try:
            self.client.client.table(self.table).select("key", count="exact").limit(0).execute()
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

"""Usage store: per-user subscription state and monthly request counters."""

import logging
from dataclasses import replace
from typing import Any, Protocol

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore

from receipt_relay.models.usage import UsageDelta, UsageRecord, usage_record_from_document

logger = logging.getLogger(__name__)


class UsageStoreError(Exception):
    """The usage store could not be read or written."""


class UsageStore(Protocol):
    async def get_usage(self, user_id: str) -> UsageRecord: ...
    async def record_usage(self, user_id: str, delta: UsageDelta) -> None: ...


class InMemoryUsageStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._records: dict[str, UsageRecord] = {}
        self.usage_logs: list[dict[str, Any]] = []

    def put(self, user_id: str, record: UsageRecord) -> None:
        """Seed or replace a user's record."""
        self._records[user_id] = record

    async def get_usage(self, user_id: str) -> UsageRecord:
        record = self._records.get(user_id)
        if record is None:
            return UsageRecord()
        return replace(record, monthly_usage=dict(record.monthly_usage))

    async def record_usage(self, user_id: str, delta: UsageDelta) -> None:
        self.usage_logs.append(delta.to_log_document(user_id))
        record = self._records.setdefault(user_id, UsageRecord())
        record.monthly_usage[delta.month] = record.usage_for(delta.month) + 1
        record.last_used_at = delta.at
        record.total_processed += 1


class FirestoreUsageStore:
    """Firestore-backed store.

    Users live in ``users/{uid}``; every accepted request also appends a
    document to ``usage_logs``. Counters are bumped with server-side
    ``Increment`` transforms so concurrent requests never lose updates.
    """

    users_collection = "users"
    usage_logs_collection = "usage_logs"

    def __init__(self, client: Any | None = None, project: str | None = None) -> None:
        self._client = client or firestore.AsyncClient(project=project)

    async def get_usage(self, user_id: str) -> UsageRecord:
        try:
            snap = await self._client.collection(self.users_collection).document(user_id).get()
        except (GoogleAPIError, GoogleAuthError) as e:
            raise UsageStoreError(f"Failed to read usage for user: {e}") from e
        data = snap.to_dict() if snap.exists else None
        return usage_record_from_document(data)

    async def record_usage(self, user_id: str, delta: UsageDelta) -> None:
        try:
            await self._client.collection(self.usage_logs_collection).add(
                delta.to_log_document(user_id)
            )
            await self._client.collection(self.users_collection).document(user_id).set(
                {
                    "usage": {
                        delta.month: firestore.Increment(1),
                        "lastUsed": delta.at,
                        "totalProcessed": firestore.Increment(1),
                    }
                },
                merge=True,
            )
        except (GoogleAPIError, GoogleAuthError) as e:
            raise UsageStoreError(f"Failed to record usage for user: {e}") from e


def build_usage_store(backend: str, project: str | None = None) -> UsageStore:
    """Build the usage store for the configured backend."""
    if backend == "firestore":
        logger.info(f"Using Firestore usage store (project={project or 'default'})")
        return FirestoreUsageStore(project=project)
    logger.info("Using in-memory usage store")
    return InMemoryUsageStore()

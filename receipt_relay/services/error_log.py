"""Error log: failed requests recorded for operational visibility."""

import logging
from typing import Any, Protocol

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore

from receipt_relay.models.usage import ErrorLogEntry

logger = logging.getLogger(__name__)


class ErrorLogError(Exception):
    """The error log could not be written."""


class ErrorLog(Protocol):
    async def append(self, entry: ErrorLogEntry) -> None: ...


class InMemoryErrorLog:
    """Process-local error log for development and tests."""

    def __init__(self) -> None:
        self.entries: list[ErrorLogEntry] = []

    async def append(self, entry: ErrorLogEntry) -> None:
        self.entries.append(entry)


class FirestoreErrorLog:
    """Appends failures to the ``error_logs`` collection."""

    collection = "error_logs"

    def __init__(self, client: Any | None = None, project: str | None = None) -> None:
        self._client = client or firestore.AsyncClient(project=project)

    async def append(self, entry: ErrorLogEntry) -> None:
        try:
            await self._client.collection(self.collection).add(entry.to_document())
        except (GoogleAPIError, GoogleAuthError) as e:
            raise ErrorLogError(f"Failed to write error log: {e}") from e


def build_error_log(backend: str, project: str | None = None) -> ErrorLog:
    """Build the error log for the configured backend."""
    if backend == "firestore":
        return FirestoreErrorLog(project=project)
    return InMemoryErrorLog()

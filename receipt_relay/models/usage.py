"""Usage tracking records and their document-store representation."""

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from receipt_relay.models.enums import RequestKind, SubscriptionStatus

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}$")

# Rough per-1000-character model cost used for usage logs
COST_PER_1000_CHARS = 0.002


def _as_utc(value: Any) -> datetime | None:
    """Return an aware UTC datetime, or None for anything that isn't a datetime."""
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass
class UsageRecord:
    """Subscription state and request counters for one user."""

    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    subscription_expires_at: datetime | None = None
    monthly_usage: dict[str, int] = field(default_factory=dict)
    last_used_at: datetime | None = None
    total_processed: int = 0

    def usage_for(self, month: str) -> int:
        """Get the request count for a YYYY-MM month key."""
        return self.monthly_usage.get(month, 0)


@dataclass(frozen=True)
class UsageDelta:
    """What a single accepted request adds to a user's usage."""

    month: str
    at: datetime
    text_length: int
    processing_ms: int
    kind: RequestKind = RequestKind.RECEIPT

    @property
    def estimated_cost(self) -> float:
        """Estimate the upstream cost of the request from its input length."""
        return (self.text_length / 1000) * COST_PER_1000_CHARS

    def to_log_document(self, user_id: str) -> dict[str, Any]:
        """Build the usage_logs document for this request."""
        return {
            "userId": user_id,
            "timestamp": self.at,
            "textLength": self.text_length,
            "processingTime": self.processing_ms,
            "estimatedCost": self.estimated_cost,
            "month": self.month,
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class ErrorLogEntry:
    """A failed request, as written to the error log."""

    user_id: str | None
    error: str
    stage: str
    timestamp: datetime
    processing_ms: int

    def to_document(self) -> dict[str, Any]:
        """Build the error_logs document for this failure."""
        return {
            "userId": self.user_id or "anonymous",
            "error": self.error,
            "stage": self.stage,
            "timestamp": self.timestamp,
            "processingTime": self.processing_ms,
        }


def usage_record_from_document(data: dict[str, Any] | None) -> UsageRecord:
    """Convert a raw users/{uid} document into a UsageRecord.

    Layout::

        {
            "subscription": {"status": "active", "expiresAt": <timestamp>},
            "usage": {"2024-03": 4, "lastUsed": <timestamp>, "totalProcessed": 17},
        }

    Malformed or missing fields fall back to the free-tier defaults.
    """
    data = data or {}
    subscription = data.get("subscription") or {}
    usage = data.get("usage") or {}
    if not isinstance(subscription, dict):
        subscription = {}
    if not isinstance(usage, dict):
        usage = {}

    try:
        status = SubscriptionStatus(subscription.get("status") or SubscriptionStatus.NONE)
    except (TypeError, ValueError):
        status = SubscriptionStatus.NONE

    monthly_usage = {
        key: int(value)
        for key, value in usage.items()
        if MONTH_KEY_PATTERN.match(str(key))
        and isinstance(value, int | float)
        and not isinstance(value, bool)
    }

    total = usage.get("totalProcessed", 0)
    if not isinstance(total, int | float) or isinstance(total, bool):
        total = 0

    return UsageRecord(
        subscription_status=status,
        subscription_expires_at=_as_utc(subscription.get("expiresAt")),
        monthly_usage=monthly_usage,
        last_used_at=_as_utc(usage.get("lastUsed")),
        total_processed=int(total),
    )

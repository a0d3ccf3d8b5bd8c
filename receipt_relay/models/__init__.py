"""Domain models for usage tracking."""

from receipt_relay.models.enums import ReceiptCategory, RequestKind, SubscriptionStatus
from receipt_relay.models.usage import ErrorLogEntry, UsageDelta, UsageRecord

__all__ = [
    "SubscriptionStatus",
    "RequestKind",
    "ReceiptCategory",
    "UsageRecord",
    "UsageDelta",
    "ErrorLogEntry",
]

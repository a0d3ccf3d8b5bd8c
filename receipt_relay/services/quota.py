"""Free-tier quota policy."""

from dataclasses import dataclass
from datetime import UTC, datetime

from receipt_relay.models.enums import SubscriptionStatus
from receipt_relay.models.usage import UsageRecord
from receipt_relay.schemas.quota import QuotaInfo

FREE_MONTHLY_LIMIT = 10
QUOTA_UNAVAILABLE_MESSAGE = "Quota check unavailable"


def current_month(now: datetime) -> str:
    """Get the YYYY-MM key for the month containing ``now`` (UTC)."""
    if now.tzinfo is not None:
        now = now.astimezone(UTC)
    return now.strftime("%Y-%m")


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of a quota check."""

    allowed: bool
    reason: str


class QuotaPolicy:
    """Decide whether a user may make another request this month."""

    def __init__(self, free_monthly_limit: int = FREE_MONTHLY_LIMIT) -> None:
        self.free_monthly_limit = free_monthly_limit

    def is_premium(self, record: UsageRecord, now: datetime) -> bool:
        """Check for an active, unexpired subscription."""
        if record.subscription_status != SubscriptionStatus.ACTIVE:
            return False
        expires_at = record.subscription_expires_at
        if expires_at is None:
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at > now

    def evaluate(self, record: UsageRecord, now: datetime) -> QuotaDecision:
        """Decide whether a new request is allowed."""
        if self.is_premium(record, now):
            return QuotaDecision(allowed=True, reason="Premium subscription active")

        limit = self.free_monthly_limit
        used = record.usage_for(current_month(now))
        if used >= limit:
            return QuotaDecision(
                allowed=False,
                reason=(
                    f"Free tier limit reached ({limit} requests/month). "
                    "Upgrade to continue processing."
                ),
            )
        return QuotaDecision(
            allowed=True,
            reason=f"Free tier: {used}/{limit} requests used this month",
        )

    def summarize(self, record: UsageRecord, now: datetime) -> QuotaInfo:
        """Build the quota summary returned to the client."""
        used = record.usage_for(current_month(now))
        if self.is_premium(record, now):
            return QuotaInfo(
                is_premium=True,
                monthly_usage=used,
                monthly_limit=None,
                remaining_free=None,
            )
        limit = self.free_monthly_limit
        return QuotaInfo(
            is_premium=False,
            monthly_usage=used,
            monthly_limit=limit,
            remaining_free=max(0, limit - used),
        )

    def unavailable_decision(self) -> QuotaDecision:
        """Decision used when the usage store can't be read (fail open)."""
        return QuotaDecision(allowed=True, reason=QUOTA_UNAVAILABLE_MESSAGE)

    def unavailable_summary(self) -> QuotaInfo:
        """Summary used when the usage store can't be read."""
        return QuotaInfo(
            is_premium=False,
            monthly_usage=0,
            monthly_limit=self.free_monthly_limit,
            remaining_free=self.free_monthly_limit,
            message=QUOTA_UNAVAILABLE_MESSAGE,
        )

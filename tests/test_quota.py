"""Tests for the quota policy and usage records."""

from datetime import UTC, datetime, timedelta

import pytest

from receipt_relay.models.enums import SubscriptionStatus
from receipt_relay.models.usage import UsageDelta, UsageRecord, usage_record_from_document
from receipt_relay.services.quota import QuotaPolicy, current_month

NOW = datetime(2024, 3, 14, 12, 0, tzinfo=UTC)


@pytest.fixture
def policy():
    """Quota policy with the default free limit."""
    return QuotaPolicy()


def test_current_month():
    """Test month keys are UTC YYYY-MM."""
    assert current_month(NOW) == "2024-03"
    assert current_month(datetime(2024, 12, 31, 23, 30, tzinfo=UTC)) == "2024-12"


def test_free_tier_under_limit(policy):
    """Test a free user below the limit is allowed."""
    decision = policy.evaluate(UsageRecord(monthly_usage={"2024-03": 9}), NOW)
    assert decision.allowed is True
    assert decision.reason == "Free tier: 9/10 requests used this month"


def test_free_tier_at_limit(policy):
    """Test a free user at the limit is denied."""
    decision = policy.evaluate(UsageRecord(monthly_usage={"2024-03": 10}), NOW)
    assert decision.allowed is False
    assert "Free tier limit reached (10 requests/month)" in decision.reason


def test_usage_from_other_months_is_ignored(policy):
    """Test only the current month counts."""
    record = UsageRecord(monthly_usage={"2024-02": 50})
    assert policy.evaluate(record, NOW).allowed is True
    assert policy.summarize(record, NOW).remaining_free == 10


@pytest.mark.parametrize("usage", [0, 10, 1000])
def test_active_subscription_always_allowed(policy, usage):
    """Test premium users are allowed regardless of usage."""
    record = UsageRecord(
        subscription_status=SubscriptionStatus.ACTIVE,
        subscription_expires_at=NOW + timedelta(days=1),
        monthly_usage={"2024-03": usage},
    )
    assert policy.evaluate(record, NOW).allowed is True


def test_expired_subscription_uses_free_tier(policy):
    """Test an expired subscription falls back to the free limit."""
    record = UsageRecord(
        subscription_status=SubscriptionStatus.ACTIVE,
        subscription_expires_at=NOW - timedelta(seconds=1),
        monthly_usage={"2024-03": 10},
    )
    assert policy.evaluate(record, NOW).allowed is False
    assert policy.summarize(record, NOW).is_premium is False


def test_active_without_expiry_is_not_premium(policy):
    """Test an active status with no expiry is treated as free."""
    record = UsageRecord(subscription_status=SubscriptionStatus.ACTIVE)
    assert policy.is_premium(record, NOW) is False


def test_summarize_free(policy):
    """Test the free tier summary."""
    info = policy.summarize(UsageRecord(monthly_usage={"2024-03": 12}), NOW)
    assert info.is_premium is False
    assert info.monthly_usage == 12
    assert info.monthly_limit == 10
    assert info.remaining_free == 0


def test_summarize_premium(policy):
    """Test the premium summary is unlimited."""
    record = UsageRecord(
        subscription_status=SubscriptionStatus.ACTIVE,
        subscription_expires_at=NOW + timedelta(days=30),
        monthly_usage={"2024-03": 3},
    )
    info = policy.summarize(record, NOW)
    assert info.is_premium is True
    assert info.monthly_limit is None
    assert info.remaining_free is None


def test_custom_limit():
    """Test the free limit is configurable."""
    policy = QuotaPolicy(free_monthly_limit=3)
    assert policy.evaluate(UsageRecord(monthly_usage={"2024-03": 3}), NOW).allowed is False


def test_unavailable_fallbacks(policy):
    """Test the fail-open decision and summary."""
    assert policy.unavailable_decision().allowed is True
    summary = policy.unavailable_summary()
    assert summary.message == "Quota check unavailable"
    assert summary.remaining_free == 10


def test_usage_record_from_document():
    """Test converting a users document."""
    expires = datetime(2024, 4, 1)
    record = usage_record_from_document(
        {
            "subscription": {"status": "active", "expiresAt": expires},
            "usage": {
                "2024-03": 4,
                "2024-02": 7.0,
                "lastUsed": NOW,
                "totalProcessed": 11,
                "notAMonth": 3,
            },
        }
    )
    assert record.subscription_status == SubscriptionStatus.ACTIVE
    assert record.subscription_expires_at == expires.replace(tzinfo=UTC)
    assert record.monthly_usage == {"2024-03": 4, "2024-02": 7}
    assert record.last_used_at == NOW
    assert record.total_processed == 11


@pytest.mark.parametrize(
    "document",
    [None, {}, {"subscription": "gold", "usage": [1, 2]}, {"subscription": {"status": "trial"}}],
)
def test_usage_record_from_malformed_document(document):
    """Test malformed documents fall back to free-tier defaults."""
    record = usage_record_from_document(document)
    assert record.subscription_status == SubscriptionStatus.NONE
    assert record.monthly_usage == {}
    assert record.total_processed == 0


def test_usage_delta_log_document():
    """Test the usage log document and cost estimate."""
    delta = UsageDelta(month="2024-03", at=NOW, text_length=2500, processing_ms=840)
    document = delta.to_log_document("uid-1")
    assert document["userId"] == "uid-1"
    assert document["estimatedCost"] == pytest.approx(0.005)
    assert document["kind"] == "receipt"

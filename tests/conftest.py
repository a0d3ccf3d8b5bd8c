"""Pytest configuration and fixtures."""

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from receipt_relay.api.dependencies import (
    get_error_log,
    get_identity_verifier,
    get_model_gateway,
    get_rate_limiter,
    get_usage_store,
)
from receipt_relay.main import app
from receipt_relay.models.usage import UsageDelta, UsageRecord
from receipt_relay.services.auth import JWTIdentityVerifier, create_access_token
from receipt_relay.services.error_log import InMemoryErrorLog
from receipt_relay.services.model_errors import UpstreamError
from receipt_relay.services.quota import current_month
from receipt_relay.services.rate_limit import RateLimiter
from receipt_relay.services.receipt_normalizer import normalize_receipt
from receipt_relay.services.usage_store import InMemoryUsageStore, UsageStoreError

TEST_JWT_SECRET = "test-secret"  # noqa: S105


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


class RecordingUsageStore(InMemoryUsageStore):
    """In-memory usage store that counts calls and can simulate an outage."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []
        self.read_outage = False
        self.write_outage = False

    async def get_usage(self, user_id: str) -> UsageRecord:
        self.calls.append("get_usage")
        if self.read_outage:
            raise UsageStoreError("Firestore unavailable")
        return await super().get_usage(user_id)

    async def record_usage(self, user_id: str, delta: UsageDelta) -> None:
        self.calls.append("record_usage")
        if self.write_outage:
            raise UsageStoreError("Firestore unavailable")
        await super().record_usage(user_id, delta)


class FakeModelGateway:
    """Model gateway that returns canned model output instead of calling a provider."""

    def __init__(self) -> None:
        self.receipt_calls: list[str] = []
        self.question_calls: list[str] = []
        self.error: Exception | None = None
        self.raw_receipt: object = {
            "storeName": "Fresh Market",
            "date": "2024-03-14",
            "items": [
                {"name": "Milk", "price": 3.99, "quantity": 1, "category": "Groceries"},
                {"name": "Tomatoes", "price": "2.99", "quantity": "0.3", "category": "Groceries"},
                {"price": "abc"},
            ],
        }
        self.answer = "Try setting aside 20% of your income each month."

    async def extract_receipt(self, text: str):
        self.receipt_calls.append(text)
        if self.error:
            raise self.error
        return normalize_receipt(self.raw_receipt)

    async def answer_question(self, prompt: str) -> str:
        self.question_calls.append(prompt)
        if self.error:
            raise self.error
        return self.answer

    @property
    def calls(self) -> int:
        return len(self.receipt_calls) + len(self.question_calls)


@pytest.fixture
def usage_store():
    """Usage store shared by the app and the test."""
    return RecordingUsageStore()


@pytest.fixture
def error_log():
    """Error log shared by the app and the test."""
    return InMemoryErrorLog()


@pytest.fixture
def gateway():
    """Fake model gateway."""
    return FakeModelGateway()


@pytest.fixture
def rate_limiter():
    """Fresh rate limiter for each test."""
    return RateLimiter(limit=50, window_seconds=900)


@pytest.fixture
def client(usage_store, error_log, gateway, rate_limiter):
    """Create a test client with collaborator overrides."""
    app.dependency_overrides[get_usage_store] = lambda: usage_store
    app.dependency_overrides[get_error_log] = lambda: error_log
    app.dependency_overrides[get_model_gateway] = lambda: gateway
    app.dependency_overrides[get_identity_verifier] = lambda: JWTIdentityVerifier(TEST_JWT_SECRET)
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Return auth headers for a test user."""
    user_id = "firebase-uid-1234567890"
    token = create_access_token(user_id, TEST_JWT_SECRET)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id)


@pytest.fixture
def this_month():
    """YYYY-MM key for the current month."""
    return current_month(datetime.now(UTC))


@pytest.fixture
def upstream_outage():
    """An upstream failure as raised by the real gateway."""
    return UpstreamError(503, '{"error": {"message": "Service unavailable"}}')

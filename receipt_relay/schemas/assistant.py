"""Assistant schemas."""

from typing import Any

from receipt_relay.schemas.quota import QuotaInfo
from receipt_relay.schemas.receipt import CamelModel


class AssistantRequest(CamelModel):
    """Assistant prompt request."""

    prompt: Any = None


class AssistantResponse(CamelModel):
    """Response for an assistant prompt."""

    response: str
    processing_time: int
    quota_info: QuotaInfo

"""Pydantic schemas for API requests and responses."""

from receipt_relay.schemas.assistant import AssistantRequest, AssistantResponse
from receipt_relay.schemas.quota import QuotaInfo
from receipt_relay.schemas.receipt import (
    LineItem,
    ProcessReceiptRequest,
    ProcessReceiptResponse,
    Receipt,
)

__all__ = [
    "QuotaInfo",
    "LineItem",
    "Receipt",
    "ProcessReceiptRequest",
    "ProcessReceiptResponse",
    "AssistantRequest",
    "AssistantResponse",
]

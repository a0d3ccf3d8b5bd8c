"""Receipt schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from receipt_relay.models.enums import ReceiptCategory
from receipt_relay.schemas.quota import QuotaInfo


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the mobile client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LineItem(CamelModel):
    """A normalized receipt line item.

    For weight-priced goods ``price`` is the per-unit rate and ``quantity``
    the purchased weight.
    """

    id: str
    name: str
    price: float
    quantity: float
    category: ReceiptCategory = ReceiptCategory.OTHER


class Receipt(CamelModel):
    """A receipt extracted from OCR text."""

    id: str
    store_name: str | None = None
    date: str | None = None
    items: list[LineItem]
    category: str = "Other"
    scanned_time: datetime


class ProcessReceiptRequest(CamelModel):
    """Process receipt request.

    ``extracted_text`` is left untyped so that missing or non-string values
    are reported as INVALID_TEXT rather than a generic validation error.
    """

    extracted_text: Any = None


class ProcessReceiptResponse(CamelModel):
    """Response for a processed receipt."""

    success: bool = True
    receipt: Receipt
    processing_time: int
    quota: QuotaInfo

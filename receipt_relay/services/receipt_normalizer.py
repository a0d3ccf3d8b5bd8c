"""Coerce loosely-structured model output into the Receipt schema.

Everything here is pure: no network, no settings. The model gateway parses
the completion text with :func:`parse_model_json` and hands the result to
:func:`normalize_receipt`.
"""

import json
import math
import re
import uuid
from datetime import UTC, datetime
from typing import Any

from receipt_relay.models.enums import ReceiptCategory
from receipt_relay.schemas.receipt import LineItem, Receipt
from receipt_relay.services.model_errors import ResponseParseError

UNKNOWN_ITEM_NAME = "Unknown Item"
DEFAULT_RECEIPT_CATEGORY = ReceiptCategory.OTHER.value

_LEADING_NUMBER = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")
_THOUSANDS_SEPARATOR = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")
_CURRENCY_SYMBOLS = "$€£¥"


def generate_receipt_id() -> str:
    """Generate a unique receipt id."""
    return f"receipt_{uuid.uuid4().hex}"


def generate_item_id() -> str:
    """Generate a unique line item id."""
    return f"item_{uuid.uuid4().hex[:12]}"


def strip_code_fence(text: str) -> str:
    """Remove optional Markdown code-fence wrapping from a completion."""
    result = text.strip()
    if result.startswith("```json"):
        result = result[7:]
    elif result.startswith("```"):
        result = result[3:]
    if result.endswith("```"):
        result = result[:-3]
    return result.strip()


def parse_model_json(text: str) -> Any:
    """Parse a completion as JSON, raising ResponseParseError on failure."""
    try:
        return json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid response format from AI service: {e}") from e


def coerce_number(value: Any) -> float | None:
    """Read a number the way a lenient float parser would.

    Numbers pass through. Strings may carry a currency symbol and thousands
    separators, and are read up to the first non-numeric character, so
    ``"2.99/lb"`` gives ``2.99``. Anything else gives None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().lstrip(_CURRENCY_SYMBOLS).strip()
        cleaned = _THOUSANDS_SEPARATOR.sub("", cleaned)
        match = _LEADING_NUMBER.match(cleaned)
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _optional_string(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def normalize_line_item(raw: Any) -> LineItem:
    """Normalize one model-provided item, filling defaults for missing fields."""
    if not isinstance(raw, dict):
        raw = {}

    name = raw.get("name")
    price = coerce_number(raw.get("price"))
    quantity = coerce_number(raw.get("quantity"))

    return LineItem(
        id=generate_item_id(),
        name=str(name) if name else UNKNOWN_ITEM_NAME,
        price=price if price is not None else 0.0,
        # A zero quantity is treated as missing
        quantity=quantity if quantity else 1.0,
        category=ReceiptCategory.coerce(raw.get("category")),
    )


def normalize_receipt(raw: Any, scanned_time: datetime | None = None) -> Receipt:
    """Normalize parsed model JSON into a Receipt.

    Args:
        raw: The parsed JSON value returned by the model
        scanned_time: Processing timestamp; defaults to now (UTC)

    Returns:
        A Receipt whose items all carry id, name, price, quantity and category

    Raises:
        ResponseParseError: If ``raw`` is not a JSON object
    """
    if not isinstance(raw, dict):
        raise ResponseParseError(
            f"Invalid response format from AI service: expected an object, got {type(raw).__name__}"
        )

    raw_items = raw.get("items")
    items = [normalize_line_item(item) for item in raw_items] if isinstance(raw_items, list) else []

    category = raw.get("category")
    return Receipt(
        id=generate_receipt_id(),
        store_name=_optional_string(raw.get("storeName")),
        date=_optional_string(raw.get("date")),
        items=items,
        category=str(category) if category else DEFAULT_RECEIPT_CATEGORY,
        scanned_time=scanned_time or datetime.now(UTC),
    )

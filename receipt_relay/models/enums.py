"""Enums for usage and receipt fields."""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """Subscription state stored on a user's usage document."""

    NONE = "none"
    ACTIVE = "active"


class RequestKind(str, Enum):
    """Kind of model request counted against a user's quota."""

    RECEIPT = "receipt"
    ASSISTANT = "assistant"


class ReceiptCategory(str, Enum):
    """Categories the model may assign to a receipt line item."""

    FOOD_AND_DINING = "Food & Dining"
    GROCERIES = "Groceries"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    HEALTH_AND_FITNESS = "Health & Fitness"
    TRAVEL = "Travel"
    BILLS_AND_UTILITIES = "Bills & Utilities"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: object) -> "ReceiptCategory":
        """Match a loose model-provided label to a category, falling back to Other."""
        if isinstance(value, str):
            wanted = value.strip().casefold()
            for category in cls:
                if category.value.casefold() == wanted:
                    return category
        return cls.OTHER

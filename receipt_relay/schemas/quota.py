"""Quota schemas."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class QuotaInfo(BaseModel):
    """A user's quota summary for the current month."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_premium: bool
    monthly_usage: int
    monthly_limit: int | None
    remaining_free: int | None
    message: str | None = None

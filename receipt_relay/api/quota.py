"""User quota endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_relay.api.dependencies import CurrentUser, get_current_user, get_pipeline
from receipt_relay.schemas.quota import QuotaInfo
from receipt_relay.services.pipeline import RequestPipeline

router = APIRouter(prefix="/api/user", tags=["quota"])


@router.get("/quota", response_model=QuotaInfo)
async def get_quota(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    pipeline: Annotated[RequestPipeline, Depends(get_pipeline)],
):
    """Get the caller's quota for the current month."""
    return await pipeline.quota_for(current_user.uid)

"""Receipt processing endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_relay.api.dependencies import CurrentUser, get_current_user, get_pipeline
from receipt_relay.schemas.receipt import ProcessReceiptRequest, ProcessReceiptResponse
from receipt_relay.services.pipeline import RequestPipeline

router = APIRouter(prefix="/api", tags=["receipts"])


@router.post("/process-receipt", response_model=ProcessReceiptResponse)
async def process_receipt(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    pipeline: Annotated[RequestPipeline, Depends(get_pipeline)],
    payload: ProcessReceiptRequest | None = None,
):
    """Turn OCR text into a structured receipt."""
    extracted_text = payload.extracted_text if payload else None
    return await pipeline.process_receipt(current_user.uid, extracted_text)

"""Finance assistant endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_relay.api.dependencies import CurrentUser, get_current_user, get_pipeline
from receipt_relay.schemas.assistant import AssistantRequest, AssistantResponse
from receipt_relay.services.pipeline import RequestPipeline

router = APIRouter(prefix="/api", tags=["assistant"])


@router.post("/ai-assistant", response_model=AssistantResponse)
@router.post("/llama-assistant", response_model=AssistantResponse, include_in_schema=False)
async def ask_assistant(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    pipeline: Annotated[RequestPipeline, Depends(get_pipeline)],
    payload: AssistantRequest | None = None,
):
    """Answer a personal-finance question."""
    prompt = payload.prompt if payload else None
    return await pipeline.answer_question(current_user.uid, prompt)

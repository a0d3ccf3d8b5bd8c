"""Request pipeline: validate, check quota, call the model, record usage.

Each request moves through these stages and stops at the first failure::

    validate -> check quota -> invoke model -> record usage -> respond

Authentication happens before the pipeline, in the API dependencies. Every
terminal failure is written to the error log on a best-effort basis.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from fastapi import HTTPException, status

from receipt_relay.config import Settings
from receipt_relay.errors import api_error, error_message
from receipt_relay.models.enums import RequestKind
from receipt_relay.models.usage import ErrorLogEntry, UsageDelta
from receipt_relay.schemas.assistant import AssistantResponse
from receipt_relay.schemas.quota import QuotaInfo
from receipt_relay.schemas.receipt import ProcessReceiptResponse
from receipt_relay.services.error_log import ErrorLog
from receipt_relay.services.model_errors import ModelConfigurationError, ModelGatewayError
from receipt_relay.services.model_gateway import ModelGateway
from receipt_relay.services.quota import QuotaDecision, QuotaPolicy, current_month
from receipt_relay.services.usage_store import UsageStore, UsageStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RequestRules:
    """Validation limits and client-facing messages for one kind of request."""

    kind: RequestKind
    max_length: int
    invalid_code: str
    invalid_message: str
    too_long_code: str
    too_long_label: str
    failure_code: str
    failure_message: str


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _short(user_id: str | None) -> str:
    return f"{user_id[:8]}..." if user_id else "anonymous"


class RequestPipeline:
    """Orchestrates one receipt or assistant request."""

    def __init__(
        self,
        settings: Settings,
        usage_store: UsageStore,
        error_log: ErrorLog,
        gateway: ModelGateway,
        policy: QuotaPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.usage_store = usage_store
        self.error_log = error_log
        self.gateway = gateway
        self.policy = policy or QuotaPolicy(settings.free_monthly_limit)
        self.clock = clock or (lambda: datetime.now(UTC))

        self.receipt_rules = RequestRules(
            kind=RequestKind.RECEIPT,
            max_length=settings.max_receipt_text_length,
            invalid_code="INVALID_TEXT",
            invalid_message="No valid text provided for processing",
            too_long_code="TEXT_TOO_LONG",
            too_long_label="Text",
            failure_code="PROCESSING_FAILED",
            failure_message="Failed to process receipt. Please try again.",
        )
        self.assistant_rules = RequestRules(
            kind=RequestKind.ASSISTANT,
            max_length=settings.max_prompt_length,
            invalid_code="INVALID_PROMPT",
            invalid_message="No valid prompt provided",
            too_long_code="PROMPT_TOO_LONG",
            too_long_label="Prompt",
            failure_code="AI_PROCESSING_ERROR",
            failure_message="Failed to get a response from the assistant. Please try again.",
        )

    async def process_receipt(self, user_id: str, extracted_text: Any) -> ProcessReceiptResponse:
        """Extract a receipt from OCR text on behalf of a user."""
        logger.info(f"Processing receipt for user: {_short(user_id)}")
        receipt, processing_ms, quota = await self._run(
            user_id, self.receipt_rules, extracted_text, self.gateway.extract_receipt
        )
        logger.info(
            f"Receipt processed for user: {_short(user_id)} "
            f"({len(receipt.items)} items, {processing_ms}ms)"
        )
        return ProcessReceiptResponse(receipt=receipt, processing_time=processing_ms, quota=quota)

    async def answer_question(self, user_id: str, prompt: Any) -> AssistantResponse:
        """Answer a free-form prompt on behalf of a user."""
        logger.info(f"Assistant request for user: {_short(user_id)}")
        answer, processing_ms, quota = await self._run(
            user_id, self.assistant_rules, prompt, self.gateway.answer_question
        )
        return AssistantResponse(response=answer, processing_time=processing_ms, quota_info=quota)

    async def quota_for(self, user_id: str) -> QuotaInfo:
        """Get the user's current quota summary, falling back when the store is down."""
        try:
            record = await self.usage_store.get_usage(user_id)
        except UsageStoreError as e:
            logger.error(f"Error getting quota info for user {_short(user_id)}: {e}")
            return self.policy.unavailable_summary()
        return self.policy.summarize(record, self.clock())

    async def check_quota(self, user_id: str) -> QuotaDecision:
        """Evaluate the quota policy, allowing the request if the store is unreachable."""
        try:
            record = await self.usage_store.get_usage(user_id)
        except UsageStoreError as e:
            logger.warning(f"Quota check failed for user {_short(user_id)}, allowing: {e}")
            return self.policy.unavailable_decision()
        return self.policy.evaluate(record, self.clock())

    async def log_failure(
        self, user_id: str | None, message: str, stage: str, processing_ms: int
    ) -> None:
        """Write a failure to the error log; never raises."""
        logger.error(
            f"Request failed at {stage} for user {_short(user_id)} ({processing_ms}ms): {message}"
        )
        entry = ErrorLogEntry(
            user_id=user_id,
            error=message,
            stage=stage,
            timestamp=self.clock(),
            processing_ms=processing_ms,
        )
        try:
            await self.error_log.append(entry)
        except Exception:
            logger.exception("Failed to write error log entry")

    async def _run(
        self,
        user_id: str,
        rules: RequestRules,
        raw_input: Any,
        invoke: Callable[[str], Awaitable[T]],
    ) -> tuple[T, int, QuotaInfo]:
        started = time.perf_counter()
        stage = "validate"
        try:
            text = self._validate(rules, raw_input)

            stage = "quota"
            decision = await self.check_quota(user_id)
            if not decision.allowed:
                raise api_error(
                    status.HTTP_429_TOO_MANY_REQUESTS,
                    "QUOTA_EXCEEDED",
                    decision.reason,
                    upgradeRequired=True,
                )

            stage = "model"
            result = await self._invoke(rules, invoke, text)
            processing_ms = _elapsed_ms(started)

            stage = "usage"
            await self._record_usage(user_id, rules.kind, len(text), processing_ms)
            quota = await self.quota_for(user_id)
            return result, processing_ms, quota
        except HTTPException as e:
            cause = e.__cause__
            await self.log_failure(
                user_id, str(cause) if cause else error_message(e), stage, _elapsed_ms(started)
            )
            raise
        except Exception as e:
            await self.log_failure(user_id, str(e), stage, _elapsed_ms(started))
            raise

    def _validate(self, rules: RequestRules, raw_input: Any) -> str:
        if not isinstance(raw_input, str) or not raw_input.strip():
            raise api_error(status.HTTP_400_BAD_REQUEST, rules.invalid_code, rules.invalid_message)
        if len(raw_input) > rules.max_length:
            raise api_error(
                status.HTTP_400_BAD_REQUEST,
                rules.too_long_code,
                f"{rules.too_long_label} too long. "
                f"Maximum {rules.max_length:,} characters allowed.",
                maxLength=rules.max_length,
            )
        return raw_input

    async def _invoke(
        self, rules: RequestRules, invoke: Callable[[str], Awaitable[T]], text: str
    ) -> T:
        try:
            return await invoke(text)
        except ModelConfigurationError as e:
            raise api_error(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "SERVICE_CONFIG_ERROR",
                "Service configuration error. Please try again later.",
            ) from e
        except ModelGatewayError as e:
            raise api_error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                rules.failure_code,
                rules.failure_message,
                details=None if self.settings.is_production else str(e),
            ) from e

    async def _record_usage(
        self, user_id: str, kind: RequestKind, text_length: int, processing_ms: int
    ) -> None:
        now = self.clock()
        delta = UsageDelta(
            month=current_month(now),
            at=now,
            text_length=text_length,
            processing_ms=processing_ms,
            kind=kind,
        )
        try:
            await self.usage_store.record_usage(user_id, delta)
        except UsageStoreError as e:
            logger.error(f"Error tracking usage for user {_short(user_id)}: {e}")

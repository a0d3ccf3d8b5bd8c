"""Model gateway: the only place that talks to the upstream language model.

All prompt construction and response parsing happens here, so callers only
ever see typed values (a Receipt or a plain answer string) or one of the
errors from :mod:`receipt_relay.services.model_errors`.
"""

import logging
from abc import ABC, abstractmethod

import anthropic
import httpx

from receipt_relay.config import Settings
from receipt_relay.schemas.receipt import Receipt
from receipt_relay.services.llm_prompts import (
    ASSISTANT_SYSTEM_PROMPT,
    get_receipt_extraction_prompt,
)
from receipt_relay.services.model_errors import (
    ModelConfigurationError,
    ResponseParseError,
    UpstreamError,
)
from receipt_relay.services.receipt_normalizer import normalize_receipt, parse_model_json

logger = logging.getLogger(__name__)


class ModelGateway(ABC):
    """Receipt extraction and assistant answers on top of one model provider."""

    provider_name: str = ""
    key_prefix: str = ""

    def __init__(self, settings: Settings, api_key: str | None) -> None:
        self.settings = settings
        self.api_key = api_key

    def ensure_configured(self) -> str:
        """Return the API key, or raise if it is missing or malformed."""
        if not self.api_key:
            raise ModelConfigurationError(
                f"{self.provider_name} API key not configured in environment variables"
            )
        if not self.api_key.startswith(self.key_prefix):
            raise ModelConfigurationError(f"Invalid {self.provider_name} API key format")
        return self.api_key

    async def aclose(self) -> None:
        """Release any client owned by this gateway."""

    @abstractmethod
    async def _complete(
        self,
        api_key: str,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Send one completion request and return the text, if any."""

    async def extract_receipt(self, text: str) -> Receipt:
        """Extract a normalized receipt from OCR text."""
        api_key = self.ensure_configured()
        content = await self._complete(
            api_key,
            model=self.settings.receipt_model,
            prompt=get_receipt_extraction_prompt(text),
            system_prompt=None,
            max_tokens=self.settings.receipt_max_tokens,
            temperature=self.settings.receipt_temperature,
        )
        if not content:
            raise ResponseParseError(f"No content received from {self.provider_name} API")

        try:
            return normalize_receipt(parse_model_json(content))
        except ResponseParseError:
            logger.warning(f"Failed to parse {self.provider_name} response: {content[:500]}")
            raise

    async def answer_question(self, prompt: str) -> str:
        """Answer a free-form prompt as the finance assistant."""
        api_key = self.ensure_configured()
        content = await self._complete(
            api_key,
            model=self.settings.assistant_model,
            prompt=prompt,
            system_prompt=ASSISTANT_SYSTEM_PROMPT,
            max_tokens=self.settings.assistant_max_tokens,
            temperature=self.settings.assistant_temperature,
        )
        if not content or not content.strip():
            raise ResponseParseError(f"No content received from {self.provider_name} API")
        return content.strip()


class OpenAIModelGateway(ModelGateway):
    """Gateway for OpenAI-compatible chat completion endpoints."""

    provider_name = "OpenAI"
    key_prefix = "sk-"

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        super().__init__(settings, settings.openai_api_key)
        self.client = client
        self.base_url = settings.openai_base_url.rstrip("/")

    async def _complete(
        self,
        api_key: str,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "model": model,
                    "messages": messages,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling OpenAI: {e}")
            raise UpstreamError(None, str(e)) from e

        if response.is_error:
            logger.error(f"OpenAI API error: {response.status_code} {response.text[:500]}")
            raise UpstreamError(response.status_code, response.text)

        try:
            data = response.json()
            return data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ResponseParseError(f"Unexpected completion payload from OpenAI: {e}") from e


class AnthropicModelGateway(ModelGateway):
    """Gateway for the Anthropic Messages API."""

    provider_name = "Anthropic"
    key_prefix = "sk-ant-"

    def __init__(
        self, settings: Settings, client: anthropic.AsyncAnthropic | None = None
    ) -> None:
        super().__init__(settings, settings.anthropic_api_key)
        self._client = client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _get_client(self, api_key: str) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=api_key,
                max_retries=0,
                timeout=self.settings.llm_timeout_seconds,
            )
        return self._client

    async def _complete(
        self,
        api_key: str,
        *,
        model: str,
        prompt: str,
        system_prompt: str | None,
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        request: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            message = await self._get_client(api_key).messages.create(**request)
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API error: {e.status_code} {e.response.text[:500]}")
            raise UpstreamError(e.status_code, e.response.text) from e
        except anthropic.APIConnectionError as e:
            logger.error(f"Connection error calling Anthropic: {e}")
            raise UpstreamError(None, str(e)) from e

        texts = [block.text for block in message.content if block.type == "text"]
        return "".join(texts) or None


def build_model_gateway(settings: Settings, http_client: httpx.AsyncClient) -> ModelGateway:
    """Build the gateway for the configured provider."""
    if settings.llm_provider == "anthropic":
        return AnthropicModelGateway(settings)
    return OpenAIModelGateway(settings, http_client)

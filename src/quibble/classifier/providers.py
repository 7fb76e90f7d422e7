"""Answer classifier adapters for the supported LLM providers."""

from __future__ import annotations

import os
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable

import anthropic
import httpx

from quibble.classifier.models import (
    CallFailed,
    ClassifierError,
    ClassifierRequest,
    MalformedReplyError,
    MissingCredentialError,
    NoMatch,
    Outcome,
    ProviderError,
    TransportError,
)
from quibble.classifier.parsing import parse_reply
from quibble.classifier.prompt import SYSTEM_PROMPT, build_user_prompt
from quibble.common.logging import get_logger
from quibble.config import LLMConfig

# Shorter inputs are noise/filler and never reach a provider
MIN_CLASSIFY_CHARS = 10

DEFAULT_MODELS: dict[str, tuple[str, str | None]] = {
    "gemini": ("gemini-2.0-flash", "gemini-1.5-flash"),
    "openai": ("gpt-4o-mini", None),
    "anthropic": ("claude-3-5-haiku-latest", None),
    "mock": ("mock", None),
}

API_KEY_ENV = {
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


@dataclass
class ProviderStatus:
    """Classifier provider status."""

    id: str
    name: str
    model: str
    configured: bool
    available: bool
    latency_ms: int = 0
    error: str | None = None


class AnswerClassifier(ABC):
    """Maps a transcript snapshot to exactly one outcome.

    Subclasses implement a single provider round trip in ``_complete``;
    ``classify`` owns the precondition checks, the one-retry policy and the
    conversion of every ``ClassifierError`` into ``CallFailed``.
    """

    provider_id = "base"
    name = "Base"
    requires_credential = True

    def __init__(
        self,
        model: str,
        fallback_model: str | None = None,
        api_key: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 32,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.model = model
        self.fallback_model = fallback_model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self._available = False
        self._last_latency_ms = 0
        self._last_error: str | None = None
        self.logger = get_logger("classifier", provider=self.provider_id)

    async def classify(self, request: ClassifierRequest) -> Outcome:
        """Classify a transcript snapshot. Never raises."""
        if len(request.full_text.strip()) < MIN_CLASSIFY_CHARS:
            return NoMatch()

        start_time = time.time()
        try:
            if self.requires_credential and not self.api_key:
                raise MissingCredentialError(f"no API key configured for {self.provider_id}")

            raw = await self._complete_with_retry(SYSTEM_PROMPT, build_user_prompt(request))

        except ClassifierError as e:
            self._available = False
            self._last_error = str(e)
            self.logger.error(
                "classify_failed",
                reason=e.reason.value,
                status=getattr(e, "status_code", None),
                body=getattr(e, "body", None),
                error=str(e),
            )
            return CallFailed(e.reason, str(e))

        self._available = True
        self._last_error = None
        self._last_latency_ms = int((time.time() - start_time) * 1000)

        outcome = parse_reply(raw)
        self.logger.info(
            "classified",
            outcome=outcome.kind.value,
            entity=getattr(outcome, "entity", None),
            latency_ms=self._last_latency_ms,
        )
        return outcome

    async def _complete_with_retry(self, system: str, user: str) -> str:
        try:
            return await self._complete(system, user, self.model, alternate=False)
        except (TransportError, ProviderError) as e:
            retry = self._retry_options(e)
            if retry is None:
                raise
            model, alternate = retry
            self.logger.warning(
                "retrying_classification",
                model=model,
                alternate=alternate,
                error=str(e),
            )
            return await self._complete(system, user, model, alternate=alternate)

    def _retry_options(self, error: ClassifierError) -> tuple[str, bool] | None:
        """Pick the single retry for a failed call, or None for no retry.

        Returns:
            Tuple of (model, use alternate request form).
        """
        if self.fallback_model and self.fallback_model != self.model:
            return self.fallback_model, False
        return None

    @abstractmethod
    async def _complete(self, system: str, user: str, model: str, alternate: bool) -> str:
        """Perform one provider request and return the raw reply text."""

    def get_status(self) -> ProviderStatus:
        """Get provider status."""
        return ProviderStatus(
            id=self.provider_id,
            name=self.name,
            model=self.model,
            configured=bool(self.api_key) or not self.requires_credential,
            available=self._available,
            latency_ms=self._last_latency_ms,
            error=self._last_error,
        )


class HTTPClassifier(AnswerClassifier):
    """Classifier talking JSON over HTTP with httpx."""

    def __init__(
        self,
        endpoint: str,
        *args: Any,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.endpoint = endpoint.rstrip("/")
        self._transport = transport

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise ProviderError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedReplyError(f"undecodable body: {response.text[:200]}") from e


class GeminiClassifier(HTTPClassifier):
    """Google Gemini ``generateContent`` adapter."""

    provider_id = "gemini"
    name = "Google Gemini"

    async def _complete(self, system: str, user: str, model: str, alternate: bool) -> str:
        if alternate:
            # Older models reject systemInstruction; send a single user turn
            payload: dict[str, Any] = {
                "contents": [{"role": "user", "parts": [{"text": f"{system}\n\n{user}"}]}],
            }
        else:
            payload = {
                "systemInstruction": {"parts": [{"text": system}]},
                "contents": [{"role": "user", "parts": [{"text": user}]}],
            }
        payload["generationConfig"] = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_tokens,
        }

        data = await self._post_json(
            f"{self.endpoint}/models/{model}:generateContent",
            payload,
            params={"key": self.api_key or ""},
        )
        try:
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise MalformedReplyError(f"unexpected response shape: {str(data)[:200]}") from e

    def _retry_options(self, error: ClassifierError) -> tuple[str, bool] | None:
        if isinstance(error, ProviderError) and error.status_code == 400 and (
            "systemInstruction" in error.body or "system_instruction" in error.body
        ):
            return self.model, True
        return super()._retry_options(error)


class OpenAICompatibleClassifier(HTTPClassifier):
    """OpenAI-compatible chat completions adapter (OpenAI, LAN servers)."""

    provider_id = "openai"
    name = "OpenAI Compatible"

    async def _complete(self, system: str, user: str, model: str, alternate: bool) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        # Newer models only accept max_completion_tokens
        token_param = "max_completion_tokens" if alternate else "max_tokens"
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.temperature,
            token_param: self.max_tokens,
        }

        data = await self._post_json(f"{self.endpoint}/chat/completions", payload, headers=headers)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedReplyError(f"unexpected response shape: {str(data)[:200]}") from e

        if content is None:
            return ""
        if not isinstance(content, str):
            raise MalformedReplyError(f"non-text message content: {str(content)[:200]}")
        return content

    def _retry_options(self, error: ClassifierError) -> tuple[str, bool] | None:
        if isinstance(error, ProviderError) and error.status_code == 400 and "max_tokens" in error.body:
            return self.model, True
        return super()._retry_options(error)


class AnthropicClassifier(AnswerClassifier):
    """Anthropic Claude adapter using the official SDK."""

    provider_id = "anthropic"
    name = "Anthropic Claude"

    def __init__(
        self,
        *args: Any,
        endpoint: str | None = None,
        client: anthropic.AsyncAnthropic | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.endpoint = endpoint
        self._client = client

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Get or create the Anthropic client."""
        if self._client is None:
            # SDK retries stay off; classify() performs the only retry
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                base_url=self.endpoint,
                timeout=self.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def _complete(self, system: str, user: str, model: str, alternate: bool) -> str:
        try:
            message = await self._get_client().messages.create(
                model=model,
                max_tokens=self.max_tokens,
                system=system,
                messages=[{"role": "user", "content": user}],
                temperature=self.temperature,
            )
        except anthropic.APIStatusError as e:
            raise ProviderError(e.status_code, str(e.message)) from e
        except anthropic.APIConnectionError as e:
            raise TransportError(str(e)) from e
        except anthropic.APIError as e:
            raise MalformedReplyError(str(e)) from e

        texts = [
            block.text for block in message.content if getattr(block, "type", None) == "text"
        ]
        if not all(isinstance(text, str) for text in texts):
            raise MalformedReplyError("non-text content block")
        return "".join(texts)


class MockClassifier(AnswerClassifier):
    """Scripted classifier for demos and tests.

    Replies are consumed in order and parsed exactly like provider replies;
    once exhausted every call answers ``NO MATCH``.
    """

    provider_id = "mock"
    name = "Mock Provider"
    requires_credential = False

    def __init__(self, replies: Iterable[str] = (), **kwargs: Any) -> None:
        kwargs.setdefault("model", "mock")
        super().__init__(**kwargs)
        self._replies: deque[str] = deque(replies)
        self.requests: list[str] = []

    def add_replies(self, *replies: str) -> None:
        self._replies.extend(replies)

    async def _complete(self, system: str, user: str, model: str, alternate: bool) -> str:
        self.requests.append(user)
        return self._replies.popleft() if self._replies else "NO MATCH"


def create_classifier(
    config: LLMConfig,
    mock_mode: bool = False,
    **kwargs: Any,
) -> AnswerClassifier:
    """Build the classifier adapter selected by configuration.

    Args:
        config: LLM configuration.
        mock_mode: Force the mock provider.
        **kwargs: Adapter-specific extras (``transport``, ``client``, ``replies``).

    Returns:
        Classifier adapter.
    """
    provider = "mock" if mock_mode else config.provider
    default_model, default_fallback = DEFAULT_MODELS[provider]

    common: dict[str, Any] = {
        "model": config.model or default_model,
        "fallback_model": config.fallback_model or default_fallback,
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "timeout_seconds": config.timeout_seconds,
    }

    if provider == "mock":
        return MockClassifier(**common, **kwargs)

    common["api_key"] = config.api_key or os.environ.get(API_KEY_ENV[provider])

    if provider == "gemini":
        return GeminiClassifier(config.gemini_endpoint, **common, **kwargs)
    if provider == "openai":
        return OpenAICompatibleClassifier(config.openai_endpoint, **common, **kwargs)
    return AnthropicClassifier(endpoint=config.anthropic_endpoint, **common, **kwargs)

"""
Text-generation backends.

A backend turns (model name, prompt) into generated text, or raises a
`BackendError` describing why this one attempt failed. Each adapter owns its
HTTP client and is meant to be used as an async context manager.
"""
import logging
from typing import Any, Optional

import httpx
import openai

from src.core.config import Settings
from src.core.exceptions import (
    BackendError,
    BackendTimeoutError,
    ConfigurationError,
    MalformedResponseError,
)
from src.llm.prompt import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class TextGenerationBackend:
    """Base class for backends: async context management around `aclose`."""

    name = "base"

    async def generate(self, model: str, prompt: str) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def decode_gemini_reply(payload: Any, model: Optional[str] = None) -> str:
    """
    Extract generated text from a `generateContent` response body.

    Expected shape: {"candidates": [{"content": {"parts": [{"text": ...}]}}]}.
    Text from every part of the first candidate is concatenated. Anything that
    does not fit the shape raises MalformedResponseError.
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError("Response body is not a JSON object", model=model)

    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = payload.get("promptFeedback")
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if reason:
            raise MalformedResponseError("Prompt blocked by provider", model=model, details=str(reason))
        raise MalformedResponseError("Response has no candidates", model=model)

    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts:
        finish_reason = first.get("finishReason") if isinstance(first, dict) else None
        raise MalformedResponseError(
            "Candidate has no content parts",
            model=model,
            details=f"finishReason={finish_reason}" if finish_reason else None,
        )

    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    if not texts:
        raise MalformedResponseError("Content parts carry no text", model=model)
    return "".join(texts)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
        return str(body["error"]["message"])[:200]
    except (ValueError, KeyError, TypeError):
        return response.text[:200]


class GeminiBackend(TextGenerationBackend):
    """Google Gemini over its REST `generateContent` endpoint."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.7,
        max_output_tokens: int = 1500,
        top_p: float = 0.9,
        top_k: int = 40,
        timeout: float = 25.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.generation_config = {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
            "topP": top_p,
            "topK": top_k,
        }
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"x-goog-api-key": api_key},
            timeout=timeout,
            transport=transport,
        )

    def build_request_body(self, prompt: str) -> dict:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self.generation_config,
        }

    async def generate(self, model: str, prompt: str) -> str:
        try:
            response = await self._client.post(
                f"/models/{model}:generateContent",
                json=self.build_request_body(prompt),
            )
        except httpx.TimeoutException as e:
            raise BackendTimeoutError("Request timed out", model=model) from e
        except httpx.HTTPError as e:
            raise BackendError("Request failed", model=model, details=type(e).__name__) from e

        if response.status_code >= 400:
            raise BackendError(
                "Provider returned an error status",
                model=model,
                status_code=response.status_code,
                details=_error_message(response),
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError("Response body is not valid JSON", model=model) from e

        return decode_gemini_reply(payload, model=model)

    async def aclose(self) -> None:
        await self._client.aclose()


class OpenAIBackend(TextGenerationBackend):
    """OpenAI-compatible chat completions through the openai SDK."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 1500,
        top_p: float = 0.9,
        timeout: float = 25.0,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.top_p = top_p
        # A failed model is never retried; the fetcher moves to the next one
        self._client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def generate(self, model: str, prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_output_tokens,
                top_p=self.top_p,
            )
        except openai.APITimeoutError as e:
            raise BackendTimeoutError("Request timed out", model=model) from e
        except openai.APIStatusError as e:
            raise BackendError(
                "Provider returned an error status",
                model=model,
                status_code=e.status_code,
                details=str(e.message)[:200],
            ) from e
        except openai.APIConnectionError as e:
            raise BackendError("Request failed", model=model, details=type(e).__name__) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise MalformedResponseError("Response has no choices", model=model) from e
        if not isinstance(content, str):
            raise MalformedResponseError("Choice has no text content", model=model)
        return content

    async def aclose(self) -> None:
        await self._client.close()


def build_backend(settings: Settings) -> TextGenerationBackend:
    """Create the backend for the configured provider."""
    api_key = settings.api_key
    if not api_key:
        logger.error(f"{settings.api_key_env_var} is not set")
        raise ConfigurationError(
            "AI service configuration error. Please contact support.",
            details=f"{settings.api_key_env_var} is not set",
        )

    if settings.ai_provider == "openai":
        return OpenAIBackend(
            api_key=api_key,
            base_url=settings.openai_base_url,
            temperature=settings.ai_temperature,
            max_output_tokens=settings.ai_max_output_tokens,
            top_p=settings.ai_top_p,
            timeout=settings.ai_timeout_seconds,
        )

    return GeminiBackend(
        api_key=api_key,
        base_url=settings.gemini_base_url,
        temperature=settings.ai_temperature,
        max_output_tokens=settings.ai_max_output_tokens,
        top_p=settings.ai_top_p,
        top_k=settings.ai_top_k,
        timeout=settings.ai_timeout_seconds,
    )

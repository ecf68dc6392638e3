"""Shared fixtures: stub backends and Gemini payload builders.

Nothing here talks to the network; outbound HTTP goes through
httpx.MockTransport.
"""
import asyncio
import json

import httpx
import pytest

from src.core.config import Settings
from src.llm.backends import GeminiBackend, TextGenerationBackend


def gemini_payload(text: str) -> dict:
    """Build a minimal successful generateContent response body."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def model_from_path(request: httpx.Request) -> str:
    # /v1beta/models/gemini-2.5-flash:generateContent -> gemini-2.5-flash
    return request.url.path.rsplit("/", 1)[-1].split(":", 1)[0]


def prompt_from_request(request: httpx.Request) -> str:
    body = json.loads(request.content)
    return body["contents"][0]["parts"][0]["text"]


class ScriptedBackend(TextGenerationBackend):
    """Backend whose behaviour per model is a reply string, an exception, or a delay."""

    name = "scripted"

    def __init__(self, script: dict):
        self.script = script
        self.calls = []

    async def generate(self, model: str, prompt: str) -> str:
        self.calls.append((model, prompt))
        action = self.script[model]
        if isinstance(action, BaseException):
            raise action
        if isinstance(action, tuple):
            delay, reply = action
            await asyncio.sleep(delay)
            return reply
        return action


@pytest.fixture()
def make_gemini_backend():
    """Factory for a GeminiBackend wired to a MockTransport handler."""
    def _make(handler, **kwargs):
        return GeminiBackend(api_key="test-key", transport=httpx.MockTransport(handler), **kwargs)
    return _make


@pytest.fixture()
def settings():
    return Settings(_env_file=None, ai_provider="gemini", gemini_api_key="test-key", app_env="development")


@pytest.fixture()
def payload():
    return gemini_payload


@pytest.fixture()
def scripted_backend():
    return ScriptedBackend


@pytest.fixture()
def request_parts():
    """Helpers to read the model name and prompt out of an outbound Gemini request."""
    return model_from_path, prompt_from_request

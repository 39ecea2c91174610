"""
Chat completion transport.

The classification engine never talks to the network directly. It is handed
a ``ChatTransport`` that turns a system prompt, a user prompt and sampling
parameters into the raw text of the model's reply. ``OpenAIChatTransport``
is the production implementation for any OpenAI-compatible endpoint
(OpenRouter, OpenAI, Ollama).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import openai

from common.config import Settings

from .errors import EmptyResponseError, TransportError


@dataclass(frozen=True)
class SamplingParameters:
    temperature: float = 0.2
    max_tokens: int = 600
    top_p: float = 0.9
    frequency_penalty: float = 0.1
    presence_penalty: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> "SamplingParameters":
        return cls(
            temperature=settings.TEMPERATURE,
            max_tokens=settings.MAX_TOKENS,
            top_p=settings.TOP_P,
            frequency_penalty=settings.FREQUENCY_PENALTY,
            presence_penalty=settings.PRESENCE_PENALTY,
        )


class ChatTransport(ABC):
    """Abstract base class for the external text-generation call."""

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        sampling: SamplingParameters,
    ) -> str:
        """
        Send one chat request and return the raw reply text.

        Implementations raise ``TransportError`` for network failures and
        non-success statuses, and ``EmptyResponseError`` for an empty reply.
        """
        raise NotImplementedError


class OpenAIChatTransport(ChatTransport):
    """A transport backed by the ``openai`` SDK."""

    def __init__(self, settings: Settings, client: openai.OpenAI | None = None):
        self.settings = settings
        self._client = client or openai.OpenAI(
            api_key=settings.LLM_API_KEY or "ollama",
            base_url=settings.LLM_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT,
            # Retries are owned by the classification provider.
            max_retries=0,
            default_headers=_default_headers(settings),
        )

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        sampling: SamplingParameters,
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.settings.AI_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=sampling.temperature,
                max_tokens=sampling.max_tokens,
                top_p=sampling.top_p,
                frequency_penalty=sampling.frequency_penalty,
                presence_penalty=sampling.presence_penalty,
            )
        except openai.APIStatusError as e:
            raise TransportError(
                f"HTTP error! status: {e.status_code}", status_code=e.status_code
            ) from e
        except openai.APIConnectionError as e:
            # Also covers APITimeoutError
            raise TransportError(f"Connection error: {e}") from e

        choices = response.choices or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            raise EmptyResponseError("Empty response from the generation service")
        return content

    def close(self) -> None:
        self._client.close()


def _default_headers(settings: Settings) -> dict[str, str]:
    """Attribution headers OpenRouter uses to identify the calling app."""
    if settings.LLM_PROVIDER != "openrouter":
        return {}
    headers = {"X-Title": settings.APP_TITLE}
    if settings.APP_REFERER:
        headers["HTTP-Referer"] = settings.APP_REFERER
    return headers

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx


class LLMClientError(RuntimeError):
    pass


class LLMTimeoutError(LLMClientError):
    pass


@dataclass(frozen=True)
class ChatResult:
    answer: str
    model: str
    used_fallback: bool


class LLMClient(Protocol):
    def generate_completion(self, prompt: str) -> ChatResult: ...


class GroqChatClient:
    """Single-turn chat completion client for an OpenAI-compatible endpoint.

    The primary model is tried first; HTTP or payload failures retry once with
    the fallback model. A timeout is raised immediately as ``LLMTimeoutError``
    so that one request never waits on two full timeouts.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        default_model: str,
        fallback_model: str = "",
        timeout_seconds: float = 30.0,
        temperature: float = 0.1,
        max_tokens: int = 1024,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._default_model = default_model
        self._fallback_model = fallback_model
        self._timeout_seconds = timeout_seconds
        self._temperature = temperature
        self._max_tokens = max_tokens

    def generate_completion(self, prompt: str) -> ChatResult:
        last_error: Exception | None = None

        for model, used_fallback in self._model_candidates():
            try:
                content = self._chat_completion(model=model, prompt=prompt)
            except httpx.TimeoutException as exc:
                raise LLMTimeoutError(
                    f"model {model} timed out after {self._timeout_seconds:g}s"
                ) from exc
            except (httpx.HTTPError, ValueError) as exc:
                last_error = exc
                continue

            return ChatResult(answer=content, model=model, used_fallback=used_fallback)

        if last_error is not None:
            raise LLMClientError(str(last_error)) from last_error
        raise LLMClientError("No model candidates configured")

    def _model_candidates(self) -> list[tuple[str, bool]]:
        candidates: list[tuple[str, bool]] = []
        if self._default_model:
            candidates.append((self._default_model, False))
        if self._fallback_model and self._fallback_model != self._default_model:
            candidates.append((self._fallback_model, True))
        return candidates

    def _chat_completion(self, *, model: str, prompt: str) -> str:
        response = httpx.post(
            f"{self._base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self._temperature,
                "max_tokens": self._max_tokens,
            },
            timeout=self._timeout_seconds,
        )
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("Invalid chat completion payload: expected a JSON object")
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ValueError("Invalid chat completion payload: missing choices")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Invalid chat completion payload: missing assistant content")

        return content.strip()

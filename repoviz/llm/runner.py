"""Adapters around hosted AI providers used to explain source files."""

from __future__ import annotations

import http.client
import json
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..errors import EmptyResponse, InvalidInput, MissingCredential, ProviderError
from ..logging import get_logger
from .prompts import MODES, SYSTEM_PROMPT, build_prompt

logger = get_logger("llm")


@dataclass
class ExplanationRequest:
    """Represents one explanation call against a provider."""

    prompt: str
    system: Optional[str]
    provider: str
    model: str
    api_key: str
    temperature: Optional[float]
    request_timeout: Optional[float]


class ExplanationRunner:
    """Sends explanation prompts to Gemini, OpenAI or Grok."""

    DEFAULT_PROVIDER = "gemini"
    DEFAULT_MODELS: Mapping[str, str] = {
        "gemini": "gemini-1.5-flash",
        "openai": "gpt-4o-mini",
        "grok": "grok-2-latest",
    }
    GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    CHAT_COMPLETION_URLS: Mapping[str, str] = {
        "openai": "https://api.openai.com/v1/chat/completions",
        "grok": "https://api.x.ai/v1/chat/completions",
    }

    def __init__(
        self,
        *,
        provider: str | None = None,
        model: str | None = None,
        api_keys: Mapping[str, str] | None = None,
        temperature: Optional[float] = 0.2,
        request_timeout: Optional[float] = 60.0,
        runner: Callable[[ExplanationRequest], str] | None = None,
    ) -> None:
        self.provider = (provider or self.DEFAULT_PROVIDER).lower()
        self.model = model
        self.api_keys: Dict[str, str] = dict(api_keys or {})
        self.temperature = temperature
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner

    def explain(
        self,
        code: str,
        *,
        mode: str = "file",
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
    ) -> str:
        """Return the provider's explanation of ``code``.

        Raises :class:`MissingCredential` when no key is known for the provider,
        :class:`EmptyResponse` when it answers with no text and
        :class:`ProviderError` for any transport or HTTP failure.
        """
        chosen = (provider or self.provider).lower()
        if chosen not in self.DEFAULT_MODELS:
            raise InvalidInput(f"Unsupported provider '{chosen}'.")
        if mode not in MODES:
            raise InvalidInput(f"Unsupported explanation mode '{mode}'.")
        key = api_key or self.api_keys.get(chosen)
        if not key:
            raise MissingCredential(f"API Key is required for provider '{chosen}'.")
        if not code:
            raise InvalidInput("Code to explain is required.")

        request = ExplanationRequest(
            prompt=build_prompt(code, mode),
            system=SYSTEM_PROMPT if chosen != "gemini" else None,
            provider=chosen,
            model=model or self._model_for(chosen),
            api_key=key,
            temperature=self.temperature,
            request_timeout=self.request_timeout,
        )
        text = self._runner(request)
        if not text or not text.strip():
            raise EmptyResponse(f"Empty response from provider '{chosen}'.")
        return text.strip()

    def _model_for(self, provider: str) -> str:
        if self.model and provider == self.provider:
            return self.model
        return self.DEFAULT_MODELS[provider]

    @classmethod
    def _http_runner(cls, request: ExplanationRequest) -> str:
        if request.provider == "gemini":
            endpoint = cls.GEMINI_URL.format(model=quote(request.model, safe=""))
            endpoint = f"{endpoint}?key={quote(request.api_key, safe='')}"
            payload: dict[str, object] = {"contents": [{"parts": [{"text": request.prompt}]}]}
            headers = {"Content-Type": "application/json"}
        else:
            endpoint = cls.CHAT_COMPLETION_URLS[request.provider]
            payload = {
                "model": request.model,
                "messages": cls._build_messages(request.system, request.prompt),
            }
            if request.temperature is not None and request.provider == "openai":
                payload["temperature"] = request.temperature
            headers = {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {request.api_key}",
            }

        data = json.dumps(payload).encode("utf-8")
        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 60.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            logger.error("AI explain failed with status %s: %s", exc.code, detail.strip())
            raise ProviderError(
                f"{request.provider} request failed with status {exc.code}"
            ) from exc
        except (URLError, TimeoutError, http.client.HTTPException) as exc:
            logger.error("AI explain transport failure: %s", exc)
            raise ProviderError(f"{request.provider} request failed: {exc}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProviderError(f"{request.provider} returned invalid JSON") from exc

        if request.provider == "gemini":
            return cls._extract_gemini_content(response_payload)
        return cls._extract_chat_content(response_payload)

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_gemini_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return ""
        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
            return ""
        text = parts[0].get("text")
        return text if isinstance(text, str) else ""

    @staticmethod
    def _extract_chat_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""


__all__ = ["ExplanationRequest", "ExplanationRunner"]

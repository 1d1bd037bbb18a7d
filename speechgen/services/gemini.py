from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from speechgen.config import Settings
from speechgen.models import GenerateContentResponse


logger = logging.getLogger(__name__)


class GeminiClientError(RuntimeError):
    """Raised when Gemini request/response handling fails."""


class GeminiClientConfigError(GeminiClientError):
    """Raised when required Gemini client configuration is missing."""


def _extract_error_message(response: httpx.Response) -> Optional[str]:
    """Best-effort extraction of the `error.message` field Google APIs return."""
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:500] or None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
        if isinstance(error, str) and error.strip():
            return error.strip()
    return None


class GeminiClient:
    """HTTP client for the Gemini `generateContent` endpoint with audio output."""

    def __init__(
        self,
        *,
        api_key: str,
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.5-flash-preview-tts",
        voice_name: str = "Zephyr",
        temperature: float = 1.0,
        request_timeout_seconds: float = 120.0,
    ) -> None:
        normalized_key = (api_key or "").strip()
        if not normalized_key:
            raise GeminiClientConfigError("Missing GEMINI_API_KEY. Check your .env file.")
        normalized_model = (model or "").strip()
        if not normalized_model:
            raise GeminiClientConfigError("GEMINI_TTS_MODEL must not be empty")

        self._api_key = normalized_key
        self._model = normalized_model
        self._voice_name = voice_name
        self._temperature = temperature
        self._generate_url = f"{api_base.rstrip('/')}/models/{normalized_model}:generateContent"
        self._http = httpx.AsyncClient(
            timeout=request_timeout_seconds,
            headers=self.headers,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key or "",
            api_base=settings.gemini_api_base,
            model=settings.gemini_model,
            voice_name=settings.gemini_voice,
            temperature=settings.gemini_temperature,
            request_timeout_seconds=settings.gemini_request_timeout_seconds,
        )

    @property
    def headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @property
    def generate_url(self) -> str:
        return self._generate_url

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                }
            ],
            "generationConfig": {
                "temperature": self._temperature,
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {"voiceName": self._voice_name},
                    }
                },
            },
        }

    async def generate_speech(self, prompt: str) -> GenerateContentResponse:
        """Request spoken audio for `prompt` and return the parsed response."""
        logger.debug("Requesting speech from %s (voice=%s)", self._model, self._voice_name)
        try:
            response = await self._http.post(self._generate_url, json=self.build_payload(prompt))
        except httpx.HTTPError as exc:
            raise GeminiClientError(f"Gemini request failed: {exc}") from exc

        try:
            response.raise_for_status()
        except httpx.HTTPError as exc:
            detail = _extract_error_message(response)
            message = f"Gemini generateContent failed with status {response.status_code}"
            if detail:
                message = f"{message}: {detail}"
            raise GeminiClientError(message) from exc

        try:
            parsed = GenerateContentResponse.model_validate(response.json())
        except ValueError as exc:
            raise GeminiClientError(f"Gemini returned an unreadable response: {exc}") from exc

        if not parsed.candidates and parsed.prompt_feedback and parsed.prompt_feedback.block_reason:
            raise GeminiClientError(f"Gemini blocked the prompt: {parsed.prompt_feedback.block_reason}")
        return parsed

    async def aclose(self) -> None:
        """Close persistent HTTP resources used by this client."""
        await self._http.aclose()

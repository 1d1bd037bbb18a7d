from __future__ import annotations

import base64
import binascii
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _GeminiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InlineData(_GeminiModel):
    mime_type: str = Field("", alias="mimeType")
    data: str = ""

    def decode(self) -> bytes:
        """Return the base64 payload as raw bytes."""
        try:
            return base64.b64decode(self.data)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Inline data is not valid base64: {exc}") from exc


class Part(_GeminiModel):
    text: Optional[str] = None
    inline_data: Optional[InlineData] = Field(None, alias="inlineData")


class Content(_GeminiModel):
    role: Optional[str] = None
    parts: list[Part] = Field(default_factory=list)


class Candidate(_GeminiModel):
    content: Optional[Content] = None
    finish_reason: Optional[str] = Field(None, alias="finishReason")


class PromptFeedback(_GeminiModel):
    block_reason: Optional[str] = Field(None, alias="blockReason")


class GenerateContentResponse(_GeminiModel):
    # Only the first candidate is consumed; TTS requests never ask for more.
    candidates: list[Candidate] = Field(default_factory=list)
    prompt_feedback: Optional[PromptFeedback] = Field(None, alias="promptFeedback")
    model_version: Optional[str] = Field(None, alias="modelVersion")

    def parts(self) -> list[Part]:
        if not self.candidates or self.candidates[0].content is None:
            return []
        return list(self.candidates[0].content.parts)

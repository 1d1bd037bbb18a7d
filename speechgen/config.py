"""Configuration helpers for the speech generation CLI."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


def _env_optional(name: str) -> Optional[str]:
    return (os.getenv(name) or "").strip() or None


@dataclass(frozen=True)
class Settings:
    """Centralized environment-driven configuration.

    Built once at process start with `Settings.from_env()` and handed to the
    Gemini client, the encoder selection and the synthesis service.
    """

    gemini_api_key: Optional[str] = None
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.5-flash-preview-tts"
    gemini_voice: str = "Zephyr"
    gemini_temperature: float = 1.0
    gemini_request_timeout_seconds: float = 120.0

    # Prompt shaping.
    speech_language: str = "spanish"
    default_tone: str = "happy"

    # Encoder. FFMPEG_PATH wins over whatever is on PATH.
    ffmpeg_path: Optional[str] = None
    opus_bitrate: str = "64k"

    # Output files land relative to the working directory.
    output_path: str = "output.opus"
    temp_basename: str = "temp_output"
    keep_intermediate: bool = False

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=_env_optional("GEMINI_API_KEY"),
            gemini_api_base=os.getenv("GEMINI_API_BASE", cls.gemini_api_base),
            gemini_model=os.getenv("GEMINI_TTS_MODEL", cls.gemini_model),
            gemini_voice=os.getenv("GEMINI_TTS_VOICE", cls.gemini_voice),
            gemini_temperature=float(os.getenv("GEMINI_TEMPERATURE", "1")),
            gemini_request_timeout_seconds=float(os.getenv("GEMINI_REQUEST_TIMEOUT_SECONDS", "120")),
            speech_language=os.getenv("SPEECH_LANGUAGE", cls.speech_language).strip() or cls.speech_language,
            default_tone=os.getenv("SPEECH_DEFAULT_TONE", cls.default_tone).strip() or cls.default_tone,
            ffmpeg_path=_env_optional("FFMPEG_PATH"),
            opus_bitrate=os.getenv("OPUS_BITRATE", cls.opus_bitrate).strip() or cls.opus_bitrate,
            output_path=os.getenv("SPEECH_OUTPUT_PATH", cls.output_path).strip() or cls.output_path,
            temp_basename=os.getenv("SPEECH_TEMP_BASENAME", cls.temp_basename).strip() or cls.temp_basename,
            keep_intermediate=_env_bool("KEEP_INTERMEDIATE_AUDIO", False),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).strip().upper() or cls.log_level,
            log_file=_env_optional("LOG_FILE"),
        )

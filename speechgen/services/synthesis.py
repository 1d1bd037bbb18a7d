from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from speechgen.config import Settings
from speechgen.encoders.base import AudioEncoder
from speechgen.models import GenerateContentResponse, InlineData
from speechgen.services.audio_utils import extension_for_mime_type, pcm_to_wav


logger = logging.getLogger(__name__)


class SpeechSynthesisError(RuntimeError):
    """Raised when the text-to-speech pipeline cannot complete."""


class SpeechSynthesisUsageError(SpeechSynthesisError):
    """Raised when the caller supplies no content to speak."""


class SpeechSynthesisConfigError(SpeechSynthesisError):
    """Raised when the pipeline is missing required configuration."""


class SpeechClient(Protocol):
    async def generate_speech(self, prompt: str) -> GenerateContentResponse:
        ...


@dataclass(slots=True)
class SynthesisResult:
    """Files produced and text returned by one synthesis run."""

    output_paths: list[Path] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)


def build_prompt(
    content: str,
    tone: Optional[str] = None,
    *,
    default_tone: str = "happy",
    language: str = "spanish",
) -> str:
    resolved_tone = tone.strip() if tone and tone.strip() else default_tone
    return f"Read {resolved_tone} tone, talk in {language}:\n{content}"


def _numbered_output(base: Path, index: int) -> Path:
    if index == 0:
        return base
    return base.with_name(f"{base.stem}-{index + 1}{base.suffix}")


class SpeechSynthesisService:
    """Text -> Gemini speech -> Opus file orchestrator.

    Raw PCM parts are wrapped in a WAV container before encoding; parts that
    already carry an encoded format are handed to the encoder untouched.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        client: SpeechClient,
        encoder: AudioEncoder,
        work_dir: Optional[Path] = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._encoder = encoder
        self._work_dir = work_dir or Path.cwd()

    def _output_path(self, index: int) -> Path:
        base = Path(self._settings.output_path).expanduser()
        if not base.is_absolute():
            base = self._work_dir / base
        return _numbered_output(base, index)

    def _temp_path(self, extension: str) -> Path:
        return self._work_dir / f"{self._settings.temp_basename}.{extension}"

    async def _save_audio(self, inline_data: InlineData, *, index: int) -> Path:
        """Persist one inline audio part and encode it to the final output file."""
        try:
            audio_bytes = inline_data.decode()
        except ValueError as exc:
            raise SpeechSynthesisError(str(exc)) from exc

        extension = extension_for_mime_type(inline_data.mime_type)
        if not extension:
            # No container type: Gemini's bare PCM (audio/L16;rate=...).
            extension = "wav"
            audio_bytes = pcm_to_wav(audio_bytes, inline_data.mime_type)

        output_path = self._output_path(index)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if output_path.suffix.lstrip(".").lower() == extension:
            output_path.write_bytes(audio_bytes)
            logger.info("File %s saved to file system.", output_path)
            return output_path

        temp_path = self._temp_path(extension)
        temp_path.write_bytes(audio_bytes)
        logger.debug("Wrote %d bytes of %s audio to %s", len(audio_bytes), extension, temp_path)

        # Encoder failures propagate and leave temp_path on disk for inspection.
        await self._encoder.encode(source=temp_path, destination=output_path)
        logger.info("File %s saved to file system.", output_path)

        if not self._settings.keep_intermediate:
            try:
                temp_path.unlink()
            except OSError as exc:
                logger.warning("Could not remove intermediate file %s: %s", temp_path, exc)
        return output_path

    async def synthesize(self, content: str, tone: Optional[str] = None) -> SynthesisResult:
        """Speak `content` in the requested tone and write the encoded result."""
        text = (content or "").strip()
        if not text:
            raise SpeechSynthesisUsageError(
                'Missing content argument. Usage: speechgen "<content>" "<tone?>"'
            )

        prompt = build_prompt(
            text,
            tone,
            default_tone=self._settings.default_tone,
            language=self._settings.speech_language,
        )
        response = await self._client.generate_speech(prompt)

        result = SynthesisResult()
        audio_index = 0
        for part in response.parts():
            if part.inline_data is not None:
                path = await self._save_audio(part.inline_data, index=audio_index)
                result.output_paths.append(path)
                audio_index += 1
            elif part.text:
                logger.info(part.text)
                result.texts.append(part.text)

        if not result.output_paths:
            logger.warning("Gemini response contained no audio parts.")
        return result

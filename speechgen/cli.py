"""speechgen command line.

Usage:
  speechgen "Hola a todos" "calm"
  python -m speechgen "Hola a todos" --output greeting.opus
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from speechgen.config import Settings
from speechgen.encoders.base import AudioEncoder, EncoderError
from speechgen.encoders.ffmpeg_subprocess import select_encoder
from speechgen.logging_utils import setup_logging
from speechgen.services.audio_utils import MimeTypeError
from speechgen.services.gemini import GeminiClient, GeminiClientError
from speechgen.services.synthesis import (
    SpeechSynthesisConfigError,
    SpeechSynthesisError,
    SpeechSynthesisService,
    SynthesisResult,
)


logger = logging.getLogger("speechgen.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="speechgen",
        description="Speak a short text with Gemini TTS and save it as an Opus file.",
    )
    parser.add_argument("content", help="Text to be spoken.")
    parser.add_argument("tone", nargs="?", default=None, help="Tone of voice (default: happy).")
    parser.add_argument("--output", "-o", help="Destination Opus file (default: output.opus).")
    parser.add_argument("--voice", help="Prebuilt Gemini voice name (default: Zephyr).")
    parser.add_argument("--model", help="Gemini TTS model name.")
    parser.add_argument("--language", help="Language the text is read in (default: spanish).")
    parser.add_argument("--bitrate", help="Opus bitrate passed to ffmpeg (default: 64k).")
    parser.add_argument(
        "--keep-intermediate",
        action="store_true",
        default=None,
        help="Keep the temporary WAV file after encoding.",
    )
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or INFO).")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with any explicit CLI flags layered on top."""
    overrides = {
        "output_path": args.output,
        "gemini_voice": args.voice,
        "gemini_model": args.model,
        "speech_language": args.language,
        "opus_bitrate": args.bitrate,
        "keep_intermediate": args.keep_intermediate,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    changes = {key: value for key, value in overrides.items() if value is not None}
    return dataclasses.replace(settings, **changes) if changes else settings


def require_api_key(settings: Settings) -> str:
    if not settings.gemini_api_key:
        raise SpeechSynthesisConfigError("Missing GEMINI_API_KEY. Check your .env file.")
    return settings.gemini_api_key


async def run(
    settings: Settings,
    content: str,
    tone: Optional[str] = None,
    *,
    encoder: Optional[AudioEncoder] = None,
    work_dir: Optional[Path] = None,
) -> SynthesisResult:
    client = GeminiClient.from_settings(settings)
    service = SpeechSynthesisService(
        settings=settings,
        client=client,
        encoder=encoder or select_encoder(settings),
        work_dir=work_dir,
    )
    try:
        return await service.synthesize(content, tone)
    finally:
        await client.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI and return a process exit code."""
    args = parse_args(argv)
    content = (args.content or "").strip()
    if not content:
        # Usage errors must not create any file, the log file included.
        print('Missing content argument. Usage: speechgen "<content>" "<tone?>"', file=sys.stderr)
        return EXIT_USAGE

    settings = apply_overrides(Settings.from_env(), args)
    setup_logging(settings.log_level, settings.log_file)

    try:
        require_api_key(settings)
        asyncio.run(run(settings, content, args.tone))
    except (SpeechSynthesisError, GeminiClientError, EncoderError, MimeTypeError) as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

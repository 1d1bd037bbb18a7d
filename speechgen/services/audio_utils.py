from __future__ import annotations

import mimetypes
import re
import struct
from dataclasses import dataclass
from typing import Optional


WAV_HEADER_SIZE = 44

# http://soundfile.sapp.org/doc/WaveFormat
_WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_BIT_DEPTH_RE = re.compile(r"L([0-9]+)")
_DIGITS_RE = re.compile(r"[0-9]+")
_UINT16_MAX = 0xFFFF
_UINT32_MAX = 0xFFFFFFFF

# Stdlib defaults only; system mime.types files differ between hosts.
_MIME_TYPES = mimetypes.MimeTypes()
for _type, _ext in (
    ("audio/wav", ".wav"),
    ("audio/wave", ".wav"),
    ("audio/vnd.wave", ".wav"),
    ("audio/x-wav", ".wav"),
    ("audio/opus", ".opus"),
    ("audio/ogg", ".ogg"),
    ("audio/flac", ".flac"),
    ("audio/webm", ".webm"),
):
    _MIME_TYPES.add_type(_type, _ext)


class MimeTypeError(ValueError):
    """Raised when a codec MIME type carries an unusable audio parameter."""


@dataclass(frozen=True, slots=True)
class AudioFormat:
    """PCM layout described by a codec MIME type."""

    num_channels: int = 1
    sample_rate: int = 16_000
    bits_per_sample: int = 16

    def __post_init__(self) -> None:
        if not 0 < self.num_channels <= _UINT16_MAX:
            raise ValueError("num_channels must be between 1 and 65535")
        if not 0 < self.sample_rate <= _UINT32_MAX:
            raise ValueError("sample_rate must be between 1 and 4294967295")
        if not 0 < self.bits_per_sample <= _UINT16_MAX:
            raise ValueError("bits_per_sample must be between 1 and 65535")
        if self.byte_rate > _UINT32_MAX or self.block_align > _UINT16_MAX:
            raise ValueError("byte_rate/block_align do not fit the WAV header")

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.num_channels * self.bits_per_sample // 8

    @property
    def block_align(self) -> int:
        return self.num_channels * self.bits_per_sample // 8


def parse_mime_type(mime_type: str) -> AudioFormat:
    """Read channel count, sample rate and bit depth from a codec MIME type.

    `audio/L16;codec=pcm;rate=24000` yields 1 channel, 24 kHz, 16 bits. Anything
    the string does not say falls back to mono 16 kHz 16-bit. A `rate` that is
    not a positive ASCII integer, an `L0` subtype, or values too large for the
    WAV header raise MimeTypeError.
    """
    file_type, *params = [segment.strip() for segment in (mime_type or "").split(";")]
    type_parts = file_type.split("/")
    subtype = type_parts[1] if len(type_parts) > 1 else ""

    num_channels = 1
    sample_rate = 16_000
    bits_per_sample = 16

    match = _BIT_DEPTH_RE.match(subtype)
    if match:
        bits_per_sample = int(match.group(1))
        if not 0 < bits_per_sample <= _UINT16_MAX:
            raise MimeTypeError(f"Invalid bit depth in MIME type {mime_type!r}")

    for param in params:
        key, _, value = param.partition("=")
        if key.strip() != "rate":
            continue
        raw_rate = value.strip()
        if not _DIGITS_RE.fullmatch(raw_rate):
            raise MimeTypeError(f"Invalid sample rate {raw_rate!r} in MIME type {mime_type!r}")
        sample_rate = int(raw_rate)
        if not 0 < sample_rate <= _UINT32_MAX:
            raise MimeTypeError(f"Sample rate out of range in MIME type {mime_type!r}")

    try:
        return AudioFormat(
            num_channels=num_channels,
            sample_rate=sample_rate,
            bits_per_sample=bits_per_sample,
        )
    except ValueError as exc:
        raise MimeTypeError(f"{exc} (MIME type {mime_type!r})") from exc


def create_wav_header(data_length: int, audio_format: AudioFormat) -> bytes:
    """Return the canonical 44-byte RIFF/WAVE header for `data_length` PCM bytes."""
    if not 0 <= data_length <= _UINT32_MAX - 36:
        raise ValueError("data_length must fit a 32-bit RIFF chunk size")
    return _WAV_HEADER.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,  # PCM fmt chunk size
        1,  # PCM format
        audio_format.num_channels,
        audio_format.sample_rate,
        audio_format.byte_rate,
        audio_format.block_align,
        audio_format.bits_per_sample,
        b"data",
        data_length,
    )


def assemble_wav(header: bytes, pcm: bytes) -> bytes:
    return header + pcm


def pcm_to_wav(pcm: bytes, mime_type: str) -> bytes:
    """Wrap raw PCM audio in a WAV container described by its codec MIME type.

    Gemini TTS replies with bare `audio/L16` samples; ffmpeg needs a container
    to know the sample rate and bit depth.
    """
    audio_format = parse_mime_type(mime_type)
    return assemble_wav(create_wav_header(len(pcm), audio_format), pcm)


def extension_for_mime_type(mime_type: str) -> Optional[str]:
    """Return a file extension (without the dot) for an encoded audio MIME type."""
    base_type = (mime_type or "").split(";", 1)[0].strip().lower()
    if not base_type:
        return None
    extension = _MIME_TYPES.guess_extension(base_type)
    if not extension:
        return None
    return extension.lstrip(".")

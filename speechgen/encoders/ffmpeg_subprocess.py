from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional

from speechgen.config import Settings
from speechgen.encoders.base import AudioEncoder, EncoderError, EncoderUnavailableError
from speechgen.encoders.noop import UnavailableEncoder


logger = logging.getLogger(__name__)


def resolve_ffmpeg_path(settings: Settings) -> Optional[str]:
  """Return the ffmpeg executable to use: FFMPEG_PATH first, then PATH lookup."""
  if settings.ffmpeg_path:
    return settings.ffmpeg_path
  return shutil.which("ffmpeg")


def select_encoder(settings: Settings) -> AudioEncoder:
  executable = resolve_ffmpeg_path(settings)
  if not executable:
    return UnavailableEncoder()
  if settings.ffmpeg_path and not Path(executable).expanduser().exists():
    return UnavailableEncoder(f"FFMPEG_PATH does not exist: {executable}")
  return FfmpegOpusEncoder(executable, bitrate=settings.opus_bitrate)


class FfmpegOpusEncoder:
  """Opus encoder that shells out to ffmpeg with libopus.

  Requirements on the host:
  - ffmpeg built with libopus, either on PATH or pointed to by FFMPEG_PATH
  """

  def __init__(self, executable: str, *, bitrate: str = "64k", codec: str = "libopus") -> None:
    self.executable = executable
    self.bitrate = bitrate
    self.codec = codec

  def command(self, source: Path, destination: Path) -> list[str]:
    return [
      self.executable,
      "-y",
      "-hide_banner",
      "-loglevel",
      "error",
      "-i",
      str(source),
      "-c:a",
      self.codec,
      "-b:a",
      self.bitrate,
      str(destination),
    ]

  async def encode(self, *, source: Path, destination: Path) -> None:
    cmd = self.command(source, destination)
    logger.debug("Running %s", " ".join(cmd))
    try:
      proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
      )
    except FileNotFoundError as exc:
      raise EncoderUnavailableError(f"ffmpeg executable not found: {self.executable}") from exc

    _stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
      raise EncoderError(
        f"ffmpeg exited with code {proc.returncode}: {stderr.decode('utf-8', 'ignore').strip()[-800:]}"
      )
    if not destination.exists():
      raise EncoderError("ffmpeg reported success but output file is missing.")

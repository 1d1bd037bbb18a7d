from __future__ import annotations

from pathlib import Path

from speechgen.encoders.base import EncoderUnavailableError


class UnavailableEncoder:
  """Encoder that always fails with a clear configuration error."""

  def __init__(self, reason: str | None = None) -> None:
    self.reason = reason or "Cannot find ffmpeg. Install ffmpeg or set FFMPEG_PATH."

  async def encode(self, *, source: Path, destination: Path) -> None:
    _ = source, destination
    raise EncoderUnavailableError(self.reason)

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class EncoderError(RuntimeError):
  """Raised when the external encoder fails to produce an output file."""


class EncoderUnavailableError(EncoderError):
  """Raised when no encoder executable can be located."""


class AudioEncoder(Protocol):
  """Encoder protocol: implement encode() to turn an audio file into the final deliverable."""

  async def encode(self, *, source: Path, destination: Path) -> None:
    raise NotImplementedError

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from speechgen.config import Settings
from speechgen.encoders.base import EncoderError, EncoderUnavailableError
from speechgen.encoders.ffmpeg_subprocess import (
    FfmpegOpusEncoder,
    resolve_ffmpeg_path,
    select_encoder,
)
from speechgen.encoders.noop import UnavailableEncoder


def _run(coro):  # noqa: ANN001
    return asyncio.run(coro)


class FakeProcess:
    def __init__(self, returncode: int, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self._stderr = stderr

    async def communicate(self) -> tuple[bytes, bytes]:
        return b"", self._stderr


def _fake_exec(calls: list[tuple], *, returncode: int = 0, stderr: bytes = b"", write_output: bool = True):
    async def fake_create_subprocess_exec(*cmd, **kwargs):  # noqa: ANN002, ANN003
        calls.append(cmd)
        if write_output:
            Path(cmd[-1]).write_bytes(b"OggS")
        return FakeProcess(returncode, stderr)

    return fake_create_subprocess_exec


def test_resolve_ffmpeg_path_prefers_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("speechgen.encoders.ffmpeg_subprocess.shutil.which", lambda name: "/usr/bin/ffmpeg")
    assert resolve_ffmpeg_path(Settings(ffmpeg_path="/opt/ffmpeg/bin/ffmpeg")) == "/opt/ffmpeg/bin/ffmpeg"
    assert resolve_ffmpeg_path(Settings()) == "/usr/bin/ffmpeg"


def test_select_encoder_without_ffmpeg_is_unavailable(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("speechgen.encoders.ffmpeg_subprocess.shutil.which", lambda name: None)

    encoder = select_encoder(Settings())

    assert isinstance(encoder, UnavailableEncoder)
    with pytest.raises(EncoderUnavailableError, match="FFMPEG_PATH"):
        _run(encoder.encode(source=tmp_path / "in.wav", destination=tmp_path / "out.opus"))


def test_select_encoder_rejects_missing_override(tmp_path: Path) -> None:
    encoder = select_encoder(Settings(ffmpeg_path=str(tmp_path / "missing-ffmpeg")))

    assert isinstance(encoder, UnavailableEncoder)
    assert "does not exist" in encoder.reason


def test_select_encoder_uses_override_and_bitrate(tmp_path: Path) -> None:
    executable = tmp_path / "ffmpeg"
    executable.write_text("#!/bin/sh\n")

    encoder = select_encoder(Settings(ffmpeg_path=str(executable), opus_bitrate="96k"))

    assert isinstance(encoder, FfmpegOpusEncoder)
    assert encoder.executable == str(executable)
    assert encoder.bitrate == "96k"


def test_ffmpeg_command_encodes_to_libopus(tmp_path: Path) -> None:
    encoder = FfmpegOpusEncoder("ffmpeg")

    cmd = encoder.command(tmp_path / "temp_output.wav", tmp_path / "output.opus")

    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-i") + 1] == str(tmp_path / "temp_output.wav")
    assert cmd[cmd.index("-c:a") + 1] == "libopus"
    assert cmd[cmd.index("-b:a") + 1] == "64k"
    assert cmd[-1] == str(tmp_path / "output.opus")


def test_ffmpeg_encoder_runs_subprocess(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[tuple] = []
    monkeypatch.setattr(
        "speechgen.encoders.ffmpeg_subprocess.asyncio.create_subprocess_exec", _fake_exec(calls)
    )
    destination = tmp_path / "output.opus"

    _run(FfmpegOpusEncoder("/usr/bin/ffmpeg").encode(source=tmp_path / "in.wav", destination=destination))

    assert calls[0][0] == "/usr/bin/ffmpeg"
    assert destination.read_bytes() == b"OggS"


def test_ffmpeg_encoder_raises_on_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[tuple] = []
    monkeypatch.setattr(
        "speechgen.encoders.ffmpeg_subprocess.asyncio.create_subprocess_exec",
        _fake_exec(calls, returncode=1, stderr=b"Unknown encoder 'libopus'", write_output=False),
    )

    with pytest.raises(EncoderError, match="libopus"):
        _run(FfmpegOpusEncoder("ffmpeg").encode(source=tmp_path / "in.wav", destination=tmp_path / "out.opus"))


def test_ffmpeg_encoder_raises_when_output_missing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[tuple] = []
    monkeypatch.setattr(
        "speechgen.encoders.ffmpeg_subprocess.asyncio.create_subprocess_exec",
        _fake_exec(calls, write_output=False),
    )

    with pytest.raises(EncoderError, match="missing"):
        _run(FfmpegOpusEncoder("ffmpeg").encode(source=tmp_path / "in.wav", destination=tmp_path / "out.opus"))


def test_ffmpeg_encoder_reports_missing_executable(tmp_path: Path) -> None:
    encoder = FfmpegOpusEncoder(str(tmp_path / "no-such-ffmpeg"))

    with pytest.raises(EncoderUnavailableError):
        _run(encoder.encode(source=tmp_path / "in.wav", destination=tmp_path / "out.opus"))

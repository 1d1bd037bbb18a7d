from __future__ import annotations

import base64
from pathlib import Path

import pytest

from speechgen import cli
from speechgen.config import Settings
from speechgen.models import GenerateContentResponse


class FakeGeminiClient:
    created: list["FakeGeminiClient"] = []
    mime_type = "audio/L16;rate=24000"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.prompts: list[str] = []
        self.closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "FakeGeminiClient":
        client = cls(settings)
        cls.created.append(client)
        return client

    async def generate_speech(self, prompt: str) -> GenerateContentResponse:
        self.prompts.append(prompt)
        data = base64.b64encode(b"\x00\x00" * 240).decode("ascii")
        return GenerateContentResponse.model_validate(
            {
                "candidates": [
                    {"content": {"parts": [{"inlineData": {"mimeType": self.mime_type, "data": data}}]}}
                ]
            }
        )

    async def aclose(self) -> None:
        self.closed = True


class FakeEncoder:
    async def encode(self, *, source: Path, destination: Path) -> None:
        _ = source
        destination.write_bytes(b"OggS")


@pytest.fixture(autouse=True)
def isolated_cli(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    FakeGeminiClient.created = []
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli, "GeminiClient", FakeGeminiClient)
    monkeypatch.setattr(cli, "select_encoder", lambda settings: FakeEncoder())
    for name in ("FFMPEG_PATH", "SPEECH_OUTPUT_PATH", "KEEP_INTERMEDIATE_AUDIO", "SPEECH_LANGUAGE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")


def test_blank_content_exits_before_any_request(tmp_path: Path) -> None:
    assert cli.main(["   "]) == cli.EXIT_USAGE
    assert FakeGeminiClient.created == []
    assert list(tmp_path.iterdir()) == []


def test_missing_content_argument_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 2
    assert FakeGeminiClient.created == []


def test_missing_api_key_fails(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    assert cli.main(["Hola"]) == cli.EXIT_FAILURE
    assert FakeGeminiClient.created == []
    assert list(tmp_path.iterdir()) == []


def test_main_writes_opus_and_removes_wav(tmp_path: Path) -> None:
    assert cli.main(["Hola a todos", "calm"]) == cli.EXIT_OK

    client = FakeGeminiClient.created[0]
    assert client.prompts == ["Read calm tone, talk in spanish:\nHola a todos"]
    assert client.closed is True
    assert (tmp_path / "output.opus").read_bytes() == b"OggS"
    assert not (tmp_path / "temp_output.wav").exists()


def test_encoder_unavailable_returns_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    from speechgen.encoders.noop import UnavailableEncoder

    monkeypatch.setattr(cli, "select_encoder", lambda settings: UnavailableEncoder())

    assert cli.main(["Hola"]) == cli.EXIT_FAILURE
    assert (tmp_path / "temp_output.wav").exists()
    assert FakeGeminiClient.created[0].closed is True


def test_apply_overrides_layers_flags_on_settings() -> None:
    args = cli.parse_args(["Hola", "--output", "x.opus", "--voice", "Kore", "--keep-intermediate"])

    settings = cli.apply_overrides(Settings(gemini_api_key="k"), args)

    assert settings.output_path == "x.opus"
    assert settings.gemini_voice == "Kore"
    assert settings.keep_intermediate is True
    assert settings.gemini_model == Settings.gemini_model


def test_apply_overrides_without_flags_returns_same_settings() -> None:
    settings = Settings(gemini_api_key="k")
    assert cli.apply_overrides(settings, cli.parse_args(["Hola"])) is settings


def test_blank_content_skips_settings_and_logging(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    logging_calls: list[tuple] = []
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: logging_calls.append(args))
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "speechgen.log"))
    monkeypatch.setenv("GEMINI_TEMPERATURE", "not-a-number")

    assert cli.main([""]) == cli.EXIT_USAGE
    assert logging_calls == []
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize("mime_type", ["audio/L70000;rate=24000", "audio/L16;rate=5000000000"])
def test_oversized_audio_parameters_return_failure(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, mime_type: str
) -> None:
    monkeypatch.setattr(FakeGeminiClient, "mime_type", mime_type)

    assert cli.main(["Hola"]) == cli.EXIT_FAILURE
    assert not (tmp_path / "output.opus").exists()
    assert FakeGeminiClient.created[0].closed is True

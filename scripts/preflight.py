"""Preflight checks for speechgen configuration.

Run this before the first synthesis to catch common misconfiguration:
  python scripts/preflight.py

Optional network checks:
  python scripts/preflight.py --check-http
"""

from __future__ import annotations

import argparse
import os
import re
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import httpx
from dotenv import load_dotenv


_BITRATE_RE = re.compile(r"^\d+(\.\d+)?[kKmM]?$")


@dataclass
class Report:
    passed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    def ok(self, message: str) -> None:
        self.passed.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def fail(self, message: str) -> None:
        self.failures.append(message)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


def _load_environment() -> None:
    """Load local env files in precedence order without overwriting existing vars."""
    repo_dir = Path(__file__).resolve().parent.parent
    candidates = [
        repo_dir / ".env.local",
        Path.cwd() / ".env",
        repo_dir / ".env",
    ]
    for env_file in candidates:
        if env_file.exists():
            load_dotenv(env_file, override=False)


def _env_float(name: str, default: float, report: Report, *, minimum: float = 0.0) -> float:
    """Parse float env var and emit validation failures into the report."""
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except ValueError:
        report.fail(f"{name} must be a number. Got: {raw!r}")
        return default
    if value < minimum:
        report.fail(f"{name} must be >= {minimum}. Got: {value}")
    return value


def _mask(value: str) -> str:
    """Mask secret values for safe console output."""
    trimmed = value.strip()
    if len(trimmed) < 8:
        return "***"
    return f"{trimmed[:4]}...{trimmed[-4:]}"


def check_credentials(report: Report) -> str | None:
    """Validate that the Gemini credential is present."""
    api_key = (os.getenv("GEMINI_API_KEY") or "").strip()
    if not api_key:
        report.fail("GEMINI_API_KEY is required.")
        return None
    if len(api_key) < 20:
        report.warn("GEMINI_API_KEY looks unusually short; verify it is correct.")
    report.ok(f"GEMINI_API_KEY detected ({_mask(api_key)}).")
    return api_key


def check_encoder(report: Report) -> None:
    """Validate that an ffmpeg executable can be resolved."""
    override = (os.getenv("FFMPEG_PATH") or "").strip()
    if override:
        if not Path(override).expanduser().exists():
            report.fail(f"FFMPEG_PATH does not exist: {override}")
        else:
            report.ok(f"ffmpeg resolved from FFMPEG_PATH ({override}).")
        return

    found = shutil.which("ffmpeg")
    if not found:
        report.fail("Cannot find ffmpeg. Install ffmpeg or set FFMPEG_PATH.")
    else:
        report.ok(f"ffmpeg found on PATH ({found}).")


def check_generation_settings(report: Report) -> None:
    """Validate numeric and format knobs for the generation request and encode."""
    temperature = _env_float("GEMINI_TEMPERATURE", 1.0, report, minimum=0.0)
    if temperature > 2.0:
        report.warn("GEMINI_TEMPERATURE is above 2.0; the API may reject the request.")
    _env_float("GEMINI_REQUEST_TIMEOUT_SECONDS", 120.0, report, minimum=1.0)

    bitrate = (os.getenv("OPUS_BITRATE", "64k") or "").strip()
    if not _BITRATE_RE.match(bitrate):
        report.fail(f"OPUS_BITRATE must look like '64k'. Got: {bitrate!r}")
    else:
        report.ok(f"OPUS_BITRATE={bitrate}")

    api_base = (os.getenv("GEMINI_API_BASE") or "").strip()
    if api_base:
        parsed = urlparse(api_base)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            report.fail(f"GEMINI_API_BASE is not a valid HTTP(S) URL: {api_base!r}")
        else:
            report.ok(f"GEMINI_API_BASE={api_base}")
    report.ok("Generation settings parsed successfully.")


def check_http_health(report: Report, *, api_key: str | None, timeout_seconds: float) -> None:
    """Optionally confirm the configured TTS model is visible to the credential."""
    if not api_key:
        report.warn("Skipping HTTP check: no GEMINI_API_KEY.")
        return
    api_base = (os.getenv("GEMINI_API_BASE") or "https://generativelanguage.googleapis.com/v1beta").rstrip("/")
    model = (os.getenv("GEMINI_TTS_MODEL") or "gemini-2.5-flash-preview-tts").strip()
    url = f"{api_base}/models/{model}"
    try:
        with httpx.Client(timeout=timeout_seconds) as client:
            response = client.get(url, headers={"x-goog-api-key": api_key})
    except Exception as exc:
        report.fail(f"{url} not reachable ({exc}).")
        return
    if response.status_code == 200:
        report.ok(f"Model {model} is available.")
    else:
        report.fail(f"Model lookup for {model} returned HTTP {response.status_code}.")


def print_report(report: Report) -> None:
    """Render a human-readable summary report to stdout."""
    for message in report.passed:
        print(f"[PASS] {message}")
    for message in report.warnings:
        print(f"[WARN] {message}")
    for message in report.failures:
        print(f"[FAIL] {message}")
    print(
        f"\nSummary: {len(report.passed)} passed, {len(report.warnings)} warnings, {len(report.failures)} failures."
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for optional network checks and probe timeouts."""
    parser = argparse.ArgumentParser(description="speechgen preflight checks")
    parser.add_argument(
        "--check-http",
        action="store_true",
        help="Look up the configured Gemini TTS model before the first run.",
    )
    parser.add_argument(
        "--http-timeout",
        type=float,
        default=5.0,
        help="Timeout (seconds) for preflight HTTP probes (default: 5.0).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run preflight suite and return process exit code."""
    args = parse_args(argv)
    _load_environment()
    report = Report()

    api_key = check_credentials(report)
    check_encoder(report)
    check_generation_settings(report)
    if args.check_http:
        check_http_health(report, api_key=api_key, timeout_seconds=max(args.http_timeout, 0.1))

    print_report(report)
    return 1 if report.has_failures else 0


if __name__ == "__main__":
    sys.exit(main())

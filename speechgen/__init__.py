"""Package bootstrap hooks."""
from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv


_ROOT_DIR = Path(__file__).resolve().parent.parent

# Load repo root .env first, then the working directory .env, then .env.local overrides.
load_dotenv(_ROOT_DIR / ".env")
load_dotenv(Path.cwd() / ".env")
load_dotenv(_ROOT_DIR / ".env.local", override=True)

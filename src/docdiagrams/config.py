"""Configuration loaded from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class ConfigError(RuntimeError):
    """Raised when a required setting is missing."""


def _require(name: str) -> str:
    val = os.getenv(name)
    if not val:
        raise ConfigError(f"Required environment variable {name} is not set")
    return val


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# API keys
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

# Models
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")
MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "1000"))

# Generation
GENERATION_DELAY: float = float(os.getenv("GENERATION_DELAY", "0.5"))
INCLUDE_EXPLANATION: bool = _flag("INCLUDE_EXPLANATION")

# Rendering
MMDC_COMMAND: str = os.getenv("MMDC_COMMAND", "npx mmdc")
RENDER_TIMEOUT: float = float(os.getenv("RENDER_TIMEOUT", "120"))
IMAGE_FORMAT: str = os.getenv("IMAGE_FORMAT", "png")
PLACEHOLDER_IMAGE: Path | None = (
    Path(os.environ["PLACEHOLDER_IMAGE"]) if os.getenv("PLACEHOLDER_IMAGE") else None
)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


def require_api_key() -> str:
    """Return the Gemini API key, failing fast when it is not configured.

    Called once at startup so a missing credential aborts the run before any
    document is read or any request is made.
    """
    return _require("GEMINI_API_KEY")

"""Render backends: turn Mermaid source into an image file."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Protocol

from docdiagrams import config

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """Raised when a backend fails to produce an image."""


class RenderBackend(Protocol):
    """Anything that can render diagram source to ``output_path``."""

    def render(self, source: str, output_path: Path) -> None:
        """Write an image for ``source`` to ``output_path`` or raise RenderError."""
        ...


def remove_quietly(path: Path) -> None:
    """Delete ``path`` if present; log instead of raising on failure."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete temporary file %s: %s", path, e)


class MermaidCliBackend:
    """Renders via the mermaid-cli ``mmdc`` executable."""

    def __init__(self, command: str | None = None, timeout: float | None = None) -> None:
        self._command = shlex.split(command or config.MMDC_COMMAND)
        self._timeout = timeout or config.RENDER_TIMEOUT

    def render(self, source: str, output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(suffix=".mmd", prefix=f"temp-{output_path.stem}-", dir=output_path.parent)
        tmp = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(source)
            self._run(["-i", str(tmp), "-o", str(output_path)])
        finally:
            remove_quietly(tmp)

    def _run(self, args: list[str]) -> None:
        cmd = self._command + args
        logger.debug("Executing %s", " ".join(cmd))
        t0 = time.perf_counter()
        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=self._timeout)
        except subprocess.CalledProcessError as e:
            raise RenderError(f"{self._command[0]} failed: {(e.stderr or '').strip()[:500]}") from e
        except subprocess.TimeoutExpired as e:
            raise RenderError(f"{self._command[0]} timed out after {self._timeout:.0f}s") from e
        except FileNotFoundError as e:
            raise RenderError(f"{self._command[0]} is not installed or not in PATH") from e
        logger.debug("Render complete: %.0fms", (time.perf_counter() - t0) * 1000)

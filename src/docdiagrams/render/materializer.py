"""Repair, render, degrade and fall back: one image per diagram block."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from docdiagrams.mermaid.degrade import degrade, detect_family
from docdiagrams.mermaid.repair import repair
from docdiagrams.render.backend import RenderBackend, RenderError
from docdiagrams.render.fallback import FallbackChain

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    RENDERED = "rendered"
    DEGRADED = "degraded"
    FALLBACK = "fallback"
    FAILED = "failed"

    @property
    def has_image(self) -> bool:
        return self is not Outcome.FAILED


class Materializer:
    """Drives at most two render attempts and one fallback chain per diagram.

    The repaired source is rendered first. On failure it is degraded to its
    family's skeleton and rendered once more. If that also fails the fallback
    chain writes an error image. Nothing here raises to the caller.
    """

    def __init__(self, backend: RenderBackend, fallback: FallbackChain | None = None) -> None:
        self._backend = backend
        self._fallback = fallback or FallbackChain(backend)

    def materialize(self, source: str, output_path: Path, title: str) -> Outcome:
        repaired = repair(source)
        if self._attempt(repaired, output_path, title):
            logger.info("Rendered %r to %s", title, output_path)
            return Outcome.RENDERED

        simplified = degrade(repaired, detect_family(repaired))
        if self._attempt(simplified, output_path, "simplified " + title):
            logger.info("Rendered simplified %r to %s", title, output_path)
            return Outcome.DEGRADED

        if self._fallback.create(output_path, title):
            return Outcome.FALLBACK
        return Outcome.FAILED

    def _attempt(self, source: str, output_path: Path, label: str) -> bool:
        """One render call. Any backend exception counts as a failed attempt."""
        try:
            self._backend.render(source, output_path)
        except RenderError as e:
            logger.warning("Render failed for %r: %s", label, e)
            return False
        except Exception as e:
            logger.warning("Render backend error for %r: %s: %s", label, type(e).__name__, e)
            return False
        return True

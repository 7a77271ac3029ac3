"""Shared test helpers: mock LLM responses and render backends."""

from pathlib import Path
from unittest.mock import MagicMock

from docdiagrams.render.backend import RenderError

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def _make_text_response(text: str):
    """Create a mock Gemini response with text content."""
    response = MagicMock()
    response.text = text
    return response


def _mermaid_reply(source: str, explanation: str | None = None) -> str:
    """Model reply text carrying one fenced mermaid block."""
    reply = f"Here is the diagram:\n\n```mermaid\n{source}\n```\n"
    if explanation:
        reply += f"\n{explanation}\n"
    return reply


def _make_mock_provider(source: str = "graph TD\n    A-->B") -> MagicMock:
    provider = MagicMock()
    provider.generate = MagicMock(return_value=_mermaid_reply(source))
    return provider


class FakeBackend:
    """Render backend that writes a stub PNG, failing on chosen calls.

    ``fail_when`` receives the source being rendered and returns True to fail.
    """

    def __init__(self, fail_when=None) -> None:
        self.calls: list[tuple[str, Path]] = []
        self._fail_when = fail_when or (lambda source: False)

    def render(self, source: str, output_path: Path) -> None:
        self.calls.append((source, output_path))
        if self._fail_when(source):
            raise RenderError("mmdc failed: Parse error on line 2")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(PNG_BYTES)


class CrashingBackend:
    """Backend that fails with OSError rather than RenderError."""

    def __init__(self, crash_when=None) -> None:
        self.calls: list[str] = []
        self._crash_when = crash_when or (lambda source: True)

    def render(self, source: str, output_path: Path) -> None:
        self.calls.append(source)
        if self._crash_when(source):
            raise OSError("No space left on device")
        output_path.write_bytes(PNG_BYTES)

"""Ask an LLM for a Mermaid diagram matching each description record."""

from __future__ import annotations

import logging
import re
import textwrap
import time
from dataclasses import dataclass
from typing import Callable

from docdiagrams.document.extractor import DescriptionRecord
from docdiagrams.generation.provider import GenerationProvider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a technical documentation assistant who draws diagrams with Mermaid. "
    "Use only flowchart, stateDiagram or sequenceDiagram syntax. "
    "Keep node identifiers simple and put labels with spaces in brackets."
)

MAX_CONTEXT_CHARS = 2000

MERMAID_BLOCK_RE = re.compile(r"```mermaid[ \t]*\n([\s\S]*?)```")
_FLOW_HEADER_RE = re.compile(r"^(graph|flowchart)[ \t]+(TD|TB|BT|LR|RL)\b[ \t;]*(.*)$")


class GenerationError(Exception):
    """Raised when a response carries no usable mermaid block."""


class CredentialRejected(RuntimeError):
    """Raised when the API rejects the key; no further calls are made."""


@dataclass
class GeneratedDiagram:
    source: str
    explanation: str | None = None


def build_prompt(record: DescriptionRecord, include_explanation: bool = False) -> str:
    context = record.context_window[:MAX_CONTEXT_CHARS]
    prompt = (
        f'Can you create the requested diagram at the end of the paragraph that starts with '
        f'"**{record.title}**:" with Mermaid?\n\n'
        f'Here\'s the description: "{record.description}"\n\n'
        f"Context from the section:\n{context}...\n\n"
        "Please return ONLY a valid Mermaid diagram code block that visualizes this concept, "
        "structured as follows:\n"
        "```mermaid\n// Your diagram code here\n```\n"
    )
    if include_explanation:
        prompt += "After the code block, add one short paragraph explaining the diagram.\n"
    return prompt


def normalize_source(source: str) -> str:
    """Put the diagram header on its own line and indent the body four spaces.

    ``graph TD A-->B`` becomes ``graph TD\\n    A-->B``.
    """
    lines = source.strip().split("\n")
    if not lines or not lines[0]:
        return source.strip()
    header, body = lines[0].strip(), lines[1:]
    match = _FLOW_HEADER_RE.match(header)
    if match and match.group(3):
        header = f"{match.group(1)} {match.group(2)}"
        body.insert(0, match.group(3))
    if not body:
        return header
    body_text = textwrap.indent(textwrap.dedent("\n".join(body)), "    ")
    return f"{header}\n{body_text}"


def parse_response(text: str, include_explanation: bool = False) -> GeneratedDiagram:
    """Pull the first mermaid block (and any trailing explanation) from a response."""
    match = MERMAID_BLOCK_RE.search(text or "")
    if not match or not match.group(1).strip():
        raise GenerationError("Response contains no mermaid code block")
    explanation = None
    if include_explanation:
        explanation = text[match.end():].strip() or None
    return GeneratedDiagram(source=normalize_source(match.group(1)), explanation=explanation)


def _is_auth_error(err: Exception) -> bool:
    err_str = str(err)
    return "API_KEY_INVALID" in err_str or "PERMISSION_DENIED" in err_str


class DiagramGenerator:
    """Generates Mermaid source for description records via a GenerationProvider."""

    def __init__(
        self,
        provider: GenerationProvider,
        include_explanation: bool = False,
        delay: float = 0.5,
    ) -> None:
        self._provider = provider
        self._include_explanation = include_explanation
        self._delay = delay

    def generate(self, record: DescriptionRecord) -> GeneratedDiagram:
        """Generate one diagram. Raises GenerationError or the provider's error."""
        prompt = build_prompt(record, self._include_explanation)
        logger.info("Requesting diagram for %r", record.title)
        response = self._provider.generate(prompt, system=SYSTEM_PROMPT)
        return parse_response(response, self._include_explanation)

    def generate_all(
        self,
        records: list[DescriptionRecord],
        on_progress: Callable[[dict], None] | None = None,
    ) -> int:
        """Fill in ``generated_source`` on each record, one call at a time.

        A failed record is logged and left without source. A rejected key
        stops the batch with CredentialRejected; records already generated
        keep their source.

        Returns the number of records that received a diagram.
        """
        total = len(records)
        generated = 0

        for i, record in enumerate(records, 1):
            try:
                diagram = self.generate(record)
            except Exception as e:
                if _is_auth_error(e):
                    raise CredentialRejected(f"API key error, aborting: {e}") from e
                logger.warning("Skipping %r: %s", record.title, e)
            else:
                record.generated_source = diagram.source
                record.explanation = diagram.explanation
                generated += 1

            if on_progress:
                on_progress({
                    "step": "generate", "current": i, "total": total,
                    "title": record.title, "ok": record.generated_source is not None,
                })

            if self._delay > 0 and i < total:
                time.sleep(self._delay)

        logger.info("Generated %d of %d diagram(s)", generated, total)
        return generated

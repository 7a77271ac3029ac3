"""Splice generated content back into a markdown document.

Two strategies are used:

- ``insert_after_paragraphs`` places each record's content at the end of the
  paragraph that contains it. Records are applied from the highest offset to
  the lowest, so an insertion never moves an offset that is still pending.
- ``substitute_anchors`` swaps the first occurrence of an anchor string for
  its replacement, searching the live buffer every time. Anchors that are no
  longer present are skipped and reported back to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from docdiagrams.document.extractor import DescriptionRecord

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = "\n\n"


def render_insertion(source: str, explanation: str | None = None) -> str:
    """Text inserted after a description paragraph."""
    block = f"\n\n```mermaid\n{source.strip()}\n```\n"
    if explanation:
        block += f"\n{explanation.strip()}\n"
    return block + "\n"


def paragraph_end(text: str, start: int) -> int:
    """Offset of the first paragraph break at or after ``start``."""
    pos = text.find(PARAGRAPH_BREAK, start)
    return pos if pos != -1 else len(text)


def insert_after_paragraphs(text: str, records: Iterable[DescriptionRecord]) -> str:
    """Insert each record's generated diagram after its paragraph.

    Offsets are taken against ``text`` as given. Records without generated
    source are skipped.
    """
    result = text
    for record in sorted(records, key=lambda r: r.offset, reverse=True):
        if not record.generated_source:
            logger.info("Skipping %r: no generated diagram", record.title)
            continue
        position = paragraph_end(text, record.end)
        result = (
            result[:position]
            + render_insertion(record.generated_source, record.explanation)
            + result[position:]
        )
        logger.debug("Inserted %r at %d", record.title, position)
    return result


@dataclass
class Substitution:
    anchor: str
    replacement: str
    label: str = ""


@dataclass
class SpliceResult:
    text: str
    applied: list[Substitution] = field(default_factory=list)
    missing: list[Substitution] = field(default_factory=list)


def substitute_anchors(text: str, substitutions: Iterable[Substitution]) -> SpliceResult:
    """Replace the first live occurrence of each anchor, in the order given."""
    result = SpliceResult(text=text)
    for sub in substitutions:
        pos = result.text.find(sub.anchor)
        if pos == -1:
            logger.warning("Anchor for %s not found, leaving it in place", sub.label or "substitution")
            result.missing.append(sub)
            continue
        result.text = result.text[:pos] + sub.replacement + result.text[pos + len(sub.anchor):]
        result.applied.append(sub)
    return result

"""Locate fenced mermaid blocks in a markdown document."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass

from docdiagrams.document.extractor import TitleIndex

BLOCK_PATTERN = re.compile(r"```mermaid\n([\s\S]*?)```")


@dataclass
class DiagramBlock:
    raw_source: str
    full_match: str
    position: int
    index: int
    associated_title: str | None
    output_filename: str

    @property
    def alt_text(self) -> str:
        return self.associated_title or f"Diagram {self.index}"


def slugify(title: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "-", title).lower()


def block_filename(title: str | None, index: int, timestamp: int) -> str:
    """Image file stem, unique across runs (timestamp) and within one (index)."""
    base = slugify(title) if title else f"diagram-{index}"
    return f"{base}-{timestamp}-{index}"


def find_blocks(text: str, timestamp: int | None = None) -> list[DiagramBlock]:
    """Return every mermaid block in ``text`` with its nearest preceding title.

    ``timestamp`` defaults to the current time in milliseconds and is shared
    by all blocks of one call.
    """
    if timestamp is None:
        timestamp = int(time.time() * 1000)
    titles = TitleIndex(text)
    blocks = []
    for index, match in enumerate(BLOCK_PATTERN.finditer(text), 1):
        title = titles.nearest_before(match.start())
        blocks.append(DiagramBlock(
            raw_source=match.group(1),
            full_match=match.group(0),
            position=match.start(),
            index=index,
            associated_title=title,
            output_filename=block_filename(title, index, timestamp),
        ))
    return blocks

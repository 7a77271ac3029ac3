"""Find "**Something Diagram:** description" markers in markdown text."""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 500

# Accepts both `**Title Diagram:**` and `**Title Diagram**:`.
DESCRIPTION_PATTERN = re.compile(r"\*\*([^*]+Diagram)(?::\*\*|\*\*:)([^\n]+)")
TITLE_PATTERN = re.compile(r"\*\*([^*]+Diagram)\*\*:|\*\*([^*]+Diagram):\*\*")


@dataclass
class DescriptionRecord:
    title: str
    description: str
    context_window: str
    matched_text: str
    offset: int
    generated_source: str | None = None
    explanation: str | None = None

    @property
    def end(self) -> int:
        return self.offset + len(self.matched_text)


def extract_descriptions(text: str) -> list[DescriptionRecord]:
    """Return one record per diagram description, in document order.

    An empty list is a normal result for a document without descriptions.
    """
    records = []
    for match in DESCRIPTION_PATTERN.finditer(text):
        start = max(0, match.start() - CONTEXT_CHARS)
        end = min(len(text), match.end() + CONTEXT_CHARS)
        record = DescriptionRecord(
            title=match.group(1).strip(),
            description=match.group(2).strip(),
            context_window=text[start:end],
            matched_text=match.group(0),
            offset=match.start(),
        )
        logger.debug("Found %r at offset %d", record.title, record.offset)
        records.append(record)

    if records:
        logger.info("Found %d diagram description(s)", len(records))
    else:
        logger.info("No diagram descriptions found")
        _log_near_misses(text)
    return records


def _log_near_misses(text: str) -> None:
    """Point at bold spans that mention "Diagram" but did not match."""
    near = re.findall(r"\*\*[^*]{0,30}Diagram[^*]{0,30}\*\*", text)
    if near:
        logger.info(
            "%d bold span(s) mention 'Diagram' but lack the trailing colon, e.g. %s",
            len(near), near[0],
        )


class TitleIndex:
    """Diagram titles sorted by offset for nearest-preceding lookups."""

    def __init__(self, text: str) -> None:
        self._offsets: list[int] = []
        self._titles: list[str] = []
        for match in TITLE_PATTERN.finditer(text):
            self._offsets.append(match.start())
            self._titles.append((match.group(1) or match.group(2)).strip())

    def __len__(self) -> int:
        return len(self._titles)

    def nearest_before(self, position: int) -> str | None:
        """Title of the closest marker strictly before ``position``."""
        i = bisect.bisect_left(self._offsets, position)
        if i == 0:
            return None
        return self._titles[i - 1]

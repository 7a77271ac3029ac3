"""Diagram family detection and the lossy "simplify on failure" fallback."""

from __future__ import annotations

import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

DIRECTIONS = ("TD", "TB", "BT", "LR", "RL")
DEFAULT_DIRECTION = "TD"

FLOWCHART_SKELETON = "graph {direction}\n    A[Simplified] --> B[Diagram]"
STATE_SKELETON = "stateDiagram\n    Start --> End"
SEQUENCE_SKELETON = "sequenceDiagram\n    participant A\n    participant B\n    A->>B: Message"

_DIRECTION_RE = re.compile(r"\b(?:graph|flowchart)\s+(TD|TB|BT|LR|RL)\b")


class DiagramFamily(str, Enum):
    FLOWCHART = "flowchart"
    STATE = "state"
    SEQUENCE = "sequence"
    OTHER = "other"


def _header(source: str) -> str:
    for line in source.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("%%"):
            return stripped
    return ""


def detect_family(source: str) -> DiagramFamily:
    """Classify ``source`` by its header line, falling back to content markers."""
    header = _header(source)
    if header.startswith("stateDiagram"):
        return DiagramFamily.STATE
    if re.match(r"(graph|flowchart)\b", header):
        return DiagramFamily.FLOWCHART
    if header.startswith("sequenceDiagram"):
        return DiagramFamily.SEQUENCE

    if "stateDiagram" in source:
        return DiagramFamily.STATE
    if "graph " in source or "flowchart " in source:
        return DiagramFamily.FLOWCHART
    if "sequenceDiagram" in source:
        return DiagramFamily.SEQUENCE
    return DiagramFamily.OTHER


def flow_direction(source: str) -> str:
    match = _DIRECTION_RE.search(source)
    return match.group(1) if match else DEFAULT_DIRECTION


def degrade(source: str, family: DiagramFamily | None = None) -> str:
    """Replace ``source`` with the minimal skeleton of its family.

    All structure is discarded. Flowcharts keep their direction when it can
    be read from the source; unrecognized diagrams become a top-down flowchart.
    """
    if family is None:
        family = detect_family(source)
    if family is DiagramFamily.STATE:
        skeleton = STATE_SKELETON
    elif family is DiagramFamily.SEQUENCE:
        skeleton = SEQUENCE_SKELETON
    elif family is DiagramFamily.FLOWCHART:
        skeleton = FLOWCHART_SKELETON.format(direction=flow_direction(source))
    else:
        skeleton = FLOWCHART_SKELETON.format(direction=DEFAULT_DIRECTION)
    logger.debug("Degraded %s diagram to skeleton", family.value)
    return skeleton

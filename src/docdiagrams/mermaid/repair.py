"""Pattern-based fixes for common syntax errors in LLM-written Mermaid.

``RULES`` is an ordered tuple of named rules, each a pure ``str -> str``
function that leaves its input alone when its trigger pattern is absent.
Order matters: the version-suffix rule must see ``stateDiagram_v2`` before
the sub-state rule rewrites ``state_<name>``, since both key on the same
underscore.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from docdiagrams.mermaid.degrade import DIRECTIONS, DiagramFamily, detect_family

logger = logging.getLogger(__name__)

MAX_PASSES = 3

_DIR = "|".join(DIRECTIONS)

_INLINE_LABEL_RE = re.compile(r"(\w+)[ \t]+--[ \t]+([^-\n]+?)[ \t]+-->[ \t]+(\w+)")
_MISSING_DIRECTION_RE = re.compile(rf"\A(\s*)(graph|flowchart)\b(?![ \t_-]*(?:{_DIR})\b)")
_KEYWORD_SEPARATOR_RE = re.compile(rf"\b(graph|flowchart)[_-]({_DIR})\b")
_KEYWORD_JOINED_RE = re.compile(rf"\A(\s*)(graph|flowchart)({_DIR})\b")
_STATE_VERSION_RE = re.compile(r"\bstateDiagram[_-]v2\b")
_SUBSTATE_RE = re.compile(r"\bstate_(\w+)[ \t]*\{")
_RESERVED_END_RE = re.compile(r"\bend[ \t]*(?=[\[({])")
_TRIPLE_EQUALS_RE = re.compile(r"={3,}>?")
_QUOTED_CLASSDEF_RE = re.compile(r'\bclassDef[ \t_]+(\w+)[ \t]+"([^"\n]*)"')
_CLASS_APPLY_RE = re.compile(
    r"^(?P<lead>[ \t]*class[ \t]+)"
    r"(?P<nodes>[\w-]+(?:[ \t]*,[ \t]*[\w-]+)*)"
    r"(?P<gap>[ \t]+)(?P<name>[\w-]+)(?P<tail>[ \t]*;?[ \t]*)$",
    re.MULTILINE,
)
_CLASS_SUBJECT_RE = re.compile(r"\bclass_([\w-]+)[ \t]+([\w-]+)")
_UNQUOTED_LABEL_RE = re.compile(r"\[([^\"'\[\]\n]+\s+[^\"'\[\]\n]+)\]")
_HYPHEN_JOIN_RE = re.compile(r"(?<=\w)-(?=\w)")
_PROTECTED_OR_HYPHEN_RE = re.compile(
    r"(:::[\w-]+"                  # class shorthand
    r"|--[ \t]+[^\n]*?[ \t]+-->"   # inline edge label
    r"|\[[^\]\n]*\]|\([^)\n]*\)|\{[^}\n]*\}|\"[^\"\n]*\"|\|[^|\n]*\|)"
    r"|(?<=\w)-(?=\w)"
)
_SKIP_LINE_RE = re.compile(r"^\s*(?:%%|(?:style|classDef|linkStyle|click|class)(?:\b|_))")
_STYLE_LINE_RE = re.compile(r"^\s*(?:style|classDef|linkStyle)(?:\b|_)")
_KEYWORD_PREFIX_RE = re.compile(r"^([ \t]*)(subgraph|style|classDef)_(\w+)", re.MULTILINE)
_STYLE_ATTR_RE = re.compile(r"\b(stroke|fill)_(?!width\b|dasharray\b|opacity\b)(#?\w+)")


@dataclass(frozen=True)
class RepairRule:
    name: str
    fn: Callable[[str], str]

    def __call__(self, source: str) -> str:
        return self.fn(source)


def fix_state_inline_labels(source: str) -> str:
    """``A -- label --> B`` becomes ``A --> B : label`` in state diagrams."""
    if "stateDiagram" not in source and not source.strip().startswith("state"):
        return source
    return _INLINE_LABEL_RE.sub(
        lambda m: f"{m.group(1)} --> {m.group(3)} : {m.group(2).strip()}", source
    )


def fix_missing_direction(source: str) -> str:
    return _MISSING_DIRECTION_RE.sub(r"\1\2 TD", source, count=1)


def fix_keyword_separators(source: str) -> str:
    """``graph_LR``, ``flowchart-TD`` and ``graphLR`` become ``graph LR``."""
    source = _KEYWORD_SEPARATOR_RE.sub(r"\1 \2", source)
    return _KEYWORD_JOINED_RE.sub(r"\1\2 \3", source, count=1)


def fix_state_version(source: str) -> str:
    return _STATE_VERSION_RE.sub("stateDiagram", source)


def fix_substate_names(source: str) -> str:
    return _SUBSTATE_RE.sub(r'state "\1" {', source)


def fix_reserved_end(source: str) -> str:
    return _RESERVED_END_RE.sub("endNode", source)


def fix_triple_equals(source: str) -> str:
    return _TRIPLE_EQUALS_RE.sub("-->", source)


def _style_attributes(style: str) -> str:
    parts = (re.sub(r"\s*:\s*", ":", p.strip()) for p in re.split(r"[;,]", style))
    return ",".join(p for p in parts if p)


def fix_quoted_classdef(source: str) -> str:
    """``classDef hot "fill: red; stroke: #333"`` becomes ``classDef hot fill:red,stroke:#333``."""
    return _QUOTED_CLASSDEF_RE.sub(
        lambda m: f"classDef {m.group(1)} {_style_attributes(m.group(2))}", source
    )


def fix_class_names(source: str) -> str:
    """``class A,B solid_line`` becomes ``class A,B solidline``."""
    def _fix(m: re.Match) -> str:
        nodes = _HYPHEN_JOIN_RE.sub("_", m.group("nodes"))
        name = re.sub(r"[_-]", "", m.group("name"))
        return f"{m.group('lead')}{nodes}{m.group('gap')}{name}{m.group('tail')}"

    return _CLASS_APPLY_RE.sub(_fix, source)


def fix_class_subject(source: str) -> str:
    """``class_id1 dotted_arrow`` becomes ``class id1 dottedarrow``."""
    return _CLASS_SUBJECT_RE.sub(
        lambda m: (
            f"class {_HYPHEN_JOIN_RE.sub('_', m.group(1))} "
            f"{re.sub(r'[_-]', '', m.group(2))}"
        ),
        source,
    )


def fix_unquoted_labels(source: str) -> str:
    return _UNQUOTED_LABEL_RE.sub(r'["\1"]', source)


def fix_hyphenated_ids(source: str) -> str:
    """``user-service --> db`` becomes ``user_service --> db`` in flowcharts.

    Bracketed, quoted, pipe-delimited and ``-- text -->`` labels are left
    alone, as are ``:::class`` tails and style and class statements where
    hyphens are part of class or attribute names.
    """
    if detect_family(source) is not DiagramFamily.FLOWCHART:
        return source
    lines = []
    for line in source.split("\n"):
        if not _SKIP_LINE_RE.match(line):
            line = _PROTECTED_OR_HYPHEN_RE.sub(lambda m: m.group(1) or "_", line)
        lines.append(line)
    return "\n".join(lines)


def fix_keyword_prefixes(source: str) -> str:
    """``subgraph_X``, ``style_X``, ``classDef_X`` and ``fill_#fff`` forms."""
    source = _KEYWORD_PREFIX_RE.sub(r"\1\2 \3", source)
    lines = []
    for line in source.split("\n"):
        if _STYLE_LINE_RE.match(line):
            line = _STYLE_ATTR_RE.sub(r"\1:\2", line)
        lines.append(line)
    return "\n".join(lines)


RULES: tuple[RepairRule, ...] = (
    RepairRule("state-inline-labels", fix_state_inline_labels),
    RepairRule("missing-direction", fix_missing_direction),
    RepairRule("keyword-separators", fix_keyword_separators),
    RepairRule("state-version", fix_state_version),
    RepairRule("substate-names", fix_substate_names),
    RepairRule("reserved-end", fix_reserved_end),
    RepairRule("triple-equals", fix_triple_equals),
    RepairRule("quoted-classdef", fix_quoted_classdef),
    RepairRule("class-names", fix_class_names),
    RepairRule("class-subject", fix_class_subject),
    RepairRule("unquoted-labels", fix_unquoted_labels),
    RepairRule("hyphenated-ids", fix_hyphenated_ids),
    RepairRule("keyword-prefixes", fix_keyword_prefixes),
)


def _run_pass(source: str, rules: tuple[RepairRule, ...]) -> str:
    for rule in rules:
        updated = rule(source)
        if updated != source:
            logger.debug("Applied repair rule %s", rule.name)
        source = updated
    return source


def repair(source: str, rules: tuple[RepairRule, ...] = RULES) -> str:
    """Run every rule over ``source`` in order and return the result.

    Passes repeat until one changes nothing (at most ``MAX_PASSES``), since a
    later rule can occasionally expose a pattern an earlier one handles.
    Never raises. Input with nothing to fix comes back unchanged.
    """
    fixed = source
    for _ in range(MAX_PASSES):
        updated = _run_pass(fixed, rules)
        if updated == fixed:
            break
        fixed = updated
    if fixed != source:
        logger.info("Repaired diagram, first line now %r", fixed.split("\n", 1)[0])
    return fixed

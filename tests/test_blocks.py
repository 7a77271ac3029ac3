"""Tests for mermaid block discovery and image naming."""

from __future__ import annotations

from docdiagrams.mermaid.blocks import block_filename, find_blocks, slugify

DOC = """\
**Login Flow Diagram:** user logs in

```mermaid
graph TD
    A-->B
```

Some prose.

```mermaid
sequenceDiagram
    A->>B: hi
```

**Token Lifecycle Diagram**: issue and revoke

```mermaid
stateDiagram
    Issued --> Revoked
```
"""


class TestSlugAndFilename:
    def test_slugify(self) -> None:
        assert slugify("Login Flow Diagram") == "login-flow-diagram"
        assert slugify("A/B (v2) Diagram") == "a-b--v2--diagram"

    def test_filename_with_title(self) -> None:
        assert block_filename("Login Flow Diagram", 3, 1700000000000) == "login-flow-diagram-1700000000000-3"

    def test_filename_without_title(self) -> None:
        assert block_filename(None, 2, 42) == "diagram-2-42-2"


class TestFindBlocks:
    def test_finds_all_blocks_in_order(self) -> None:
        blocks = find_blocks(DOC, timestamp=1)
        assert [b.index for b in blocks] == [1, 2, 3]
        assert blocks[0].raw_source == "graph TD\n    A-->B\n"
        assert blocks[1].raw_source.startswith("sequenceDiagram")
        assert all(DOC[b.position:].startswith(b.full_match) for b in blocks)
        assert blocks[0].full_match.startswith("```mermaid\n")
        assert blocks[0].full_match.endswith("```")

    def test_associates_nearest_preceding_title(self) -> None:
        blocks = find_blocks(DOC, timestamp=1)
        assert blocks[0].associated_title == "Login Flow Diagram"
        assert blocks[1].associated_title == "Login Flow Diagram"
        assert blocks[2].associated_title == "Token Lifecycle Diagram"

    def test_untitled_block_uses_positional_names(self) -> None:
        blocks = find_blocks("```mermaid\ngraph TD\n    A-->B\n```\n", timestamp=7)
        assert blocks[0].associated_title is None
        assert blocks[0].alt_text == "Diagram 1"
        assert blocks[0].output_filename == "diagram-1-7-1"

    def test_filenames_unique_within_run(self) -> None:
        names = [b.output_filename for b in find_blocks(DOC, timestamp=5)]
        assert len(set(names)) == len(names)

    def test_timestamp_distinguishes_runs(self) -> None:
        first = find_blocks(DOC, timestamp=100)[0].output_filename
        second = find_blocks(DOC, timestamp=200)[0].output_filename
        assert first != second

    def test_default_timestamp_shared_by_all_blocks(self) -> None:
        blocks = find_blocks(DOC)
        stamps = {b.output_filename.rsplit("-", 2)[1] for b in blocks}
        assert len(stamps) == 1

    def test_other_fences_ignored(self) -> None:
        assert find_blocks("```python\nprint('x')\n```\n") == []

#!/usr/bin/env python3
"""CLI: Render the mermaid blocks of a markdown file to images.

Writes <name>-with-images.md next to the input, with every block replaced
by an image reference. No API key is needed.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from docdiagrams import config
from docdiagrams.pipeline import run_conversion
from docdiagrams.render.backend import MermaidCliBackend


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Convert mermaid blocks in a markdown file to images")
    parser.add_argument("markdown", type=Path, help="Markdown file containing ```mermaid blocks")
    parser.add_argument("image_dir", nargs="?", type=Path, default=None, help="Directory for rendered images")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Output markdown path")
    parser.add_argument("--mmdc", type=str, default=None, help=f"Render command (default: {config.MMDC_COMMAND})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.markdown.is_file():
        print(f"Error: File not found: {args.markdown}", file=sys.stderr)
        return 1

    result = run_conversion(
        args.markdown,
        MermaidCliBackend(command=args.mmdc),
        image_dir=args.image_dir,
        output_path=args.output,
    )
    print(
        f"Converted {result['blocks']} diagram(s): {result['rendered']} rendered, "
        f"{result['degraded']} simplified, {result['fallback']} error images, {result['failed']} failed"
    )
    print(f"Updated markdown saved to: {result['output_path']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

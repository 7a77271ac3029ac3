#!/usr/bin/env python3
"""CLI: Generate Mermaid diagrams for a markdown file and convert them to images.

Usage:
  python scripts/generate_diagrams.py docs/design.md [images/]
  python scripts/generate_diagrams.py --file docs/design.md --image-dir images/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from docdiagrams import config
from docdiagrams.generation.provider import GeminiProvider
from docdiagrams.pipeline import run_all
from docdiagrams.render.backend import MermaidCliBackend


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate diagrams for '**... Diagram:**' descriptions and render them to images",
        allow_abbrev=False,
    )
    parser.add_argument("markdown", nargs="?", type=Path, help="Input markdown file")
    parser.add_argument("image_dir", nargs="?", type=Path, help="Directory for rendered images")
    parser.add_argument("--file", "--f", dest="file", type=Path, default=None, help="Input markdown file")
    parser.add_argument(
        "--image-dir", "--imageDir", "-imageDir",
        dest="image_dir_flag", type=Path, default=None,
        help="Directory for rendered images (default: <name>-images next to the input)",
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        default=config.INCLUDE_EXPLANATION,
        help="Ask for a short explanation paragraph under each diagram",
    )
    parser.add_argument("--model", type=str, default=None, help=f"Gemini model (default: {config.GEMINI_MODEL})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    markdown = args.file or args.markdown
    if markdown is None:
        parser.error("no markdown file given (pass it positionally or with --file)")
    image_dir = args.image_dir_flag or args.image_dir

    setup_logging(args.verbose)

    if not markdown.is_file():
        print(f"Error: File not found: {markdown}", file=sys.stderr)
        return 1

    try:
        api_key = config.require_api_key()
    except config.ConfigError as e:
        print(f"Error: {e}. Set it in .env or the environment.", file=sys.stderr)
        return 1

    provider = GeminiProvider(api_key=api_key, generation_model=args.model)
    backend = MermaidCliBackend()

    print(f"Input markdown file: {markdown}")
    print(f"Image output directory: {image_dir or 'default (next to markdown file)'}")

    result = run_all(markdown, provider, backend, image_dir=image_dir, include_explanation=args.explain)

    gen, conv = result["generation"], result["conversion"]
    if gen["aborted"]:
        print(f"Warning: {gen['aborted']}. Remaining descriptions were skipped.", file=sys.stderr)
    print(f"\nDiagram descriptions: {gen['descriptions']} ({gen['generated']} generated, {gen['failed']} failed)")
    print(f"  Markdown with diagrams: {gen['output_path']}")
    print(
        f"Diagrams converted: {conv['blocks']} "
        f"({conv['rendered']} rendered, {conv['degraded']} simplified, "
        f"{conv['fallback']} error images, {conv['failed']} failed)"
    )
    print(f"  Markdown with images: {conv['output_path']}")
    print(f"\nDone in {result['elapsed']:.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())

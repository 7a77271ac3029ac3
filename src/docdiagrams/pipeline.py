"""Pipeline step functions for turning diagram descriptions into images.

Each function wraps one stage, accepts an optional on_progress callback,
and returns a summary dict. Output documents are always written, even when
nothing was found or every item failed.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable

from docdiagrams import config
from docdiagrams.document.extractor import extract_descriptions
from docdiagrams.document.splicer import Substitution, insert_after_paragraphs, substitute_anchors
from docdiagrams.generation.generator import CredentialRejected, DiagramGenerator
from docdiagrams.generation.provider import GenerationProvider
from docdiagrams.mermaid.blocks import find_blocks
from docdiagrams.render.backend import RenderBackend
from docdiagrams.render.fallback import FallbackChain
from docdiagrams.render.materializer import Materializer, Outcome

logger = logging.getLogger(__name__)

DIAGRAMS_SUFFIX = "-with-diagrams"
IMAGES_SUFFIX = "-with-images"


def derived_path(path: Path, suffix: str) -> Path:
    """``docs/design.md`` with ``-with-images`` gives ``docs/design-with-images.md``."""
    return path.with_name(f"{path.stem}{suffix}{path.suffix}")


def default_image_dir(path: Path) -> Path:
    return path.with_name(f"{path.stem}-images")


def image_reference(image_path: Path, markdown_path: Path) -> str:
    """Path to the image as written into the markdown, relative and with forward slashes."""
    rel = os.path.relpath(image_path, markdown_path.parent)
    return rel.replace("\\", "/")


def _read(path: Path) -> str:
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def run_generation(
    markdown_path: Path,
    provider: GenerationProvider,
    output_path: Path | None = None,
    include_explanation: bool = False,
    delay: float | None = None,
    on_progress: Callable[[dict], None] | None = None,
) -> dict:
    """Generate a mermaid block for each diagram description and insert it.

    A rejected API key stops further requests but the document is still
    written with whatever was generated; ``aborted`` carries the reason.

    Returns {"descriptions": N, "generated": N, "failed": N,
    "aborted": str | None, "output_path": Path}.
    """
    text = _read(markdown_path)
    output_path = output_path or derived_path(markdown_path, DIAGRAMS_SUFFIX)

    records = extract_descriptions(text)
    aborted = None
    if records:
        generator = DiagramGenerator(
            provider,
            include_explanation=include_explanation,
            delay=config.GENERATION_DELAY if delay is None else delay,
        )
        try:
            generator.generate_all(records, on_progress=on_progress)
        except CredentialRejected as e:
            logger.error("Generation stopped: %s", e)
            aborted = str(e)
        text = insert_after_paragraphs(text, records)

    generated = sum(1 for r in records if r.generated_source is not None)
    output_path.write_text(text, encoding="utf-8")
    logger.info("Wrote %s", output_path)
    return {
        "descriptions": len(records),
        "generated": generated,
        "failed": len(records) - generated,
        "aborted": aborted,
        "output_path": output_path,
    }


def run_conversion(
    markdown_path: Path,
    backend: RenderBackend,
    image_dir: Path | None = None,
    output_path: Path | None = None,
    fallback: FallbackChain | None = None,
    image_format: str | None = None,
    timestamp: int | None = None,
    on_progress: Callable[[dict], None] | None = None,
) -> dict:
    """Render every mermaid block to an image and swap in image references.

    Blocks whose fallback chain was exhausted keep their source in place.

    Returns {"blocks", "rendered", "degraded", "fallback", "failed",
    "unreplaced", "output_path"}.
    """
    text = _read(markdown_path)
    output_path = output_path or derived_path(markdown_path, IMAGES_SUFFIX)
    image_dir = image_dir or default_image_dir(markdown_path)
    image_dir.mkdir(parents=True, exist_ok=True)
    ext = image_format or config.IMAGE_FORMAT
    if fallback is None:
        fallback = FallbackChain(backend, placeholder=config.PLACEHOLDER_IMAGE)
    materializer = Materializer(backend, fallback)

    blocks = find_blocks(text, timestamp=timestamp)
    counts = {outcome: 0 for outcome in Outcome}
    substitutions = []
    total = len(blocks)

    for block in blocks:
        image_path = image_dir / f"{block.output_filename}.{ext}"
        try:
            outcome = materializer.materialize(block.raw_source, image_path, block.alt_text)
        except Exception:
            logger.exception("Unexpected error converting diagram %d", block.index)
            outcome = Outcome.FAILED
        counts[outcome] += 1

        if outcome.has_image:
            ref = image_reference(image_path, output_path)
            substitutions.append(Substitution(
                anchor=block.full_match,
                replacement=f"![{block.alt_text}]({ref})",
                label=block.alt_text,
            ))
        else:
            logger.error("No image for %r, leaving its source in the document", block.alt_text)

        if on_progress:
            on_progress({
                "step": "render", "current": block.index, "total": total,
                "title": block.alt_text, "outcome": outcome.value,
            })

    spliced = substitute_anchors(text, substitutions)
    output_path.write_text(spliced.text, encoding="utf-8")
    logger.info("Converted %d diagram(s), wrote %s", total, output_path)

    return {
        "blocks": total,
        "rendered": counts[Outcome.RENDERED],
        "degraded": counts[Outcome.DEGRADED],
        "fallback": counts[Outcome.FALLBACK],
        "failed": counts[Outcome.FAILED],
        "unreplaced": counts[Outcome.FAILED] + len(spliced.missing),
        "output_path": output_path,
    }


def run_all(
    markdown_path: Path,
    provider: GenerationProvider,
    backend: RenderBackend,
    image_dir: Path | None = None,
    include_explanation: bool = False,
    on_progress: Callable[[dict], None] | None = None,
) -> dict:
    """Generation followed by conversion; the final file is named after the input.

    Returns {"generation": {...}, "conversion": {...}, "elapsed": seconds}.
    """
    start = time.time()
    if not markdown_path.is_file():
        raise FileNotFoundError(f"File not found: {markdown_path}")

    gen_result = run_generation(
        markdown_path, provider,
        include_explanation=include_explanation,
        on_progress=on_progress,
    )
    conv_result = run_conversion(
        gen_result["output_path"], backend,
        image_dir=image_dir or default_image_dir(markdown_path),
        output_path=derived_path(markdown_path, IMAGES_SUFFIX),
        on_progress=on_progress,
    )
    return {
        "generation": gen_result,
        "conversion": conv_result,
        "elapsed": time.time() - start,
    }

"""Last-resort error images for diagrams that could not be rendered."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable

from PIL import Image, ImageDraw, ImageFont

from docdiagrams.render.backend import RenderBackend

logger = logging.getLogger(__name__)

ERROR_DIAGRAM = """graph TD
    A["Error: Could not render diagram"]
    B["Please check the Mermaid syntax"]
    A --> B"""

IMAGE_SIZE = (400, 200)
BACKGROUND = "#f8f9fa"
ERROR_COLOR = "#dc3545"
TEXT_COLOR = "#212529"

FallbackStep = Callable[[Path, str], None]


def draw_error_image(output_path: Path, title: str) -> None:
    """Write a plain raster image that names the diagram which failed.

    The format follows the file suffix. Suffixes Pillow cannot write, such
    as ``.svg``, raise ValueError so the chain moves on to the next step.
    """
    image_format = Image.registered_extensions().get(output_path.suffix.lower())
    if image_format is None or image_format not in Image.SAVE:
        raise ValueError(f"Pillow cannot write {output_path.suffix or 'extensionless'} images")
    image = Image.new("RGB", IMAGE_SIZE, BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    draw.text((20, 50), "Error: Could not render diagram", fill=ERROR_COLOR, font=font)
    draw.text((20, 100), "Please check the Mermaid syntax", fill=TEXT_COLOR, font=font)
    draw.text((20, 150), f"Diagram: {title}", fill=TEXT_COLOR, font=font)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(output_path, format=image_format)


class FallbackChain:
    """Tries each step in turn until one writes an image.

    Default order: the error diagram through the regular backend, then a
    Pillow text image, then a copy of a static placeholder when configured.
    """

    def __init__(
        self,
        backend: RenderBackend | None = None,
        placeholder: Path | None = None,
        steps: list[tuple[str, FallbackStep]] | None = None,
    ) -> None:
        if steps is None:
            steps = []
            if backend is not None:
                steps.append(("error-diagram", lambda path, _title: backend.render(ERROR_DIAGRAM, path)))
            steps.append(("pillow", draw_error_image))
            if placeholder is not None:
                steps.append(("placeholder", lambda path, _title: shutil.copyfile(placeholder, path)))
        self._steps = steps

    def create(self, output_path: Path, title: str) -> bool:
        """Produce some image at ``output_path``. Never raises.

        Returns True if a step succeeded, False if the chain was exhausted.
        """
        for name, step in self._steps:
            try:
                step(output_path, title)
            except Exception as e:
                logger.warning("Fallback %s failed for %r: %s", name, title, e)
                continue
            logger.info("Created %s fallback image for %r", name, title)
            return True
        logger.error("No fallback image could be created for %r", title)
        return False

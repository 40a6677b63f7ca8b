from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger("filefield_sources.images")


def image_dimensions(path: Path) -> tuple[int, int] | None:
    """Return (width, height) when Pillow can read the file as an image."""
    from PIL import Image, UnidentifiedImageError

    try:
        with Image.open(path) as img:
            return img.width, img.height
    except (UnidentifiedImageError, OSError, ValueError):
        logger.debug("Not an image: %s", path)
        return None


def parse_dimensions(value: str) -> tuple[int, int]:
    width, _, height = value.lower().partition("x")
    try:
        return int(width), int(height)
    except ValueError as e:
        raise ValueError(f"Invalid dimensions: {value!r}, expected WIDTHxHEIGHT") from e

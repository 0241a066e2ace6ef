"""
Module: overlay.visualizer

Purpose:
    Debug previews of the position table. Renders a template page and
    outlines every configured box (x, y, max_width x size) with its
    derived name, so template authors can check placement and spot
    boxes that sit over the wrong text.

Key Functions:
    - visualize_positions(): Preview image for one page
    - save_position_previews(): PNG per page to a directory

Dependencies:
    - fitz (PyMuPDF): Page rasterization
    - PIL: Image drawing
    - overlay.registry: PositionRegistry

Used By:
    - cli: preview command
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

import fitz
from PIL import Image, ImageDraw, ImageFont

from ca66_toolkit.core.models.position import Position
from ca66_toolkit.overlay.registry import PositionRegistry

logger = logging.getLogger(__name__)

# Visualization constants
BOX_COLOR = (220, 0, 0, 200)          # Red - configured box
ANCHOR_COLOR = (0, 90, 220, 255)      # Blue - baseline anchor
LABEL_BG_COLOR = (0, 0, 0, 170)
LABEL_TEXT_COLOR = (255, 255, 255, 255)
UNCONSTRAINED_WIDTH = 40              # Points drawn when max_width is unset
BOX_LINE_WIDTH = 2
FONT_SIZE = 11
DEFAULT_DPI = 100


def visualize_positions(
    document: fitz.Document,
    registry: PositionRegistry,
    page_number: int,
    dpi: int = DEFAULT_DPI,
) -> Image.Image:
    """
    Render a page with every configured position outlined.

    Args:
        document: Template document
        registry: Position table to draw
        page_number: 1-based page number
        dpi: Rendering resolution

    Returns:
        New RGB image (document unchanged)

    Raises:
        ValueError: If page_number is outside the document
    """
    if not 1 <= page_number <= document.page_count:
        raise ValueError(f"page {page_number} outside document (1..{document.page_count})")

    page = document[page_number - 1]
    scale = dpi / 72.0
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples).convert("RGBA")

    overlay = Image.new("RGBA", image.size, (255, 255, 255, 0))
    draw = ImageDraw.Draw(overlay)
    try:
        font = ImageFont.truetype("DejaVuSans.ttf", FONT_SIZE)
    except (IOError, OSError):
        font = ImageFont.load_default()

    to_page = page.transformation_matrix
    placements = registry.get_positions_for_page(page_number)
    for placement in placements:
        bbox = _pixel_box(placement.position, to_page, scale)
        draw.rectangle(bbox, outline=BOX_COLOR, width=BOX_LINE_WIDTH)
        anchor = fitz.Point(placement.position.x, placement.position.y) * to_page
        ax, ay = anchor.x * scale, anchor.y * scale
        draw.ellipse((ax - 2, ay - 2, ax + 2, ay + 2), fill=ANCHOR_COLOR)
        _draw_label(draw, (bbox[0], bbox[1]), placement.derived_name, font)

    logger.debug(f"Visualized {len(placements)} positions on page {page_number}")
    return Image.alpha_composite(image, overlay).convert("RGB")


def _pixel_box(position: Position, to_page: fitz.Matrix, scale: float) -> Tuple[int, int, int, int]:
    """Position box in PDF space -> (left, top, right, bottom) pixels."""
    x0, y0, x1, y1 = position.box()
    if position.max_width is None:
        x1 = x0 + UNCONSTRAINED_WIDTH
    rect = fitz.Rect(x0, y0, x1, y1) * to_page
    return (
        int(rect.x0 * scale),
        int(rect.y0 * scale),
        int(rect.x1 * scale),
        int(rect.y1 * scale),
    )


def _draw_label(
    draw: ImageDraw.ImageDraw,
    anchor: Tuple[int, int],
    text: str,
    font: ImageFont.ImageFont,
) -> None:
    """Draw a label with dark background just above the box."""
    x, y = anchor
    text_bbox = draw.textbbox((0, 0), text, font=font)
    width = text_bbox[2] - text_bbox[0]
    height = text_bbox[3] - text_bbox[1]
    top = max(0, y - height - 4)
    draw.rectangle((x, top, x + width + 4, top + height + 4), fill=LABEL_BG_COLOR)
    draw.text((x + 2, top + 1), text, fill=LABEL_TEXT_COLOR, font=font)


def save_position_previews(
    document: fitz.Document,
    registry: PositionRegistry,
    output_dir: Path,
    dpi: int = DEFAULT_DPI,
) -> List[Path]:
    """
    Write one preview PNG per page that carries positions.

    Returns:
        Paths written, in page order
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for page_number in registry.pages:
        if page_number > document.page_count:
            logger.warning(f"Skipping preview for page {page_number}: document has {document.page_count}")
            continue
        path = output_dir / f"positions_page_{page_number}.png"
        visualize_positions(document, registry, page_number, dpi).save(path)
        written.append(path)
    logger.info(f"Saved {len(written)} position previews to {output_dir}")
    return written

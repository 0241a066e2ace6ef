"""
Module: overlay.calibration

Purpose:
    Tools for measuring placeholder positions on a new template revision.

    Template text found by PyMuPDF is reported in page space (origin
    top-left, y growing downwards). The position table uses PDF space
    (origin bottom-left), so everything located here is converted with
    the inverse of page.transformation_matrix before it becomes a Position.

Key Functions:
    - locate_placeholders(): Find "[NAME]" tokens and report their positions
    - to_position_config(): Group located tokens into the JSON table form
    - render_calibration_grid(): One-page PDF with a labelled coordinate grid
    - apply_calibration_grid(): Stamp the grid over every template page

Dependencies:
    - fitz (PyMuPDF): Text search, page stamping
    - reportlab: Grid drawing (native bottom-left coordinates)

Used By:
    - cli: locate and calibrate commands
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Pattern

import fitz
from reportlab.pdfgen import canvas

from ca66_toolkit.core.models.position import Position

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\[[A-Z0-9][A-Z0-9_-]*\]")

DEFAULT_GRID_STEP = 50
GRID_FONT_SIZE = 5
GRID_LINE_COLOR = (0.55, 0.75, 1.0)
GRID_LABEL_COLOR = (0.1, 0.3, 0.85)


@dataclass(frozen=True)
class LocatedPlaceholder:
    """
    A placeholder token found in template text.

    Attributes:
        name: Token as printed, e.g. "[LICENSEE]"
        position: Suggested Position (PDF space, baseline anchor,
            max_width = printed token width, size = span font size)
    """
    name: str
    position: Position


def locate_placeholders(
    document: fitz.Document,
    pattern: Pattern[str] = PLACEHOLDER_PATTERN,
) -> List[LocatedPlaceholder]:
    """
    Find placeholder tokens in every page's text.

    Args:
        document: Template document
        pattern: Regex matching a placeholder token

    Returns:
        Located placeholders in page then reading order

    Example:
        >>> found = locate_placeholders(doc)
        >>> found[0].name, found[0].position.page
        ('[LICENSEE-NAME]', 1)
    """
    located: List[LocatedPlaceholder] = []
    for page_index, page in enumerate(document):
        to_pdf = ~page.transformation_matrix
        text = page.get_text("dict")
        for block in text.get("blocks", []):
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    located.extend(_locate_in_span(page, page_index + 1, span, pattern, to_pdf))
    logger.info(f"Located {len(located)} placeholder tokens in {document.page_count} page(s)")
    return located


def _locate_in_span(
    page: fitz.Page,
    page_number: int,
    span: dict,
    pattern: Pattern[str],
    to_pdf: fitz.Matrix,
) -> List[LocatedPlaceholder]:
    found: List[LocatedPlaceholder] = []
    tokens = {m.group(0) for m in pattern.finditer(span.get("text", ""))}
    if not tokens:
        return found
    clip = fitz.Rect(span["bbox"])
    baseline = span["origin"][1]
    size = round(span["size"], 1)
    for token in sorted(tokens):
        for hit in page.search_for(token, clip=clip):
            anchor = fitz.Point(hit.x0, baseline) * to_pdf
            position = Position(
                page=page_number,
                x=round(max(anchor.x, 0), 1),
                y=round(max(anchor.y, 0), 1),
                size=size if size > 0 else 10,
                max_width=round(hit.width, 1) or None,
                description=f"Located on page {page_number}",
            )
            logger.debug(f"{token} on page {page_number} at ({position.x}, {position.y})")
            found.append(LocatedPlaceholder(token, position))
    return found


def to_position_config(located: List[LocatedPlaceholder]) -> Dict[str, object]:
    """
    Group located tokens into the "placeholders" JSON form.

    A token found once maps to one position object; a token found several
    times maps to a list, matching the registry configuration format.
    """
    grouped: Dict[str, List[dict]] = {}
    for item in located:
        grouped.setdefault(item.name, []).append(item.position.to_dict())
    return {name: entries[0] if len(entries) == 1 else entries for name, entries in grouped.items()}


def render_calibration_grid(
    width: float,
    height: float,
    step: int = DEFAULT_GRID_STEP,
) -> bytes:
    """
    Draw a labelled coordinate grid as a one-page PDF.

    Lines every `step` points, labelled with their PDF-space coordinate
    (origin bottom-left), so a printed or viewed template shows directly
    which (x, y) to put in the position table.

    Raises:
        ValueError: If step or page size is not positive
    """
    if step <= 0:
        raise ValueError(f"step must be positive: {step}")
    if width <= 0 or height <= 0:
        raise ValueError(f"page size must be positive: {width}x{height}")

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(width, height))
    c.setLineWidth(0.25)
    c.setStrokeColorRGB(*GRID_LINE_COLOR)
    c.setFillColorRGB(*GRID_LABEL_COLOR)
    c.setFont("Helvetica", GRID_FONT_SIZE)

    for x in range(0, int(width) + 1, step):
        c.line(x, 0, x, height)
        c.drawString(x + 1, 2, str(x))
    for y in range(0, int(height) + 1, step):
        c.line(0, y, width, y)
        c.drawString(2, y + 1, str(y))

    c.showPage()
    c.save()
    return buffer.getvalue()


def apply_calibration_grid(document: fitz.Document, step: int = DEFAULT_GRID_STEP) -> int:
    """
    Stamp a coordinate grid over every page of a document, in place.

    Returns:
        Number of pages stamped
    """
    for page in document:
        grid = fitz.open(stream=render_calibration_grid(page.rect.width, page.rect.height, step), filetype="pdf")
        try:
            page.show_pdf_page(page.rect, grid, 0, overlay=True)
        finally:
            grid.close()
    logger.info(f"Applied {step}pt calibration grid to {document.page_count} page(s)")
    return document.page_count

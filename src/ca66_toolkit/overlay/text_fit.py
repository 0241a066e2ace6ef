"""
Module: overlay.text_fit

Purpose:
    Font resolution, glyph coverage and text width measurement for the
    overlay renderer. Decides whether a value rendered at a position's
    size fits that position's declared max width.

    The fit check is ADVISORY. Nothing here truncates, wraps or shrinks
    text; a failed check only produces a warning so template authors can
    enlarge the box.

Key Functions:
    - load_font(): Resolve a base-14 name or TrueType file to an OverlayFont
    - measure_text_width(): Width of text in points at a size
    - fits(): Advisory width check against Position.max_width
    - OverlayFont.missing_glyphs(): Characters the font cannot draw

Dependencies:
    - fitz (PyMuPDF): Font metrics and glyph lookup
    - core.models.position: Position

Used By:
    - overlay.renderer: Cover sizing, glyph checks and fit diagnostics
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import fitz

from ca66_toolkit.core.models.position import Position
from ca66_toolkit.overlay.errors import RenderError

logger = logging.getLogger(__name__)

# PDF base-14 names -> PyMuPDF built-in font codes
BASE14_FONTS = {
    "Helvetica": "helv",
    "Helvetica-Bold": "hebo",
    "Helvetica-Oblique": "heit",
    "Helvetica-BoldOblique": "hebi",
    "Times-Roman": "tiro",
    "Times-Bold": "tibo",
    "Times-Italic": "tiit",
    "Times-BoldItalic": "tibi",
    "Courier": "cour",
    "Courier-Bold": "cobo",
    "Courier-Oblique": "coit",
    "Courier-BoldOblique": "cobi",
}

@dataclass(frozen=True, eq=False)
class OverlayFont:
    """
    A font ready for measuring and drawing.

    The same PyMuPDF Font measures and draws the text, so widths and
    glyph coverage always describe what ends up on the page.

    Attributes:
        name: Human-readable font name ("Helvetica", "DejaVuSans.ttf")
        metrics: PyMuPDF Font used for measuring and drawing
        font_file: TrueType file the font was loaded from, None for base-14 fonts
    """

    name: str
    metrics: fitz.Font
    font_file: Optional[Path] = None

    def text_length(self, text: str, size: float) -> float:
        """Width of text in points at the given size."""
        return self.metrics.text_length(text, fontsize=size)

    def missing_glyphs(self, text: str) -> List[str]:
        """
        Characters of text the font cannot draw, in first-seen order.

        Whitespace is never reported.

        Example:
            >>> load_font().missing_glyphs("Šimon 漢")
            ['漢']
        """
        missing: List[str] = []
        for char in text:
            if char.isspace() or char in missing:
                continue
            if not self.metrics.has_glyph(ord(char)):
                missing.append(char)
        return missing


def load_font(name: str = "Helvetica", font_file: Optional[Path] = None) -> OverlayFont:
    """
    Resolve a font for overlay drawing.

    Args:
        name: Base-14 font name (ignored when font_file is given)
        font_file: Optional TrueType/OpenType file to embed

    Returns:
        OverlayFont usable by the renderer

    Raises:
        RenderError: If the font name is unknown or the file cannot be embedded

    Example:
        >>> font = load_font("Helvetica")
        >>> font.font_file is None
        True
    """
    if font_file is not None:
        path = Path(font_file)
        if not path.is_file():
            raise RenderError(f"Font file not found: {path}")
        try:
            metrics = fitz.Font(fontfile=str(path))
        except Exception as e:
            raise RenderError(f"Cannot embed font {path}: {e}") from e
        logger.debug(f"Loaded font file {path}")
        return OverlayFont(path.name, metrics, path)

    code = BASE14_FONTS.get(name)
    if code is None:
        raise RenderError(
            f"Cannot embed font {name!r}: not a base-14 font and no font file given"
        )
    return OverlayFont(name, fitz.Font(code))


def measure_text_width(text: str, font: OverlayFont, size: float) -> float:
    """
    Rendered width of text in points.

    Example:
        >>> measure_text_width("", load_font(), 11)
        0.0
    """
    if not text:
        return 0.0
    return font.text_length(text, size)


def fits(text: Optional[str], position: Position, font: OverlayFont) -> bool:
    """
    Check whether text fits within a position's declared max width.

    Returns True when text is empty/None or the position declares no
    max width. Otherwise compares the width measured at position.size.
    """
    if not text or position.max_width is None:
        return True
    return measure_text_width(text, font, position.size) <= position.max_width

"""
Module: overlay.renderer

Purpose:
    Overlay resolved field values onto a loaded PDF template. For every
    page, finds the placements configured for that page, resolves each
    value, paints an opaque cover rectangle over the template placeholder
    and draws the value at the configured anchor.

Key Classes:
    - OverlayRenderer: Per-page overlay algorithm
    - OverlayReport: What was drawn, skipped and flagged

Key Functions:
    - render_overlays(): Convenience wrapper using the default registry

Dependencies:
    - fitz (PyMuPDF): Page drawing
    - overlay.registry: PositionRegistry
    - overlay.text_fit: Font loading, glyph and width checks

Used By:
    - overlay.generator: generate_filled_pdf()

Coordinate System:
    Positions use PDF space (origin bottom-left). PyMuPDF draws in page
    space (origin top-left), so every rectangle and point passes through
    page.transformation_matrix before drawing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

import fitz

from ca66_toolkit.core.models.position import PagePlacement, strip_brackets
from ca66_toolkit.overlay.config import OverlayConfig
from ca66_toolkit.overlay.errors import RenderError
from ca66_toolkit.overlay.registry import PositionRegistry, default_registry
from ca66_toolkit.overlay.text_fit import OverlayFont, fits, load_font, measure_text_width

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawOperation:
    """
    One cover-rectangle + text draw.

    Attributes:
        derived_name: Per-occurrence placeholder name
        original_name: Placeholder name the value was looked up under
        page: 1-based page number
        text: Trimmed value as drawn (never truncated)
        cover: (x, y, width, height) of the cover rectangle, PDF space
        origin: (x, y) text baseline anchor, PDF space
        fits: Result of the advisory width check
    """
    derived_name: str
    original_name: str
    page: int
    text: str
    cover: Tuple[float, float, float, float]
    origin: Tuple[float, float]
    fits: bool


@dataclass(frozen=True)
class SkippedPlacement:
    """A placement that was not drawn because no value was supplied."""
    derived_name: str
    original_name: str
    page: int
    description: str


@dataclass(frozen=True)
class OverlayReport:
    """
    Result of one render (immutable).

    Attributes:
        operations: Draws performed, in page then configuration order
        skipped: Placements with no value
        page_count: Number of pages in the rendered document
    """
    operations: Tuple[DrawOperation, ...]
    skipped: Tuple[SkippedPlacement, ...]
    page_count: int

    @property
    def fit_warnings(self) -> Tuple[DrawOperation, ...]:
        """Draws whose text was measured wider than the declared box."""
        return tuple(op for op in self.operations if not op.fits)

    def operations_for_page(self, page: int) -> List[DrawOperation]:
        return [op for op in self.operations if op.page == page]


class OverlayRenderer:
    """
    Draws field values at their configured template positions.

    The renderer holds no per-request state: the same instance may fill
    any number of documents, one at a time or from several threads, as
    long as each call gets its own document.

    Example:
        >>> renderer = OverlayRenderer(default_registry())
        >>> report = renderer.render(doc, {"LICENSEE": "John A. Smith"})
        >>> len(report.operations)
        3
    """

    def __init__(
        self,
        registry: Optional[PositionRegistry] = None,
        config: Optional[OverlayConfig] = None,
        *,
        font: Optional[OverlayFont] = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.config = config if config is not None else OverlayConfig()
        self._font = font

    @property
    def text_color(self) -> Tuple[float, float, float]:
        if self.config.text_color is not None:
            return tuple(self.config.text_color)
        return self.registry.default_color

    def resolve_font(self) -> OverlayFont:
        """Font used for measuring and drawing (loaded on first use)."""
        if self._font is None:
            name = self.config.font_name or self.registry.default_font
            self._font = load_font(name, self.config.font_file)
        return self._font

    def render(self, document: fitz.Document, field_values: Mapping[str, object]) -> OverlayReport:
        """
        Overlay values onto every page of a document, in place.

        Every value is resolved and checked before the first draw, so a
        RenderError caused by a value leaves the document untouched.

        Args:
            document: Loaded template; mutated page by page
            field_values: Placeholder name (bracketed or not) -> display string

        Returns:
            OverlayReport describing every draw and skip

        Raises:
            RenderError: If the font cannot be embedded, a value is not a
                string, the font has no glyph for a character of a value,
                or a page cannot be drawn on
        """
        if document is None or document.is_closed:
            raise RenderError("Cannot render onto a closed or missing document")

        font = self.resolve_font()
        page_count = document.page_count
        pending: List[Tuple[PagePlacement, str]] = []
        skipped: List[SkippedPlacement] = []

        out_of_range = [p for p in self.registry.pages if p > page_count]
        if out_of_range:
            logger.warning(
                f"Position table references page(s) {out_of_range} but document has {page_count}"
            )
        if self.config.cover_padding > self.registry.cover_clearance:
            logger.warning(
                f"Cover padding {self.config.cover_padding} exceeds the position table clearance "
                f"{self.registry.cover_clearance}; covers may paint over neighbouring values"
            )

        for page_number in range(1, page_count + 1):
            for placement in self.registry.get_positions_for_page(page_number):
                text = self._resolve_text(field_values, placement, font)
                if not text:
                    logger.debug(
                        f"No value found for {placement.derived_name} - {placement.position.description}"
                    )
                    skipped.append(SkippedPlacement(
                        placement.derived_name,
                        placement.original_name,
                        page_number,
                        placement.position.description,
                    ))
                    continue
                pending.append((placement, text))

        operations: List[DrawOperation] = []
        for placement, text in pending:
            page = document[placement.page - 1]
            operations.append(self._draw(page, placement, text, font))

        logger.info(
            f"Overlay complete: {len(operations)} draws, {len(skipped)} skipped "
            f"across {page_count} page(s)"
        )
        return OverlayReport(tuple(operations), tuple(skipped), page_count)

    def _resolve_text(
        self,
        field_values: Mapping[str, object],
        placement: PagePlacement,
        font: OverlayFont,
    ) -> str:
        """Trimmed value for a placement, "" when there is none."""
        value = lookup_value(field_values, placement.original_name)
        if value is not None and not isinstance(value, str):
            raise RenderError(
                f"Value for {placement.original_name} must be a string, "
                f"got {type(value).__name__}"
            )
        text = value.strip() if value else ""
        missing = font.missing_glyphs(text)
        if missing:
            raise RenderError(
                f"Font {font.name} cannot draw {''.join(missing)!r} in the value for "
                f"{placement.derived_name}; use a font file that covers these characters "
                f"(--font-file)"
            )
        return text

    def _draw(
        self,
        page: fitz.Page,
        placement: PagePlacement,
        text: str,
        font: OverlayFont,
    ) -> DrawOperation:
        """Paint the cover rectangle, then the text, for one placement."""
        pos = placement.position
        pad = self.config.cover_padding

        text_fits = fits(text, pos, font)
        if not text_fits:
            logger.warning(
                f"Text {text!r} may be too wide for {placement.derived_name} "
                f"(max width {pos.max_width})"
            )

        width = measure_text_width(text, font, pos.size)
        if pos.max_width is not None:
            width = min(width, pos.max_width)
        cover = (pos.x - pad, pos.y - pad, width + 2 * pad, pos.size + 2 * pad)

        matrix = page.transformation_matrix
        cx, cy, cw, ch = cover
        cover_rect = fitz.Rect(cx, cy, cx + cw, cy + ch) * matrix
        origin = fitz.Point(pos.x, pos.y) * matrix

        try:
            page.draw_rect(cover_rect, color=None, fill=self.config.cover_color, width=0, overlay=True)
            # TextWriter embeds the glyphs it uses from the measuring font
            writer = fitz.TextWriter(page.rect)
            writer.append(origin, text, font=font.metrics, fontsize=pos.size)
            writer.write_text(page, color=self.text_color, overlay=True)
        except Exception as e:
            raise RenderError(f"Failed to draw {placement.derived_name} on page {pos.page}: {e}") from e

        logger.debug(f"Replaced {placement.derived_name} with {text!r} at ({pos.x}, {pos.y}) - {pos.description}")
        return DrawOperation(
            derived_name=placement.derived_name,
            original_name=placement.original_name,
            page=pos.page,
            text=text,
            cover=cover,
            origin=(pos.x, pos.y),
            fits=text_fits,
        )


def lookup_value(field_values: Mapping[str, object], name: str) -> object:
    """
    Value for a placeholder, trying the bracketed name then the bare name.

    An empty value under the first key falls through to the second.
    """
    value = field_values.get(name)
    if not value:
        stripped = field_values.get(strip_brackets(name))
        if stripped is not None:
            value = stripped
    return value


def render_overlays(
    document: fitz.Document,
    field_values: Mapping[str, object],
    *,
    registry: Optional[PositionRegistry] = None,
    config: Optional[OverlayConfig] = None,
) -> OverlayReport:
    """
    Overlay values onto a document using a one-off renderer.

    See OverlayRenderer.render for details.
    """
    return OverlayRenderer(registry, config).render(document, field_values)

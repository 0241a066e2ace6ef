"""
Module: overlay

Purpose:
    PDF text-overlay placement engine. Maps named placeholders to fixed
    (page, x, y, size, max_width) positions on a static template and draws
    resolved values there over opaque cover rectangles.

Key Functions:
    - default_registry(): Position table for the shipped CA-66 template
    - generate_filled_pdf(): (template, values) -> PDF bytes
    - generate_agreement(): Form data -> PDF file
    - render_overlays(): Overlay values onto an open document

Key Classes:
    - PositionRegistry: Placeholder -> positions table
    - OverlayRenderer: Per-page overlay algorithm
    - OverlayConfig: Rendering configuration
    - OverlayReport: Draws, skips and fit warnings of one render

Dependencies:
    - fitz (PyMuPDF): PDF loading, drawing, serialization
    - reportlab: Calibration grid
    - PIL: Position previews

Used By:
    - ca66_toolkit.cli: Command line interface
"""

from .config import OverlayConfig
from .errors import ConfigurationError, RenderError
from .registry import PositionRegistry, default_registry
from .text_fit import OverlayFont, fits, load_font, measure_text_width
from .renderer import DrawOperation, OverlayRenderer, OverlayReport, render_overlays
from .generator import (
    GenerationResult,
    TemplateInfo,
    default_output_filename,
    generate_agreement,
    generate_filled_pdf,
    inspect_template,
    open_template,
)

__all__ = [
    # Config
    "OverlayConfig",
    "ConfigurationError",
    "RenderError",
    # Registry
    "PositionRegistry",
    "default_registry",
    # Text fit
    "OverlayFont",
    "fits",
    "load_font",
    "measure_text_width",
    # Rendering
    "DrawOperation",
    "OverlayRenderer",
    "OverlayReport",
    "render_overlays",
    # Generation
    "GenerationResult",
    "TemplateInfo",
    "default_output_filename",
    "generate_agreement",
    "generate_filled_pdf",
    "inspect_template",
    "open_template",
]

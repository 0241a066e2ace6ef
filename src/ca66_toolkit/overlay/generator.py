"""
Module: overlay.generator

Purpose:
    Produce a filled agreement PDF from a template and placeholder values.
    Generation is a pure function of (template, values): every call opens
    its own copy of the template and returns fresh bytes, with no cached
    "current agreement" held anywhere.

    Templates that carry AcroForm widgets are filled by field name (and
    flattened); plain templates get coordinate-based text overlays.

Key Functions:
    - open_template(): Load a template from a path or bytes
    - generate_filled_pdf(): (template, values) -> PDF bytes
    - generate_agreement(): Form data -> PDF file on disk
    - fill_form_fields(): Fill AcroForm widgets by name
    - inspect_template(): Page sizes and form field names
    - default_output_filename(): "CA66-<licensee>-<date>.pdf"

Key Classes:
    - GenerationResult: Outcome of generate_agreement()
    - TemplateInfo: Outcome of inspect_template()

Dependencies:
    - fitz (PyMuPDF): PDF loading, widgets, serialization
    - overlay.renderer: OverlayRenderer
    - fields.resolver: resolve_field_values()

Used By:
    - cli: fill and inspect commands
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

import fitz

from ca66_toolkit.fields.resolver import resolve_field_values
from ca66_toolkit.overlay.config import OverlayConfig
from ca66_toolkit.overlay.errors import RenderError
from ca66_toolkit.overlay.registry import PositionRegistry
from ca66_toolkit.overlay.renderer import OverlayRenderer, OverlayReport, lookup_value

logger = logging.getLogger(__name__)

TemplateSource = Union[Path, str, bytes, bytearray]

METHOD_OVERLAY = "overlay"
METHOD_FORM = "form"

_FILLABLE_WIDGETS = (
    fitz.PDF_WIDGET_TYPE_TEXT,
    fitz.PDF_WIDGET_TYPE_COMBOBOX,
    fitz.PDF_WIDGET_TYPE_LISTBOX,
)
_FALSE_WORDS = {"", "0", "false", "no", "off"}


@dataclass(frozen=True)
class TemplateInfo:
    """
    Summary of a template document.

    Attributes:
        page_count: Number of pages
        page_sizes: (width, height) in points per page
        form_fields: AcroForm field names, in page order
    """
    page_count: int
    page_sizes: Tuple[Tuple[float, float], ...]
    form_fields: Tuple[str, ...]

    @property
    def has_form_fields(self) -> bool:
        return bool(self.form_fields)


@dataclass(frozen=True)
class GenerationResult:
    """
    Result of generating one agreement (immutable).

    Attributes:
        output_path: Where the PDF was written
        method: "overlay" or "form"
        page_count: Pages in the output
        report: Overlay report (None for form filling)
        fields_filled: Widgets filled (form method) or draws made (overlay)
        generated_at: Timestamp of generation
        duration_seconds: Wall time spent generating
    """
    output_path: Path
    method: str
    page_count: int
    report: Optional[OverlayReport]
    fields_filled: int
    generated_at: datetime
    duration_seconds: float


def open_template(source: TemplateSource) -> fitz.Document:
    """
    Open a PDF template from a file path or raw bytes.

    Raises:
        RenderError: If the template is missing, unreadable or empty
    """
    if isinstance(source, (bytes, bytearray)):
        label = f"<{len(source)} bytes>"
    else:
        path = Path(source)
        label = str(path)
        if not path.is_file():
            raise RenderError(f"Template not found: {path}")

    try:
        if isinstance(source, (bytes, bytearray)):
            document = fitz.open(stream=bytes(source), filetype="pdf")
        else:
            document = fitz.open(str(source))
    except Exception as e:
        raise RenderError(f"Could not load PDF template {label}: {e}") from e

    if not document.is_pdf or document.page_count == 0:
        document.close()
        raise RenderError(f"Template {label} is not a PDF with at least one page")
    return document


def has_form_fields(document: fitz.Document) -> bool:
    """True when any page carries an AcroForm widget."""
    return any(True for page in document for _ in page.widgets())


def fill_form_fields(document: fitz.Document, field_values: Mapping[str, Any]) -> int:
    """
    Fill AcroForm widgets whose field name has a value.

    Text and choice fields receive the value as text; check boxes are
    checked unless the value reads as false. A widget that cannot be
    filled is logged and left as is.

    Returns:
        Number of widgets filled
    """
    filled = 0
    for page in document:
        for widget in page.widgets():
            name = widget.field_name
            if not name:
                continue
            value = lookup_value(field_values, name)
            if value is None:
                continue
            try:
                if widget.field_type == fitz.PDF_WIDGET_TYPE_CHECKBOX:
                    checked = str(value).strip().lower() not in _FALSE_WORDS
                    widget.field_value = widget.on_state() if checked else "Off"
                elif widget.field_type in _FILLABLE_WIDGETS:
                    widget.field_value = str(value)
                else:
                    continue
                widget.update()
            except (RuntimeError, ValueError) as e:
                logger.warning(f"Could not fill field {name!r}: {e}")
                continue
            filled += 1
            logger.debug(f"Filled field {name!r} with {value!r}")
    return filled


def _fill_document(
    document: fitz.Document,
    field_values: Mapping[str, Any],
    registry: Optional[PositionRegistry],
    config: OverlayConfig,
) -> Tuple[str, Optional[OverlayReport], int]:
    if has_form_fields(document):
        logger.info("Template has form fields, filling them by name")
        filled = fill_form_fields(document, field_values)
        if config.flatten_forms:
            document.bake(annots=False, widgets=True)
        return METHOD_FORM, None, filled

    logger.info("Template has no form fields, using text overlays")
    report = OverlayRenderer(registry, config).render(document, field_values)
    return METHOD_OVERLAY, report, len(report.operations)


def _serialize(document: fitz.Document) -> bytes:
    try:
        return document.tobytes(garbage=3, deflate=True)
    except Exception as e:
        raise RenderError(f"Failed to serialize filled PDF: {e}") from e


def generate_filled_pdf(
    template: TemplateSource,
    field_values: Mapping[str, Any],
    *,
    registry: Optional[PositionRegistry] = None,
    config: Optional[OverlayConfig] = None,
) -> bytes:
    """
    Fill a template and return the resulting PDF bytes.

    Args:
        template: Template path or bytes (each call opens its own copy)
        field_values: Placeholder name -> pre-formatted display string
        registry: Position table (default: shipped CA-66 table)
        config: Overlay configuration

    Returns:
        Filled PDF bytes

    Raises:
        RenderError: If the template cannot be loaded, filled or saved

    Example:
        >>> pdf_bytes = generate_filled_pdf(Path("template.pdf"), {"LICENSEE": "John A. Smith"})
        >>> pdf_bytes[:5]
        b'%PDF-'
    """
    config = config or OverlayConfig()
    document = open_template(template)
    try:
        _fill_document(document, field_values, registry, config)
        return _serialize(document)
    finally:
        document.close()


def default_output_filename(licensee: Optional[str], on: Optional[date] = None) -> str:
    """
    Download filename for an agreement.

    Example:
        >>> default_output_filename("John A. Smith", date(2025, 2, 1))
        'CA66-John_A__Smith-2025-02-01.pdf'
    """
    on = on or date.today()
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", (licensee or "").strip() or "Agreement")
    return f"CA66-{safe_name}-{on.isoformat()}.pdf"


def generate_agreement(
    form_data: Mapping[str, Any],
    template: TemplateSource,
    output_dir: Path,
    *,
    registry: Optional[PositionRegistry] = None,
    config: Optional[OverlayConfig] = None,
    today: Optional[date] = None,
    filename: Optional[str] = None,
) -> GenerationResult:
    """
    Resolve form data, fill the template and write the agreement PDF.

    Args:
        form_data: Raw application form data keyed by form-field id
        template: Template path or bytes
        output_dir: Directory for the output file (created if missing)
        registry: Position table (default: shipped CA-66 table)
        config: Overlay configuration
        today: Date used for agreement dates and the filename
        filename: Output filename override

    Returns:
        GenerationResult with the output path and report

    Raises:
        RenderError: If generation or writing fails
    """
    start_time = time.perf_counter()
    today = today or date.today()
    config = config or OverlayConfig()
    field_values = resolve_field_values(form_data, today=today)

    document = open_template(template)
    try:
        method, report, filled = _fill_document(document, field_values, registry, config)
        pdf_bytes = _serialize(document)
        page_count = document.page_count
    finally:
        document.close()

    output_dir = Path(output_dir)
    output_path = output_dir / (filename or default_output_filename(form_data.get("licensee-name"), today))
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(pdf_bytes)
    except OSError as e:
        raise RenderError(f"Could not write {output_path}: {e}") from e

    duration = time.perf_counter() - start_time
    logger.info(f"Wrote {output_path} ({len(pdf_bytes)} bytes, {method}) in {duration:.2f}s")

    return GenerationResult(
        output_path=output_path,
        method=method,
        page_count=page_count,
        report=report,
        fields_filled=filled,
        generated_at=datetime.now(),
        duration_seconds=duration,
    )


def inspect_template(source: TemplateSource) -> TemplateInfo:
    """
    Describe a template: page sizes and any AcroForm field names.

    Raises:
        RenderError: If the template cannot be loaded
    """
    document = open_template(source)
    try:
        sizes = tuple((page.rect.width, page.rect.height) for page in document)
        fields = tuple(
            widget.field_name
            for page in document
            for widget in page.widgets()
            if widget.field_name
        )
        return TemplateInfo(document.page_count, sizes, fields)
    finally:
        document.close()

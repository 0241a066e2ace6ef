"""
Tests for template loading, filling and agreement generation.

Uses the reportlab placeholder template from conftest for the overlay
path and a one-widget PyMuPDF form for the form-field path.
"""

import io
from datetime import date

import fitz
import pytest
from pypdf import PdfReader

from ca66_toolkit.overlay.config import OverlayConfig
from ca66_toolkit.overlay.errors import RenderError
from ca66_toolkit.overlay.generator import (
    METHOD_FORM,
    METHOD_OVERLAY,
    default_output_filename,
    generate_agreement,
    generate_filled_pdf,
    inspect_template,
    open_template,
)


@pytest.fixture
def form_template(tmp_path):
    """Single page with one text widget named LICENSEE-NAME."""
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    widget = fitz.Widget()
    widget.field_name = "LICENSEE-NAME"
    widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
    widget.rect = fitz.Rect(72, 72, 300, 92)
    page.add_widget(widget)
    path = tmp_path / "form.pdf"
    doc.save(str(path))
    doc.close()
    return path


class TestOpenTemplate:

    def test_open_when_missing_then_raises_render_error(self, tmp_path):
        with pytest.raises(RenderError, match="Template not found"):
            open_template(tmp_path / "nope.pdf")

    def test_open_when_not_pdf_bytes_then_raises_render_error(self):
        with pytest.raises(RenderError):
            open_template(b"definitely not a pdf")

    def test_open_when_bytes_then_document(self, placeholder_template):
        doc = open_template(placeholder_template.read_bytes())
        try:
            assert doc.page_count == 5
        finally:
            doc.close()


class TestGenerateFilledPdf:

    def test_generate_when_overlay_template_then_pdf_bytes(self, placeholder_template):
        pdf = generate_filled_pdf(placeholder_template, {"EMAIL": "a@b.co"})

        assert pdf.startswith(b"%PDF")
        reader = PdfReader(io.BytesIO(pdf))
        assert len(reader.pages) == 5
        assert "a@b.co" in reader.pages[3].extract_text()

    def test_generate_when_called_then_template_untouched(self, placeholder_template):
        before = placeholder_template.read_bytes()
        generate_filled_pdf(placeholder_template, {"LICENSEE": "John A. Smith"})
        assert placeholder_template.read_bytes() == before

    def test_generate_when_called_twice_then_independent(self, placeholder_template):
        """No state carries over between generations."""
        first = generate_filled_pdf(placeholder_template, {"EMAIL": "first@example.com"})
        second = generate_filled_pdf(placeholder_template, {"PHONE": "(831) 555-0123"})

        doc = fitz.open(stream=second, filetype="pdf")
        try:
            assert "first@example.com" not in doc[3].get_text()
            assert "(831) 555-0123" in doc[3].get_text()
        finally:
            doc.close()
        assert first != second

    def test_generate_when_form_template_then_widgets_filled(self, form_template):
        config = OverlayConfig(flatten_forms=False)
        pdf = generate_filled_pdf(form_template, {"LICENSEE-NAME": "John A. Smith"}, config=config)

        doc = fitz.open(stream=pdf, filetype="pdf")
        try:
            (widget,) = list(doc[0].widgets())
            assert widget.field_value == "John A. Smith"
        finally:
            doc.close()

    def test_generate_when_form_template_flattened_then_no_widgets(self, form_template):
        pdf = generate_filled_pdf(form_template, {"LICENSEE-NAME": "John A. Smith"})

        doc = fitz.open(stream=pdf, filetype="pdf")
        try:
            assert list(doc[0].widgets()) == []
            assert "John A. Smith" in doc[0].get_text()
        finally:
            doc.close()


class TestGenerateAgreement:

    def test_generate_agreement_when_full_form_then_every_placement_drawn(
        self, placeholder_template, sample_form, tmp_path
    ):
        result = generate_agreement(
            sample_form, placeholder_template, tmp_path / "out", today=date(2025, 2, 1)
        )

        assert result.method == METHOD_OVERLAY
        assert result.output_path == tmp_path / "out" / "CA66-John_A__Smith-2025-02-01.pdf"
        assert result.output_path.read_bytes().startswith(b"%PDF")
        assert result.page_count == 5
        assert result.report.skipped == ()
        assert result.fields_filled == len(result.report.operations) == 18

    def test_generate_agreement_when_full_form_then_dates_formatted(
        self, placeholder_template, sample_form, tmp_path
    ):
        result = generate_agreement(sample_form, placeholder_template, tmp_path, today=date(2025, 2, 1))

        texts = {op.derived_name: op.text for op in result.report.operations}
        assert texts["[START-DATE]_1"] == "01/02/2025"
        assert texts["[END-DATE]"] == "01/02/2026"
        assert texts["[POLICY-EXPIRY]"] == "31/12/2025"
        assert texts["[LICENSEE-NAME]"] == "John A. Smith"

    def test_generate_agreement_when_filename_given_then_used(
        self, placeholder_template, sample_form, tmp_path
    ):
        result = generate_agreement(sample_form, placeholder_template, tmp_path, filename="custom.pdf")
        assert result.output_path.name == "custom.pdf"

    def test_generate_agreement_when_form_template_then_form_method(
        self, form_template, sample_form, tmp_path
    ):
        result = generate_agreement(sample_form, form_template, tmp_path)
        assert result.method == METHOD_FORM
        assert result.report is None
        assert result.fields_filled == 1


class TestHelpers:

    def test_default_output_filename_when_name_then_sanitized(self):
        assert default_output_filename("John A. Smith", date(2025, 2, 1)) == "CA66-John_A__Smith-2025-02-01.pdf"

    def test_default_output_filename_when_no_name_then_agreement(self):
        assert default_output_filename(None, date(2025, 2, 1)) == "CA66-Agreement-2025-02-01.pdf"

    def test_inspect_when_placeholder_template_then_letter_pages(self, placeholder_template):
        info = inspect_template(placeholder_template)
        assert info.page_count == 5
        assert info.page_sizes[0] == (612, 792)
        assert info.has_form_fields is False

    def test_inspect_when_form_template_then_field_names(self, form_template):
        info = inspect_template(form_template)
        assert info.form_fields == ("LICENSEE-NAME",)

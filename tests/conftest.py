import pytest
import sys
from pathlib import Path

import fitz
from reportlab.pdfgen import canvas

# Add src to sys.path so we can import ca66_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from ca66_toolkit.overlay.registry import default_registry


LETTER_WIDTH = 612
LETTER_HEIGHT = 792
TEMPLATE_PAGES = 5


# Common test fixtures
@pytest.fixture
def blank_document():
    """Five blank US Letter pages, closed after the test."""
    doc = fitz.open()
    for _ in range(TEMPLATE_PAGES):
        doc.new_page(width=LETTER_WIDTH, height=LETTER_HEIGHT)
    yield doc
    if not doc.is_closed:
        doc.close()


@pytest.fixture
def placeholder_template(tmp_path: Path) -> Path:
    """
    Template PDF with every default placeholder printed at its position.

    Built with reportlab, whose coordinates are bottom-left origin like
    the position table.
    """
    registry = default_registry()
    path = tmp_path / "template.pdf"
    c = canvas.Canvas(str(path), pagesize=(LETTER_WIDTH, LETTER_HEIGHT))
    for page_number in range(1, TEMPLATE_PAGES + 1):
        for placement in registry.get_positions_for_page(page_number):
            pos = placement.position
            c.setFont("Helvetica", pos.size)
            c.drawString(pos.x, pos.y, placement.original_name)
        c.showPage()
    c.save()
    return path


@pytest.fixture
def sample_form():
    """Applicant form data keyed by form-field id."""
    return {
        "licensee-name": "John A. Smith",
        "phone": "(831) 555-0123",
        "email": "john.smith@skywardaviation.com",
        "aircraft-registration": "N847SA",
        "aircraft-make-model": "Cessna 172S Skyhawk",
        "insurance-company": "Avemco Insurance Company",
        "insurance-address": "411 Aviation Way",
        "insurance-city": "Frederick",
        "insurance-state": "MD",
        "insurance-zip": "21701",
        "insurance-phone": "(800) 638-8440",
        "policy-number": "AV-2025-001847",
        "policy-expiry": "2025-12-31",
        "coverage-amount": 1000000,
        "start-date": "2025-02-01",
    }

"""
Generate a sample placeholder template and a filled copy for manual review.

Draws every placeholder of the shipped position table at its configured
position on blank US Letter pages, then fills it with the sample applicant
below. Open both PDFs side by side to check cover rectangles and text
placement.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from reportlab.pdfgen import canvas

# Add src to path so we can import ca66_toolkit
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root / "src"))

from ca66_toolkit.overlay import default_registry, generate_agreement

OUTPUT_DIR = project_root / "workspace" / "sample_pdfs"

SAMPLE_FORM = {
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

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("sample_template")


def build_template(path: Path, page_count: int = 5) -> Path:
    """Write a template with every placeholder printed at its position."""
    registry = default_registry()
    c = canvas.Canvas(str(path), pagesize=(registry.page_width, registry.page_height))
    for page_number in range(1, page_count + 1):
        c.setFont("Helvetica", 8)
        c.drawString(40, registry.page_height - 30, f"CA-66 sample template - page {page_number}")
        for placement in registry.get_positions_for_page(page_number):
            pos = placement.position
            c.setFont("Helvetica", pos.size)
            c.drawString(pos.x, pos.y, placement.original_name)
        c.showPage()
    c.save()
    return path


def main():
    parser = argparse.ArgumentParser(description="Generate sample CA-66 template PDFs")
    parser.add_argument("--out", type=Path, default=OUTPUT_DIR)
    args = parser.parse_args()

    args.out.mkdir(parents=True, exist_ok=True)
    template = build_template(args.out / "sample_template.pdf")
    logger.info(f"[OK] Template: {template}")

    result = generate_agreement(SAMPLE_FORM, template, args.out, today=date(2025, 2, 1))
    logger.info(f"[OK] Filled: {result.output_path} ({result.fields_filled} draws)")
    for op in result.report.fit_warnings:
        logger.info(f"[WARN] {op.derived_name}: {op.text!r} wider than its box")


if __name__ == "__main__":
    main()

"""
Module: fields

Purpose:
    Resolve application form data into the pre-formatted placeholder
    values drawn by the overlay renderer.

Key Functions:
    - resolve_field_values(): Form data -> FieldValueMap
    - agreement_expiry_date(): Earlier of start + 1 year and insurance expiry

Used By:
    - overlay.generator: generate_agreement()
    - cli: fill command
"""

from .formatting import (
    add_one_year,
    agreement_expiry_date,
    format_currency,
    format_date_for_display,
    format_fee,
)
from .resolver import FIELD_ALIASES, FieldValueMap, resolve_field_values

__all__ = [
    "FIELD_ALIASES",
    "FieldValueMap",
    "resolve_field_values",
    "add_one_year",
    "agreement_expiry_date",
    "format_currency",
    "format_date_for_display",
    "format_fee",
]

"""
Module: fields.resolver

Purpose:
    Turn raw application form data (keyed by form-field id, e.g.
    "licensee-name") into the FieldValueMap consumed by the overlay
    renderer: canonical placeholder names -> final display strings.

    Historical naming variants ("LICENSEE-NAME", "Licensee Name",
    "PHONE-NUMBER", ...) are handled by one explicit alias table instead
    of duplicating every value under several keys.

Key Functions:
    - resolve_field_values(): Form data -> FieldValueMap

Key Classes:
    - FieldValueMap: Immutable, alias-aware Mapping[str, str]

Dependencies:
    - fields.formatting: Date and currency formatting

Used By:
    - overlay.generator: generate_agreement()
    - cli: fill command
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional

from ca66_toolkit.core.models.position import strip_brackets
from ca66_toolkit.fields.formatting import (
    add_one_year,
    format_currency,
    format_date_for_display,
    format_fee,
    parse_date,
)

logger = logging.getLogger(__name__)

LICENSOR_SIGNATURE = "Christopher Bley, AirSpace Integration, Inc."

# Canonical placeholder -> form field id, copied through as plain text
TEXT_FIELDS: Dict[str, str] = {
    "LICENSEE": "licensee-name",
    "PHONE": "phone",
    "EMAIL": "email",
    "PILOT-CERT": "pilot-certificate",
    "FLIGHT-HOURS": "flight-hours",
    "AIRCRAFT-REGISTRATION": "aircraft-registration",
    "AIRCRAFT-MAKE-MODEL": "aircraft-make-model",
    "INSURANCE-COMPANY": "insurance-company",
    "INSURANCE-ADDRESS": "insurance-address",
    "INSURANCE-CITY": "insurance-city",
    "INSURANCE-STATE": "insurance-state",
    "INSURANCE-ZIP": "insurance-zip",
    "INSURANCE-PHONE": "insurance-phone",
    "POLICY-NUMBER": "policy-number",
}

# Alternative spelling -> canonical placeholder
FIELD_ALIASES: Dict[str, str] = {
    "LICENSEE-NAME": "LICENSEE",
    "LICENSEE_NAME": "LICENSEE",
    "Licensee": "LICENSEE",
    "Licensee Name": "LICENSEE",
    "Name": "LICENSEE",
    "PHONE-NUMBER": "PHONE",
    "Phone": "PHONE",
    "Phone Number": "PHONE",
    "EMAIL-ADDRESS": "EMAIL",
    "Email": "EMAIL",
    "Email Address": "EMAIL",
    "AIRCRAFT-INFO": "AIRCRAFT",
    "Aircraft Registration": "AIRCRAFT-REGISTRATION",
    "Registration": "AIRCRAFT-REGISTRATION",
    "Aircraft Make Model": "AIRCRAFT-MAKE-MODEL",
    "Make Model": "AIRCRAFT-MAKE-MODEL",
    "Insurance Company": "INSURANCE-COMPANY",
    "Insurer": "INSURANCE-COMPANY",
    "Policy Number": "POLICY-NUMBER",
    "Policy": "POLICY-NUMBER",
    "Coverage Amount": "COVERAGE-AMOUNT",
    "Coverage": "COVERAGE-AMOUNT",
    "Policy Expiry": "POLICY-EXPIRY",
    "Insurance Expiry": "POLICY-EXPIRY",
    "Start Date": "START-DATE",
    "Agreement Start": "START-DATE",
    "End Date": "END-DATE",
    "Agreement End": "END-DATE",
    "Insurance Address": "INSURANCE-ADDRESS",
    "Insurance City": "INSURANCE-CITY",
    "Insurance State": "INSURANCE-STATE",
    "Insurance ZIP": "INSURANCE-ZIP",
    "Insurance Phone": "INSURANCE-PHONE",
}


class FieldValueMap(Mapping):
    """
    Immutable placeholder -> display string map for one generation request.

    Keys are stored without brackets. Lookups accept the canonical name,
    its bracketed form, or any alias; iteration yields canonical names only.

    Example:
        >>> values = FieldValueMap({"LICENSEE": "John A. Smith"}, {"Licensee Name": "LICENSEE"})
        >>> values["[LICENSEE]"]
        'John A. Smith'
        >>> values["Licensee Name"]
        'John A. Smith'
        >>> "PHONE" in values
        False
    """

    def __init__(self, values: Mapping[str, Any], aliases: Optional[Mapping[str, str]] = None) -> None:
        self._values = MappingProxyType({strip_brackets(k): v for k, v in values.items()})
        self._aliases = MappingProxyType(
            {strip_brackets(a): strip_brackets(c) for a, c in (aliases or {}).items()}
        )

    def _resolve(self, key: object) -> Optional[str]:
        if not isinstance(key, str):
            return None
        name = strip_brackets(key)
        if name in self._values:
            return name
        canonical = self._aliases.get(name)
        if canonical is not None and canonical in self._values:
            return canonical
        return None

    def __getitem__(self, key: str) -> Any:
        name = self._resolve(key)
        if name is None:
            raise KeyError(key)
        return self._values[name]

    def __contains__(self, key: object) -> bool:
        return self._resolve(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        filled = sum(1 for v in self._values.values() if v)
        return f"FieldValueMap({filled}/{len(self)} filled)"


def _text(form_data: Mapping[str, Any], key: str) -> str:
    value = form_data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def resolve_field_values(
    form_data: Mapping[str, Any],
    *,
    today: Optional[date] = None,
) -> FieldValueMap:
    """
    Resolve raw form data into pre-formatted placeholder values.

    Dates are formatted DD/MM/YYYY, coverage as whole dollars and the
    annual fee with cents. END-DATE falls back to one year after the start
    date when the form carries none.

    Args:
        form_data: Form-field id -> raw value (strings, numbers, dates)
        today: Date used for AGREEMENT-DATE and LICENSOR-DATE (default: today)

    Returns:
        FieldValueMap with every canonical placeholder present ("" when unknown)

    Example:
        >>> values = resolve_field_values({"licensee-name": "John A. Smith",
        ...                                "start-date": "2025-02-01"})
        >>> values["END-DATE"]
        '01/02/2026'
    """
    today = today or date.today()
    values: Dict[str, str] = {name: _text(form_data, key) for name, key in TEXT_FIELDS.items()}

    registration = values["AIRCRAFT-REGISTRATION"]
    model = values["AIRCRAFT-MAKE-MODEL"]
    if registration and model:
        values["AIRCRAFT"] = f"{registration} - {model}"
    else:
        values["AIRCRAFT"] = registration or model

    values["COVERAGE-AMOUNT"] = format_currency(form_data.get("coverage-amount"))
    values["POLICY-EXPIRY"] = format_date_for_display(form_data.get("policy-expiry"))

    start = parse_date(form_data.get("start-date"))
    values["START-DATE"] = format_date_for_display(start)
    end = parse_date(form_data.get("end-date"))
    if end is None and start is not None:
        end = add_one_year(start)
    values["END-DATE"] = format_date_for_display(end)

    values["ANNUAL-FEE"] = format_fee()
    values["AGREEMENT-DATE"] = format_date_for_display(today)
    values["LICENSOR-SIGNATURE"] = LICENSOR_SIGNATURE
    values["LICENSOR-DATE"] = format_date_for_display(today)

    missing = [name for name, key in TEXT_FIELDS.items() if not values[name]]
    if missing:
        logger.debug(f"Form data has no value for: {', '.join(missing)}")

    return FieldValueMap(values, FIELD_ALIASES)

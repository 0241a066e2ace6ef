"""
Module: fields.formatting

Purpose:
    Display formatting and date rules applied before values reach the
    overlay renderer. The renderer performs no formatting of its own, so
    every value it receives is already a final display string.

Key Functions:
    - parse_date(): Accept date, datetime or ISO "YYYY-MM-DD" strings
    - format_date_for_display(): DD/MM/YYYY
    - add_one_year(): Same calendar day next year (29 Feb -> 1 Mar)
    - agreement_expiry_date(): Earlier of start + 1 year and insurance expiry
    - format_currency(): Whole dollars, "$1,000,000"
    - format_fee(): Two decimals, "$250.00"

Dependencies:
    - datetime (std)

Used By:
    - fields.resolver: resolve_field_values()
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from numbers import Real
from typing import Optional, Union

DateLike = Union[date, datetime, str, None]

ANNUAL_FEE = 250


def parse_date(value: DateLike) -> Optional[date]:
    """
    Coerce a date-like value to a date.

    Returns None for empty or unparseable input.

    Example:
        >>> parse_date("2025-02-01")
        datetime.date(2025, 2, 1)
        >>> parse_date("not a date") is None
        True
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def format_date_for_display(value: DateLike) -> str:
    """
    Format a date as DD/MM/YYYY, or "" when missing or invalid.

    Example:
        >>> format_date_for_display("2025-12-31")
        '31/12/2025'
    """
    d = parse_date(value)
    if d is None:
        return ""
    return f"{d.day:02d}/{d.month:02d}/{d.year}"


def add_one_year(value: DateLike) -> date:
    """
    Same calendar day one year later.

    29 February rolls over to 1 March in non-leap years.

    Raises:
        ValueError: If value is not a valid date
    """
    d = parse_date(value)
    if d is None:
        raise ValueError(f"Invalid date: {value!r}")
    try:
        return d.replace(year=d.year + 1)
    except ValueError:
        # 29 Feb -> 28 Feb next year, plus one day
        return d.replace(year=d.year + 1, day=28) + timedelta(days=1)


def agreement_expiry_date(start: DateLike, insurance_expiry: DateLike = None) -> date:
    """
    Agreement expiry: the EARLIER of one year from start and insurance expiry.

    Without an insurance expiry the agreement runs one year.

    Raises:
        ValueError: If start is missing or invalid

    Example:
        >>> agreement_expiry_date("2025-02-01", "2025-12-31")
        datetime.date(2025, 12, 31)
        >>> agreement_expiry_date("2025-02-01")
        datetime.date(2026, 2, 1)
    """
    if parse_date(start) is None:
        raise ValueError("Start date is required for agreement expiry calculation")
    one_year = add_one_year(start)
    expiry = parse_date(insurance_expiry)
    if expiry is None:
        return one_year
    return min(expiry, one_year)


def format_currency(amount: object) -> str:
    """
    Whole-dollar currency, "" when missing.

    Non-numeric values are passed through as strings.

    Example:
        >>> format_currency(1000000)
        '$1,000,000'
        >>> format_currency("1000000")
        '$1,000,000'
    """
    if amount is None or amount == "":
        return ""
    if isinstance(amount, Real) and not isinstance(amount, bool):
        return f"${amount:,.0f}"
    text = str(amount).strip()
    try:
        return f"${float(text.replace(',', '')):,.0f}"
    except ValueError:
        return text


def format_fee(amount: float = ANNUAL_FEE) -> str:
    """
    Fee with cents.

    Example:
        >>> format_fee(250)
        '$250.00'
    """
    return f"${amount:.2f}"

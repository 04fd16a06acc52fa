"""
Shared value normalization for all extractors.

Supported formats:
- Dates: YYYY-MM-DD, M/D/YYYY, M/D/YY, M-D-YYYY, bare M/D (current year),
  textual month ("Jan 5, 2024", "January 5 2024", "5 Jan 2024")
- Amounts: 1,234.56, -1,234.56, (1,234.56), $1,234.56, 1,234.56-
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

DEBIT = "debit"
CREDIT = "credit"

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
NUMERIC_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})(?:[/-](\d{2}|\d{4}))?$")

# Textual month layouts accepted by strptime, tried in order
TEXT_DATE_FORMATS = [
    "%b %d, %Y",
    "%b %d %Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b. %d, %Y",
    "%d-%b-%Y",
    "%d-%b-%y",
]


def collapse_whitespace(value: Optional[str]) -> str:
    """Trim and collapse runs of whitespace to single spaces."""
    return " ".join((value or "").split())


def expand_year(year: Optional[str], default_year: Optional[int] = None) -> int:
    """
    Resolve a year token.

    Two-digit years are prefixed with "20"; a missing year falls back to
    `default_year`, then to the current calendar year.
    """
    if not year:
        return default_year if default_year is not None else date.today().year
    if len(year) == 2:
        return int(f"20{year}")
    return int(year)


def normalize_date_string(
    value: Optional[str], default_year: Optional[int] = None
) -> Optional[date]:
    """
    Parse a date token in any supported layout.

    Args:
        value: Raw date text
        default_year: Year used for bare M/D tokens (default: current year)

    Returns:
        date, or None when the text is not a valid date
    """
    if not value:
        return None
    text = collapse_whitespace(value)

    try:
        iso = ISO_DATE_RE.match(text)
        if iso:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

        numeric = NUMERIC_DATE_RE.match(text)
        if numeric:
            month, day, year = numeric.groups()
            return date(expand_year(year, default_year), int(month), int(day))
    except ValueError:
        return None

    for fmt in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def parse_money(value: object) -> Optional[Decimal]:
    """
    Parse a signed monetary value.

    Currency symbols and thousands separators are ignored; parentheses,
    a leading minus or a trailing minus mean negative.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))

    text = str(value).strip()
    if not text:
        return None

    negative = ("(" in text and ")" in text) or text.startswith("-") or text.endswith("-")
    digits = re.sub(r"[^0-9.]", "", text.replace(",", ""))
    if not digits or digits.count(".") > 1:
        return None
    try:
        amount = Decimal(digits)
    except InvalidOperation:
        return None

    return -amount if negative else amount


def normalize_amount(
    raw_amount: object, direction: Optional[str] = None
) -> Optional[tuple[Decimal, Decimal]]:
    """
    Split a raw amount into (debit, credit).

    An explicit direction ("debit"/"credit") wins; otherwise negative values
    are debits and positive values are credits.

    Returns:
        (debit, credit) tuple with non-negative values, or None if unparseable
    """
    amount = parse_money(raw_amount)
    if amount is None:
        return None

    value = abs(amount)
    if direction == DEBIT:
        is_debit = True
    elif direction == CREDIT:
        is_debit = False
    else:
        is_debit = amount < 0

    if is_debit:
        return value, Decimal("0")
    return Decimal("0"), value

"""
Caller input validation.

Identifiers are classified by shape only: a market prefix (sh, sz, hk, us)
means a stock ticker, bare digits mean a fund code. The as-of date hint is
informational; it is checked for shape and range but never changes what is
fetched.
"""

from __future__ import annotations

import re
from datetime import date

from price_inquiry.exceptions import InvalidDateError, InvalidIdentifierError
from price_inquiry.models import SecurityKind

STOCK_PREFIXES = ("sz", "sh", "hk", "us")
FUND_CODE = re.compile(r"^\d{6}$")
_DIGITS = re.compile(r"^\d+$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

EARLIEST_QUERY_DATE = date(2000, 1, 1)

DATE_FORMAT_MESSAGE = (
    "Enter the date as YYYY-MM-DD or YYYY/MM/DD, e.g. 2024-01-15 or 2024/01/15"
)


def is_fund_code(identifier: str) -> bool:
    """Exactly six ASCII digits."""
    return bool(FUND_CODE.match(identifier.strip()))


def validate_identifier(identifier: str) -> SecurityKind:
    """
    Classify an identifier or reject it.

    Raises:
        InvalidIdentifierError: empty, or neither prefixed nor all digits.
    """
    trimmed = (identifier or "").strip().lower()
    if not trimmed:
        raise InvalidIdentifierError(identifier or "")
    if trimmed.startswith(STOCK_PREFIXES):
        return SecurityKind.STOCK
    if _DIGITS.match(trimmed):
        return SecurityKind.FUND
    raise InvalidIdentifierError(identifier)


def validate_query_date(value: str, today: date | None = None) -> str:
    """
    Normalize an as-of date hint to YYYY-MM-DD.

    Raises:
        InvalidDateError: empty, wrong shape, not a real date, in the future,
            or before 2000-01-01.
    """
    today = today or date.today()
    trimmed = (value or "").strip()
    if not trimmed:
        raise InvalidDateError(value or "", "Enter a query date")

    normalized = trimmed.replace("/", "-")
    if not _ISO_DATE.match(normalized):
        raise InvalidDateError(trimmed, DATE_FORMAT_MESSAGE)

    try:
        parsed = date.fromisoformat(normalized)
    except ValueError as e:
        raise InvalidDateError(trimmed, "Enter a valid calendar date") from e

    if parsed > today:
        raise InvalidDateError(trimmed, "Query date cannot be in the future")
    if parsed < EARLIEST_QUERY_DATE:
        raise InvalidDateError(trimmed, "Query date cannot be before 2000-01-01")

    return normalized

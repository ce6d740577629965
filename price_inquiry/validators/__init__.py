"""
Validators for caller-supplied input.

Public API:
    validate_identifier: classify an identifier as fund or stock
    validate_query_date: normalize and range-check an as-of date hint
"""

from price_inquiry.validators.inputs import (
    EARLIEST_QUERY_DATE,
    STOCK_PREFIXES,
    is_fund_code,
    validate_identifier,
    validate_query_date,
)

__all__ = [
    "EARLIEST_QUERY_DATE",
    "STOCK_PREFIXES",
    "is_fund_code",
    "validate_identifier",
    "validate_query_date",
]

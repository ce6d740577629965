"""
Text extraction for scraped fund pages and quote payloads.

Every strategy reports through ParseOutcome so callers can tell "nothing
there" apart from "something there but invalid".
"""

from price_inquiry.extraction.base import OutcomeKind, ParseOutcome
from price_inquiry.extraction.dates import extract_date, parse_page_date
from price_inquiry.extraction.fund import (
    FundQuote,
    parse_fund_page,
    placeholder_name,
    validate_net_value,
)
from price_inquiry.extraction.stock import (
    StockQuote,
    is_no_match,
    is_valid_stock_name,
    parse_stock_payload,
)

__all__ = [
    "FundQuote",
    "OutcomeKind",
    "ParseOutcome",
    "StockQuote",
    "extract_date",
    "is_no_match",
    "is_valid_stock_name",
    "parse_fund_page",
    "parse_page_date",
    "parse_stock_payload",
    "placeholder_name",
    "validate_net_value",
]

"""
Parser for the simplified quote payload.

The endpoint answers with one JavaScript assignment per symbol:

    v_s_sz300750="51~宁德时代~300750~186.50~..."

Fields are tilde separated: name at index 1, last price at index 3 and, on
the extended variant, the trade date (YYYYMMDD) at index 30.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

import structlog

from price_inquiry.exceptions import ExtractionError

logger = structlog.get_logger(__name__)

NO_MATCH_MARKER = "pv_none_match"

_PAYLOAD = re.compile(r'v_s_[^=]+="([^"]*)"')
_PURE_NUMBER = re.compile(r"^\d+\.?\d*$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TRADE_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")

NAME_INDEX = 1
PRICE_INDEX = 3
TRADE_DATE_INDEX = 30
MIN_FIELDS = 4


@dataclass(frozen=True)
class StockQuote:
    symbol: str
    name: str
    price: float
    date: str


def is_no_match(body: str) -> bool:
    return NO_MATCH_MARKER in body


def is_valid_stock_name(name: str) -> bool:
    """Reject values that are really numbers, percentages, dates or OQ-suffixed."""
    if not name:
        return False
    if _PURE_NUMBER.match(name):
        return False
    if "%" in name:
        return False
    if _ISO_DATE.match(name):
        return False
    if name.upper().endswith("OQ"):
        return False
    return True


def _parse_price(raw: str) -> float:
    # non-positive and unparsable prices both come back as 0
    try:
        price = float(raw.strip())
    except ValueError:
        return 0.0
    return price if price > 0 else 0.0


def _trade_date(fields: list[str], today: date) -> str:
    if len(fields) > TRADE_DATE_INDEX:
        match = _TRADE_DATE.match(fields[TRADE_DATE_INDEX].strip())
        if match:
            return "-".join(match.groups())
    return today.isoformat()


def parse_stock_payload(
    body: str, symbol: str, today: date | None = None
) -> StockQuote:
    """
    Extract name, price and trade date from a quote payload.

    Raises:
        ExtractionError: payload missing, too few fields, or unusable name.
    """
    today = today or date.today()
    match = _PAYLOAD.search(body)
    if match is None:
        raise ExtractionError(symbol, "payload format not recognised")

    fields = match.group(1).split("~")
    if len(fields) < MIN_FIELDS:
        raise ExtractionError(symbol, f"only {len(fields)} fields in payload")

    name = fields[NAME_INDEX].strip()
    if not is_valid_stock_name(name):
        raise ExtractionError(symbol, f"invalid stock name: {name!r}")

    quote = StockQuote(
        symbol=symbol,
        name=name,
        price=_parse_price(fields[PRICE_INDEX]),
        date=_trade_date(fields, today),
    )
    logger.debug("stock_payload_parsed", symbol=symbol, price=quote.price)
    return quote

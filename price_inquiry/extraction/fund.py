"""
Fund page parsing: name, unit net value and as-of date.

Net value strategies run in order and the first one that yields any
candidate wins:
  1. table     - tables whose header row carries the unit net value label
  2. keyword   - fixed windows around every occurrence of the label

Among the winning strategy's candidates the one with the most recent date is
chosen. A value is accepted only in the strict four-decimal form inside the
configured price range; nothing is coerced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

import structlog
from bs4 import BeautifulSoup

from price_inquiry.extraction.base import ParseOutcome
from price_inquiry.extraction.dates import (
    extract_date,
    normalize_cell_date,
    parse_page_date,
)
from price_inquiry.models import UNRESOLVED_DATE

logger = structlog.get_logger(__name__)

NET_VALUE_LABEL = "单位净值"
NAME_MARKERS = ("基金", "净值")
WINDOW_BEFORE = 200
WINDOW_AFTER = 500

NET_VALUE_FORMAT = re.compile(r"^\d+\.\d{4}$")
NET_VALUE_TOKEN = re.compile(r"\d+\.\d{4}")

DEFAULT_PRICE_MIN = 0.01
DEFAULT_PRICE_MAX = 10000.0


def placeholder_name(code: str) -> str:
    return f"基金{code}"


@dataclass(frozen=True)
class NetValueCandidate:
    value: float
    as_of: date
    source: str


@dataclass
class FundQuote:
    """Everything recovered from one fund page."""

    code: str
    name: str
    net_value: float | None
    date: str  # ISO date, or UNRESOLVED_DATE

    @property
    def has_real_name(self) -> bool:
        return bool(self.name) and self.name != placeholder_name(self.code)

    @property
    def is_valid(self) -> bool:
        """Real name and a positive net value; otherwise the caller falls back."""
        return self.has_real_name and (self.net_value or 0) > 0


# --- Name ---


def _name_from_title(soup: BeautifulSoup) -> str | None:
    if soup.title is None:
        return None
    title = soup.title.get_text()
    if not any(marker in title for marker in NAME_MARKERS):
        return None
    # "XX混合(000311)基金净值..." -> "XX混合"
    return title.split("(", 1)[0].strip() or None


def _name_from_heading(soup: BeautifulSoup) -> str | None:
    heading = soup.find("h1")
    if heading is None:
        return None
    return heading.get_text(strip=True) or None


NAME_STRATEGIES = [_name_from_title, _name_from_heading]


def parse_fund_name(soup: BeautifulSoup, code: str) -> str:
    """Display name of the fund, or the `基金{code}` placeholder."""
    placeholder = placeholder_name(code)
    for strategy in NAME_STRATEGIES:
        name = strategy(soup)
        if name and name != placeholder:
            return name
    return placeholder


# --- Net value ---


def validate_net_value(
    text: str,
    price_min: float = DEFAULT_PRICE_MIN,
    price_max: float = DEFAULT_PRICE_MAX,
) -> ParseOutcome[float]:
    """Accept only `^\\d+\\.\\d{4}$` inside [price_min, price_max]."""
    text = text.strip()
    if not NET_VALUE_FORMAT.match(text):
        return ParseOutcome.malformed(f"not a four-decimal value: {text!r}")
    value = float(text)
    if value < price_min or value > price_max:
        return ParseOutcome.malformed(f"value out of range: {value}")
    return ParseOutcome.matched(value)


def _label_column(table) -> int | None:
    for row in table.find_all("tr"):
        cells = row.find_all(["th", "td"])
        if not any(NET_VALUE_LABEL in cell.get_text() for cell in cells):
            continue
        for index, cell in enumerate(cells):
            if NET_VALUE_LABEL in cell.get_text():
                return index
        return None
    return None


def _from_tables(
    soup: BeautifulSoup, price_min: float, price_max: float, today: date
) -> list[NetValueCandidate]:
    candidates = []
    for table in soup.find_all("table"):
        if NET_VALUE_LABEL not in table.get_text():
            continue
        column = _label_column(table)
        if column is None:
            continue

        for row in table.find_all("tr"):
            # header rows carry either the label or <th> cells
            if NET_VALUE_LABEL in row.get_text() or row.find("th") is not None:
                continue
            cells = row.find_all(["th", "td"])
            if len(cells) <= column:
                continue
            value = validate_net_value(
                cells[column].get_text(strip=True), price_min, price_max
            )
            if not value.ok:
                continue
            as_of = normalize_cell_date(cells[0].get_text(strip=True), today)
            if as_of.ok:
                candidates.append(NetValueCandidate(value.value, as_of.value, "table"))
    return candidates


def _from_keyword_windows(
    html: str, price_min: float, price_max: float, today: date
) -> list[NetValueCandidate]:
    candidates = []
    start = html.find(NET_VALUE_LABEL)
    while start != -1:
        window = html[max(0, start - WINDOW_BEFORE) : start + WINDOW_AFTER]
        as_of = extract_date(window, today)
        if as_of.ok:
            for token in NET_VALUE_TOKEN.findall(window):
                value = validate_net_value(token, price_min, price_max)
                if value.ok:
                    candidates.append(
                        NetValueCandidate(value.value, as_of.value, "keyword")
                    )
        start = html.find(NET_VALUE_LABEL, start + 1)
    return candidates


def parse_net_value(
    html: str,
    soup: BeautifulSoup | None = None,
    price_min: float = DEFAULT_PRICE_MIN,
    price_max: float = DEFAULT_PRICE_MAX,
    today: date | None = None,
) -> ParseOutcome[NetValueCandidate]:
    """Most recent validated unit net value on the page."""
    today = today or date.today()
    soup = soup if soup is not None else BeautifulSoup(html, "html.parser")

    candidates = _from_tables(soup, price_min, price_max, today)
    if not candidates:
        candidates = _from_keyword_windows(html, price_min, price_max, today)
    if not candidates:
        return ParseOutcome.no_match("no unit net value found")

    best = max(candidates, key=lambda c: c.as_of)
    logger.debug(
        "fund_net_value_selected",
        value=best.value,
        as_of=best.as_of.isoformat(),
        source=best.source,
        candidates=len(candidates),
    )
    return ParseOutcome.matched(best)


def parse_fund_page(
    html: str,
    code: str,
    price_min: float = DEFAULT_PRICE_MIN,
    price_max: float = DEFAULT_PRICE_MAX,
    today: date | None = None,
) -> FundQuote:
    """Run every fund strategy over one page."""
    today = today or date.today()
    soup = BeautifulSoup(html, "html.parser")

    name = parse_fund_name(soup, code)
    net_value = parse_net_value(html, soup, price_min, price_max, today)

    if net_value.ok:
        as_of = net_value.value.as_of.isoformat()
    else:
        page_date = parse_page_date(html, today)
        as_of = page_date.value.isoformat() if page_date.ok else UNRESOLVED_DATE

    return FundQuote(
        code=code,
        name=name,
        net_value=net_value.value.value if net_value.ok else None,
        date=as_of,
    )

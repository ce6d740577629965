"""
Date recovery from scraped text.

Pattern families are tried in priority order; within a family every match is
considered in document order. The first match that forms a real calendar date
with a plausible year wins. When nothing qualifies the outcome is NO_MATCH:
callers decide what to show instead, today's date is never substituted here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

import structlog

from price_inquiry.extraction.base import ParseOutcome

logger = structlog.get_logger(__name__)

MIN_PLAUSIBLE_YEAR = 2000  # exclusive
PAGE_DATE_KEYWORDS = ("更新时间", "净值日期")
PAGE_DATE_LOOKAHEAD = 30

_YMD = r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})"


@dataclass(frozen=True)
class DatePattern:
    name: str
    regex: re.Pattern
    has_year: bool = True


DATE_PATTERNS: list[DatePattern] = [
    DatePattern("standard_date", re.compile(_YMD)),  # 2024-01-15, 2024/1/15
    DatePattern("chinese_date", re.compile(r"(\d{4})年(\d{1,2})月(\d{1,2})日")),
    DatePattern("net_value_date", re.compile(r"净值日期[^0-9]*" + _YMD)),
    DatePattern("update_time", re.compile(r"更新时间[^0-9]*" + _YMD)),
    DatePattern("date_label", re.compile(r"日期[^0-9]*" + _YMD)),
    DatePattern("time_label", re.compile(r"时间[^0-9]*" + _YMD)),
    # 01-15 or 1/15, assumed to be in the current year
    DatePattern(
        "short_date",
        re.compile(r"(?<![\d/-])(\d{1,2})[-/](\d{1,2})(?![-/]?\d)"),
        has_year=False,
    ),
    DatePattern("timestamp", re.compile(r"(?<!\d)(\d{4})(\d{2})(\d{2})(?!\d)")),
]

_SHORT_CELL_DATE = re.compile(r"^(\d{1,2})[-/](\d{1,2})$")


def _build_date(year: int, month: int, day: int, today: date) -> date | None:
    try:
        candidate = date(year, month, day)
    except ValueError:
        return None
    if candidate.year <= MIN_PLAUSIBLE_YEAR or candidate.year > today.year + 1:
        return None
    return candidate


def _from_match(
    pattern: DatePattern, match: re.Match, today: date
) -> date | None:
    groups = [int(g) for g in match.groups()]
    if pattern.has_year:
        year, month, day = groups
    else:
        month, day = groups
        year = today.year
    return _build_date(year, month, day, today)


def extract_date(text: str, today: date | None = None) -> ParseOutcome[date]:
    """Return the first structurally valid, range-sane date found in `text`."""
    today = today or date.today()
    for pattern in DATE_PATTERNS:
        for match in pattern.regex.finditer(text):
            found = _from_match(pattern, match, today)
            if found is not None:
                logger.debug(
                    "date_extracted",
                    pattern=pattern.name,
                    raw=match.group(0),
                    normalized=found.isoformat(),
                )
                return ParseOutcome.matched(found)

    logger.debug("date_not_found", context=text[:100])
    return ParseOutcome.no_match("no date pattern matched")


def normalize_cell_date(text: str, today: date | None = None) -> ParseOutcome[date]:
    """Date from a table cell; bare month-day cells take the current year."""
    today = today or date.today()
    text = text.strip()
    short = _SHORT_CELL_DATE.match(text)
    if short:
        month, day = (int(g) for g in short.groups())
        found = _build_date(today.year, month, day, today)
        if found is None:
            return ParseOutcome.malformed(f"invalid month-day cell: {text!r}")
        return ParseOutcome.matched(found)
    return extract_date(text, today)


def parse_page_date(html: str, today: date | None = None) -> ParseOutcome[date]:
    """
    Page-level as-of date for a fund page.

    Labeled values ("update time", "net value date") take precedence; then
    any date the pattern families can find in the page.
    """
    for keyword in PAGE_DATE_KEYWORDS:
        index = html.find(keyword)
        if index == -1:
            continue
        start = index + len(keyword)
        window = html[start : start + PAGE_DATE_LOOKAHEAD]
        outcome = extract_date(window, today)
        if outcome.ok:
            return outcome

    return extract_date(html, today)

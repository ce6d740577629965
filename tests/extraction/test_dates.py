"""Tests for date pattern families and page-level date recovery."""

from datetime import date

import pytest

from price_inquiry.extraction.base import OutcomeKind
from price_inquiry.extraction.dates import (
    extract_date,
    normalize_cell_date,
    parse_page_date,
)

TODAY = date(2024, 3, 20)


class TestExtractDate:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("净值 2024-03-19 更新", date(2024, 3, 19)),
            ("2024/3/9", date(2024, 3, 9)),
            ("截至2024年3月19日", date(2024, 3, 19)),
            ("净值日期：2024-03-18", date(2024, 3, 18)),
            ("最近 03-19 收盘", date(2024, 3, 19)),
            ("20240315", date(2024, 3, 15)),
        ],
    )
    def test_pattern_families(self, text, expected):
        outcome = extract_date(text, TODAY)
        assert outcome.ok
        assert outcome.value == expected

    def test_iso_preferred_over_cjk(self):
        """Families are tried in priority order, not document order."""
        outcome = extract_date("2024年1月2日 ... 2024-03-19", TODAY)
        assert outcome.value == date(2024, 3, 19)

    def test_invalid_calendar_date_skipped(self):
        """A structurally invalid match gives way to the next valid one."""
        outcome = extract_date("2024-02-30 then 2024-02-28", TODAY)
        assert outcome.value == date(2024, 2, 28)

    def test_implausible_years_rejected(self):
        """Years up to 2000 and beyond next year are not as-of dates."""
        assert not extract_date("1999-12-31", TODAY).ok
        assert not extract_date("2000-06-01", TODAY).ok
        assert not extract_date("2026-01-01", TODAY).ok
        assert extract_date("2025-01-01", TODAY).ok

    def test_no_date_is_no_match_not_today(self):
        """Missing dates are reported, never replaced by today."""
        outcome = extract_date("单位净值 2.3456", TODAY)
        assert outcome.kind is OutcomeKind.NO_MATCH
        assert outcome.value is None


class TestNormalizeCellDate:
    def test_month_day_cell_takes_current_year(self):
        assert normalize_cell_date("3-19", TODAY).value == date(2024, 3, 19)
        assert normalize_cell_date(" 03/08 ", TODAY).value == date(2024, 3, 8)

    def test_impossible_month_day_is_malformed(self):
        assert normalize_cell_date("13-45", TODAY).kind is OutcomeKind.MALFORMED

    def test_full_date_cell(self):
        assert normalize_cell_date("2024-03-19", TODAY).value == date(2024, 3, 19)


class TestParsePageDate:
    def test_labeled_update_time_wins(self):
        html = "<p>发布于 2024-01-01</p><span>更新时间：2024-03-19</span>"
        assert parse_page_date(html, TODAY).value == date(2024, 3, 19)

    def test_label_lookahead_is_bounded(self):
        """A date far past the label falls back to the whole-page search."""
        html = "2024-02-01 更新时间" + "x" * 40 + "2024-03-19"
        assert parse_page_date(html, TODAY).value == date(2024, 2, 1)

    def test_page_without_dates(self):
        assert not parse_page_date("<html><body>nothing</body></html>", TODAY).ok

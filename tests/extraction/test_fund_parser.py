"""Tests for fund page parsing: name, strict net value validation and strategies."""

from datetime import date

import pytest
from bs4 import BeautifulSoup

from conftest import EMPTY_FUND_HTML, FUND_HTML
from price_inquiry.extraction.base import OutcomeKind
from price_inquiry.extraction.fund import (
    parse_fund_name,
    parse_fund_page,
    parse_net_value,
    validate_net_value,
)
from price_inquiry.models import UNRESOLVED_DATE

TODAY = date(2024, 3, 20)


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestValidateNetValue:
    def test_four_decimals_in_range(self):
        outcome = validate_net_value("2.3456")
        assert outcome.ok
        assert outcome.value == 2.3456

    @pytest.mark.parametrize("text", ["2.345", "2.34567", "2", "abc", "-1.0000", "1,234.5678"])
    def test_other_shapes_rejected(self, text):
        """Anything but exactly four decimals is malformed, never coerced."""
        assert validate_net_value(text).kind is OutcomeKind.MALFORMED

    def test_range_bounds(self):
        assert validate_net_value("0.0100").ok
        assert validate_net_value("10000.0000").ok
        assert not validate_net_value("0.0099").ok
        assert not validate_net_value("10000.0001").ok

    def test_custom_range(self):
        assert not validate_net_value("5.0000", price_min=10, price_max=20).ok


class TestFundName:
    def test_title_with_marker_stripped_of_qualifier(self):
        assert parse_fund_name(soup(FUND_HTML), "000311") == "华夏成长混合"

    def test_heading_when_title_lacks_marker(self):
        html = "<title>行情中心</title><h1> 易方达蓝筹精选 </h1>"
        assert parse_fund_name(soup(html), "005827") == "易方达蓝筹精选"

    def test_placeholder_title_skipped(self):
        """A title equal to the placeholder does not count as a real name."""
        html = "<title>基金000311</title><h1>华夏成长混合</h1>"
        assert parse_fund_name(soup(html), "000311") == "华夏成长混合"

    def test_placeholder_when_nothing_found(self):
        assert parse_fund_name(soup("<p>empty</p>"), "000311") == "基金000311"


class TestNetValueStrategies:
    def test_table_picks_most_recent_row(self):
        outcome = parse_net_value(FUND_HTML, today=TODAY)
        assert outcome.ok
        assert outcome.value.value == 2.3456
        assert outcome.value.as_of == date(2024, 3, 19)
        assert outcome.value.source == "table"

    def test_table_month_day_rows(self):
        html = """
        <table>
          <tr><td>日期</td><td>单位净值</td></tr>
          <tr><td>03-15</td><td>1.1111</td></tr>
          <tr><td>03-18</td><td>1.2222</td></tr>
        </table>
        """
        outcome = parse_net_value(html, today=TODAY)
        assert outcome.value.value == 1.2222
        assert outcome.value.as_of == date(2024, 3, 18)

    def test_table_rows_with_bad_values_skipped(self):
        html = """
        <table>
          <tr><th>日期</th><th>单位净值</th></tr>
          <tr><td>2024-03-19</td><td>--</td></tr>
          <tr><td>2024-03-18</td><td>1.5000</td></tr>
        </table>
        """
        assert parse_net_value(html, today=TODAY).value.value == 1.5

    def test_keyword_window_fallback(self):
        """Without a usable table, windows around the label are scanned."""
        html = "<div>单位净值(2024-03-19)：<b>1.8765</b> 日增长率 0.52%</div>"
        outcome = parse_net_value(html, today=TODAY)
        assert outcome.ok
        assert outcome.value.value == 1.8765
        assert outcome.value.source == "keyword"

    def test_keyword_window_needs_a_date(self):
        html = "<div>单位净值：<b>1.8765</b></div>"
        assert parse_net_value(html, today=TODAY).kind is OutcomeKind.NO_MATCH

    def test_nothing_found(self):
        assert not parse_net_value(EMPTY_FUND_HTML, today=TODAY).ok


class TestParseFundPage:
    def test_full_page(self):
        quote = parse_fund_page(FUND_HTML, "000311", today=TODAY)
        assert quote.name == "华夏成长混合"
        assert quote.net_value == 2.3456
        assert quote.date == "2024-03-19"
        assert quote.is_valid

    def test_page_date_used_without_net_value(self):
        html = "<title>华夏成长混合基金</title><p>更新时间：2024-03-19</p>"
        quote = parse_fund_page(html, "000311", today=TODAY)
        assert quote.net_value is None
        assert quote.date == "2024-03-19"
        assert not quote.is_valid

    def test_unresolved_date_sentinel(self):
        quote = parse_fund_page(EMPTY_FUND_HTML, "000311", today=TODAY)
        assert quote.date == UNRESOLVED_DATE
        assert quote.name == "基金000311"
        assert not quote.has_real_name

"""
Resolution of one normalized identifier to a QueryResult.

Six-digit codes are ambiguous: the same digits may be a mutual fund or a
mainland equity. They are tried as a fund first; the fund answer is kept only
when it carries a real name and a positive net value, otherwise the stock
path runs with the same code. The stock path walks an explicit list of
candidate symbols, so a bare code gets exactly one alternate exchange.

Any failure of the fund leg becomes an Error result so the stock fallback
still runs. On the stock path only anticipated failures (PriceInquiryError)
become Error results; anything else propagates to the engine, which reports
it as unclassified.
"""

from __future__ import annotations

from datetime import date
from typing import Callable

import structlog

from price_inquiry.config import Settings
from price_inquiry.data.gateway import UpstreamGateway
from price_inquiry.exceptions import NotFoundError, PriceInquiryError
from price_inquiry.extraction import is_no_match, parse_fund_page, parse_stock_payload
from price_inquiry.models import (
    PriceRecord,
    QueryResult,
    SecurityKind,
    make_record_id,
)
from price_inquiry.validators import is_fund_code

logger = structlog.get_logger(__name__)

# default exchange first, then the single alternate
BARE_CODE_PREFIXES = ("sh", "sz")


def stock_candidates(code: str) -> list[str]:
    """Ordered quote symbols to try for `code`."""
    if is_fund_code(code):
        return [f"{prefix}{code}" for prefix in BARE_CODE_PREFIXES]
    return [code]


class SourceResolver:
    def __init__(
        self,
        gateway: UpstreamGateway,
        settings: Settings,
        today: Callable[[], date] = date.today,
    ):
        self.gateway = gateway
        self.settings = settings
        self._today = today
        self.fund_fallbacks = 0
        self.prefix_fallbacks = 0

    def classify(self, code: str) -> SecurityKind:
        return SecurityKind.FUND if is_fund_code(code) else SecurityKind.STOCK

    async def resolve(self, code: str) -> QueryResult:
        """Fund first for six-digit codes, stock otherwise or as fallback."""
        if self.classify(code) is SecurityKind.FUND:
            fund_result = await self.query_fund(code)
            if fund_result.ok and fund_result.has_valid_data:
                return fund_result

            self.fund_fallbacks += 1
            logger.info(
                "fund_fallback_to_stock",
                code=code,
                reason=fund_result.message or "no valid fund data",
            )

        return await self.query_stock(code)

    async def query_fund(self, code: str) -> QueryResult:
        """
        Fund leg of a resolution. Any failure here, anticipated or not, is
        reported as an Error result so the caller can fall back to stocks.
        """
        try:
            return await self._query_fund_page(code)
        except Exception as e:
            logger.warning("fund_query_failed", code=code, error=str(e))
            return QueryResult.error(f"Fund query failed: {e}", SecurityKind.FUND)

    async def _query_fund_page(self, code: str) -> QueryResult:
        url = self.settings.fund_url(code)
        options = {"headers": {"User-Agent": self.settings.user_agent}}
        html = await self.gateway.fetch_text(url, options)

        quote = parse_fund_page(
            html,
            code,
            price_min=self.settings.price_range_min,
            price_max=self.settings.price_range_max,
            today=self._today(),
        )
        record = PriceRecord(
            id=make_record_id("fund", code),
            symbol=code,
            name=quote.name,
            price=quote.net_value,
            date=quote.date,
        )
        return QueryResult.success(
            record, SecurityKind.FUND, has_valid_data=quote.is_valid
        )

    async def query_stock(self, code: str) -> QueryResult:
        try:
            return await self._query_stock_candidates(code)
        except PriceInquiryError as e:
            logger.warning("stock_query_failed", code=code, error=str(e))
            return QueryResult.error(str(e), SecurityKind.STOCK)

    async def _query_stock_candidates(self, code: str) -> QueryResult:
        options = {
            "headers": {
                "Referer": self.settings.stock_referer,
                "User-Agent": self.settings.user_agent,
            },
            "encoding": self.settings.stock_encoding,
        }

        candidates = stock_candidates(code)
        for index, symbol in enumerate(candidates):
            if index > 0:
                self.prefix_fallbacks += 1
                logger.info("stock_prefix_fallback", code=code, symbol=symbol)

            body = await self.gateway.fetch_text(self.settings.stock_url(symbol), options)
            if is_no_match(body):
                logger.debug("stock_no_match", symbol=symbol)
                continue

            quote = parse_stock_payload(body, symbol, today=self._today())
            record = PriceRecord(
                id=make_record_id("stock", symbol),
                symbol=code,
                name=quote.name,
                price=quote.price,
                date=quote.date,
            )
            return QueryResult.success(record, SecurityKind.STOCK)

        raise NotFoundError(
            code,
            f"No matching data found for stock code {code}, check the code format",
        )

    def get_stats(self) -> dict[str, int]:
        return {
            "fund_fallbacks": self.fund_fallbacks,
            "prefix_fallbacks": self.prefix_fallbacks,
        }

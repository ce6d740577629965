"""
The price inquiry engine.

One Engine owns every piece of shared state (both caches, the concurrency
limiter, the in-flight registry, the batch window and the background sweep),
so independent engines never interfere and tests can build one per case.

`inquire` never raises for anticipated or unexpected failures: every outcome
is a PriceRecord, with failures carrying a negative sentinel price and a
readable explanation in `name`.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import date
from typing import Any

import structlog

from price_inquiry.cache import BoundedTTLCache
from price_inquiry.cleanup import register_cleanup, unregister_cleanup
from price_inquiry.concurrency import (
    BatchCoalescer,
    ConcurrencyLimiter,
    InFlightDeduplicator,
    RetryController,
)
from price_inquiry.config import Settings, config
from price_inquiry.data import Fetcher, HttpFetcher, SourceResolver, UpstreamGateway
from price_inquiry.exceptions import (
    FUND_RESOLUTION_FAILED,
    STOCK_RESOLUTION_FAILED,
    InputValidationError,
    SystemException,
)
from price_inquiry.models import (
    UNRESOLVED_DATE,
    InquiryRequest,
    PriceRecord,
    QueryResult,
    RecordStatus,
    make_record_id,
)
from price_inquiry.validators import (
    is_fund_code,
    validate_identifier,
    validate_query_date,
)

logger = structlog.get_logger(__name__)

PRICE_UNAVAILABLE_SUFFIX = " (price unavailable)"
INVALID_CODE_LABEL = "invalid code"
INVALID_DATE_LABEL = "invalid date"


class Engine:
    """Bounded, cached, deduplicated price lookups for stocks and funds."""

    def __init__(
        self,
        settings: Settings | None = None,
        fetcher: Fetcher | None = None,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings or config
        self._today = today
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or HttpFetcher(
            default_headers={"User-Agent": self.settings.user_agent}
        )

        self.raw_cache: BoundedTTLCache[str] = BoundedTTLCache(
            self.settings.max_cache_size, name="raw_responses", clock=clock
        )
        self.result_cache: BoundedTTLCache[QueryResult] = BoundedTTLCache(
            self.settings.max_cache_size, name="resolved_results", clock=clock
        )
        self.limiter = ConcurrencyLimiter(self.settings.max_concurrent_requests)
        self.retry = RetryController(
            retry_count=self.settings.retry_count,
            retry_delay=self.settings.retry_delay,
            timeout=self.settings.request_timeout,
            sleep=sleep,
        )
        self.dedup = InFlightDeduplicator()
        self.gateway = UpstreamGateway(
            self.fetcher,
            self.raw_cache,
            self.limiter,
            self.retry,
            self.dedup,
            cache_ttl=self.settings.cache_ttl,
        )
        self.resolver = SourceResolver(self.gateway, self.settings, today=today)
        self.coalescer = BatchCoalescer(
            self.resolver.resolve,
            self.result_cache,
            batch_delay=self.settings.batch_delay,
            cache_ttl=self.settings.batch_cache_ttl,
        )
        self._sweep_task: asyncio.Task | None = None
        self._shut_down = False

    # --- Lifecycle ---

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """
        Start the periodic cache sweep. Idempotent while running.

        Raises:
            RuntimeError: if the engine was already shut down; its batch
                window is closed for good, so a new Engine must be built
        """
        if self._shut_down:
            raise RuntimeError("Engine has been shut down; build a new Engine")
        if self.running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        register_cleanup(self.shutdown)
        logger.debug(
            "engine_started", sweep_interval=self.settings.cache_cleanup_interval
        )

    async def shutdown(self) -> None:
        """Stop the sweep, fail pending queries and release the transport."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        self._shut_down = True
        await self.coalescer.close()
        await self.dedup.cancel_all()
        if self._owns_fetcher:
            await self.fetcher.close()
        unregister_cleanup(self.shutdown)
        logger.debug("engine_stopped")

    async def __aenter__(self) -> Engine:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.shutdown()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.cache_cleanup_interval)
            self.sweep()

    def sweep(self) -> dict[str, int]:
        """Drop TTL-expired entries from both caches."""
        removed = {
            "raw_responses": self.raw_cache.cleanup(self.settings.cache_ttl),
            "resolved_results": self.result_cache.cleanup(
                self.settings.batch_cache_ttl
            ),
        }
        if any(removed.values()):
            logger.info("cache_sweep", **removed)
        return removed

    # --- Inquiry ---

    async def inquire(
        self, request: InquiryRequest | str, as_of_date_hint: str = ""
    ) -> PriceRecord:
        """
        Resolve one identifier to a PriceRecord.

        Args:
            request: an InquiryRequest, or a bare identifier string
            as_of_date_hint: used only when `request` is a string

        Returns:
            PriceRecord; failures carry a sentinel price (see exceptions.py)
        """
        if isinstance(request, str):
            request = InquiryRequest(identifier=request, as_of_date_hint=as_of_date_hint)
        identifier = request.identifier.strip()

        try:
            as_of = validate_query_date(request.as_of_date_hint, today=self._today())
        except InputValidationError as e:
            return self._failure(
                "date_error",
                identifier or INVALID_CODE_LABEL,
                str(e),
                e.sentinel,
                request.as_of_date_hint or INVALID_DATE_LABEL,
            )

        try:
            validate_identifier(identifier)
        except InputValidationError as e:
            return self._failure(
                "error", identifier or INVALID_CODE_LABEL, str(e), e.sentinel, as_of
            )

        try:
            result = await self.coalescer.add_query(identifier)
        except Exception as e:
            logger.error("inquiry_failed", identifier=identifier, error=str(e))
            wrapped = SystemException(e)
            return self._failure(
                "exception", identifier, str(wrapped), wrapped.sentinel, as_of
            )

        if not result.ok or result.data is None:
            sentinel = (
                FUND_RESOLUTION_FAILED
                if is_fund_code(identifier)
                else STOCK_RESOLUTION_FAILED
            )
            return self._failure(
                f"error_{identifier}",
                identifier,
                result.message or "Query failed",
                sentinel,
                as_of,
            )

        return self._present(result.data, as_of)

    async def inquire_many(
        self, requests: Iterable[InquiryRequest | str], as_of_date_hint: str = ""
    ) -> list[PriceRecord]:
        """Resolve several identifiers concurrently; order is preserved."""
        return list(
            await asyncio.gather(
                *(self.inquire(request, as_of_date_hint) for request in requests)
            )
        )

    def _present(self, record: PriceRecord, as_of: str) -> PriceRecord:
        # cached records are shared between callers; always copy
        update: dict[str, Any] = {"status": RecordStatus.SUCCESS}
        if record.price is None or record.price <= 0:
            update["price"] = None
            update["name"] = record.name + PRICE_UNAVAILABLE_SUFFIX
        if record.date == UNRESOLVED_DATE:
            update["date"] = as_of
        return record.model_copy(update=update)

    @staticmethod
    def _failure(
        prefix: str, symbol: str, message: str, sentinel: int, as_of: str
    ) -> PriceRecord:
        return PriceRecord(
            id=make_record_id(prefix),
            symbol=symbol,
            name=message,
            price=float(sentinel),
            date=as_of,
            status=RecordStatus.FAILURE,
        )

    def get_stats(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "result_cache": self.result_cache.get_stats(),
            "batch": self.coalescer.get_stats(),
            "resolver": self.resolver.get_stats(),
            **self.gateway.get_stats(),
        }

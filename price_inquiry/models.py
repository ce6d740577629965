"""
Data contracts for price inquiries.

PriceRecord is the only shape callers ever see. QueryResult is the internal
envelope passed between the resolver, the batch coalescer and the engine.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Marker for a fund page whose as-of date could not be recovered. Distinct from
# any real ISO date; the engine decides how to present it.
UNRESOLVED_DATE = "NO_DATE_FOUND"


class RecordStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class QueryCode(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class SecurityKind(str, Enum):
    FUND = "fund"
    STOCK = "stock"


def make_record_id(prefix: str, symbol: str | None = None) -> str:
    """Unique record id, e.g. 'stock_sz300750_1729300000000'."""
    stamp = int(time.time() * 1000)
    if symbol:
        return f"{prefix}_{symbol}_{stamp}"
    return f"{prefix}_{stamp}"


class PriceRecord(BaseModel):
    """A resolved (or sentinel-coded) price for one security."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str
    price: float | None = None  # None = found, but no usable price
    date: str  # YYYY-MM-DD, or UNRESOLVED_DATE before presentation
    status: RecordStatus = RecordStatus.SUCCESS

    @property
    def is_sentinel(self) -> bool:
        """True when price carries an error code rather than a value."""
        return self.price is not None and self.price < 0

    @property
    def has_resolved_date(self) -> bool:
        return self.date != UNRESOLVED_DATE


class InquiryRequest(BaseModel):
    """Inbound request. The date hint is validated but never changes the fetch."""

    identifier: str = ""
    as_of_date_hint: str = Field(default="", alias="asOfDateHint")

    model_config = ConfigDict(populate_by_name=True)


@dataclass(frozen=True)
class QueryResult:
    """Internal outcome of one logical query for a normalized identifier."""

    code: QueryCode
    data: PriceRecord | None = None
    message: str | None = None
    has_valid_data: bool = False
    kind: SecurityKind | None = None

    @property
    def ok(self) -> bool:
        return self.code is QueryCode.SUCCESS

    @classmethod
    def success(
        cls,
        record: PriceRecord,
        kind: SecurityKind,
        has_valid_data: bool = True,
    ) -> QueryResult:
        return cls(
            code=QueryCode.SUCCESS,
            data=record,
            has_valid_data=has_valid_data,
            kind=kind,
        )

    @classmethod
    def error(cls, message: str, kind: SecurityKind | None = None) -> QueryResult:
        return cls(code=QueryCode.ERROR, message=message, kind=kind)

"""Shared result type for extraction strategies."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class OutcomeKind(str, Enum):
    MATCHED = "matched"
    NO_MATCH = "no_match"  # nothing resembling the target was present
    MALFORMED = "malformed"  # something was present but failed validation


@dataclass(frozen=True)
class ParseOutcome(Generic[T]):
    """Tagged result of one parsing attempt."""

    kind: OutcomeKind
    value: T | None = None
    reason: str = ""

    @classmethod
    def matched(cls, value: T) -> ParseOutcome[T]:
        return cls(OutcomeKind.MATCHED, value)

    @classmethod
    def no_match(cls, reason: str = "") -> ParseOutcome[T]:
        return cls(OutcomeKind.NO_MATCH, reason=reason)

    @classmethod
    def malformed(cls, reason: str) -> ParseOutcome[T]:
        return cls(OutcomeKind.MALFORMED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.MATCHED

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default

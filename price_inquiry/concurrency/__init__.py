"""
Load-bounding primitives shared by every upstream request.

Public API:
    ConcurrencyLimiter: FIFO-queued cap on simultaneous operations
    RetryController: bounded attempts with exponential backoff
    InFlightDeduplicator: one pending operation per request fingerprint
    BatchCoalescer: debounced fan-out of identical queries
"""

from price_inquiry.concurrency.batch import BatchCoalescer, normalize_identifier
from price_inquiry.concurrency.dedup import InFlightDeduplicator, fingerprint
from price_inquiry.concurrency.limiter import ConcurrencyLimiter
from price_inquiry.concurrency.retry import RetryController

__all__ = [
    "BatchCoalescer",
    "ConcurrencyLimiter",
    "InFlightDeduplicator",
    "RetryController",
    "fingerprint",
    "normalize_identifier",
]

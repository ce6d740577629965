"""
Async resource cleanup utilities.

Engines register their shutdown coroutine here when started, so an entry
point can release every aiohttp session and background sweep in one place
without tracking engine instances itself.

Usage:
    from price_inquiry.cleanup import cleanup_async_resources

    async def main():
        try:
            # ... application logic ...
        finally:
            await cleanup_async_resources()
"""

from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

# Registry of cleanup functions
_cleanup_functions: list[Callable[[], Awaitable[None]]] = []


def register_cleanup(cleanup_fn: Callable[[], Awaitable[None]]) -> None:
    """Register an async cleanup function to be called at shutdown."""
    if cleanup_fn not in _cleanup_functions:
        _cleanup_functions.append(cleanup_fn)


def unregister_cleanup(cleanup_fn: Callable[[], Awaitable[None]]) -> None:
    """Forget a cleanup function that already ran on its own."""
    if cleanup_fn in _cleanup_functions:
        _cleanup_functions.remove(cleanup_fn)


def registered_cleanups() -> int:
    return len(_cleanup_functions)


async def cleanup_async_resources() -> None:
    """
    Run and clear all registered cleanup functions.

    A failing cleanup is logged and does not stop the others.
    """
    errors = []

    # copy: cleanup functions may unregister themselves
    for cleanup_fn in list(_cleanup_functions):
        try:
            await cleanup_fn()
        except Exception as e:
            errors.append((getattr(cleanup_fn, "__qualname__", repr(cleanup_fn)), str(e)))

    _cleanup_functions.clear()

    for name, error in errors:
        logger.debug("cleanup_error", function=name, error=error)

"""
Custom exceptions for the price inquiry engine.

Clean error hierarchy for distinct failure modes. Every member is converted
into a sentinel-coded PriceRecord at the engine boundary; none reach callers.
"""

# Sentinel prices written into failure records. Values are part of the public
# contract and must not change.
INVALID_IDENTIFIER = -1001
INVALID_DATE = -1002
FUND_RESOLUTION_FAILED = -2001
STOCK_RESOLUTION_FAILED = -2002
UNCLASSIFIED_ERROR = -9999


class PriceInquiryError(Exception):
    """Base exception for all anticipated price inquiry failures."""


class InputValidationError(PriceInquiryError):
    """Malformed identifier or as-of date supplied by the caller."""

    sentinel = INVALID_IDENTIFIER


class InvalidIdentifierError(InputValidationError):
    """Identifier is neither a fund code nor a market-prefixed ticker."""

    def __init__(self, identifier: str, message: str = ""):
        self.identifier = identifier
        super().__init__(
            message
            or (
                "Enter a valid stock code (e.g. sh000001, sz000001, hk00700, "
                "usAAPL) or fund code (e.g. 000311)"
            )
        )


class InvalidDateError(InputValidationError):
    """As-of date hint is malformed or out of the accepted range."""

    sentinel = INVALID_DATE

    def __init__(self, value: str, message: str):
        self.value = value
        super().__init__(message)


class UpstreamUnavailableError(PriceInquiryError):
    """Transport failure, timeout, or non-2xx status after all retries."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(PriceInquiryError):
    """Upstream explicitly reported that nothing matches the identifier."""

    def __init__(self, identifier: str, message: str = ""):
        self.identifier = identifier
        super().__init__(
            message or f"No matching data found for code {identifier}"
        )


class ExtractionError(PriceInquiryError):
    """Payload was received but name/price/date could not be recovered."""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Could not parse data for {identifier}: {reason}")


class SystemException(PriceInquiryError):
    """Unclassified fault wrapped for reporting."""

    sentinel = UNCLASSIFIED_ERROR

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"System error: {cause}")

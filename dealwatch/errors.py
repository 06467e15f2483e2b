# dealwatch/errors.py

"""Exception hierarchy and error codes for dealwatch.

Price-validation errors are *values*, not control flow: the price
validator returns them alongside a fallback price and never raises.
Everything else is raised and handled at the batch boundaries
(ingestion push, promotion pass, notification sweep).
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Stable numeric codes, grouped by concern."""

    UNKNOWN = 10000
    INVALID_INPUT = 10001
    NOT_FOUND = 10002

    PRICE_BELOW_MIN = 20001
    PRICE_DROP_EXCEEDED = 20002
    PRICE_RISE_EXCEEDED = 20003

    DATABASE = 40001

    NOTIFICATION_SEND = 50001

    CANCELLED = 60001


class DealwatchError(Exception):
    """Base exception for all application errors."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code.name.lower()
        super().__init__(self.message)


class InvalidInputError(DealwatchError):
    """Malformed or missing data; the caller's fault, not retryable."""

    code = ErrorCode.INVALID_INPUT


class PriceValidationError(DealwatchError):
    """A price update was refused; the previous price stays in force."""


class PriceBelowMinError(PriceValidationError):
    """New price is negative or below the absolute floor."""

    code = ErrorCode.PRICE_BELOW_MIN


class PriceDropExceededError(PriceValidationError):
    """Same-day drop is steeper than the allowed ratio."""

    code = ErrorCode.PRICE_DROP_EXCEEDED


class PriceRiseExceededError(PriceValidationError):
    """Same-day rise is larger than the allowed ratio."""

    code = ErrorCode.PRICE_RISE_EXCEEDED


class StorageError(DealwatchError):
    """Database errors, propagated opaquely to the caller."""

    code = ErrorCode.DATABASE


class NotificationSendError(DealwatchError):
    """Push delivery failed."""

    code = ErrorCode.NOTIFICATION_SEND


class OperationCancelledError(DealwatchError):
    """The operation's deadline expired at an I/O boundary."""

    code = ErrorCode.CANCELLED

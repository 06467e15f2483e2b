# dealwatch/services/deadline.py

"""Cooperative cancellation for long-running pipeline operations."""

import threading
import time
from collections.abc import Callable

from dealwatch.errors import OperationCancelledError


class Deadline:
    """A wall-clock budget checked at every storage boundary.

    ``timeout=None`` never expires on its own but can still be
    cancelled explicitly, e.g. when the scheduler shuts down.
    """

    def __init__(
        self,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = (
            None if timeout is None else clock() + timeout
        )
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Cancel the operation at its next checkpoint."""
        self._cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left, or ``None`` when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        """Return True once cancelled or out of time."""
        if self._cancelled.is_set():
            return True
        return (
            self._expires_at is not None
            and self._clock() >= self._expires_at
        )

    def check(self, operation: str) -> None:
        """Raise ``OperationCancelledError`` if the budget is spent."""
        if self._cancelled.is_set():
            raise OperationCancelledError(f"{operation}: cancelled")
        if self.expired():
            raise OperationCancelledError(
                f"{operation}: deadline exceeded"
            )


def checkpoint(deadline: Deadline | None, operation: str) -> None:
    """Check *deadline* if one was supplied."""
    if deadline is not None:
        deadline.check(operation)

"""
Cooperative cancellation for long read-only computations.

Report builders call ``token.check()`` between units of work (a month, a
ledger).  Cancelling never needs cleanup: reports write nothing.
"""

import threading
from datetime import datetime, timedelta

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import ReportCancelledError


class CancellationToken:
    """
    Cancel flag plus optional deadline.

    Thread-safe: one thread may call ``cancel()`` while another runs the
    report.
    """

    def __init__(
        self,
        timeout: timedelta | None = None,
        clock: Clock | None = None,
    ):
        self._clock = clock or SystemClock()
        self._event = threading.Event()
        self._deadline: datetime | None = (
            self._clock.now() + timeout if timeout is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and self._clock.now() >= self._deadline

    def check(self, report_type: str) -> None:
        """Raise ReportCancelledError if cancelled or past the deadline."""
        if self.cancelled:
            raise ReportCancelledError(report_type, "cancelled by caller")
        if self.expired:
            raise ReportCancelledError(report_type, "deadline exceeded")


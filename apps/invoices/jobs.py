"""
Recurring reminder job.

InvoiceReminderJob runs the reminder sweep, then waits the configured
interval, for as long as the hosting process lives. The wait happens after
each cycle so two cycles never overlap, and it is an Event wait so stop()
interrupts it immediately.
"""

import logging
import threading
from typing import Callable, Optional

from django.conf import settings
from django.db import close_old_connections

from apps.invoices.services.reminders import ReminderSweepResult, send_invoice_reminders

logger = logging.getLogger(__name__)


class InvoiceReminderJob:
    """Cooperative, cancellable loop around send_invoice_reminders."""

    def __init__(
        self,
        interval_hours: Optional[float] = None,
        sweep: Optional[Callable[[], ReminderSweepResult]] = None
    ):
        if interval_hours is None:
            interval_hours = settings.INVOICE_REMINDER_INTERVAL_HOURS
        if interval_hours <= 0:
            raise ValueError("interval_hours must be positive")
        self.interval_hours = interval_hours
        self.sweep = sweep or send_invoice_reminders
        self._stop_event = threading.Event()

    @property
    def interval_seconds(self) -> float:
        return self.interval_hours * 3600

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to exit; an in-flight cycle still completes."""
        self._stop_event.set()

    def run_cycle(self) -> ReminderSweepResult:
        # Long-lived process: drop connections that outlived CONN_MAX_AGE or broke.
        close_old_connections()
        try:
            return self.sweep()
        finally:
            close_old_connections()

    def run_forever(self) -> None:
        logger.info("Invoice reminder job is starting.")

        while not self.stopped:
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Error occurred executing invoice reminder job.")

            if self.stopped:
                break

            logger.info(
                "Invoice reminder job is waiting for next cycle in %s hours.",
                self.interval_hours
            )
            self._stop_event.wait(self.interval_seconds)

        logger.info("Invoice reminder job stopped.")

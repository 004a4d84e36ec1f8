"""
Approval reminder sweep.

One call is one cycle: every participant of an active invoice who has not
approved it is either started on the reminder clock or, once the debounce
period has passed, sent a reminder email. All timestamp changes of a cycle
are saved together.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.invoices.models import Invoice, InvoiceParticipant, InvoiceStatus

from .notifications import send_invoice_reminder_email

logger = logging.getLogger(__name__)

# Minimum time between two reminders to the same participant
REMINDER_DEBOUNCE = timedelta(days=2)

EmailSender = Callable[[str, str, str, str], bool]


@dataclass
class ReminderSweepResult:
    """Counters for one sweep cycle."""

    initialized: int = 0
    sent: int = 0
    failed: int = 0
    errors: int = 0

    @property
    def changes(self) -> int:
        return self.initialized + self.sent


def build_invoice_url(app_url: str, invoice_id) -> str:
    return f"{app_url.rstrip('/')}/invoices/{invoice_id}"


def _remind_participants(
    invoice: Invoice,
    *,
    now: datetime,
    send_email: EmailSender,
    app_url: str,
    result: ReminderSweepResult,
    pending: List[InvoiceParticipant]
) -> None:
    """
    Apply the reminder rules to one invoice.

    Each participant whose timestamp changes is added to ``pending`` right
    away, so a later participant's failure does not undo a delivered
    reminder. An exception while emailing one participant is logged and
    counted in ``result.errors``; the other participants are still handled.
    """
    approved_user_ids = {approval.user_id for approval in invoice.approvals.all()}

    for participant in invoice.participants.all():
        if participant.user_id in approved_user_ids:
            continue

        if participant.last_reminder_sent_at is None:
            # First sighting starts the clock; nobody is emailed right after being added.
            participant.last_reminder_sent_at = now
            pending.append(participant)
            result.initialized += 1
            continue

        if now - participant.last_reminder_sent_at < REMINDER_DEBOUNCE:
            continue

        user = participant.user
        try:
            delivered = send_email(
                user.email,
                user.get_display_name(),
                invoice.title,
                build_invoice_url(app_url, invoice.id),
            )
        except Exception:
            result.errors += 1
            logger.exception("Failed to send reminder for invoice %s to %s", invoice.id, user.email)
            continue

        if delivered:
            participant.last_reminder_sent_at = now
            pending.append(participant)
            result.sent += 1
            logger.info("Sent reminder for invoice %s to %s", invoice.id, user.email)
        else:
            result.failed += 1
            logger.warning("Reminder for invoice %s to %s was not delivered", invoice.id, user.email)


def send_invoice_reminders(
    *,
    now: Optional[datetime] = None,
    send_email: Optional[EmailSender] = None,
    app_url: Optional[str] = None
) -> ReminderSweepResult:
    """
    Run one reminder cycle over all active invoices.

    Failures are isolated: an error while emailing one participant, or while
    processing one invoice, is logged and counted, and every timestamp
    already changed in the cycle is still saved.

    Args:
        now: Time of the cycle, defaults to timezone.now()
        send_email: Email sender, defaults to send_invoice_reminder_email
        app_url: Front end base URL, defaults to settings.APP_URL

    Returns:
        ReminderSweepResult with the cycle's counters
    """
    now = now or timezone.now()
    send_email = send_email or send_invoice_reminder_email
    app_url = app_url if app_url is not None else settings.APP_URL

    logger.info("Checking for unapproved active invoices...")

    invoices = (
        Invoice.objects
        .filter(status=InvoiceStatus.ACTIVE)
        .prefetch_related('participants__user', 'approvals')
    )

    result = ReminderSweepResult()
    pending: List[InvoiceParticipant] = []

    for invoice in invoices:
        try:
            _remind_participants(
                invoice,
                now=now,
                send_email=send_email,
                app_url=app_url,
                result=result,
                pending=pending
            )
        except Exception:
            result.errors += 1
            logger.exception("Failed to process reminders for invoice %s", invoice.id)

    if pending:
        with transaction.atomic():
            InvoiceParticipant.objects.bulk_update(pending, ['last_reminder_sent_at'])
        logger.info(
            "Sent %d reminder(s), started the reminder clock for %d participant(s).",
            result.sent, result.initialized
        )
    else:
        logger.info("No reminders needed at this time.")

    return result

"""Outgoing invoice emails."""

import logging
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def send_invoice_reminder_email(
    to_address: str,
    display_name: str,
    invoice_title: str,
    invoice_url: str
) -> bool:
    """
    Send the "please approve this invoice" reminder.

    Args:
        to_address: Recipient email address
        display_name: Name used in the greeting
        invoice_title: Title of the unapproved invoice
        invoice_url: Link to the invoice in the front end

    Returns:
        True if the message was handed to the email backend, False otherwise
    """
    context = {
        'display_name': display_name,
        'invoice_title': invoice_title,
        'invoice_url': invoice_url,
    }
    message = EmailMultiAlternatives(
        subject=f"Reminder: please review invoice '{invoice_title}'",
        body=render_to_string('invoices/email/invoice_reminder.txt', context),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to_address],
    )
    message.attach_alternative(
        render_to_string('invoices/email/invoice_reminder.html', context),
        'text/html'
    )

    try:
        sent = message.send()
    except (SMTPException, OSError):
        logger.exception("Failed to send invoice reminder to %s", to_address)
        return False

    return sent > 0

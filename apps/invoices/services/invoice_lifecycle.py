"""
Invoice lifecycle service.

Owns every status change of an invoice (active -> paying -> paid) and the
participant-level state (approval, payment). State-changing operations lock
the invoice row for the duration of their transaction.
"""

import logging
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.invoices.models import Approval, Invoice, InvoiceParticipant, InvoiceStatus

from .authorization import (
    AuthorizationContext,
    ensure_can_manage_invoice,
    ensure_can_toggle_payment,
)
from .exceptions import (
    AlreadyApprovedError,
    AlreadyParticipantError,
    InvalidInvoiceStateError,
    InvoiceNotFoundError,
    ParticipantNotFoundError,
    PersistenceConflictError,
)

User = get_user_model()

logger = logging.getLogger(__name__)


def _get_locked_invoice(invoice_id: UUID) -> Invoice:
    try:
        return Invoice.objects.select_for_update().get(id=invoice_id)
    except Invoice.DoesNotExist:
        raise InvoiceNotFoundError(f"Invoice with ID {invoice_id} not found")


def _require_status(invoice: Invoice, status: InvoiceStatus, message: str) -> None:
    if invoice.status != status:
        raise InvalidInvoiceStateError(message)


def _transition(invoice: Invoice, status: InvoiceStatus) -> None:
    if not invoice.can_transition_to(status):
        raise InvalidInvoiceStateError(
            f"Cannot move invoice from '{invoice.status}' to '{status}'."
        )
    previous = invoice.status
    invoice.status = status
    invoice.save(update_fields=['status', 'updated_at'])
    logger.info("Invoice %s moved from %s to %s", invoice.id, previous, status)


def get_invoice(*, invoice_id: UUID) -> Invoice:
    """
    Get an invoice with its participants and approvals loaded.

    Raises:
        InvoiceNotFoundError: If invoice doesn't exist
    """
    try:
        return (
            Invoice.objects
            .select_related('created_by')
            .prefetch_related('participants__user', 'approvals__user')
            .get(id=invoice_id)
        )
    except Invoice.DoesNotExist:
        raise InvoiceNotFoundError(f"Invoice with ID {invoice_id} not found")


@transaction.atomic
def create_invoice(
    *,
    title: str,
    amount: Decimal,
    created_by: User,
    description: str = '',
    participant_ids: Iterable[UUID] = ()
) -> Invoice:
    """
    Create an active invoice.

    The creator always participates and their approval is recorded right
    away; the other participants start unapproved.

    Args:
        title: Invoice title shown in reminders
        amount: Total amount of the invoice
        created_by: User submitting the invoice
        description: Optional free text
        participant_ids: IDs of the other users sharing the invoice

    Returns:
        Created Invoice instance

    Raises:
        ParticipantNotFoundError: If any participant ID is not a known user
    """
    ordered_ids = [str(created_by.id)]
    for user_id in participant_ids:
        if str(user_id) not in ordered_ids:
            ordered_ids.append(str(user_id))

    users = {str(u.id): u for u in User.objects.filter(id__in=ordered_ids)}
    missing = [user_id for user_id in ordered_ids if user_id not in users]
    if missing:
        raise ParticipantNotFoundError(f"Unknown users: {', '.join(missing)}")

    invoice = Invoice.objects.create(
        title=title,
        description=description,
        amount=amount,
        created_by=created_by,
    )
    InvoiceParticipant.objects.bulk_create([
        InvoiceParticipant(invoice=invoice, user=users[user_id])
        for user_id in ordered_ids
    ])
    Approval.objects.create(invoice=invoice, user=created_by)

    logger.info(
        "Invoice %s created by %s with %d participant(s)",
        invoice.id, created_by.email, len(ordered_ids)
    )
    return invoice


@transaction.atomic
def add_participant(
    *,
    invoice_id: UUID,
    user_id: UUID,
    context: AuthorizationContext
) -> InvoiceParticipant:
    """
    Add a participant to an active invoice.

    Raises:
        InvoiceNotFoundError: If invoice doesn't exist
        InvalidInvoiceStateError: If invoice is no longer active
        InsufficientPermissionsError: If actor is neither creator nor admin
        ParticipantNotFoundError: If the user doesn't exist
        AlreadyParticipantError: If the user already participates
    """
    invoice = _get_locked_invoice(invoice_id)
    _require_status(
        invoice, InvoiceStatus.ACTIVE,
        "Participants can only be added while the invoice is active."
    )
    ensure_can_manage_invoice(context, invoice)

    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise ParticipantNotFoundError(f"User with ID {user_id} not found")

    if invoice.has_participant(user.id):
        raise AlreadyParticipantError(f"{user.email} already participates in {invoice.title}")

    try:
        with transaction.atomic():
            participant = InvoiceParticipant.objects.create(invoice=invoice, user=user)
    except IntegrityError:
        raise AlreadyParticipantError(f"{user.email} already participates in {invoice.title}")

    return participant


@transaction.atomic
def approve_invoice(*, invoice_id: UUID, context: AuthorizationContext) -> Approval:
    """
    Record the acting participant's approval of an active invoice.

    Raises:
        InvoiceNotFoundError: If invoice doesn't exist
        InvalidInvoiceStateError: If invoice is no longer active
        ParticipantNotFoundError: If actor is not a participant
        AlreadyApprovedError: If actor already approved
    """
    invoice = _get_locked_invoice(invoice_id)
    _require_status(
        invoice, InvoiceStatus.ACTIVE,
        "An invoice can only be approved while it is active."
    )

    if not invoice.has_participant(context.user_id):
        raise ParticipantNotFoundError("User is not a participant in this invoice.")

    try:
        with transaction.atomic():
            approval = Approval.objects.create(invoice=invoice, user_id=context.user_id)
    except IntegrityError:
        raise AlreadyApprovedError("You have already approved this invoice.")

    return approval


@transaction.atomic
def start_payment_collection(*, invoice_id: UUID, context: AuthorizationContext) -> Invoice:
    """
    Move an invoice from active to paying once every participant approved.

    Raises:
        InvoiceNotFoundError: If invoice doesn't exist
        InvalidInvoiceStateError: If invoice isn't active or approvals are missing
        InsufficientPermissionsError: If actor is neither creator nor admin
    """
    invoice = _get_locked_invoice(invoice_id)
    _require_status(
        invoice, InvoiceStatus.ACTIVE,
        "Payment collection can only start from an active invoice."
    )
    ensure_can_manage_invoice(context, invoice)

    approved = set(invoice.approvals.values_list('user_id', flat=True))
    pending = invoice.participants.exclude(user_id__in=approved).count()
    if pending:
        raise InvalidInvoiceStateError(
            f"{pending} participant(s) have not approved the invoice yet."
        )

    _transition(invoice, InvoiceStatus.PAYING)
    return invoice


@transaction.atomic
def mark_invoice_paid(*, invoice_id: UUID, context: AuthorizationContext) -> Invoice:
    """
    Close an invoice once every participant has paid.

    Raises:
        InvoiceNotFoundError: If invoice doesn't exist
        InvalidInvoiceStateError: If invoice isn't paying or payments are missing
        InsufficientPermissionsError: If actor is neither creator nor admin
    """
    invoice = _get_locked_invoice(invoice_id)
    _require_status(
        invoice, InvoiceStatus.PAYING,
        "Only an invoice collecting payments can be marked as paid."
    )
    ensure_can_manage_invoice(context, invoice)

    unpaid = invoice.participants.filter(has_paid=False).count()
    if unpaid:
        raise InvalidInvoiceStateError(f"{unpaid} participant(s) have not paid yet.")

    _transition(invoice, InvoiceStatus.PAID)
    return invoice


@transaction.atomic
def toggle_payment_status(
    *,
    invoice_id: UUID,
    target_user_id: UUID,
    context: AuthorizationContext
) -> InvoiceParticipant:
    """
    Flip a participant's paid flag while the invoice is collecting payments.

    Calling it twice restores the original state. The write is a conditional
    UPDATE on the previously read flag, so a concurrent change makes it
    affect no rows.

    Args:
        invoice_id: UUID of the invoice
        target_user_id: UUID of the participant whose payment changes
        context: Authorization context of the acting user

    Returns:
        The updated InvoiceParticipant

    Raises:
        InvoiceNotFoundError: If invoice doesn't exist
        InvalidInvoiceStateError: If invoice status is not paying
        InsufficientPermissionsError: If actor is neither the target nor an admin
        ParticipantNotFoundError: If target is not a participant
        PersistenceConflictError: If the update affected no rows
    """
    invoice = _get_locked_invoice(invoice_id)
    _require_status(
        invoice, InvoiceStatus.PAYING,
        "Payment status can only be changed while the invoice is collecting payments."
    )
    ensure_can_toggle_payment(context, target_user_id)

    participants = list(invoice.participants.all())
    participant = next(
        (p for p in participants if str(p.user_id) == str(target_user_id)),
        None
    )
    if participant is None:
        raise ParticipantNotFoundError("User is not a participant in this invoice.")

    has_paid = not participant.has_paid
    paid_at = timezone.now() if has_paid else None

    updated = (
        InvoiceParticipant.objects
        .filter(pk=participant.pk, has_paid=participant.has_paid)
        .update(has_paid=has_paid, paid_at=paid_at)
    )
    if not updated and participants:
        raise PersistenceConflictError("Failed to update payment status.")

    participant.has_paid = has_paid
    participant.paid_at = paid_at

    if context.is_user(target_user_id):
        logger.info(
            "Participant %s marked invoice %s as %s",
            target_user_id, invoice.id, 'paid' if has_paid else 'unpaid'
        )
    else:
        logger.info(
            "Admin %s marked participant %s on invoice %s as %s",
            context.user_id, target_user_id, invoice.id, 'paid' if has_paid else 'unpaid'
        )

    return participant

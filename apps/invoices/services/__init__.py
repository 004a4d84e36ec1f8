"""
Invoices app services layer.

Services contain the invoice lifecycle rules and the reminder sweep.
All state-changing lifecycle operations run in a transaction and lock the
invoice row.
"""

from .exceptions import (
    InvoicesServiceError,
    InvoiceNotFoundError,
    ParticipantNotFoundError,
    InvalidInvoiceStateError,
    InsufficientPermissionsError,
    PersistenceConflictError,
    AlreadyParticipantError,
    AlreadyApprovedError,
)

from .authorization import (
    AuthorizationContext,
    Capability,
    can_toggle_payment,
    can_manage_invoice,
)

from .invoice_lifecycle import (
    get_invoice,
    create_invoice,
    add_participant,
    approve_invoice,
    start_payment_collection,
    mark_invoice_paid,
    toggle_payment_status,
)

from .notifications import send_invoice_reminder_email

from .reminders import (
    REMINDER_DEBOUNCE,
    ReminderSweepResult,
    send_invoice_reminders,
)


__all__ = [
    # Exceptions
    'InvoicesServiceError',
    'InvoiceNotFoundError',
    'ParticipantNotFoundError',
    'InvalidInvoiceStateError',
    'InsufficientPermissionsError',
    'PersistenceConflictError',
    'AlreadyParticipantError',
    'AlreadyApprovedError',

    # Authorization
    'AuthorizationContext',
    'Capability',
    'can_toggle_payment',
    'can_manage_invoice',

    # Lifecycle
    'get_invoice',
    'create_invoice',
    'add_participant',
    'approve_invoice',
    'start_payment_collection',
    'mark_invoice_paid',
    'toggle_payment_status',

    # Reminders
    'send_invoice_reminder_email',
    'REMINDER_DEBOUNCE',
    'ReminderSweepResult',
    'send_invoice_reminders',
]

"""
Domain exceptions for invoices app.

Each exception carries the HTTP status a hosting view layer should answer
with, so callers can either catch the specific type or let REST framework
render it.
"""
from rest_framework.exceptions import APIException


class InvoicesServiceError(APIException):
    """Base exception for invoice service errors."""
    status_code = 400
    default_detail = 'Invoice operation failed.'
    default_code = 'invoice_error'


class InvoiceNotFoundError(InvoicesServiceError):
    """Invoice does not exist."""
    status_code = 404
    default_detail = 'Invoice not found.'
    default_code = 'invoice_not_found'


class ParticipantNotFoundError(InvoicesServiceError):
    """User is not a participant of the invoice (or does not exist)."""
    status_code = 404
    default_detail = 'User is not a participant in this invoice.'
    default_code = 'participant_not_found'


class InvalidInvoiceStateError(InvoicesServiceError):
    """Operation attempted outside the invoice status that allows it."""
    status_code = 400
    default_detail = 'Operation is not allowed in the current invoice status.'
    default_code = 'invalid_invoice_state'


class InsufficientPermissionsError(InvoicesServiceError):
    """User doesn't have permission for operation."""
    status_code = 403
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'insufficient_permissions'


class PersistenceConflictError(InvoicesServiceError):
    """Save did not affect the rows it was expected to."""
    status_code = 409
    default_detail = 'The invoice was modified concurrently. Please retry.'
    default_code = 'persistence_conflict'


class AlreadyParticipantError(InvoicesServiceError):
    """User already participates in the invoice."""
    status_code = 409
    default_detail = 'User is already a participant in this invoice.'
    default_code = 'already_participant'


class AlreadyApprovedError(InvoicesServiceError):
    """User already approved the invoice."""
    status_code = 409
    default_detail = 'You have already approved this invoice.'
    default_code = 'already_approved'

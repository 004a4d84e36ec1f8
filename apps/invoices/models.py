# ==========================================
# apps/invoices/models.py
# ==========================================

from decimal import Decimal
import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


class InvoiceStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    PAYING = 'paying', 'Paying'
    PAID = 'paid', 'Paid'


# Forward-only lifecycle; PAID is terminal.
ALLOWED_TRANSITIONS = {
    InvoiceStatus.ACTIVE.value: {InvoiceStatus.PAYING.value},
    InvoiceStatus.PAYING.value: {InvoiceStatus.PAID.value},
    InvoiceStatus.PAID.value: set(),
}


class Invoice(models.Model):
    """Shared invoice split among participants."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.ACTIVE
    )
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='created_invoices'
    )
    
    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    
    class Meta:
        db_table = 'invoices'
        indexes = [
            models.Index(fields=['status', 'created_at'], name='invoices_status_created_idx'),
        ]
        ordering = ['-created_at']
    
    def __str__(self):
        return f"{self.title} ({self.get_status_display()})"
    
    def can_transition_to(self, status):
        return InvoiceStatus(status).value in ALLOWED_TRANSITIONS[InvoiceStatus(self.status).value]
    
    def has_participant(self, user_id):
        return self.participants.filter(user_id=user_id).exists()


class InvoiceParticipant(models.Model):
    """A user's share of an invoice, with payment and reminder tracking."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name='participants'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='invoice_participations'
    )
    
    # Payment tracking
    has_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    
    # Reminder debounce clock, initialized on the first sweep that sees the participant
    last_reminder_sent_at = models.DateTimeField(null=True, blank=True)
    
    created_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'invoice_participants'
        constraints = [
            models.UniqueConstraint(
                fields=['invoice', 'user'],
                name='unique_invoice_participant',
            ),
            models.CheckConstraint(
                condition=(
                    Q(has_paid=True, paid_at__isnull=False)
                    | Q(has_paid=False, paid_at__isnull=True)
                ),
                name='participant_paid_at_matches_has_paid',
            ),
        ]
        ordering = ['created_at']
    
    def __str__(self):
        state = 'paid' if self.has_paid else 'unpaid'
        return f"{self.user.get_display_name()} on {self.invoice.title} ({state})"


class Approval(models.Model):
    """A participant's acknowledgment of an invoice."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name='approvals'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='invoice_approvals'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'invoice_approvals'
        constraints = [
            models.UniqueConstraint(
                fields=['invoice', 'user'],
                name='unique_invoice_approval',
            ),
        ]
        ordering = ['created_at']
    
    def __str__(self):
        return f"{self.user.get_display_name()} approved {self.invoice.title}"

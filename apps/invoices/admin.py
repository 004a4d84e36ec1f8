# ==========================================
# apps/invoices/admin.py
# ==========================================

from django.contrib import admin, messages
from django.db.models import Count
from django.utils.html import format_html

from .models import Approval, Invoice, InvoiceParticipant, InvoiceStatus
from .services import (
    AuthorizationContext,
    InvoicesServiceError,
    mark_invoice_paid,
    start_payment_collection,
)


STATUS_COLORS = {
    InvoiceStatus.ACTIVE: ('#E5C49A', '#2C1810'),
    InvoiceStatus.PAYING: ('#A47449', 'white'),
    InvoiceStatus.PAID: ('#6B8E5E', 'white'),
}


class InvoiceParticipantInline(admin.TabularInline):
    """Inline admin for participants within an invoice."""
    model = InvoiceParticipant
    extra = 0
    fields = [
        'user',
        'has_paid',
        'paid_at',
        'last_reminder_sent_at',
    ]
    # Membership and payment state only change through the lifecycle services
    readonly_fields = ['user', 'has_paid', 'paid_at', 'last_reminder_sent_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class ApprovalInline(admin.TabularInline):
    """Inline admin for approvals within an invoice."""
    model = Approval
    extra = 0
    fields = ['user', 'created_at']
    readonly_fields = ['user', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """
    Admin interface for invoices.

    Status is read-only here; the actions below move invoices through
    the lifecycle services so the same rules apply as everywhere else.
    """

    list_display = [
        'title',
        'created_by',
        'amount',
        'status_badge',
        'get_participant_count',
        'created_at',
    ]

    list_filter = [
        'status',
        'created_at',
    ]

    search_fields = [
        'title',
        'created_by__email',
        'created_by__display_name',
    ]

    readonly_fields = [
        'status',
        'created_at',
        'updated_at',
    ]

    inlines = [InvoiceParticipantInline, ApprovalInline]
    ordering = ['-created_at']

    fieldsets = (
        ('Invoice Information', {
            'fields': (
                'title',
                'description',
                'amount',
                'created_by',
                'status',
            )
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def status_badge(self, obj):
        """Display invoice status as colored badge."""
        bg, fg = STATUS_COLORS.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def get_participant_count(self, obj):
        return obj.participant_count
    get_participant_count.short_description = 'Participants'
    get_participant_count.admin_order_field = 'participant_count'

    actions = [
        'start_payment_collection_action',
        'mark_paid_action',
    ]

    def _run_lifecycle_action(self, request, queryset, operation, done_message):
        context = AuthorizationContext.for_user(request.user)
        done = 0
        for invoice in queryset:
            try:
                operation(invoice_id=invoice.id, context=context)
                done += 1
            except InvoicesServiceError as e:
                self.message_user(request, f'{invoice.title}: {e.detail}', level=messages.WARNING)
        self.message_user(request, done_message.format(count=done))

    @admin.action(description='Start payment collection')
    def start_payment_collection_action(self, request, queryset):
        """Move fully approved invoices to paying."""
        self._run_lifecycle_action(
            request, queryset, start_payment_collection,
            'Started payment collection for {count} invoice(s).'
        )

    @admin.action(description='Mark as paid')
    def mark_paid_action(self, request, queryset):
        """Close invoices whose participants have all paid."""
        self._run_lifecycle_action(
            request, queryset, mark_invoice_paid,
            'Marked {count} invoice(s) as paid.'
        )

    def has_add_permission(self, request):
        # Invoices are created through create_invoice
        return False

    def get_queryset(self, request):
        """Optimize query with select_related and a participant count."""
        qs = super().get_queryset(request)
        return qs.select_related('created_by').annotate(participant_count=Count('participants'))


@admin.register(InvoiceParticipant)
class InvoiceParticipantAdmin(admin.ModelAdmin):
    """Read-mostly view of participants for reminder troubleshooting."""

    list_display = [
        'user',
        'invoice',
        'has_paid',
        'paid_at',
        'last_reminder_sent_at',
    ]
    list_filter = ['has_paid', 'invoice__status']
    search_fields = ['user__email', 'invoice__title']
    readonly_fields = ['invoice', 'user', 'has_paid', 'paid_at', 'last_reminder_sent_at', 'created_at']

    def has_add_permission(self, request):
        return False

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('user', 'invoice')

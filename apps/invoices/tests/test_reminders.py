"""
Tests for the approval reminder sweep.

Each cycle gets an explicit ``now`` so the debounce clock can be moved
forward without sleeping.
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.utils import timezone

from apps.invoices.models import Invoice, InvoiceParticipant, InvoiceStatus
from apps.invoices.services import approve_invoice, create_invoice, send_invoice_reminders
from apps.invoices.services.reminders import build_invoice_url


class RecordingSender:
    """Email sender double that records calls and returns a fixed outcome."""

    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, to_address, display_name, invoice_title, invoice_url):
        self.calls.append((to_address, display_name, invoice_title, invoice_url))
        return self.result


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def sender():
    return RecordingSender()


def set_last_reminder(invoice, user, value):
    InvoiceParticipant.objects.filter(invoice=invoice, user=user).update(last_reminder_sent_at=value)


def last_reminder(invoice, user):
    return InvoiceParticipant.objects.get(invoice=invoice, user=user).last_reminder_sent_at


@pytest.mark.django_db
class TestReminderRules:
    """Per-participant reminder decisions."""

    def test_first_sighting_initializes_clock_without_email(
        self, active_invoice, participant_alice, participant_bob, now, sender
    ):
        """No email on the first cycle, the clock starts at the cycle time."""
        result = send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert sender.calls == []
        assert last_reminder(active_invoice, participant_alice) == now
        assert last_reminder(active_invoice, participant_bob) == now
        assert result.initialized == 2
        assert result.sent == 0
        assert result.changes == 2

    def test_reminder_one_day_old_is_not_resent(self, active_invoice, participant_alice, now, sender):
        one_day_ago = now - timedelta(days=1)
        set_last_reminder(active_invoice, participant_alice, one_day_ago)

        send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert [call[0] for call in sender.calls] == []
        assert last_reminder(active_invoice, participant_alice) == one_day_ago

    def test_reminder_three_days_old_sends_one_email(
        self, active_invoice, participant_alice, participant_bob, now, sender
    ):
        set_last_reminder(active_invoice, participant_alice, now - timedelta(days=3))
        set_last_reminder(active_invoice, participant_bob, now - timedelta(hours=12))

        result = send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert sender.calls == [(
            'alice@example.com',
            'Alice',
            'Electricity, March',
            f'http://app/invoices/{active_invoice.id}',
        )]
        assert last_reminder(active_invoice, participant_alice) == now
        assert result.sent == 1
        assert result.initialized == 0

    def test_exactly_two_days_is_due(self, active_invoice, participant_alice, now, sender):
        set_last_reminder(active_invoice, participant_alice, now - timedelta(days=2))

        send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert [call[0] for call in sender.calls] == ['alice@example.com']

    def test_display_name_falls_back_to_email_prefix(
        self, active_invoice, participant_bob, now, sender
    ):
        set_last_reminder(active_invoice, participant_bob, now - timedelta(days=3))

        send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        bob_calls = [call for call in sender.calls if call[0] == 'bob@example.com']
        assert bob_calls[0][1] == 'bob'

    def test_approved_participant_is_never_reminded(
        self, active_invoice, invoice_creator, participant_alice, alice_context, now, sender
    ):
        """Approval exempts a participant regardless of timestamps."""
        approve_invoice(invoice_id=active_invoice.id, context=alice_context)
        long_ago = now - timedelta(days=30)
        set_last_reminder(active_invoice, participant_alice, long_ago)

        send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert all(call[0] != 'alice@example.com' for call in sender.calls)
        assert last_reminder(active_invoice, participant_alice) == long_ago
        # The creator approved at creation and never gets a clock
        assert last_reminder(active_invoice, invoice_creator) is None

    def test_failed_delivery_keeps_timestamp(self, active_invoice, participant_alice, now):
        sender = RecordingSender(result=False)
        three_days_ago = now - timedelta(days=3)
        set_last_reminder(active_invoice, participant_alice, three_days_ago)

        result = send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert len([c for c in sender.calls if c[0] == 'alice@example.com']) == 1
        assert last_reminder(active_invoice, participant_alice) == three_days_ago
        assert result.failed >= 1

    @pytest.mark.parametrize('status', [InvoiceStatus.PAYING, InvoiceStatus.PAID])
    def test_only_active_invoices_are_swept(self, active_invoice, participant_alice, now, sender, status):
        Invoice.objects.filter(id=active_invoice.id).update(status=status)
        set_last_reminder(active_invoice, participant_alice, now - timedelta(days=10))

        result = send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert sender.calls == []
        assert result.changes == 0


@pytest.mark.django_db
class TestReminderCycle:
    """Cycle-level behaviour: persistence, isolation, defaults."""

    def test_two_cycle_scenario(self, invoice_creator, participant_alice, now, mailoutbox, settings):
        """
        Invoice with A (unapproved, no reminder yet) and B (approved):
        cycle 1 starts A's clock, cycle 2 three days later emails A once.
        """
        settings.APP_URL = 'https://split.example.com/'
        invoice = create_invoice(
            title='Cabin weekend',
            amount=Decimal('450.00'),
            created_by=invoice_creator,
            participant_ids=[participant_alice.id],
        )

        send_invoice_reminders(now=now)

        assert last_reminder(invoice, participant_alice) == now
        assert last_reminder(invoice, invoice_creator) is None
        assert len(mailoutbox) == 0

        later = now + timedelta(days=3)
        result = send_invoice_reminders(now=later)

        assert result.sent == 1
        assert last_reminder(invoice, participant_alice) == later
        assert last_reminder(invoice, invoice_creator) is None
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ['alice@example.com']
        assert f'https://split.example.com/invoices/{invoice.id}' in mailoutbox[0].body

    def test_no_changes_skips_save(self, active_invoice, participant_alice, participant_bob, now, sender):
        recent = now - timedelta(hours=1)
        set_last_reminder(active_invoice, participant_alice, recent)
        set_last_reminder(active_invoice, participant_bob, recent)

        with patch.object(InvoiceParticipant.objects, 'bulk_update') as mock_bulk_update:
            result = send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        mock_bulk_update.assert_not_called()
        assert result.changes == 0

    def test_changes_saved_in_one_batch(self, active_invoice, now, sender):
        with patch.object(
            InvoiceParticipant.objects, 'bulk_update', wraps=InvoiceParticipant.objects.bulk_update
        ) as mock_bulk_update:
            send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        mock_bulk_update.assert_called_once()
        saved, fields = mock_bulk_update.call_args.args
        assert len(saved) == 2
        assert fields == ['last_reminder_sent_at']

    def test_failing_invoice_does_not_block_others(
        self, active_invoice, invoice_creator, participant_alice, now
    ):
        """An error on one invoice is logged; other invoices still get reminders."""
        other = create_invoice(
            title='Internet, Q2',
            amount=Decimal('120.00'),
            created_by=invoice_creator,
            participant_ids=[participant_alice.id],
        )
        three_days_ago = now - timedelta(days=3)
        set_last_reminder(active_invoice, participant_alice, three_days_ago)
        set_last_reminder(other, participant_alice, three_days_ago)

        def flaky_sender(to_address, display_name, invoice_title, invoice_url):
            if invoice_title == 'Electricity, March':
                raise RuntimeError('template exploded')
            return True

        result = send_invoice_reminders(now=now, send_email=flaky_sender, app_url='http://app')

        assert result.errors == 1
        assert result.sent == 1
        assert last_reminder(other, participant_alice) == now
        assert last_reminder(active_invoice, participant_alice) == three_days_ago

    def test_failing_participant_keeps_sibling_stamp(
        self, active_invoice, participant_alice, participant_bob, now
    ):
        """A delivered reminder is saved even when a sibling's send raises."""
        three_days_ago = now - timedelta(days=3)
        set_last_reminder(active_invoice, participant_alice, three_days_ago)
        set_last_reminder(active_invoice, participant_bob, three_days_ago)
        calls = []

        def sender(to_address, display_name, invoice_title, invoice_url):
            calls.append(to_address)
            if to_address == 'bob@example.com':
                raise RuntimeError('mailbox unavailable')
            return True

        result = send_invoice_reminders(now=now, send_email=sender, app_url='http://app')

        assert result.sent == 1
        assert result.errors == 1
        assert last_reminder(active_invoice, participant_alice) == now
        assert last_reminder(active_invoice, participant_bob) == three_days_ago

        send_invoice_reminders(now=now + timedelta(days=1), send_email=sender, app_url='http://app')

        assert calls.count('alice@example.com') == 1
        assert calls.count('bob@example.com') == 2

    def test_defaults_to_current_time(self, active_invoice, participant_alice, sender):
        before = timezone.now()

        send_invoice_reminders(send_email=sender, app_url='http://app')

        stamped = last_reminder(active_invoice, participant_alice)
        assert stamped is not None
        assert stamped >= before

    def test_no_active_invoices(self, sender):
        result = send_invoice_reminders(send_email=sender, app_url='http://app')

        assert result.changes == 0
        assert result.errors == 0


class TestBuildInvoiceUrl:

    def test_joins_base_and_id(self):
        assert build_invoice_url('http://localhost:3000', 'abc') == 'http://localhost:3000/invoices/abc'

    def test_strips_trailing_slash(self):
        assert build_invoice_url('https://app.example.com/', 'abc') == 'https://app.example.com/invoices/abc'

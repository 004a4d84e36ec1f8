"""
Management command to create sample data for trying out the invoice flow.

Usage:
    python manage.py create_sample_data

This creates:
- 4 users (admin, alice, bob, charlie)
- 3 invoices, one per lifecycle status (active, paying, paid)
"""

from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.accounts.models import User
from apps.invoices.models import Invoice
from apps.invoices.services import (
    AuthorizationContext,
    approve_invoice,
    create_invoice,
    mark_invoice_paid,
    start_payment_collection,
    toggle_payment_status,
)


class Command(BaseCommand):
    help = 'Create sample users and invoices'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        users = self.create_users()
        self.create_invoices(users)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (superuser)')
        self.stdout.write('  alice@example.com / password123')
        self.stdout.write('  bob@example.com / password123')
        self.stdout.write('  charlie@example.com / password123')

    def clear_data(self):
        """Clear all data from the database."""
        Invoice.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        User.objects.filter(email='admin@example.com').delete()

    def create_users(self):
        """Create test users."""
        self.stdout.write('  Creating users...')

        admin, _ = User.objects.get_or_create(
            email='admin@example.com',
            defaults={
                'display_name': 'Admin User',
                'is_staff': True,
                'is_superuser': True,
            }
        )
        admin.set_password('admin123')
        admin.save()

        users = {'admin': admin}
        for key, display_name in [
            ('alice', 'Alice Andersson'),
            ('bob', 'Bob Berg'),
            ('charlie', 'Charlie Carlsson'),
        ]:
            user, _ = User.objects.get_or_create(
                email=f'{key}@example.com',
                defaults={'display_name': display_name}
            )
            user.set_password('password123')
            user.save()
            users[key] = user

        return users

    def create_invoices(self, users):
        """Create one invoice in each lifecycle status."""
        self.stdout.write('  Creating invoices...')

        alice, bob, charlie = users['alice'], users['bob'], users['charlie']
        others = [bob.id, charlie.id]

        # Active: waiting for bob and charlie to approve
        create_invoice(
            title='Electricity, March',
            amount=Decimal('186.40'),
            created_by=alice,
            participant_ids=others,
        )

        # Paying: everyone approved, bob has paid
        paying = create_invoice(
            title='Internet, Q2',
            amount=Decimal('120.00'),
            created_by=alice,
            participant_ids=others,
        )
        for user in (bob, charlie):
            approve_invoice(invoice_id=paying.id, context=AuthorizationContext.for_user(user))
        start_payment_collection(invoice_id=paying.id, context=AuthorizationContext.for_user(alice))
        toggle_payment_status(
            invoice_id=paying.id,
            target_user_id=bob.id,
            context=AuthorizationContext.for_user(bob),
        )

        # Paid: closed invoice
        paid = create_invoice(
            title='Cabin weekend',
            amount=Decimal('450.00'),
            created_by=bob,
            participant_ids=[alice.id],
        )
        approve_invoice(invoice_id=paid.id, context=AuthorizationContext.for_user(alice))
        bob_context = AuthorizationContext.for_user(bob)
        start_payment_collection(invoice_id=paid.id, context=bob_context)
        for user in (alice, bob):
            toggle_payment_status(
                invoice_id=paid.id,
                target_user_id=user.id,
                context=AuthorizationContext.for_user(user),
            )
        mark_invoice_paid(invoice_id=paid.id, context=bob_context)

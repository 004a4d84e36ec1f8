import pytest
from decimal import Decimal
from apps.accounts.models import User
from apps.invoices.services import (
    AuthorizationContext,
    approve_invoice,
    create_invoice,
    start_payment_collection,
)


@pytest.fixture
def invoice_creator(db):
    """Create and return the user who submits invoices."""
    return User.objects.create_user(
        email='creator@example.com',
        password='TestPass123!',
        display_name='Invoice Creator',
    )


@pytest.fixture
def participant_alice(db):
    """Create and return a participant."""
    return User.objects.create_user(
        email='alice@example.com',
        password='TestPass123!',
        display_name='Alice',
    )


@pytest.fixture
def participant_bob(db):
    """Create and return another participant."""
    return User.objects.create_user(
        email='bob@example.com',
        password='TestPass123!',
        display_name='',
    )


@pytest.fixture
def outsider(db):
    """Create and return a user not on any invoice."""
    return User.objects.create_user(
        email='outsider@example.com',
        password='TestPass123!',
        display_name='Outsider',
    )


@pytest.fixture
def admin_user(db):
    """Create and return a staff user (invoice admin)."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        display_name='Admin',
        is_staff=True,
    )


@pytest.fixture
def creator_context(invoice_creator):
    return AuthorizationContext.for_user(invoice_creator)


@pytest.fixture
def alice_context(participant_alice):
    return AuthorizationContext.for_user(participant_alice)


@pytest.fixture
def bob_context(participant_bob):
    return AuthorizationContext.for_user(participant_bob)


@pytest.fixture
def outsider_context(outsider):
    return AuthorizationContext.for_user(outsider)


@pytest.fixture
def admin_context(admin_user):
    return AuthorizationContext.for_user(admin_user)


@pytest.fixture
def active_invoice(db, invoice_creator, participant_alice, participant_bob):
    """Active invoice: creator approved, alice and bob pending."""
    return create_invoice(
        title='Electricity, March',
        amount=Decimal('300.00'),
        created_by=invoice_creator,
        participant_ids=[participant_alice.id, participant_bob.id],
    )


@pytest.fixture
def paying_invoice(active_invoice, alice_context, bob_context, creator_context):
    """Invoice collecting payments; nobody has paid yet."""
    approve_invoice(invoice_id=active_invoice.id, context=alice_context)
    approve_invoice(invoice_id=active_invoice.id, context=bob_context)
    start_payment_collection(invoice_id=active_invoice.id, context=creator_context)
    active_invoice.refresh_from_db()
    return active_invoice


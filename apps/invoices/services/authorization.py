"""
Authorization context and policies for invoice operations.

Callers build an AuthorizationContext for the acting user once (usually
from request.user) and pass it to the services, which consult the policy
functions below instead of inspecting flags themselves.
"""

import enum
from dataclasses import dataclass, field
from typing import FrozenSet
from uuid import UUID

from .exceptions import InsufficientPermissionsError


class Capability(enum.Enum):
    ADMIN = 'admin'


@dataclass(frozen=True)
class AuthorizationContext:
    """Identity and capabilities of the user performing an operation."""

    user_id: UUID
    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)

    @classmethod
    def for_user(cls, user) -> 'AuthorizationContext':
        """Build a context from a User; staff and superusers are admins."""
        capabilities = set()
        if user.is_staff or user.is_superuser:
            capabilities.add(Capability.ADMIN)
        return cls(user_id=user.id, capabilities=frozenset(capabilities))

    @property
    def is_admin(self) -> bool:
        return Capability.ADMIN in self.capabilities

    def is_user(self, user_id) -> bool:
        return str(self.user_id) == str(user_id)


def can_toggle_payment(context: AuthorizationContext, target_user_id) -> bool:
    """Only the participant themselves or an admin may change a payment status."""
    return context.is_admin or context.is_user(target_user_id)


def can_manage_invoice(context: AuthorizationContext, invoice) -> bool:
    """The invoice creator or an admin may manage participants and status."""
    return context.is_admin or context.is_user(invoice.created_by_id)


def ensure_can_toggle_payment(context: AuthorizationContext, target_user_id) -> None:
    if not can_toggle_payment(context, target_user_id):
        raise InsufficientPermissionsError(
            "You can only change your own payment status unless you are an admin."
        )


def ensure_can_manage_invoice(context: AuthorizationContext, invoice) -> None:
    if not can_manage_invoice(context, invoice):
        raise InsufficientPermissionsError(
            "Only the invoice creator or an admin can manage this invoice."
        )

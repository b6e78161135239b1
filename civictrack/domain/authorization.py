# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for complaint visibility and modification.

This module combines permission table lookups with ownership and ward
scoping rules. All functions are pure and never raise: missing permission
is expressed as False or an empty list, never as an error.
"""

from typing import List, Optional, Union, Iterable
from dataclasses import dataclass, field

from ..models.entities import Actor, Complaint, ComplaintViewContext
from ..models.enums import Role, ComplaintStatus
from .permissions import PermissionTable, default_table


ComplaintLike = Union[Complaint, ComplaintViewContext]


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    missing_permissions: List[str] = field(default_factory=list)


def _view_context(complaint: Optional[ComplaintLike]) -> Optional[ComplaintViewContext]:
    if isinstance(complaint, Complaint):
        return complaint.view_context()
    if isinstance(complaint, ComplaintViewContext):
        return complaint
    return None


def _same_ward(actor: Actor, context: ComplaintViewContext) -> bool:
    # An actor without a ward never matches, even a complaint without one
    return bool(actor.ward_id) and context.ward_id == actor.ward_id


def _is_owner(actor: Actor, context: ComplaintViewContext) -> bool:
    return actor.id in (context.submitted_by_id, context.assigned_to_id)


class VisibilityFilter:
    """View and modify eligibility over an injected permission table."""

    def __init__(self, table: PermissionTable = default_table):
        self.table = table

    def can_view(self, actor: Optional[Actor], complaint: Optional[ComplaintLike]) -> bool:
        """
        Check if an actor may view a complaint.

        Args:
            actor: Authenticated actor, or None for an empty context
            complaint: Complaint or its view projection

        Returns:
            True if any of the view:all, view:own or view:ward rules grant access
        """
        context = _view_context(complaint)
        if actor is None or context is None:
            return False

        if self.table.has_permission(actor.role, "complaint:view:all"):
            return True

        if (self.table.has_permission(actor.role, "complaint:view:own") and
                _is_owner(actor, context)):
            return True

        if (self.table.has_permission(actor.role, "complaint:view:ward") and
                _same_ward(actor, context)):
            return True

        return False

    def can_modify(self, actor: Optional[Actor], complaint: Optional[ComplaintLike]) -> bool:
        """
        Check if an actor may modify a complaint.

        Citizens keep modify rights on their own complaints only while the
        complaint is still REGISTERED.
        """
        context = _view_context(complaint)
        if actor is None or context is None:
            return False

        if self.table.has_permission(actor.role, "complaint:update:all"):
            return True

        if (actor.role == Role.CITIZEN and
                self.table.has_permission(actor.role, "complaint:update:own") and
                context.submitted_by_id == actor.id and
                context.status == ComplaintStatus.REGISTERED):
            return True

        if (self.table.has_permission(actor.role, "complaint:update:ward") and
                _same_ward(actor, context)):
            return True

        if (self.table.has_permission(actor.role, "complaint:update:own") and
                context.assigned_to_id is not None and
                context.assigned_to_id == actor.id):
            return True

        return False

    def filter_complaints(self, actor: Optional[Actor],
                          complaints: Optional[Iterable[ComplaintLike]]) -> List[ComplaintLike]:
        """Keep the complaints the actor can view, preserving input order."""
        if actor is None or complaints is None:
            return []
        return [complaint for complaint in complaints if self.can_view(actor, complaint)]

    def filter_users(self, actor: Optional[Actor], users: Optional[Iterable[Actor]]) -> List[Actor]:
        """Keep the user records the actor may view."""
        if actor is None or users is None:
            return []
        if self.table.has_permission(actor.role, "user:view:all"):
            return list(users)
        if self.table.has_permission(actor.role, "user:view:own"):
            return [user for user in users if user.id == actor.id]
        return []

    def check_permission(self, actor: Optional[Actor], required_permission: str) -> AuthorizationResult:
        """
        Check if an actor's role holds a specific permission.

        Args:
            actor: Authenticated actor
            required_permission: Permission string to check

        Returns:
            AuthorizationResult indicating if permission is granted
        """
        if actor is not None and self.table.has_permission(actor.role, required_permission):
            return AuthorizationResult(allowed=True)

        return AuthorizationResult(
            allowed=False,
            reason=f"Missing required permission: {required_permission}",
            missing_permissions=[required_permission]
        )


default_filter = VisibilityFilter()


def can_view(actor: Optional[Actor], complaint: Optional[ComplaintLike]) -> bool:
    """Check if an actor may view a complaint using the default table."""
    return default_filter.can_view(actor, complaint)


def can_modify(actor: Optional[Actor], complaint: Optional[ComplaintLike]) -> bool:
    """Check if an actor may modify a complaint using the default table."""
    return default_filter.can_modify(actor, complaint)


def filter_complaints(actor: Optional[Actor],
                      complaints: Optional[Iterable[ComplaintLike]]) -> List[ComplaintLike]:
    """Filter a collection down to viewable complaints."""
    return default_filter.filter_complaints(actor, complaints)


def filter_users(actor: Optional[Actor], users: Optional[Iterable[Actor]]) -> List[Actor]:
    return default_filter.filter_users(actor, users)


def check_permission(actor: Optional[Actor], required_permission: str) -> AuthorizationResult:
    return default_filter.check_permission(actor, required_permission)

# SPDX-License-Identifier: Apache-2.0

"""
Complaint status workflow.

This module holds the transition table and pure functions that validate a
requested transition against it, check the role gate of the edge, and plan
the resulting state change. Planning never mutates its input: it returns
the updated complaint copy, the audit entry, and the notifications to emit,
so a caller can commit all of them as one unit or none at all.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from ..models.base import ensure_utc
from ..models.entities import Actor, Complaint, StatusLogEntry, NotificationEvent
from ..models.enums import ComplaintStatus, NotificationKind
from .authorization import VisibilityFilter, default_filter
from .errors import InvalidTransition, PermissionDenied


S = ComplaintStatus

INITIAL_STATUS = ComplaintStatus.REGISTERED


@dataclass(frozen=True)
class TransitionRule:
    """Role gate for one edge: any one of the permissions satisfies it."""
    permissions: Tuple[str, ...]


TRANSITIONS: Mapping[Tuple[ComplaintStatus, ComplaintStatus], TransitionRule] = MappingProxyType({
    (S.REGISTERED, S.ASSIGNED): TransitionRule(("complaint:assign",)),
    (S.ASSIGNED, S.IN_PROGRESS): TransitionRule(("complaint:update:ward", "complaint:update:own")),
    (S.IN_PROGRESS, S.RESOLVED): TransitionRule(("complaint:resolve",)),
    (S.RESOLVED, S.CLOSED): TransitionRule(("complaint:update:ward", "complaint:update:all")),
    (S.CLOSED, S.REOPENED): TransitionRule(("complaint:reopen",)),
    (S.RESOLVED, S.REOPENED): TransitionRule(("complaint:reopen",)),
    (S.REOPENED, S.ASSIGNED): TransitionRule(("complaint:assign",)),
})


_SUBMITTER_NOTIFICATION = MappingProxyType({
    S.RESOLVED: NotificationKind.COMPLAINT_RESOLVED,
    S.CLOSED: NotificationKind.COMPLAINT_CLOSED,
    S.REOPENED: NotificationKind.COMPLAINT_REOPENED,
})


@dataclass
class TransitionPlan:
    """Everything a validated transition changes."""
    complaint: Complaint
    entry: StatusLogEntry
    notifications: List[NotificationEvent] = field(default_factory=list)

    @property
    def from_status(self) -> ComplaintStatus:
        return self.entry.from_status

    @property
    def to_status(self) -> ComplaintStatus:
        return self.entry.to_status


def coerce_status(status: Union[ComplaintStatus, str]) -> Optional[ComplaintStatus]:
    """Parse a status value, or None when it names no status."""
    try:
        return ComplaintStatus(status)
    except (ValueError, TypeError):
        return None


def _holds_scoped(actor: Actor, complaint: Complaint, permission: str,
                  visibility: VisibilityFilter) -> bool:
    """Check a permission including the ward or assignee scope baked into its name."""
    if not visibility.table.has_permission(actor.role, permission):
        return False
    if permission.endswith(":ward"):
        return bool(actor.ward_id) and complaint.ward_id == actor.ward_id
    if permission == "complaint:update:own":
        return complaint.assigned_to_id is not None and complaint.assigned_to_id == actor.id
    if permission == "complaint:resolve":
        return visibility.can_modify(actor, complaint)
    return True


def _gates_into(to_status: ComplaintStatus) -> Iterable[str]:
    for (_, target), rule in TRANSITIONS.items():
        if target == to_status:
            yield from rule.permissions


def authorize_transition(
    actor: Actor,
    complaint: Complaint,
    to_status: Union[ComplaintStatus, str],
    visibility: VisibilityFilter = default_filter
) -> TransitionRule:
    """
    Validate that `actor` may move `complaint` to `to_status`.

    Same-state requests are rejected before any permission check so a
    retried request can never produce a duplicate audit entry. An actor who
    holds none of the permissions leading into the target status is denied
    without learning whether the edge exists.

    Returns:
        The transition rule of the validated edge

    Raises:
        InvalidTransition: Unknown target, same-state no-op, or edge not in the table
        PermissionDenied: Actor cannot see the complaint or lacks the edge's gate
    """
    target = coerce_status(to_status)
    if target is None:
        raise InvalidTransition(f"Unknown status: {to_status}", complaint.id)

    current = ComplaintStatus(complaint.status)
    if target == current:
        raise InvalidTransition(f"Complaint is already {current.value}", complaint.id)

    if not visibility.can_view(actor, complaint):
        raise PermissionDenied("Not permitted", complaint.id)

    if not visibility.table.has_any_permission(actor.role, _gates_into(target)):
        raise PermissionDenied("Not permitted", complaint.id)

    rule = TRANSITIONS.get((current, target))
    if rule is None:
        raise InvalidTransition(
            f"Invalid status transition from {current.value} to {target.value}",
            complaint.id
        )

    if not any(_holds_scoped(actor, complaint, p, visibility) for p in rule.permissions):
        raise PermissionDenied("Not permitted", complaint.id)

    return rule


def allowed_transitions(
    actor: Actor,
    complaint: Complaint,
    visibility: VisibilityFilter = default_filter
) -> List[ComplaintStatus]:
    """Target statuses the actor may move the complaint to right now."""
    current = ComplaintStatus(complaint.status)
    allowed = []
    for (source, target), rule in TRANSITIONS.items():
        if source != current:
            continue
        try:
            authorize_transition(actor, complaint, target, visibility)
        except (InvalidTransition, PermissionDenied):
            continue
        allowed.append(target)
    return allowed


def _notifications_for(complaint: Complaint, to_status: ComplaintStatus,
                       now: datetime) -> List[NotificationEvent]:
    events = [
        NotificationEvent(
            user_id=complaint.submitted_by_id,
            complaint_id=complaint.id,
            kind=_SUBMITTER_NOTIFICATION.get(to_status, NotificationKind.COMPLAINT_UPDATED),
            status=to_status,
            created_at=now
        )
    ]
    if (to_status == S.ASSIGNED and complaint.assigned_to_id and
            complaint.assigned_to_id != complaint.submitted_by_id):
        events.append(NotificationEvent(
            user_id=complaint.assigned_to_id,
            complaint_id=complaint.id,
            kind=NotificationKind.COMPLAINT_ASSIGNED,
            status=to_status,
            created_at=now
        ))
    return events


def apply_entry(
    complaint: Complaint,
    entry: StatusLogEntry,
    assigned_to_id: Optional[str] = None
) -> Complaint:
    """
    Return a copy of `complaint` with the status change of `entry` applied.

    Sets the status-specific timestamps: RESOLVED sets resolved_at, CLOSED
    sets closed_at and REOPENED clears both. `assigned_to_id` is only
    honoured for ASSIGNED.
    """
    target = entry.to_status
    updates = {"status": target, "updated_at": entry.timestamp}
    if target == S.ASSIGNED and assigned_to_id:
        updates["assigned_to_id"] = assigned_to_id
    elif target == S.RESOLVED:
        updates["resolved_at"] = entry.timestamp
    elif target == S.CLOSED:
        updates["closed_at"] = entry.timestamp
    elif target == S.REOPENED:
        updates["resolved_at"] = None
        updates["closed_at"] = None
    return complaint.model_copy(update=updates)


def plan_transition(
    actor: Actor,
    complaint: Complaint,
    to_status: Union[ComplaintStatus, str],
    now: datetime,
    comment: Optional[str] = None,
    assigned_to_id: Optional[str] = None,
    visibility: VisibilityFilter = default_filter
) -> TransitionPlan:
    """
    Validate a transition and compute its effects without applying them.

    Args:
        actor: Actor requesting the transition
        complaint: Complaint as currently observed
        to_status: Requested status
        now: Transition time, raised to complaint.updated_at when earlier
        comment: Optional remark recorded in the audit entry
        assigned_to_id: New assignee, only honoured for ASSIGNED
        visibility: Visibility filter carrying the permission table

    Returns:
        TransitionPlan with the updated complaint copy, audit entry and notifications

    Raises:
        InvalidTransition, PermissionDenied: see authorize_transition
    """
    authorize_transition(actor, complaint, to_status, visibility)

    # History is ordered by timestamp; never record a change before the last one
    now = max(ensure_utc(now), complaint.updated_at)

    entry = StatusLogEntry(
        complaint_id=complaint.id,
        actor_id=actor.id,
        from_status=ComplaintStatus(complaint.status),
        to_status=ComplaintStatus(to_status),
        comment=comment,
        timestamp=now
    )
    target = entry.to_status
    updated = apply_entry(complaint, entry, assigned_to_id=assigned_to_id)

    return TransitionPlan(
        complaint=updated,
        entry=entry,
        notifications=_notifications_for(updated, target, now)
    )


def registration_entry(complaint: Complaint, actor: Actor) -> StatusLogEntry:
    """First audit entry of a newly registered complaint."""
    return StatusLogEntry(
        complaint_id=complaint.id,
        actor_id=actor.id,
        from_status=None,
        to_status=INITIAL_STATUS,
        timestamp=complaint.created_at
    )

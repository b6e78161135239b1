# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Complaint service orchestrating registration, transitions and SLA reads.

Transitions follow one control flow: load the complaint, check visibility,
plan the change with the pure workflow functions, commit status and audit
entry through a compare-and-swap on the observed status, then dispatch
notifications. Nothing is dispatched for a transition that did not commit,
and a failed dispatch never undoes one that did.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain.authorization import VisibilityFilter, default_filter
from ..domain.errors import ConflictError, InvalidTransition, NotFound, PermissionDenied, TransitionError
from ..domain.sla import (
    SLAPolicy, DEFAULT_POLICY, sla_statistics, sla_compliance, average_resolution_days
)
from ..domain.workflow import coerce_status, plan_transition, registration_entry
from ..models.base import ensure_utc, utcnow
from ..models.entities import Actor, Complaint, NotificationEvent, StatusLogEntry
from ..models.enums import ComplaintStatus, NotificationKind, Priority, SlaStatus
from .audit import AuditTrail
from .notifications import NotificationDispatcher
from .store import ComplaintStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _status_value(status: Union[ComplaintStatus, str]) -> str:
    return str(getattr(status, "value", status))


@dataclass
class TransitionResult:
    """Result of a transition attempt."""
    success: bool
    complaint: Optional[Complaint] = None
    entry: Optional[StatusLogEntry] = None
    error: Optional[TransitionError] = None
    sla_status: Optional[SlaStatus] = None
    notifications_sent: int = 0

    def raise_for_error(self) -> None:
        """Re-raise the rejection, if any."""
        if self.error is not None:
            raise self.error


class ComplaintService:
    """Entry point of the complaint core for HTTP handlers and jobs."""

    def __init__(
        self,
        store: ComplaintStore,
        audit_trail: Optional[AuditTrail] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        policy: SLAPolicy = DEFAULT_POLICY,
        visibility: VisibilityFilter = default_filter,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 3
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.audit_trail = audit_trail or AuditTrail(store)
        self.dispatcher = dispatcher
        self.policy = policy
        self.visibility = visibility
        self.clock = clock
        self.max_attempts = max_attempts

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else ensure_utc(self.clock())

    def _dispatch(self, events: List[NotificationEvent]) -> int:
        if not events or self.dispatcher is None:
            return 0
        try:
            return self.dispatcher.notify_all(events)
        except Exception as e:
            logger.error(
                "Notification dispatch failed",
                extra={
                    "complaint_id": events[0].complaint_id,
                    "events": len(events),
                    "error": str(e)
                },
                exc_info=True
            )
            return 0

    def _load(self, complaint_id: str) -> Complaint:
        complaint = self.store.get(complaint_id)
        if complaint is None:
            raise NotFound(f"Complaint {complaint_id} not found", complaint_id)
        return complaint

    def _load_visible(self, actor: Actor, complaint_id: str) -> Complaint:
        complaint = self._load(complaint_id)
        if not self.visibility.can_view(actor, complaint):
            raise PermissionDenied("Not permitted", complaint_id)
        return complaint

    def register(
        self,
        actor: Actor,
        complaint_type: str,
        priority: Union[Priority, str] = Priority.MEDIUM,
        ward_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Complaint:
        """
        Register a new complaint and record its first history entry.

        Args:
            actor: Submitting actor, must hold complaint:create
            complaint_type: Complaint type key
            priority: Complaint priority
            ward_id: Ward of the complaint, defaults to the actor's ward
            now: Registration time, defaults to the service clock

        Returns:
            Complaint: The stored complaint

        Raises:
            PermissionDenied: If the actor cannot create complaints
            ValueError: If no ward can be determined
        """
        with tracer.start_as_current_span("complaint.register") as span:
            span.set_attributes({
                "complaint.type": complaint_type,
                "actor.id": actor.id,
                "actor.role": actor.role.value
            })

            if not self.visibility.table.has_permission(actor.role, "complaint:create"):
                span.set_status(Status(StatusCode.ERROR, "insufficient-permissions"))
                raise PermissionDenied("Not permitted")

            ward = ward_id or actor.ward_id
            if not ward:
                raise ValueError("A ward is required to register a complaint")

            created_at = self._now(now)
            complaint = Complaint(
                type=complaint_type,
                priority=priority,
                ward_id=ward,
                submitted_by_id=actor.id,
                created_at=created_at,
                updated_at=created_at,
                deadline=self.policy.compute_deadline(complaint_type, priority, created_at)
            )
            self.store.insert(complaint, registration_entry(complaint, actor))

            span.set_attribute("complaint.id", complaint.id)
            logger.info(
                "Complaint registered",
                extra={
                    "complaint_id": complaint.id,
                    "complaint_type": complaint.type,
                    "priority": complaint.priority.value,
                    "ward_id": complaint.ward_id,
                    "user_id": actor.id,
                    "deadline": complaint.deadline.isoformat()
                }
            )

            self._dispatch([NotificationEvent(
                user_id=actor.id,
                complaint_id=complaint.id,
                kind=NotificationKind.COMPLAINT_SUBMITTED,
                status=ComplaintStatus.REGISTERED,
                created_at=created_at
            )])
            return complaint

    def get(self, actor: Actor, complaint_id: str) -> Complaint:
        """
        Fetch a complaint the actor may view.

        Raises:
            NotFound: If the complaint does not exist
            PermissionDenied: If the actor may not view it
        """
        return self._load_visible(actor, complaint_id)

    def list_visible(self, actor: Actor) -> List[Complaint]:
        """All complaints the actor may view, oldest first."""
        return self.visibility.filter_complaints(actor, self.store.list_all())

    def transition(
        self,
        actor: Actor,
        complaint_id: str,
        to_status: Union[ComplaintStatus, str],
        comment: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        expected_status: Optional[Union[ComplaintStatus, str]] = None,
        now: Optional[datetime] = None
    ) -> TransitionResult:
        """
        Move a complaint to a new status.

        Args:
            actor: Actor requesting the change
            complaint_id: Complaint ID
            to_status: Requested status
            comment: Optional remark for the history entry
            assigned_to_id: New assignee, honoured for ASSIGNED
            expected_status: Status the caller last observed; a stale value is a conflict
            now: Transition time, defaults to the service clock

        Returns:
            TransitionResult: success with the committed complaint and entry,
            or failure carrying the typed error. Rejections are returned, not raised.
        """
        with tracer.start_as_current_span("complaint.transition") as span:
            span.set_attributes({
                "complaint.id": complaint_id,
                "complaint.to_status": _status_value(to_status),
                "actor.id": actor.id,
                "actor.role": actor.role.value
            })
            now = self._now(now)

            try:
                complaint = self._load_visible(actor, complaint_id)
                if expected_status is not None:
                    expected = coerce_status(expected_status)
                    if expected is None:
                        raise InvalidTransition(f"Unknown status: {expected_status}", complaint_id)
                    if expected != complaint.status:
                        raise ConflictError(
                            f"Complaint {complaint_id} is {complaint.status.value}, expected {expected.value}",
                            complaint_id
                        )

                plan = plan_transition(
                    actor, complaint, to_status, now,
                    comment=comment,
                    assigned_to_id=assigned_to_id,
                    visibility=self.visibility
                )
                committed = self.store.compare_and_set(plan.complaint, plan.from_status, plan.entry)

            except TransitionError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, e.error_type))
                log = logger.warning if isinstance(e, ConflictError) else logger.info
                log(
                    "Complaint transition rejected",
                    extra={
                        "complaint_id": complaint_id,
                        "user_id": actor.id,
                        "to_status": _status_value(to_status),
                        "error_type": e.error_type,
                        "detail": e.message
                    }
                )
                return TransitionResult(success=False, error=e)

            logger.info(
                "Complaint transitioned",
                extra={
                    "complaint_id": complaint_id,
                    "user_id": actor.id,
                    "from_status": plan.from_status.value,
                    "to_status": plan.to_status.value,
                    "audit_id": plan.entry.id
                }
            )

            sent = self._dispatch(plan.notifications)
            span.set_attribute("complaint.notifications_sent", sent)

            return TransitionResult(
                success=True,
                complaint=committed,
                entry=plan.entry,
                sla_status=self.policy.classify(committed, now),
                notifications_sent=sent
            )

    def transition_with_retry(
        self,
        actor: Actor,
        complaint_id: str,
        to_status: Union[ComplaintStatus, str],
        comment: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        now: Optional[datetime] = None,
        max_attempts: Optional[int] = None
    ) -> TransitionResult:
        """
        Transition with fresh state on each attempt, retrying only conflicts.

        The request is re-validated against the re-fetched complaint every
        time, so a retry that finds the work already done fails as an
        invalid transition instead of writing a second entry.
        """
        attempts = max_attempts or self.max_attempts
        result = None
        for attempt in range(1, attempts + 1):
            result = self.transition(
                actor, complaint_id, to_status,
                comment=comment, assigned_to_id=assigned_to_id, now=now
            )
            if result.success or not result.error.retryable:
                return result
            logger.info(
                "Retrying complaint transition after conflict",
                extra={"complaint_id": complaint_id, "attempt": attempt, "max_attempts": attempts}
            )
        return result

    def history(self, actor: Actor, complaint_id: str) -> List[StatusLogEntry]:
        """Status history of a complaint the actor may view."""
        self._load_visible(actor, complaint_id)
        return self.audit_trail.history(complaint_id)

    def submit_feedback(
        self,
        actor: Actor,
        complaint_id: str,
        rating: int,
        comment: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Complaint:
        """
        Record the submitter's rating of completed work.

        Only the submitter may rate a complaint, and only while it is
        RESOLVED or CLOSED. A new submission replaces the previous one.
        Feedback is not a status change and writes no history entry.

        Args:
            actor: Actor submitting feedback
            complaint_id: Complaint ID
            rating: Rating from 1 to 5
            comment: Optional remark
            now: Submission time, defaults to the service clock

        Returns:
            Complaint: The complaint with its feedback fields set

        Raises:
            NotFound: If the complaint does not exist
            PermissionDenied: If the actor did not submit the complaint
            InvalidTransition: If the complaint is not resolved or closed
            ConflictError: If the complaint was reopened while the feedback was written
            ValueError: If the rating is outside 1-5 or the comment is too long
        """
        with tracer.start_as_current_span("complaint.feedback") as span:
            span.set_attributes({
                "complaint.id": complaint_id,
                "actor.id": actor.id,
                "feedback.rating": rating
            })

            if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
                raise ValueError("Rating must be between 1 and 5")
            if comment is not None:
                comment = comment.strip() or None
                if comment and len(comment) > 1000:
                    raise ValueError("Feedback comment cannot exceed 1000 characters")

            try:
                complaint = self._load(complaint_id)
                if complaint.submitted_by_id != actor.id:
                    raise PermissionDenied("Not permitted", complaint_id)
                if not complaint.is_completed():
                    raise InvalidTransition(
                        f"Feedback can only be provided for resolved or closed complaints, "
                        f"complaint is {complaint.status.value}",
                        complaint_id
                    )

                rated = complaint.model_copy(update={
                    "feedback_rating": rating,
                    "feedback_comment": comment,
                    "feedback_submitted_at": self._now(now)
                })
                saved = self.store.save_feedback(rated)
            except TransitionError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, e.error_type))
                raise

            logger.info(
                "Complaint feedback submitted",
                extra={
                    "complaint_id": complaint_id,
                    "user_id": actor.id,
                    "rating": rating
                }
            )
            return saved

    def classify(self, actor: Actor, complaint_id: str, now: Optional[datetime] = None) -> SlaStatus:
        """SLA standing of a complaint the actor may view."""
        complaint = self._load_visible(actor, complaint_id)
        return self.policy.classify(complaint, self._now(now))

    def sla_summary(self, actor: Actor, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        SLA figures over the complaints visible to the actor.

        Returns:
            Dictionary with per-standing counts, compliance and average resolution days
        """
        complaints = self.list_visible(actor)
        compliance = sla_compliance(complaints)
        return {
            "counts": sla_statistics(complaints, self._now(now), self.policy),
            "compliance": compliance["compliance"],
            "total_completed": compliance["total_completed"],
            "average_resolution_days": average_resolution_days(complaints)
        }

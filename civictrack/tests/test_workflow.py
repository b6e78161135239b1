# SPDX-License-Identifier: Apache-2.0

"""
Tests for the complaint status workflow.
"""

import pytest
from datetime import timedelta

from civictrack.domain.errors import InvalidTransition, PermissionDenied
from civictrack.domain.workflow import (
    TRANSITIONS,
    apply_entry,
    authorize_transition,
    allowed_transitions,
    coerce_status,
    plan_transition,
    registration_entry
)
from civictrack.domain.authorization import can_modify
from civictrack.models.entities import StatusLogEntry
from civictrack.models.enums import ComplaintStatus, NotificationKind

S = ComplaintStatus


class TestTransitionTable:
    """Test the edge table itself."""

    def test_edges(self):
        assert set(TRANSITIONS) == {
            (S.REGISTERED, S.ASSIGNED),
            (S.ASSIGNED, S.IN_PROGRESS),
            (S.IN_PROGRESS, S.RESOLVED),
            (S.RESOLVED, S.CLOSED),
            (S.CLOSED, S.REOPENED),
            (S.RESOLVED, S.REOPENED),
            (S.REOPENED, S.ASSIGNED),
        }

    def test_no_terminal_state(self):
        """Test every status has at least one outgoing edge."""
        sources = {source for source, _ in TRANSITIONS}
        assert sources == set(S)


class TestAuthorizeTransition:
    """Test edge validation and role gates."""

    @pytest.mark.parametrize("status", list(S))
    def test_same_state_is_invalid(self, admin, make_complaint, status):
        """Test a same-state request is always rejected as invalid."""
        with pytest.raises(InvalidTransition):
            authorize_transition(admin, make_complaint(status=status), status)

    def test_unknown_status_is_invalid(self, admin, make_complaint):
        with pytest.raises(InvalidTransition):
            authorize_transition(admin, make_complaint(), "ESCALATED")

    def test_edge_not_in_table(self, admin, make_complaint):
        """Test skipping states is rejected even for administrators."""
        with pytest.raises(InvalidTransition):
            authorize_transition(admin, make_complaint(), S.RESOLVED)

    def test_officer_assigns_ward_complaint(self, officer, make_complaint):
        rule = authorize_transition(officer, make_complaint(), S.ASSIGNED)
        assert rule.permissions == ("complaint:assign",)

    def test_foreign_officer_cannot_assign(self, foreign_officer, make_complaint):
        with pytest.raises(PermissionDenied):
            authorize_transition(foreign_officer, make_complaint(), S.ASSIGNED)

    def test_citizen_cannot_assign(self, citizen, make_complaint):
        with pytest.raises(PermissionDenied):
            authorize_transition(citizen, make_complaint(), S.ASSIGNED)

    def test_citizen_cannot_close_in_progress_complaint(self, citizen, make_complaint):
        """Test a submitter closing work in progress is denied, not invalid."""
        complaint = make_complaint(status=S.IN_PROGRESS, assigned_to_id="crew-1")

        with pytest.raises(PermissionDenied):
            authorize_transition(citizen, complaint, S.CLOSED)
        assert can_modify(citizen, complaint) is False

    def test_assignee_starts_work(self, crew, make_complaint):
        complaint = make_complaint(status=S.ASSIGNED, assigned_to_id=crew.id)
        authorize_transition(crew, complaint, S.IN_PROGRESS)

    def test_unassigned_crew_cannot_start_work(self, crew, make_complaint):
        complaint = make_complaint(status=S.ASSIGNED, assigned_to_id="crew-9")
        with pytest.raises(PermissionDenied):
            authorize_transition(crew, complaint, S.IN_PROGRESS)

    def test_officer_starts_work_in_ward(self, officer, make_complaint):
        complaint = make_complaint(status=S.ASSIGNED, assigned_to_id="crew-1")
        authorize_transition(officer, complaint, S.IN_PROGRESS)

    def test_administrator_needs_assignment_to_start_work(self, admin, make_complaint):
        """Test the start-work gate is scoped: update:own means the assignee."""
        complaint = make_complaint(status=S.ASSIGNED, assigned_to_id="crew-1")
        with pytest.raises(PermissionDenied):
            authorize_transition(admin, complaint, S.IN_PROGRESS)

        authorize_transition(admin, make_complaint(status=S.ASSIGNED, assigned_to_id=admin.id), S.IN_PROGRESS)

    def test_resolve_requires_modify_rights(self, crew, officer, make_complaint):
        assigned = make_complaint(status=S.IN_PROGRESS, assigned_to_id=crew.id)
        authorize_transition(crew, assigned, S.RESOLVED)
        authorize_transition(officer, assigned, S.RESOLVED)

        # Submitted by the crew member but assigned elsewhere: visible, not modifiable
        own_report = make_complaint(status=S.IN_PROGRESS, submitted_by_id=crew.id, assigned_to_id="crew-9")
        with pytest.raises(PermissionDenied):
            authorize_transition(crew, own_report, S.RESOLVED)

    def test_close_gates(self, officer, admin, crew, make_complaint):
        complaint = make_complaint(status=S.RESOLVED, assigned_to_id=crew.id)

        authorize_transition(officer, complaint, S.CLOSED)
        authorize_transition(admin, complaint, S.CLOSED)
        with pytest.raises(PermissionDenied):
            authorize_transition(crew, complaint, S.CLOSED)

    def test_reopen_gates(self, citizen, officer, make_complaint):
        for status in (S.RESOLVED, S.CLOSED):
            complaint = make_complaint(status=status)
            authorize_transition(citizen, complaint, S.REOPENED)
            with pytest.raises(PermissionDenied):
                authorize_transition(officer, complaint, S.REOPENED)

    def test_other_citizen_cannot_reopen(self, other_citizen, make_complaint):
        with pytest.raises(PermissionDenied):
            authorize_transition(other_citizen, make_complaint(status=S.CLOSED), S.REOPENED)


class TestAllowedTransitions:
    """Test affordance computation."""

    def test_officer_on_registered(self, officer, make_complaint):
        assert allowed_transitions(officer, make_complaint()) == [S.ASSIGNED]

    def test_administrator_on_resolved(self, admin, make_complaint):
        assert set(allowed_transitions(admin, make_complaint(status=S.RESOLVED))) == {S.CLOSED, S.REOPENED}

    def test_citizen_on_resolved(self, citizen, make_complaint):
        assert allowed_transitions(citizen, make_complaint(status=S.RESOLVED)) == [S.REOPENED]

    def test_stranger_gets_nothing(self, foreign_officer, make_complaint):
        assert allowed_transitions(foreign_officer, make_complaint()) == []


class TestPlanTransition:
    """Test planned state changes."""

    def test_plan_does_not_mutate_input(self, officer, make_complaint, now):
        complaint = make_complaint()
        plan = plan_transition(officer, complaint, S.ASSIGNED, now + timedelta(hours=1), assigned_to_id="crew-1")

        assert complaint.status == S.REGISTERED
        assert complaint.assigned_to_id is None
        assert plan.complaint.status == S.ASSIGNED
        assert plan.complaint.assigned_to_id == "crew-1"
        assert plan.complaint.updated_at == now + timedelta(hours=1)
        assert plan.complaint.id == complaint.id

    def test_entry(self, officer, make_complaint, now):
        complaint = make_complaint()
        plan = plan_transition(officer, complaint, S.ASSIGNED, now, comment="  crew dispatched ")

        assert plan.entry.complaint_id == complaint.id
        assert plan.entry.actor_id == officer.id
        assert plan.from_status == S.REGISTERED
        assert plan.to_status == S.ASSIGNED
        assert plan.entry.comment == "crew dispatched"
        assert plan.entry.timestamp == now

    def test_resolve_sets_resolved_at(self, crew, make_complaint, now):
        complaint = make_complaint(status=S.IN_PROGRESS, assigned_to_id=crew.id)
        plan = plan_transition(crew, complaint, S.RESOLVED, now)

        assert plan.complaint.resolved_at == now
        assert plan.complaint.closed_at is None

    def test_close_sets_closed_at(self, officer, make_complaint, now):
        complaint = make_complaint(status=S.RESOLVED, resolved_at=now)
        plan = plan_transition(officer, complaint, S.CLOSED, now + timedelta(hours=2))

        assert plan.complaint.closed_at == now + timedelta(hours=2)
        assert plan.complaint.resolved_at == now

    def test_reopen_clears_completion(self, citizen, make_complaint, now):
        complaint = make_complaint(status=S.CLOSED, resolved_at=now, closed_at=now)
        plan = plan_transition(citizen, complaint, S.REOPENED, now + timedelta(days=1))

        assert plan.complaint.resolved_at is None
        assert plan.complaint.closed_at is None
        assert plan.complaint.deadline == complaint.deadline

    def test_assignee_ignored_outside_assignment(self, crew, make_complaint, now):
        complaint = make_complaint(status=S.IN_PROGRESS, assigned_to_id=crew.id)
        plan = plan_transition(crew, complaint, S.RESOLVED, now, assigned_to_id="someone-else")

        assert plan.complaint.assigned_to_id == crew.id

    def test_backdated_time_is_raised_to_last_change(self, officer, make_complaint, now):
        """Test a clock behind the last change still appends after it."""
        complaint = make_complaint(updated_at=now + timedelta(hours=2))
        plan = plan_transition(officer, complaint, S.ASSIGNED, now - timedelta(minutes=5))

        assert plan.entry.timestamp == now + timedelta(hours=2)
        assert plan.complaint.updated_at == now + timedelta(hours=2)
        assert all(event.created_at == now + timedelta(hours=2) for event in plan.notifications)

    def test_rejected_plan_raises(self, citizen, make_complaint, now):
        with pytest.raises(PermissionDenied):
            plan_transition(citizen, make_complaint(), S.ASSIGNED, now)

    def test_assignment_notifies_submitter_and_assignee(self, officer, make_complaint, now):
        plan = plan_transition(officer, make_complaint(), S.ASSIGNED, now, assigned_to_id="crew-1")

        recipients = {(event.user_id, event.kind) for event in plan.notifications}
        assert recipients == {
            ("citizen-1", NotificationKind.COMPLAINT_UPDATED),
            ("crew-1", NotificationKind.COMPLAINT_ASSIGNED),
        }

    def test_resolution_notifies_submitter(self, crew, make_complaint, now):
        complaint = make_complaint(status=S.IN_PROGRESS, assigned_to_id=crew.id)
        plan = plan_transition(crew, complaint, S.RESOLVED, now)

        assert len(plan.notifications) == 1
        event = plan.notifications[0]
        assert event.user_id == "citizen-1"
        assert event.kind == NotificationKind.COMPLAINT_RESOLVED
        assert event.status == S.RESOLVED


class TestApplyEntry:
    """Test applying a recorded status change to a complaint."""

    def _entry(self, from_status, to_status, now):
        return StatusLogEntry(
            complaint_id="c1", actor_id="crew-1", from_status=from_status, to_status=to_status, timestamp=now
        )

    def test_resolution(self, make_complaint, now):
        complaint = make_complaint(status=S.IN_PROGRESS)
        applied = apply_entry(complaint, self._entry(S.IN_PROGRESS, S.RESOLVED, now + timedelta(hours=3)))

        assert applied.status == S.RESOLVED
        assert applied.resolved_at == now + timedelta(hours=3)
        assert applied.updated_at == now + timedelta(hours=3)
        assert complaint.status == S.IN_PROGRESS

    def test_reassignment(self, make_complaint, now):
        complaint = make_complaint(status=S.REOPENED, assigned_to_id="crew-1")
        applied = apply_entry(complaint, self._entry(S.REOPENED, S.ASSIGNED, now), assigned_to_id="crew-2")

        assert applied.assigned_to_id == "crew-2"

    def test_coerce_status(self):
        assert coerce_status("CLOSED") == S.CLOSED
        assert coerce_status("bogus") is None
        assert coerce_status(None) is None


class TestRegistrationEntry:
    """Test the first entry of a history."""

    def test_registration_entry(self, citizen, make_complaint):
        complaint = make_complaint()
        entry = registration_entry(complaint, citizen)

        assert entry.from_status is None
        assert entry.to_status == S.REGISTERED
        assert entry.timestamp == complaint.created_at
        assert entry.actor_id == citizen.id

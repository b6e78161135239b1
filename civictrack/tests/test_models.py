# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Pydantic models.
"""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from civictrack.models.entities import Actor, Complaint, StatusLogEntry
from civictrack.models.enums import ComplaintStatus, Priority, Role
from civictrack.models.requests import FeedbackRequest, RegisterComplaintRequest, TransitionRequest


class TestComplaint:
    """Test Complaint model validation."""

    def test_defaults(self, now):
        complaint = Complaint(
            type="DRAINAGE",
            ward_id="ward-1",
            submitted_by_id="citizen-1",
            created_at=now,
            deadline=now + timedelta(hours=24)
        )

        assert complaint.status == ComplaintStatus.REGISTERED
        assert complaint.priority == Priority.MEDIUM
        assert complaint.assigned_to_id is None
        assert len(complaint.id) == 24

    def test_type_normalization(self, make_complaint):
        assert make_complaint(type=" street-lighting ").type == "STREET_LIGHTING"
        assert make_complaint(type="road repair").type == "ROAD_REPAIR"

    def test_invalid_type(self, make_complaint):
        with pytest.raises(ValidationError):
            make_complaint(type="water/supply")

    def test_naive_timestamps_become_utc(self):
        complaint = Complaint(
            type="DRAINAGE",
            ward_id="ward-1",
            submitted_by_id="citizen-1",
            created_at=datetime(2024, 3, 1, 9, 0),
            deadline=datetime(2024, 3, 2, 9, 0)
        )
        assert complaint.created_at.tzinfo == timezone.utc

    def test_deadline_before_creation(self, make_complaint, now):
        with pytest.raises(ValidationError):
            make_complaint(deadline=now - timedelta(hours=1))

    def test_completion(self, make_complaint, now):
        resolved = make_complaint(status=ComplaintStatus.RESOLVED, resolved_at=now, closed_at=now + timedelta(hours=1))
        closed_only = make_complaint(status=ComplaintStatus.CLOSED, closed_at=now + timedelta(hours=2))

        assert resolved.is_completed() is True
        assert resolved.completed_at() == now
        assert closed_only.completed_at() == now + timedelta(hours=2)
        assert make_complaint(status=ComplaintStatus.REOPENED).is_completed() is False

    def test_feedback_rating_bounds(self, make_complaint):
        assert make_complaint(feedback_rating=5).feedback_rating == 5
        assert make_complaint().feedback_rating is None
        with pytest.raises(ValidationError):
            make_complaint(feedback_rating=0)

    def test_view_context(self, make_complaint):
        context = make_complaint(assigned_to_id="crew-1").view_context()

        assert context.submitted_by_id == "citizen-1"
        assert context.assigned_to_id == "crew-1"
        assert context.ward_id == "ward-1"
        assert context.status == ComplaintStatus.REGISTERED


class TestStatusLogEntry:
    """Test history entry validation."""

    def test_entry_is_frozen(self, now):
        entry = StatusLogEntry(complaint_id="c1", actor_id="a", to_status=ComplaintStatus.REGISTERED, timestamp=now)
        with pytest.raises(ValidationError):
            entry.actor_id = "b"

    def test_same_state_entry_rejected(self, now):
        with pytest.raises(ValidationError):
            StatusLogEntry(
                complaint_id="c1", actor_id="a",
                from_status=ComplaintStatus.ASSIGNED, to_status=ComplaintStatus.ASSIGNED, timestamp=now
            )

    def test_first_entry_must_register(self, now):
        with pytest.raises(ValidationError):
            StatusLogEntry(complaint_id="c1", actor_id="a", to_status=ComplaintStatus.ASSIGNED, timestamp=now)

    def test_blank_comment_is_dropped(self, now):
        entry = StatusLogEntry(
            complaint_id="c1", actor_id="a", to_status=ComplaintStatus.REGISTERED, comment="   ", timestamp=now
        )
        assert entry.comment is None


class TestActor:
    """Test actor identity."""

    def test_role_from_string(self):
        assert Actor(id="u1", role="WARD_OFFICER", ward_id="w1").role == Role.WARD_OFFICER

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            Actor(id="u1", role="MAYOR")

    def test_empty_id(self):
        with pytest.raises(ValidationError):
            Actor(id="", role=Role.CITIZEN)


class TestRequests:
    """Test request models."""

    def test_register_request_defaults(self):
        request = RegisterComplaintRequest(type="  WATER_SUPPLY ")

        assert request.type == "WATER_SUPPLY"
        assert request.priority == Priority.MEDIUM
        assert request.ward_id is None

    def test_transition_request(self):
        request = TransitionRequest(to_status="IN_PROGRESS", expected_status="ASSIGNED", comment=" ")

        assert request.to_status == ComplaintStatus.IN_PROGRESS
        assert request.expected_status == ComplaintStatus.ASSIGNED
        assert request.comment is None

    def test_transition_request_unknown_status(self):
        with pytest.raises(ValidationError):
            TransitionRequest(to_status="ESCALATED")

    def test_feedback_request(self):
        request = FeedbackRequest(rating=4, comment="  ")

        assert request.rating == 4
        assert request.comment is None

    @pytest.mark.parametrize("rating", [0, 6])
    def test_feedback_request_rating_range(self, rating):
        with pytest.raises(ValidationError):
            FeedbackRequest(rating=rating)

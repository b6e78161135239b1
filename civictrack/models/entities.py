# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the civictrack complaint engine.
"""

import re
from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator, model_validator
from .base import BaseEntity, FrozenEntity, generate_object_id, utcnow, ensure_utc
from .enums import Role, Priority, ComplaintStatus, NotificationKind


class Actor(FrozenEntity):
    """Authenticated identity performing a request."""

    id: str = Field(..., min_length=1, description="User identifier")
    role: Role = Field(..., description="User role")
    ward_id: Optional[str] = Field(None, description="Ward the user is scoped to")


class ComplaintViewContext(FrozenEntity):
    """Subset of complaint fields that permission checks depend on."""

    submitted_by_id: Optional[str] = None
    assigned_to_id: Optional[str] = None
    ward_id: Optional[str] = None
    status: Optional[ComplaintStatus] = None


class Complaint(BaseEntity):
    """Civic complaint tracked through the status lifecycle."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    type: str = Field(..., min_length=1, max_length=100, description="Complaint type key, e.g. WATER_SUPPLY")
    priority: Priority = Field(default=Priority.MEDIUM, description="Complaint priority")
    status: ComplaintStatus = Field(default=ComplaintStatus.REGISTERED, description="Current lifecycle status")
    ward_id: str = Field(..., min_length=1, description="Ward the complaint belongs to")
    submitted_by_id: str = Field(..., min_length=1, description="User who submitted the complaint")
    assigned_to_id: Optional[str] = Field(None, description="User currently assigned")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    deadline: datetime = Field(..., description="SLA deadline computed at registration")
    resolved_at: Optional[datetime] = Field(None, description="Resolution timestamp")
    closed_at: Optional[datetime] = Field(None, description="Closure timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update timestamp")
    feedback_rating: Optional[int] = Field(None, ge=1, le=5, description="Submitter rating from 1 to 5")
    feedback_comment: Optional[str] = Field(None, max_length=1000, description="Submitter feedback remark")
    feedback_submitted_at: Optional[datetime] = Field(None, description="Feedback timestamp")

    @field_validator('type')
    @classmethod
    def normalize_type(cls, v):
        """Normalise type keys to upper snake case."""
        normalized = re.sub(r'[\s\-]+', '_', v.strip()).upper()
        if not re.match(r'^[A-Z0-9_]+$', normalized):
            raise ValueError('Complaint type must contain only letters, digits, spaces, hyphens or underscores')
        return normalized

    @field_validator('created_at', 'deadline', 'resolved_at', 'closed_at', 'updated_at', 'feedback_submitted_at')
    @classmethod
    def normalize_timestamps(cls, v):
        if v is None:
            return v
        return ensure_utc(v)

    @model_validator(mode='after')
    def validate_deadline(self):
        """Deadline may not precede creation."""
        if self.deadline < self.created_at:
            raise ValueError('Deadline cannot be earlier than creation time')
        return self

    def view_context(self) -> ComplaintViewContext:
        """Project the fields used by visibility checks."""
        return ComplaintViewContext(
            submitted_by_id=self.submitted_by_id,
            assigned_to_id=self.assigned_to_id,
            ward_id=self.ward_id,
            status=self.status
        )

    def is_completed(self) -> bool:
        """Check if work on the complaint is complete."""
        return self.status in (ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED)

    def completed_at(self) -> Optional[datetime]:
        """Time the work completed, preferring resolution over closure."""
        return self.resolved_at or self.closed_at


class StatusLogEntry(FrozenEntity):
    """Append-only record of one status transition."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    complaint_id: str = Field(..., min_length=1, description="Complaint the entry belongs to")
    actor_id: str = Field(..., min_length=1, description="User who performed the transition")
    from_status: Optional[ComplaintStatus] = Field(None, description="Status before the transition")
    to_status: ComplaintStatus = Field(..., description="Status after the transition")
    comment: Optional[str] = Field(None, max_length=500, description="Optional remark")
    timestamp: datetime = Field(default_factory=utcnow, description="Transition timestamp")

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v):
        return ensure_utc(v)

    @field_validator('comment')
    @classmethod
    def strip_comment(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode='after')
    def validate_edge(self):
        """An entry must move the complaint somewhere."""
        if self.from_status == self.to_status:
            raise ValueError('from_status and to_status must differ')
        if self.from_status is None and self.to_status != ComplaintStatus.REGISTERED:
            raise ValueError('The first entry of a history must register the complaint')
        return self


class NotificationEvent(FrozenEntity):
    """Logical notify(userId, complaintId, kind) event."""

    user_id: str = Field(..., description="Recipient user ID")
    complaint_id: str = Field(..., description="Complaint the event is about")
    kind: NotificationKind = Field(..., description="Event kind")
    status: Optional[ComplaintStatus] = Field(None, description="Complaint status after the event")
    created_at: datetime = Field(default_factory=utcnow, description="Event timestamp")

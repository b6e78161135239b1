# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for the complaint API.
"""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from .enums import Priority, ComplaintStatus


class ComplaintPath(BaseModel):
    """Path parameters for single-complaint endpoints."""

    complaint_id: str = Field(..., min_length=1, description="Complaint ID")


class RegisterComplaintRequest(BaseModel):
    """Request model for registering a complaint."""

    model_config = ConfigDict(
        str_strip_whitespace=True
    )

    type: str = Field(..., min_length=1, max_length=100, description="Complaint type key")
    priority: Priority = Field(default=Priority.MEDIUM, description="Complaint priority")
    ward_id: Optional[str] = Field(None, description="Ward ID, defaults to the caller's ward")


class TransitionRequest(BaseModel):
    """Request model for a status transition."""

    to_status: ComplaintStatus = Field(..., description="Requested status")
    comment: Optional[str] = Field(None, max_length=500, description="Transition remark")
    assigned_to_id: Optional[str] = Field(None, description="Assignee for ASSIGNED transitions")
    expected_status: Optional[ComplaintStatus] = Field(
        None, description="Status the caller last observed, for conflict detection"
    )

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, v):
        """Treat blank remarks as absent."""
        if v is None:
            return v
        return v.strip() or None


class FeedbackRequest(BaseModel):
    """Request model for rating a resolved or closed complaint."""

    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, max_length=1000, description="Feedback remark")

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, v):
        if v is None:
            return v
        return v.strip() or None

# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the civictrack complaint engine.
"""

from enum import Enum


class Role(str, Enum):
    """Actor role enumeration."""
    CITIZEN = "CITIZEN"
    WARD_OFFICER = "WARD_OFFICER"
    MAINTENANCE_TEAM = "MAINTENANCE_TEAM"
    ADMINISTRATOR = "ADMINISTRATOR"
    GUEST = "GUEST"


class Priority(str, Enum):
    """Complaint priority levels."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ComplaintStatus(str, Enum):
    """Complaint lifecycle status enumeration."""
    REGISTERED = "REGISTERED"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    REOPENED = "REOPENED"


class SlaStatus(str, Enum):
    """SLA standing of a complaint at a point in time."""
    ON_TIME = "ON_TIME"
    WARNING = "WARNING"
    OVERDUE = "OVERDUE"
    COMPLETED = "COMPLETED"


class NotificationKind(str, Enum):
    """Logical notification kinds emitted on complaint events."""
    COMPLAINT_SUBMITTED = "COMPLAINT_SUBMITTED"
    COMPLAINT_ASSIGNED = "COMPLAINT_ASSIGNED"
    COMPLAINT_UPDATED = "COMPLAINT_UPDATED"
    COMPLAINT_RESOLVED = "COMPLAINT_RESOLVED"
    COMPLAINT_CLOSED = "COMPLAINT_CLOSED"
    COMPLAINT_REOPENED = "COMPLAINT_REOPENED"

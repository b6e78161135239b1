# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for civictrack.
"""

# Base models
from .base import BaseEntity, FrozenEntity, generate_object_id, utcnow, ensure_utc

# Enumerations
from .enums import (
    Role,
    Priority,
    ComplaintStatus,
    SlaStatus,
    NotificationKind
)

# Core entities
from .entities import (
    Actor,
    Complaint,
    ComplaintViewContext,
    StatusLogEntry,
    NotificationEvent
)

# Request models
from .requests import (
    ComplaintPath,
    RegisterComplaintRequest,
    TransitionRequest
)

__all__ = [
    # Base models
    "BaseEntity",
    "FrozenEntity",
    "generate_object_id",
    "utcnow",
    "ensure_utc",

    # Enumerations
    "Role",
    "Priority",
    "ComplaintStatus",
    "SlaStatus",
    "NotificationKind",

    # Core entities
    "Actor",
    "Complaint",
    "ComplaintViewContext",
    "StatusLogEntry",
    "NotificationEvent",

    # Request models
    "ComplaintPath",
    "RegisterComplaintRequest",
    "TransitionRequest"
]

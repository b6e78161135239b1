# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import datetime, timedelta, timezone

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from civictrack.models.entities import Actor, Complaint
from civictrack.models.enums import Role, Priority, ComplaintStatus
from civictrack.services.complaints import ComplaintService
from civictrack.services.notifications import RecordingDispatcher
from civictrack.services.store import InMemoryComplaintStore


T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time."""
    return T0


@pytest.fixture
def citizen():
    return Actor(id="citizen-1", role=Role.CITIZEN, ward_id="ward-1")


@pytest.fixture
def other_citizen():
    return Actor(id="citizen-2", role=Role.CITIZEN, ward_id="ward-1")


@pytest.fixture
def officer():
    return Actor(id="officer-1", role=Role.WARD_OFFICER, ward_id="ward-1")


@pytest.fixture
def foreign_officer():
    """Ward officer of a different ward."""
    return Actor(id="officer-2", role=Role.WARD_OFFICER, ward_id="ward-2")


@pytest.fixture
def crew():
    return Actor(id="crew-1", role=Role.MAINTENANCE_TEAM, ward_id="ward-1")


@pytest.fixture
def admin():
    return Actor(id="admin-1", role=Role.ADMINISTRATOR)


@pytest.fixture
def guest():
    return Actor(id="guest-1", role=Role.GUEST)


@pytest.fixture
def make_complaint():
    """Factory for complaints in any lifecycle state."""
    def _make(**overrides):
        data = {
            "type": "WATER_SUPPLY",
            "priority": Priority.HIGH,
            "status": ComplaintStatus.REGISTERED,
            "ward_id": "ward-1",
            "submitted_by_id": "citizen-1",
            "created_at": T0,
            "updated_at": T0,
            "deadline": T0 + timedelta(hours=24),
        }
        data.update(overrides)
        return Complaint(**data)
    return _make


@pytest.fixture
def store():
    return InMemoryComplaintStore()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def service(store, dispatcher):
    """Complaint service over the in-memory store with a fixed clock."""
    return ComplaintService(store, dispatcher=dispatcher, clock=lambda: T0)

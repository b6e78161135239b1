# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base model configuration and shared helpers.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BaseEntity(BaseModel):
    """Base for mutable domain entities."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Validate assignment
        validate_assignment=True
    )


class FrozenEntity(BaseModel):
    """Base for immutable value objects and log records."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True
    )

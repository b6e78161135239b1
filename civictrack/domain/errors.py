# SPDX-License-Identifier: Apache-2.0

"""
Typed errors returned by the complaint core.

Callers decide user-facing messaging; `status_code` is only a hint for
HTTP boundaries and `retryable` marks the one kind that is safe to retry.
"""

from typing import Optional


class TransitionError(Exception):
    """Base class for errors surfaced by the complaint core."""

    error_type = "transition-error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, complaint_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.complaint_id = complaint_id


class PermissionDenied(TransitionError):
    """Actor lacks the capability required for the action."""

    error_type = "insufficient-permissions"
    status_code = 403


class InvalidTransition(TransitionError):
    """Requested edge is not in the transition table, or is a same-state no-op."""

    error_type = "invalid-transition"
    status_code = 422


class ConflictError(TransitionError):
    """Optimistic concurrency check failed; retry with fresh state."""

    error_type = "resource-conflict"
    status_code = 409
    retryable = True


class NotFound(TransitionError):
    """Complaint ID could not be resolved."""

    error_type = "resource-not-found"
    status_code = 404

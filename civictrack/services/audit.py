# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit trail service over the complaint store, with OpenTelemetry correlation.
"""

import logging
from typing import List
from opentelemetry import trace

from ..domain.audit import order_entries, validate_history
from ..domain.errors import ConflictError, InvalidTransition, NotFound
from ..domain.workflow import TRANSITIONS, apply_entry
from ..models.entities import StatusLogEntry
from .store import ComplaintStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AuditTrail:
    """Append-only status history of complaints."""

    def __init__(self, store: ComplaintStore):
        self.store = store

    def append(self, entry: StatusLogEntry) -> StatusLogEntry:
        """
        Record a status change of an existing complaint.

        The entry must be an edge of the transition table that starts at the
        complaint's current status and is not older than its last change.
        The complaint's status moves with the entry in one conditional write,
        so the last entry always matches the stored status.

        Args:
            entry: Entry whose from_status must equal the recorded status

        Returns:
            StatusLogEntry: The stored entry

        Raises:
            ConflictError: If the entry does not continue the recorded history
            InvalidTransition: If the edge is not in the table or predates the last change
            NotFound: If the complaint does not exist
        """
        with tracer.start_as_current_span("audit.append") as span:
            span.set_attributes({
                "audit.complaint_id": entry.complaint_id,
                "audit.actor_id": entry.actor_id,
                "audit.to_status": entry.to_status.value
            })

            try:
                complaint = self.store.get(entry.complaint_id)
                if complaint is None:
                    raise NotFound(f"Complaint {entry.complaint_id} not found", entry.complaint_id)
                if entry.from_status != complaint.status:
                    raise ConflictError(
                        f"History of {entry.complaint_id} is at {complaint.status.value}",
                        entry.complaint_id
                    )
                if (entry.from_status, entry.to_status) not in TRANSITIONS:
                    raise InvalidTransition(
                        f"Invalid status transition from {entry.from_status.value} to {entry.to_status.value}",
                        entry.complaint_id
                    )
                if entry.timestamp < complaint.updated_at:
                    raise InvalidTransition(
                        f"Entry predates the last change of {entry.complaint_id}",
                        entry.complaint_id
                    )
                self.store.compare_and_set(apply_entry(complaint, entry), complaint.status, entry)
            except (ConflictError, InvalidTransition, NotFound) as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, e.error_type))
                logger.warning(
                    "Audit entry rejected",
                    extra={
                        "complaint_id": entry.complaint_id,
                        "from_status": entry.from_status.value if entry.from_status else None,
                        "to_status": entry.to_status.value,
                        "error_type": e.error_type
                    }
                )
                raise

            logger.info(
                "Audit trail entry created",
                extra={
                    "audit_id": entry.id,
                    "complaint_id": entry.complaint_id,
                    "actor_id": entry.actor_id,
                    "to_status": entry.to_status.value,
                    "audit_category": "status_change"
                }
            )
            return entry

    def history(self, complaint_id: str) -> List[StatusLogEntry]:
        """Entries of a complaint ordered by timestamp, oldest first."""
        with tracer.start_as_current_span("audit.history") as span:
            span.set_attribute("audit.complaint_id", complaint_id)
            entries = order_entries(self.store.list_entries(complaint_id))
            span.set_attribute("audit.entries", len(entries))
            return entries

    def verify(self, complaint_id: str) -> List[str]:
        """
        Check the stored history against the complaint's current status.

        Returns:
            List of violations; empty when the history is consistent
        """
        complaint = self.store.get(complaint_id)
        if complaint is None:
            raise NotFound(f"Complaint {complaint_id} not found", complaint_id)
        violations = validate_history(self.history(complaint_id), complaint.status)
        if violations:
            logger.error(
                "Audit history inconsistent",
                extra={"complaint_id": complaint_id, "violations": violations}
            )
        return violations

# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Complaint persistence contract and an in-process implementation.

A store keeps each complaint together with its status history. Status
changes are compare-and-swap writes: the complaint's stored status must
still equal the status the writer observed, and the new history entry is
written in the same step as the status.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..domain.errors import ConflictError, NotFound
from ..models.entities import Complaint, StatusLogEntry
from ..models.enums import ComplaintStatus

logger = logging.getLogger(__name__)


def _feedback(complaint: Complaint) -> Dict[str, Any]:
    return {
        "feedback_rating": complaint.feedback_rating,
        "feedback_comment": complaint.feedback_comment,
        "feedback_submitted_at": complaint.feedback_submitted_at
    }


class ComplaintStore(ABC):
    """Persistence operations the complaint core depends on."""

    @abstractmethod
    def insert(self, complaint: Complaint, entry: StatusLogEntry) -> Complaint:
        """Store a new complaint with its registration entry."""

    @abstractmethod
    def get(self, complaint_id: str) -> Optional[Complaint]:
        """Fetch a complaint by ID, or None."""

    @abstractmethod
    def list_all(self) -> List[Complaint]:
        """All complaints, oldest first."""

    @abstractmethod
    def compare_and_set(self, complaint: Complaint, expected_status: ComplaintStatus,
                        entry: StatusLogEntry) -> Complaint:
        """
        Replace a complaint and append its entry if the stored status is unchanged.

        Raises:
            NotFound: If the complaint does not exist
            ConflictError: If the stored status differs from expected_status
        """

    @abstractmethod
    def save_feedback(self, complaint: Complaint) -> Complaint:
        """
        Write the feedback fields of `complaint` while the stored one is RESOLVED or CLOSED.

        Raises:
            NotFound: If the complaint does not exist
            ConflictError: If the stored complaint no longer accepts feedback
        """

    @abstractmethod
    def list_entries(self, complaint_id: str) -> List[StatusLogEntry]:
        """History of a complaint in recorded order."""


class InMemoryComplaintStore(ComplaintStore):
    """Lock-guarded dictionary store for tests and single-process use."""

    def __init__(self):
        self._lock = threading.Lock()
        self._complaints: Dict[str, Complaint] = {}
        self._entries: Dict[str, List[StatusLogEntry]] = {}

    def insert(self, complaint: Complaint, entry: StatusLogEntry) -> Complaint:
        if entry.complaint_id != complaint.id or entry.from_status is not None:
            raise ValueError("Registration entry must start the complaint's history")
        with self._lock:
            if complaint.id in self._complaints:
                raise ValueError(f"Complaint {complaint.id} already exists")
            self._complaints[complaint.id] = complaint.model_copy()
            self._entries[complaint.id] = [entry]
        logger.debug(f"Inserted complaint {complaint.id}")
        return complaint

    def get(self, complaint_id: str) -> Optional[Complaint]:
        with self._lock:
            stored = self._complaints.get(complaint_id)
            return stored.model_copy() if stored else None

    def list_all(self) -> List[Complaint]:
        with self._lock:
            complaints = [c.model_copy() for c in self._complaints.values()]
        return sorted(complaints, key=lambda c: c.created_at)

    def compare_and_set(self, complaint: Complaint, expected_status: ComplaintStatus,
                        entry: StatusLogEntry) -> Complaint:
        with self._lock:
            stored = self._complaints.get(complaint.id)
            if stored is None:
                raise NotFound(f"Complaint {complaint.id} not found", complaint.id)

            history = self._entries[complaint.id]
            if stored.status != expected_status or history[-1].to_status != expected_status:
                raise ConflictError(
                    f"Complaint {complaint.id} is {stored.status.value}, expected {ComplaintStatus(expected_status).value}",
                    complaint.id
                )
            if entry.from_status != expected_status or entry.to_status != complaint.status:
                raise ValueError("Entry does not describe the status change being written")

            # Status writes never touch feedback
            written = complaint.model_copy(update=_feedback(stored))
            self._complaints[complaint.id] = written
            history.append(entry)
        return written.model_copy()

    def save_feedback(self, complaint: Complaint) -> Complaint:
        with self._lock:
            stored = self._complaints.get(complaint.id)
            if stored is None:
                raise NotFound(f"Complaint {complaint.id} not found", complaint.id)
            if not stored.is_completed():
                raise ConflictError(
                    f"Complaint {complaint.id} is {stored.status.value} and no longer accepts feedback",
                    complaint.id
                )
            written = stored.model_copy(update=_feedback(complaint))
            self._complaints[complaint.id] = written
        return written.model_copy()

    def list_entries(self, complaint_id: str) -> List[StatusLogEntry]:
        with self._lock:
            return list(self._entries.get(complaint_id, []))

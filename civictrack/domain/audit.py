# SPDX-License-Identifier: Apache-2.0

"""
Pure helpers over complaint status histories.
"""

from typing import Iterable, List, Optional, Sequence, Union

from ..models.entities import StatusLogEntry
from ..models.enums import ComplaintStatus
from .workflow import INITIAL_STATUS, TRANSITIONS


def order_entries(entries: Iterable[StatusLogEntry]) -> List[StatusLogEntry]:
    """Sort entries by timestamp ascending; ties keep their recorded order."""
    return sorted(entries, key=lambda entry: entry.timestamp)


def recorded_status(entries: Sequence[StatusLogEntry]) -> Optional[ComplaintStatus]:
    """Status the history currently records, or None for an empty history."""
    if not entries:
        return None
    return entries[-1].to_status


def replay_status(entries: Iterable[StatusLogEntry]) -> ComplaintStatus:
    """
    Fold a history into the status it reproduces.

    The fold starts from the implicit REGISTERED state; the registration
    entry itself (from_status None) leaves it unchanged.
    """
    status = INITIAL_STATUS
    for entry in order_entries(entries):
        status = entry.to_status
    return status


def validate_history(
    entries: Sequence[StatusLogEntry],
    current_status: Optional[Union[ComplaintStatus, str]] = None
) -> List[str]:
    """
    Check that a history is a gap-free chain of table transitions.

    Args:
        entries: History ordered by timestamp
        current_status: Complaint status the history should end in (optional)

    Returns:
        List of human-readable violations; empty when the history is consistent
    """
    errors = []
    previous: Optional[ComplaintStatus] = None

    for index, entry in enumerate(entries):
        if index == 0:
            if entry.from_status is not None:
                errors.append(f"Entry 0 must register the complaint, found from_status {entry.from_status.value}")
        else:
            if entry.from_status != previous:
                errors.append(
                    f"Entry {index} starts at {entry.from_status.value if entry.from_status else None} "
                    f"but previous entry ended at {previous.value}"
                )
            elif (entry.from_status, entry.to_status) not in TRANSITIONS:
                errors.append(
                    f"Entry {index} records {entry.from_status.value} -> {entry.to_status.value}, "
                    "which is not a valid transition"
                )
        previous = entry.to_status

    if current_status is not None:
        expected = ComplaintStatus(current_status)
        actual = previous if previous is not None else INITIAL_STATUS
        if actual != expected:
            errors.append(f"History ends at {actual.value} but complaint is {expected.value}")

    return errors

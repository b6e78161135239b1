# SPDX-License-Identifier: Apache-2.0

"""
SLA deadline computation and standing classification.

Deadlines are derived once at registration from a per-type base window
scaled by priority. Standing is classified lazily at read time from the
complaint and an injected `now`, so every function here is pure.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Union

from ..models.base import ensure_utc
from ..models.entities import Complaint
from ..models.enums import ComplaintStatus, Priority, SlaStatus


# Base SLA window per complaint type, in hours
DEFAULT_TYPE_SLA_HOURS: Mapping[str, float] = MappingProxyType({
    "WATER_SUPPLY": 24,
    "ELECTRICITY": 12,
    "ROAD_REPAIR": 72,
    "WASTE_MANAGEMENT": 48,
    "STREET_LIGHTING": 48,
    "DRAINAGE": 24,
})

PRIORITY_MULTIPLIERS: Mapping[Priority, float] = MappingProxyType({
    Priority.CRITICAL: 0.5,
    Priority.HIGH: 1.0,
    Priority.MEDIUM: 1.0,
    Priority.LOW: 2.0,
})

DEFAULT_SLA_HOURS = 72
DEFAULT_WARNING_FRACTION = 0.2

COMPLETED_STATUSES = frozenset({ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED})


def normalize_type_key(complaint_type: str) -> str:
    """Upper snake case key used by the SLA table, e.g. "road repair" -> ROAD_REPAIR."""
    return re.sub(r"[\s\-]+", "_", complaint_type.strip()).upper()


def classify_standing(
    status: Union[ComplaintStatus, str],
    deadline: datetime,
    now: datetime,
    warning_window: timedelta
) -> SlaStatus:
    """
    Classify SLA standing from status, deadline and the current time.

    Args:
        status: Current complaint status
        deadline: SLA deadline
        now: Reference time
        warning_window: Remaining time below which the complaint is at risk

    Returns:
        COMPLETED for resolved or closed work regardless of the deadline,
        otherwise OVERDUE, WARNING or ON_TIME
    """
    if ComplaintStatus(status) in COMPLETED_STATUSES:
        return SlaStatus.COMPLETED

    deadline = ensure_utc(deadline)
    now = ensure_utc(now)

    if now > deadline:
        return SlaStatus.OVERDUE
    if deadline - now < warning_window:
        return SlaStatus.WARNING
    return SlaStatus.ON_TIME


@dataclass(frozen=True)
class SLAPolicy:
    """SLA windows and warning threshold used to compute and classify deadlines."""
    type_hours: Mapping[str, float] = field(default_factory=lambda: DEFAULT_TYPE_SLA_HOURS)
    priority_multipliers: Mapping[Priority, float] = field(default_factory=lambda: PRIORITY_MULTIPLIERS)
    default_hours: float = DEFAULT_SLA_HOURS
    warning_fraction: float = DEFAULT_WARNING_FRACTION

    def __post_init__(self):
        if not 0 < self.warning_fraction < 1:
            raise ValueError("warning_fraction must be between 0 and 1")
        if self.default_hours <= 0:
            raise ValueError("default_hours must be positive")
        for key, hours in self.type_hours.items():
            if hours <= 0:
                raise ValueError(f"SLA hours for {key} must be positive")

    def window_hours(self, complaint_type: str, priority: Union[Priority, str]) -> float:
        """SLA window in hours for a type and priority."""
        base = self.type_hours.get(normalize_type_key(complaint_type), self.default_hours)
        multiplier = self.priority_multipliers.get(Priority(priority), 1.0)
        return base * multiplier

    def compute_deadline(
        self,
        complaint_type: str,
        priority: Union[Priority, str],
        created_at: datetime
    ) -> datetime:
        """Deadline for a complaint registered at `created_at`."""
        hours = self.window_hours(complaint_type, priority)
        return ensure_utc(created_at) + timedelta(hours=hours)

    def warning_window(self, complaint: Complaint) -> timedelta:
        """Warning window as a fraction of the complaint's total SLA window."""
        total = complaint.deadline - complaint.created_at
        return total * self.warning_fraction

    def classify(self, complaint: Complaint, now: datetime) -> SlaStatus:
        return classify_standing(
            complaint.status,
            complaint.deadline,
            now,
            self.warning_window(complaint)
        )


DEFAULT_POLICY = SLAPolicy()


def compute_deadline(complaint_type: str, priority: Union[Priority, str], created_at: datetime) -> datetime:
    """Compute a deadline with the default policy."""
    return DEFAULT_POLICY.compute_deadline(complaint_type, priority, created_at)


def classify(complaint: Complaint, now: datetime) -> SlaStatus:
    """Classify standing with the default policy."""
    return DEFAULT_POLICY.classify(complaint, now)


def sla_statistics(
    complaints: Iterable[Complaint],
    now: datetime,
    policy: SLAPolicy = DEFAULT_POLICY
) -> Dict[str, int]:
    """
    Count complaints per SLA standing.

    Args:
        complaints: Complaints to classify
        now: Reference time
        policy: SLA policy to classify with

    Returns:
        Mapping of every SlaStatus value to its count, plus "total"
    """
    counts = {status.value: 0 for status in SlaStatus}
    total = 0
    for complaint in complaints:
        counts[policy.classify(complaint, now).value] += 1
        total += 1
    counts["total"] = total
    return counts


def sla_compliance(complaints: Iterable[Complaint]) -> Dict[str, float]:
    """
    Share of completed complaints whose work finished by the deadline.

    Completed complaints without a completion timestamp are skipped.

    Returns:
        Dictionary with compliance percentage, total and compliant counts
    """
    total = 0
    compliant = 0
    for complaint in complaints:
        if not complaint.is_completed():
            continue
        completed_at = complaint.completed_at()
        if completed_at is None:
            continue
        total += 1
        if ensure_utc(completed_at) <= complaint.deadline:
            compliant += 1

    compliance = (compliant / total) * 100 if total else 0.0
    return {
        "compliance": compliance,
        "total_completed": total,
        "compliant_completed": compliant
    }


def average_resolution_days(complaints: Iterable[Complaint]) -> float:
    """
    Average days from registration to completion, rounding each complaint up.

    Returns:
        Average in days, or 0.0 when no completed complaint has a completion time
    """
    durations = []
    for complaint in complaints:
        if not complaint.is_completed():
            continue
        completed_at: Optional[datetime] = complaint.completed_at()
        if completed_at is None:
            continue
        elapsed = ensure_utc(completed_at) - complaint.created_at
        durations.append(math.ceil(elapsed.total_seconds() / 86400))

    if not durations:
        return 0.0
    return sum(durations) / len(durations)

# SPDX-License-Identifier: Apache-2.0

"""
Complaint response transformation.

Builds HAL responses whose affordance links depend on the transitions the
requesting actor can currently invoke.
"""

from datetime import datetime
from typing import Any, Dict, List

from ..models.entities import Actor, Complaint, StatusLogEntry
from .authorization import VisibilityFilter, default_filter
from .sla import SLAPolicy, DEFAULT_POLICY
from .workflow import allowed_transitions


def _iso(value):
    return value.isoformat() if value else None


def build_complaint_hal_response(
    complaint: Complaint,
    actor: Actor,
    base_url: str,
    now: datetime,
    policy: SLAPolicy = DEFAULT_POLICY,
    visibility: VisibilityFilter = default_filter
) -> Dict[str, Any]:
    """
    Build HAL response for a complaint with affordance links.

    Args:
        complaint: Complaint entity
        actor: Actor for permission-based links
        base_url: Base URL for link generation
        now: Reference time for SLA classification
        policy: SLA policy
        visibility: Visibility filter the links are derived from

    Returns:
        HAL-formatted response dictionary
    """
    href = f"{base_url}/api/complaints/{complaint.id}"
    response = {
        "id": complaint.id,
        "type": complaint.type,
        "priority": complaint.priority.value,
        "status": complaint.status.value,
        "ward_id": complaint.ward_id,
        "submitted_by_id": complaint.submitted_by_id,
        "assigned_to_id": complaint.assigned_to_id,
        "created_at": _iso(complaint.created_at),
        "updated_at": _iso(complaint.updated_at),
        "deadline": _iso(complaint.deadline),
        "resolved_at": _iso(complaint.resolved_at),
        "closed_at": _iso(complaint.closed_at),
        "sla_status": policy.classify(complaint, now).value,
        "can_modify": visibility.can_modify(actor, complaint),
        "feedback": {
            "rating": complaint.feedback_rating,
            "comment": complaint.feedback_comment,
            "submitted_at": _iso(complaint.feedback_submitted_at)
        } if complaint.feedback_rating is not None else None,
        "_links": {
            "self": {"href": href},
            "history": {"href": f"{href}/history"},
            "sla": {"href": f"{href}/sla"},
            "collection": {"href": f"{base_url}/api/complaints"}
        }
    }

    links = response["_links"]
    for target in allowed_transitions(actor, complaint, visibility):
        links[f"transition:{target.value.lower()}"] = {
            "href": f"{href}/transitions",
            "method": "POST",
            "type": "application/json"
        }

    if complaint.is_completed() and complaint.submitted_by_id == actor.id:
        links["feedback"] = {
            "href": f"{href}/feedback",
            "method": "POST",
            "type": "application/json"
        }

    return response


def build_complaint_collection_hal_response(
    complaints: List[Complaint],
    actor: Actor,
    base_url: str,
    now: datetime,
    policy: SLAPolicy = DEFAULT_POLICY,
    visibility: VisibilityFilter = default_filter
) -> Dict[str, Any]:
    """Build HAL collection response for complaints."""
    return {
        "total": len(complaints),
        "_embedded": {
            "complaints": [
                build_complaint_hal_response(complaint, actor, base_url, now, policy, visibility)
                for complaint in complaints
            ]
        },
        "_links": {
            "self": {"href": f"{base_url}/api/complaints"}
        }
    }


def build_history_response(complaint_id: str, entries: List[StatusLogEntry], base_url: str) -> Dict[str, Any]:
    """Build HAL response for a complaint's status history."""
    return {
        "complaint_id": complaint_id,
        "total": len(entries),
        "_embedded": {
            "entries": [
                {
                    "id": entry.id,
                    "actor_id": entry.actor_id,
                    "from_status": entry.from_status.value if entry.from_status else None,
                    "to_status": entry.to_status.value,
                    "comment": entry.comment,
                    "timestamp": _iso(entry.timestamp)
                }
                for entry in entries
            ]
        },
        "_links": {
            "self": {"href": f"{base_url}/api/complaints/{complaint_id}/history"},
            "complaint": {"href": f"{base_url}/api/complaints/{complaint_id}"}
        }
    }

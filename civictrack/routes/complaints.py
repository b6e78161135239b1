# SPDX-License-Identifier: Apache-2.0

"""
Complaint endpoints.

Registration, listing, detail, status transitions, feedback, history and SLA
standing. Handlers translate requests into complaint service calls and
render HAL responses; typed errors propagate to the registered handlers.
"""

from flask import current_app, g, jsonify
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..domain.complaints import (
    build_complaint_hal_response,
    build_complaint_collection_hal_response,
    build_history_response
)
from ..models.base import utcnow
from ..models.requests import ComplaintPath, FeedbackRequest, RegisterComplaintRequest, TransitionRequest

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
complaints_tag = Tag(name="Complaints", description="Complaint lifecycle and SLA tracking")
complaints_bp = APIBlueprint(
    'complaints',
    __name__,
    url_prefix='/api/complaints',
    abp_tags=[complaints_tag]
)


@complaints_bp.before_request
def authenticate_request():
    return current_app.authenticator.authenticate()


def _render(complaint, now=None):
    service = current_app.complaint_service
    return build_complaint_hal_response(
        complaint,
        g.actor,
        current_app.config['BASE_URL'],
        now or utcnow(),
        service.policy,
        service.visibility
    )


@complaints_bp.post('/')
def register_complaint(body: RegisterComplaintRequest):
    """
    Register a complaint.

    The SLA deadline is fixed at registration from the complaint type and
    priority; the ward defaults to the caller's ward.
    """
    complaint = current_app.complaint_service.register(
        g.actor,
        body.type,
        priority=body.priority,
        ward_id=body.ward_id
    )
    return jsonify(_render(complaint, complaint.created_at)), 201


@complaints_bp.get('/')
def list_complaints():
    """List complaints visible to the caller."""
    service = current_app.complaint_service
    complaints = service.list_visible(g.actor)
    return jsonify(build_complaint_collection_hal_response(
        complaints,
        g.actor,
        current_app.config['BASE_URL'],
        utcnow(),
        service.policy,
        service.visibility
    ))


@complaints_bp.get('/stats')
def complaint_statistics():
    """SLA counts, compliance and average resolution time over visible complaints."""
    summary = current_app.complaint_service.sla_summary(g.actor)
    summary["_links"] = {
        "self": {"href": f"{current_app.config['BASE_URL']}/api/complaints/stats"},
        "collection": {"href": f"{current_app.config['BASE_URL']}/api/complaints"}
    }
    return jsonify(summary)


@complaints_bp.get('/<complaint_id>')
def get_complaint(path: ComplaintPath):
    """Get complaint details with the transitions the caller may invoke."""
    complaint = current_app.complaint_service.get(g.actor, path.complaint_id)
    return jsonify(_render(complaint))


@complaints_bp.post('/<complaint_id>/transitions')
def transition_complaint(path: ComplaintPath, body: TransitionRequest):
    """
    Move a complaint to a new status.

    Send `expected_status` with the status last read to have a concurrent
    change reported as a conflict instead of being applied on top.
    """
    with tracer.start_as_current_span("complaint.transition.request") as span:
        span.set_attributes({
            "complaint.id": path.complaint_id,
            "complaint.to_status": body.to_status.value,
            "user.id": g.actor.id
        })

        result = current_app.complaint_service.transition(
            g.actor,
            path.complaint_id,
            body.to_status,
            comment=body.comment,
            assigned_to_id=body.assigned_to_id,
            expected_status=body.expected_status
        )
        result.raise_for_error()

        response = _render(result.complaint)
        response["transition"] = {
            "id": result.entry.id,
            "from_status": result.entry.from_status.value,
            "to_status": result.entry.to_status.value,
            "comment": result.entry.comment,
            "timestamp": result.entry.timestamp.isoformat()
        }
        return jsonify(response)


@complaints_bp.post('/<complaint_id>/feedback')
def submit_feedback(path: ComplaintPath, body: FeedbackRequest):
    """
    Rate a resolved or closed complaint.

    Only the submitter may rate; a new rating replaces the previous one.
    """
    complaint = current_app.complaint_service.submit_feedback(
        g.actor,
        path.complaint_id,
        body.rating,
        comment=body.comment
    )
    return jsonify(_render(complaint))


@complaints_bp.get('/<complaint_id>/history')
def complaint_history(path: ComplaintPath):
    """Status history, oldest entry first."""
    entries = current_app.complaint_service.history(g.actor, path.complaint_id)
    return jsonify(build_history_response(path.complaint_id, entries, current_app.config['BASE_URL']))


@complaints_bp.get('/<complaint_id>/sla')
def complaint_sla(path: ComplaintPath):
    """SLA standing of a complaint."""
    service = current_app.complaint_service
    now = utcnow()
    complaint = service.get(g.actor, path.complaint_id)
    href = f"{current_app.config['BASE_URL']}/api/complaints/{complaint.id}"
    return jsonify({
        "complaint_id": complaint.id,
        "sla_status": service.classify(g.actor, complaint.id, now).value,
        "deadline": complaint.deadline.isoformat(),
        "warning_window_hours": service.policy.warning_window(complaint).total_seconds() / 3600,
        "_links": {
            "self": {"href": f"{href}/sla"},
            "complaint": {"href": href}
        }
    })

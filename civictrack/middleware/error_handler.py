# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling with RFC 7807 problem responses.

Maps the typed errors of the complaint core to HTTP status codes. Permission
failures always carry a generic detail so the response does not reveal which
check rejected the request.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from opentelemetry import trace
import logging

from ..domain.errors import TransitionError, PermissionDenied

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://civictrack.example.org/problems"

_TITLES = {
    "authentication-required": "Authentication Required",
    "invalid-token": "Invalid Token",
    "insufficient-permissions": "Insufficient Permissions",
    "invalid-transition": "Invalid Transition",
    "resource-conflict": "Resource Conflict",
    "resource-not-found": "Resource Not Found",
    "bad-request": "Bad Request",
    "internal-server-error": "Internal Server Error",
}


def problem_response(error_type: str, status: int, detail: str, title: str = None):
    """Build a problem+json response tuple."""
    body = {
        "type": f"{PROBLEM_BASE_URL}/{error_type}",
        "title": title or _TITLES.get(error_type, "Error"),
        "status": status,
        "detail": detail,
        "instance": request.path
    }
    response = jsonify(body)
    response.status_code = status
    response.mimetype = "application/problem+json"
    return response


def register_error_handlers(app: Flask):
    """Register complaint-core and generic error handlers with the application."""

    @app.errorhandler(TransitionError)
    def handle_transition_error(error: TransitionError):
        with tracer.start_as_current_span("error_handler.transition_error") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Request rejected: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "complaint_id": error.complaint_id,
                    "path": request.path,
                    "method": request.method
                }
            )

            if isinstance(error, PermissionDenied):
                detail = "You are not permitted to perform this action"
            else:
                detail = error.message
            return problem_response(error.error_type, error.status_code, detail)

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        logger.warning(
            "Bad request",
            extra={"detail": str(error), "path": request.path, "method": request.method}
        )
        return problem_response("bad-request", 400, str(error))

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        error_type = error.name.lower().replace(" ", "-")
        return problem_response(error_type, error.code, error.description or error.name, title=error.name)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            # Don't expose internal error details in production
            detail = "An unexpected error occurred"
            if app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"
            return problem_response("internal-server-error", 500, detail)

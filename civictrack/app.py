# SPDX-License-Identifier: Apache-2.0

"""
civictrack API - Flask Application Factory

Initializes the Flask application with OpenAPI 3.0 support, wires the
complaint service to its store and notification dispatcher, and registers
authentication and error handling.
"""

import logging
from typing import Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from .config import Settings, load_settings
from .middleware.auth import JWTAuthenticator
from .middleware.error_handler import register_error_handlers
from .observability.config import setup_observability, SERVICE_NAME
from .services.audit import AuditTrail
from .services.complaints import ComplaintService
from .services.notifications import NotificationDispatcher
from .services.store import ComplaintStore

logger = logging.getLogger(__name__)

# OpenAPI info
info = Info(
    title="civictrack API",
    version="1.0.0",
    description="Civic complaint lifecycle, permission and SLA engine"
)

# API tags for organization
health_tag = Tag(name="Health", description="System health and status")
tags = [
    Tag(name="Complaints", description="Complaint lifecycle and SLA tracking"),
    health_tag
]


def _default_store(settings: Settings) -> ComplaintStore:
    from .services.mongodb import MongoComplaintStore
    return MongoComplaintStore(settings.mongodb_uri, settings.mongodb_database)


def _default_dispatcher(settings: Settings) -> NotificationDispatcher:
    from .services.amqp import create_amqp_dispatcher
    return create_amqp_dispatcher(settings)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ComplaintStore] = None,
    dispatcher: Optional[NotificationDispatcher] = None
) -> OpenAPI:
    """
    Create the Flask application.

    Args:
        settings: Settings to use; loaded from the environment when omitted
        store: Complaint store; MongoDB when omitted
        dispatcher: Notification dispatcher; AMQP when omitted

    Returns:
        Configured OpenAPI application
    """
    settings = settings or load_settings()
    setup_observability(settings)

    app = OpenAPI(__name__, info=info, tags=tags)

    # Environment configuration
    app.config['ENVIRONMENT'] = settings.environment
    app.config['DEBUG'] = settings.environment == 'development'
    app.config['BASE_URL'] = settings.base_url.rstrip('/')

    store = store if store is not None else _default_store(settings)
    dispatcher = dispatcher if dispatcher is not None else _default_dispatcher(settings)

    # Make services available to routes
    app.settings = settings
    app.complaint_store = store
    app.complaint_service = ComplaintService(
        store,
        audit_trail=AuditTrail(store),
        dispatcher=dispatcher,
        policy=settings.sla_policy(),
        max_attempts=settings.transition_max_attempts
    )
    app.authenticator = JWTAuthenticator(settings.jwt_secret, settings.jwt_algorithm)

    register_error_handlers(app)

    # Register routes
    from .routes.complaints import complaints_bp
    app.register_api(complaints_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Liveness check with the store's health when it reports one"""
        health_data = {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": settings.service_version,
            "environment": settings.environment
        }
        check = getattr(store, 'health_check', None)
        if check is not None:
            store_health = check()
            health_data["store"] = store_health
            if store_health.get("status") != "healthy":
                health_data["status"] = "unhealthy"
                return jsonify(health_data), 503
        return jsonify(health_data)

    logger.info(
        "Application created",
        extra={"environment": settings.environment, "store": type(store).__name__}
    )
    return app

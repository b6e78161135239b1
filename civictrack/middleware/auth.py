# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT validation and actor extraction.

Tokens are HS256 bearer tokens carrying `sub`, `role` and an optional
`ward_id` claim. A valid token becomes the request's `Actor` in `g.actor`.
"""

from flask import request, g
from typing import Optional, Dict, Any
from opentelemetry import trace
from pydantic import ValidationError
import logging
import jwt

from ..models.entities import Actor
from .error_handler import problem_response

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Raised when a token cannot be decoded or lacks the actor claims."""
    pass


class JWTAuthenticator:
    """Validates bearer tokens and builds the requesting actor."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        """
        Initialize the authenticator.

        Args:
            secret: Shared HMAC secret
            algorithm: JWT signing algorithm
        """
        self.secret = secret
        self.algorithm = algorithm

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        # Handle "Bearer <token>" format
        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        return None

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            try:
                payload = jwt.decode(
                    token,
                    self.secret,
                    algorithms=[self.algorithm],
                    options={"require": ["sub", "role"]}
                )
                span.set_attributes({
                    "auth.validation_result": "success",
                    "user.id": payload.get("sub")
                })
                return payload

            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")

            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

    def build_actor(self, payload: Dict[str, Any]) -> Actor:
        """
        Build the actor from a validated token payload.

        Raises:
            TokenValidationError: If the role or subject claim is malformed
        """
        try:
            return Actor(
                id=str(payload["sub"]),
                role=payload["role"],
                ward_id=payload.get("ward_id")
            )
        except ValidationError as e:
            raise TokenValidationError(f"Invalid actor claims: {e.errors()[0]['msg']}")

    def authenticate(self):
        """
        Authenticate the current request.

        Sets `g.actor` on success and returns None; returns a 401 problem
        response otherwise, which Flask sends instead of running the view.
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                return problem_response("authentication-required", 401, "Missing authorization token")

            try:
                actor = self.build_actor(self.validate_token(token))
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                return problem_response("invalid-token", 401, str(e))

            g.actor = actor
            span.set_attributes({
                "auth.result": "success",
                "user.id": actor.id,
                "user.role": actor.role.value
            })
            logger.debug(
                "Authentication successful",
                extra={"user_id": actor.id, "role": actor.role.value, "ward_id": actor.ward_id}
            )
            return None

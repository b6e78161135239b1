# SPDX-License-Identifier: Apache-2.0

"""
AMQP notification dispatcher.

Publishes complaint notification events to a topic exchange with
connection-per-publish handling and exponential backoff retries.
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Any, Optional, Generator
from urllib.parse import urlparse

import pika
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from opentelemetry.propagate import inject

from ..config import Settings
from ..models.entities import NotificationEvent
from .notifications import NotificationDispatcher


logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class AMQPConfig:
    """AMQP configuration settings."""
    url: str
    exchange: str = "civictrack.notifications"
    connection_timeout: int = 5
    heartbeat: int = 600
    blocked_connection_timeout: int = 300
    # Publishing runs inside the request after commit; keep the retry budget small
    retry_delay: float = 0.2
    max_retries: int = 1


@dataclass
class PublishResult:
    """Result of message publishing operation."""
    success: bool
    correlation_id: str
    exchange: str
    routing_key: str
    error: Optional[str] = None
    retry_count: int = 0


class AMQPConnectionError(Exception):
    """Raised when AMQP connection fails."""
    pass


class AMQPNotificationDispatcher(NotificationDispatcher):
    """
    Dispatcher publishing notification events to a topic exchange.

    Each event becomes a persistent JSON message routed by
    `complaint.<kind>`, carrying the current trace context in its headers.
    """

    def __init__(self, config: AMQPConfig):
        self.config = config
        self._connection_params = self._parse_connection_url(config.url)
        self._exchange_declared = False

    def _parse_connection_url(self, url: str) -> pika.ConnectionParameters:
        """Parse AMQP URL and create connection parameters."""
        parsed = urlparse(url)

        return pika.ConnectionParameters(
            host=parsed.hostname or 'localhost',
            port=parsed.port or 5672,
            virtual_host=parsed.path.lstrip('/') or '/',
            credentials=pika.PlainCredentials(
                username=parsed.username or 'guest',
                password=parsed.password or 'guest'
            ),
            # Retries are handled by _publish_with_retry
            connection_attempts=1,
            socket_timeout=self.config.connection_timeout,
            heartbeat=self.config.heartbeat,
            blocked_connection_timeout=self.config.blocked_connection_timeout
        )

    @contextmanager
    def _get_connection(self) -> Generator[Any, None, None]:
        """Open a connection and channel for one operation and always close them."""
        connection = None
        channel = None

        try:
            with tracer.start_as_current_span("amqp.connection.create") as span:
                connection = pika.BlockingConnection(self._connection_params)
                channel = connection.channel()

                span.set_attributes({
                    "amqp.host": self._connection_params.host,
                    "amqp.port": self._connection_params.port,
                    "amqp.virtual_host": self._connection_params.virtual_host
                })

            yield channel

        except pika.exceptions.AMQPConnectionError as e:
            logger.error(
                "AMQP connection failed",
                extra={
                    "extra_fields": {
                        "error": str(e),
                        "host": self._connection_params.host,
                        "port": self._connection_params.port
                    }
                }
            )
            raise AMQPConnectionError(f"Failed to connect to AMQP broker: {e}")

        finally:
            if channel is not None and not channel.is_closed:
                try:
                    channel.close()
                except Exception as e:
                    logger.warning(f"Error closing AMQP channel: {e}")

            if connection is not None and not connection.is_closed:
                try:
                    connection.close()
                except Exception as e:
                    logger.warning(f"Error closing AMQP connection: {e}")

    def routing_key_for(self, event: NotificationEvent) -> str:
        """Routing key of an event, e.g. complaint.complaint_resolved."""
        return f"complaint.{event.kind.value.lower()}"

    def build_message(self, event: NotificationEvent, correlation_id: str) -> Dict[str, Any]:
        """Message body for an event."""
        trace_context: Dict[str, str] = {}
        inject(trace_context)

        return {
            "correlation_id": correlation_id,
            "user_id": event.user_id,
            "complaint_id": event.complaint_id,
            "kind": event.kind.value,
            "status": event.status.value if event.status else None,
            "timestamp": event.created_at.isoformat(),
            "trace_context": trace_context
        }

    def notify(self, event: NotificationEvent) -> bool:
        return self.publish_event(event).success

    def publish_event(self, event: NotificationEvent,
                      correlation_id: Optional[str] = None) -> PublishResult:
        """
        Publish one notification event.

        Args:
            event: Event to publish
            correlation_id: Optional correlation ID for message tracking

        Returns:
            PublishResult: Result of the publishing operation
        """
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        exchange = self.config.exchange
        routing_key = self.routing_key_for(event)

        with tracer.start_as_current_span("amqp.publish.notification") as span:
            span.set_attributes({
                "notification.kind": event.kind.value,
                "notification.complaint_id": event.complaint_id,
                "amqp.exchange": exchange,
                "amqp.routing_key": routing_key,
                "amqp.correlation_id": correlation_id
            })

            message = self.build_message(event, correlation_id)
            result = self._publish_with_retry(exchange, routing_key, message, correlation_id)

            if not result.success:
                span.set_status(Status(StatusCode.ERROR, result.error or "publish failed"))
            return result

    def _declare_exchange(self, channel) -> None:
        if not self._exchange_declared:
            channel.exchange_declare(
                exchange=self.config.exchange,
                exchange_type='topic',
                durable=True
            )
            self._exchange_declared = True

    def _publish_with_retry(
        self,
        exchange: str,
        routing_key: str,
        message: Dict[str, Any],
        correlation_id: str
    ) -> PublishResult:
        """Publish message with exponential backoff retry logic."""
        body = json.dumps(message, ensure_ascii=False, separators=(',', ':'))
        last_error = None

        for attempt in range(self.config.max_retries + 1):
            try:
                with self._get_connection() as channel:
                    self._declare_exchange(channel)

                    properties = pika.BasicProperties(
                        correlation_id=correlation_id,
                        timestamp=int(time.time()),
                        delivery_mode=2,  # Persistent message
                        content_type='application/json',
                        headers=message.get('trace_context', {})
                    )

                    channel.basic_publish(
                        exchange=exchange,
                        routing_key=routing_key,
                        body=body,
                        properties=properties
                    )

                    logger.info(
                        "Notification published",
                        extra={
                            "extra_fields": {
                                "exchange": exchange,
                                "routing_key": routing_key,
                                "correlation_id": correlation_id,
                                "attempt": attempt + 1
                            }
                        }
                    )

                    return PublishResult(
                        success=True,
                        correlation_id=correlation_id,
                        exchange=exchange,
                        routing_key=routing_key,
                        retry_count=attempt
                    )

            except Exception as e:
                last_error = e
                # Declaration must be repeated on the next connection
                self._exchange_declared = False

                if attempt < self.config.max_retries:
                    delay = self.config.retry_delay * (2 ** attempt)

                    logger.warning(
                        "Notification publish failed, retrying",
                        extra={
                            "extra_fields": {
                                "routing_key": routing_key,
                                "correlation_id": correlation_id,
                                "attempt": attempt + 1,
                                "retry_delay": delay,
                                "error": str(e)
                            }
                        }
                    )

                    time.sleep(delay)
                else:
                    logger.error(
                        "Notification publish failed after all retries",
                        extra={
                            "extra_fields": {
                                "routing_key": routing_key,
                                "correlation_id": correlation_id,
                                "total_attempts": attempt + 1,
                                "error": str(e)
                            }
                        }
                    )

        return PublishResult(
            success=False,
            correlation_id=correlation_id,
            exchange=exchange,
            routing_key=routing_key,
            error=str(last_error),
            retry_count=self.config.max_retries
        )

    def health_check(self) -> bool:
        """Check that the broker accepts a connection and the exchange exists."""
        try:
            with self._get_connection() as channel:
                channel.exchange_declare(exchange=self.config.exchange, exchange_type='topic',
                                         durable=True, passive=True)
                return True
        except Exception as e:
            logger.warning(
                "AMQP health check failed",
                extra={"extra_fields": {"error": str(e), "host": self._connection_params.host}}
            )
            return False


def create_amqp_dispatcher(settings: Settings) -> AMQPNotificationDispatcher:
    """
    Factory function to create the AMQP dispatcher from settings.

    Returns:
        AMQPNotificationDispatcher: Configured dispatcher instance
    """
    config = AMQPConfig(
        url=settings.amqp_url,
        exchange=settings.amqp_exchange,
        connection_timeout=settings.amqp_connection_timeout,
        retry_delay=settings.amqp_retry_delay,
        max_retries=settings.amqp_max_retries
    )
    return AMQPNotificationDispatcher(config)

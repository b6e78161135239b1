"""
OpenTelemetry Configuration

Sets up distributed tracing and structured logging for the civictrack
service based on the configured environment.
"""

import logging
import os
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

from ..config import Settings

logger = logging.getLogger(__name__)

SERVICE_NAME = 'civictrack'

_SAMPLING_RATIOS = {
    'production': 0.1,
    'staging': 0.5,
}


def build_tracer_provider(settings: Settings) -> TracerProvider:
    """Create a tracer provider with environment-specific sampling and exporters."""
    environment = settings.environment

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": settings.service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=TraceIdRatioBased(_SAMPLING_RATIOS.get(environment, 1.0)),
        resource=resource
    )

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')

    if environment in ('production', 'staging'):
        if otlp_endpoint:
            tracer_provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint), max_export_batch_size=512)
            )
    elif environment == 'development':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    return tracer_provider


def setup_observability(settings: Settings) -> bool:
    """
    Initialize OpenTelemetry tracing and logging.

    Tracing is skipped in the test environment and when OTEL_ENABLED is
    false; logging is configured either way.

    Returns:
        True if a tracer provider was installed
    """
    setup_structured_logging(settings.environment)

    if not settings.otel_enabled or settings.environment == 'test':
        logger.info("Tracing disabled", extra={"environment": settings.environment})
        return False

    trace.set_tracer_provider(build_tracer_provider(settings))
    return True


def setup_structured_logging(environment: str):
    """Configure root logging with environment-specific levels."""
    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.DEBUG,
        'test': logging.WARNING
    }.get(environment, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        # Production: Reduce noise, focus on errors and business events
        logging.getLogger('pika').setLevel(logging.ERROR)
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('civictrack.services').setLevel(logging.INFO)

    elif environment == 'development':
        logging.getLogger('civictrack.domain').setLevel(logging.DEBUG)
        logging.getLogger('civictrack.services').setLevel(logging.DEBUG)
        logging.getLogger('pika').setLevel(logging.WARNING)

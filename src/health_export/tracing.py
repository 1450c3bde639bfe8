"""OpenTelemetry tracing for export runs."""

import os

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from . import __version__
from .config import TracingSettings

logger = structlog.get_logger(__name__)


def setup_tracing(settings: TracingSettings) -> TracerProvider | None:
    """Install an OTLP tracer provider.

    Honors ``OTEL_TRACES_EXPORTER=none`` even when tracing is enabled.

    Returns:
        The installed provider, or None when tracing stays disabled.
    """
    if not settings.enabled:
        logger.debug("tracing_disabled")
        return None

    exporter_name = os.getenv("OTEL_TRACES_EXPORTER", "otlp").lower()
    if exporter_name in {"none", ""}:
        logger.info("tracing_exporter_disabled")
        return None

    resource = Resource.create(
        {"service.name": settings.service_name, "service.version": __version__}
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)
    logger.info("tracing_configured", exporter=exporter_name, service_name=settings.service_name)
    return provider


def shutdown_tracing(provider: TracerProvider | None) -> None:
    """Flush pending spans; export runs exit right after the last write."""
    if provider is None:
        return
    provider.force_flush()
    provider.shutdown()
    logger.debug("tracing_shutdown")

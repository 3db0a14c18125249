"""Logging and tracing setup for the helpdesk API."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from apps.helpdesk.core.config import Settings

# Parent of every module logger under ``apps.helpdesk``.
APP_LOGGER = "apps.helpdesk"


def configure_logging(settings: Settings) -> logging.Logger:
    """Route helpdesk and SQL logs through one stream handler and return the package logger."""

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": settings.log_format}},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "default"},
            },
            "root": {"handlers": ["default"], "level": logging.WARNING},
            "loggers": {
                APP_LOGGER: {"level": level},
                "sqlalchemy.engine": {"level": logging.INFO if settings.database_echo else logging.WARNING},
            },
        }
    )
    return logging.getLogger(APP_LOGGER)


def exporter_options(settings: Settings) -> dict[str, object]:
    """OTLP exporter keyword arguments; headers come as ``key=value`` pairs joined by commas."""

    options: dict[str, object] = {}
    if settings.otel_exporter_otlp_endpoint:
        options["endpoint"] = settings.otel_exporter_otlp_endpoint
    headers = {}
    for item in (settings.otel_exporter_otlp_headers or "").split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    if headers:
        options["headers"] = headers
    return options


def init_tracer(settings: Settings) -> TracerProvider | None:
    if not settings.otel_enabled:
        return None
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        # an SDK provider is already installed for this process
        return None

    resource = Resource(
        attributes={
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_options(settings))))
    trace.set_tracer_provider(provider)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is not None:
        provider.shutdown()

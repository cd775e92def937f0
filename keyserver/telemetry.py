"""Opt-in OpenTelemetry wiring: Prometheus metrics and console tracing."""

import sys

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from prometheus_client import start_http_server

from .config import Settings
from .logging_config import get_logger

logger = get_logger(__name__)


def _start_metrics_endpoint(port: int) -> int:
    """Serve /metrics for Prometheus, falling back to the next port if taken."""
    metrics.set_meter_provider(
        MeterProvider(metric_readers=[PrometheusMetricReader()])
    )
    try:
        start_http_server(port)
    except OSError:
        port += 1
        start_http_server(port)
    return port


def _start_tracing(app: FastAPI) -> None:
    provider = TracerProvider()
    # Console exporter until an OTLP collector is available
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)


def setup_telemetry(app: FastAPI, app_settings: Settings) -> bool:
    """Enable metrics export and tracing when ``ENABLE_TELEMETRY`` is set.

    Never runs under pytest. A failure is logged and leaves the service
    running without telemetry.

    Returns:
        True if telemetry was switched on
    """
    if not app_settings.enable_telemetry:
        return False
    if "pytest" in sys.modules:
        logger.info("Skipping OpenTelemetry setup during tests")
        return False

    try:
        port = _start_metrics_endpoint(app_settings.metrics_port)
        _start_tracing(app)
    except Exception as e:
        logger.error("Failed to setup OpenTelemetry", error=str(e))
        return False

    logger.info("OpenTelemetry enabled", metrics_port=port)
    return True

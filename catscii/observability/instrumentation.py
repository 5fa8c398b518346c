"""
OpenTelemetry, Sentry and Prometheus Setup

This module is the one place that knows which backends the service talks to:
- Traces: OTLP/gRPC to Honeycomb (x-honeycomb-team header)
- Errors: Sentry, with the FastAPI/Starlette integrations so that an
  unhandled exception in any route (see GET /panic) is reported
- Metrics: Prometheus counters/histograms for pipeline outcomes

The request code never imports an exporter. It asks for
`trace.get_tracer(__name__)` and `sentry_sdk.capture_exception`, both of which
are no-ops until this module has run. Tests rely on that: they install an
in-memory span exporter instead of calling setup_tracing().
"""

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION, DEPLOYMENT_ENVIRONMENT
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from prometheus_client import Counter, Histogram

from catscii import __version__
from catscii.config import SystemConfig
from catscii.observability.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_resource(service_name: str, service_version: str = __version__,
                    environment: str = "development") -> Resource:
    """
    Creates an OpenTelemetry Resource with service metadata.

    These attributes are attached to every span the service exports, which is
    how Honeycomb knows which dataset ("catscii") the spans belong to.

    Args:
        service_name: Service identifier
        service_version: Package version
        environment: Deployment environment name

    Returns:
        OpenTelemetry Resource object
    """
    return Resource(attributes={
        SERVICE_NAME: service_name,
        SERVICE_VERSION: service_version,
        DEPLOYMENT_ENVIRONMENT: environment,
    })


# ============================================================================
# TRACING
# ============================================================================

def setup_tracing(config: SystemConfig) -> trace.Tracer:
    """
    Initializes distributed tracing with OpenTelemetry.

    HOW IT WORKS:
    1. Request code calls `with tracer.start_as_current_span("download"):`
    2. BatchSpanProcessor buffers finished spans in memory
    3. Every few seconds the batch is exported to Honeycomb over OTLP/gRPC

    Outbound httpx calls are auto-instrumented, so each stage span gets a
    child span for the actual HTTP request.

    FAILURE MODE:
    If Honeycomb is unreachable the exporter retries, then drops the batch.
    Requests keep being served; only the traces are lost.

    Args:
        config: System configuration (needs tracing.honeycomb_api_key)

    Returns:
        Configured Tracer instance
    """
    tracing = config.tracing
    resource = create_resource(tracing.service_name, environment=config.environment)
    provider = TracerProvider(resource=resource)

    exporter = OTLPSpanExporter(
        endpoint=tracing.otlp_endpoint,
        headers={"x-honeycomb-team": tracing.honeycomb_api_key},
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    HTTPXClientInstrumentor().instrument()

    logger.info(f"Tracing initialized: {tracing.service_name} -> {tracing.otlp_endpoint}")
    return trace.get_tracer(__name__)


# ============================================================================
# ERROR REPORTING
# ============================================================================

def setup_error_reporting(config: SystemConfig) -> None:
    """
    Initializes Sentry.

    The Starlette/FastAPI integrations capture any exception that escapes a
    route. Pipeline failures never escape (they become a 500 in the handler),
    so the handler reports those explicitly with capture_exception.
    """
    reporting = config.error_reporting
    sentry_sdk.init(
        dsn=reporting.sentry_dsn,
        release=reporting.release or f"catscii@{__version__}",
        environment=config.environment,
        integrations=[StarletteIntegration(), FastApiIntegration()],
    )
    logger.info("Error reporting initialized")


# ============================================================================
# PIPELINE METRICS
# ============================================================================

class PipelineMetrics:
    """
    Prometheus metrics for the ASCII art pipeline.

    Labels are low-cardinality on purpose: outcome, stage and error class.
    Never label by image URL or user agent.
    """

    def __init__(self):
        self.requests_total = Counter(
            'art_requests_total',
            'Requests to the ASCII art endpoint',
            ['outcome']  # success / error
        )

        self.errors_total = Counter(
            'pipeline_errors_total',
            'Pipeline failures by stage',
            ['stage', 'error_type']
        )

        self.stage_duration_seconds = Histogram(
            'pipeline_stage_duration_seconds',
            'Time spent in each pipeline stage',
            ['stage'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )


# Global singleton
pipeline_metrics = PipelineMetrics()


def get_trace_context() -> dict:
    """
    Extract current trace ID and span ID for correlation.

    Example:
        logger.error("Pipeline failed", extra=get_trace_context())

    Returns:
        Dict with trace_id and span_id (or empty if no active trace)
    """
    span = trace.get_current_span()
    ctx = span.get_span_context()

    if ctx.is_valid:
        return {
            "trace_id": format(ctx.trace_id, "032x"),
            "span_id": format(ctx.span_id, "016x"),
        }
    return {}


def initialize_observability(config: Optional[SystemConfig] = None) -> trace.Tracer:
    """
    One-line setup for logging, tracing and error reporting.

    Logging goes first so the other two can log their own startup.
    """
    config = config or SystemConfig()

    setup_logging(
        level=config.log_level,
        service_name=config.tracing.service_name,
        secrets=[config.error_reporting.sentry_dsn, config.tracing.honeycomb_api_key],
    )
    setup_error_reporting(config)
    tracer = setup_tracing(config)

    logger.info(f"Observability initialized for {config.tracing.service_name}")
    return tracer

"""
Observability Package

Centralized setup for the three outputs of the service:
1. TRACES: OpenTelemetry spans exported to Honeycomb over OTLP
2. ERRORS: Unhandled exceptions and pipeline failures reported to Sentry
3. LOGS: Structured JSON logs on stdout, correlated with the active trace

Prometheus counters for pipeline outcomes are exposed on /metrics.

FAILURE MODE:
If the tracing backend is unreachable, spans are dropped by the batch
processor and the service keeps serving.
"""

"""
catscii HTTP API

GET /        -> a random cat as ASCII art (HTML), or a generic 500
GET /panic   -> raises on purpose, to check that Sentry sees unhandled errors
GET /health  -> liveness probe
GET /metrics -> Prometheus exposition

REQUEST FLOW (GET /):
1. Open the root span "root-get", tag it with the client's user agent
2. Build a RequestContext (root span + a fresh httpx client)
3. Run the pipeline under that context
4. Success: 200 text/html. Failure: mark the root span, log, report to
   Sentry, answer "Something went wrong" with a 500.

CRITICAL: The client never learns which stage failed or why. The stage and
the cause only exist in the trace, the logs and Sentry.
"""

from datetime import datetime, timezone
from typing import Optional

import httpx
import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from prometheus_client import generate_latest, REGISTRY

from catscii import __version__
from catscii.config import SystemConfig, load_config
from catscii.context import RequestContext
from catscii.errors import PipelineError
from catscii.observability.instrumentation import (
    initialize_observability,
    pipeline_metrics,
    get_trace_context,
)
from catscii.observability.logging_config import get_logger
from catscii.services.pipeline import ArtPipeline

logger = get_logger(__name__)

tracer = trace.get_tracer(__name__)

GENERIC_ERROR_BODY = "Something went wrong"
PANIC_MESSAGE = "This is a test panic"

# Stage label for failures that are not PipelineErrors
STAGE_INTERNAL = "internal"


def _failure(span, request_logger, error: Exception, stage: str, description: str) -> Response:
    """Mark the root span, count, log and report a failed request; answer 500."""
    span.set_status(Status(StatusCode.ERROR, description))

    pipeline_metrics.requests_total.labels(outcome="error").inc()
    pipeline_metrics.errors_total.labels(
        stage=stage,
        error_type=type(error).__name__,
    ).inc()

    request_logger.error(
        f"Pipeline failed: {description}",
        extra={"stage": stage, "error_type": type(error).__name__},
    )
    sentry_sdk.capture_exception(error)

    return PlainTextResponse(GENERIC_ERROR_BODY, status_code=500)


def create_app(
    config: Optional[SystemConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: System configuration (defaults to reading the environment)
        transport: Optional httpx transport for every outbound call.
            Tests pass an httpx.MockTransport here.
    """
    config = config or SystemConfig()
    pipeline = ArtPipeline(api_url=config.image_source.api_url)

    app = FastAPI(
        title="catscii",
        description="A random cat picture, rendered as ASCII art",
        version=__version__,
    )

    @app.get("/", response_class=HTMLResponse)
    async def root_get(request: Request) -> Response:
        user_agent = request.headers.get("user-agent", "")

        with tracer.start_as_current_span(
            "root-get",
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attribute("user_agent", user_agent)
            request_logger = get_logger(__name__, user_agent=user_agent, **get_trace_context())

            async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
                request_context = RequestContext(
                    user_agent=user_agent,
                    trace_context=trace.set_span_in_context(span),
                    http_client=client,
                )
                try:
                    art = await pipeline.run(request_context)
                except PipelineError as e:
                    return _failure(span, request_logger, e, e.stage, e.description)
                except Exception as e:
                    # A bug, not an upstream problem: still never leak it
                    description = f"{STAGE_INTERNAL}: unexpected {type(e).__name__}"
                    return _failure(span, request_logger, e, STAGE_INTERNAL, description)

        pipeline_metrics.requests_total.labels(outcome="success").inc()
        return HTMLResponse(art)

    @app.get("/panic")
    async def panic() -> Response:
        raise RuntimeError(PANIC_MESSAGE)

    @app.get("/health")
    async def health():
        """Liveness probe."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "catscii",
            "version": __version__,
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return PlainTextResponse(
            generate_latest(REGISTRY),
            media_type="text/plain; charset=utf-8"
        )

    return app


def main() -> None:
    """Load config, wire observability, serve on 0.0.0.0:8080."""
    import uvicorn

    config = load_config()
    initialize_observability(config)

    app = create_app(config)

    logger.info(f"Listening on {config.server.host}:{config.server.port}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=None,  # Use our JSON logging config
    )


if __name__ == "__main__":
    main()

"""Per-request context handed from the request handler to the pipeline."""

from dataclasses import dataclass

import httpx
from opentelemetry.context import Context


@dataclass(frozen=True)
class RequestContext:
    """
    Everything one request's pipeline run needs from its caller.

    trace_context holds the request's root span. Every stage span is started
    with it as the explicit parent, so one request always produces one tree.
    """
    user_agent: str
    trace_context: Context
    http_client: httpx.AsyncClient

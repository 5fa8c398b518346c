"""
Cat ASCII Art Pipeline

One request = four stages, strictly in order:

    fetch-url -> download -> decode -> render

Each stage runs in its own span, parented explicitly on the request's root
span (RequestContext.trace_context). The first failing stage aborts the run:
no fallback picture, no retry.

SPAN STATUS:
A stage that raises a PipelineError marks its own span as ERROR with the
error's sanitized description before the error leaves the `with` block. The
root span is marked by the request handler, which is the only place that
decides what the client sees.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from catscii.config import DEFAULT_CAT_API_URL
from catscii.context import RequestContext
from catscii.errors import PipelineError
from catscii.observability.instrumentation import pipeline_metrics
from catscii.services import downloader, image_source, renderer

logger = logging.getLogger(__name__)

tracer = trace.get_tracer(__name__)


@contextmanager
def stage_span(name: str, request_context: RequestContext) -> Iterator[Span]:
    """
    Open the span for one pipeline stage.

    The span is ended on every exit path. PipelineErrors set the span status
    to their description; anything else gets its exception type only.
    """
    start_time = time.perf_counter()
    with tracer.start_as_current_span(
        name,
        context=request_context.trace_context,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except PipelineError as e:
            span.set_status(Status(StatusCode.ERROR, e.description))
            raise
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, type(e).__name__))
            raise
        finally:
            pipeline_metrics.stage_duration_seconds.labels(stage=name).observe(
                time.perf_counter() - start_time
            )


class ArtPipeline:
    """Turns "give me a cat" into an HTML page of ASCII art."""

    def __init__(self, api_url: str = DEFAULT_CAT_API_URL):
        self.api_url = api_url

    async def run(self, request_context: RequestContext) -> str:
        """
        Run all four stages for one request.

        Returns:
            The rendered HTML document

        Raises:
            PipelineError: From whichever stage failed first
        """
        client = request_context.http_client

        with stage_span("fetch-url", request_context):
            image_url = await image_source.fetch_image_url(client, self.api_url)

        with stage_span("download", request_context) as span:
            image_bytes = await downloader.download(client, image_url)
            span.set_attribute("size_bytes", len(image_bytes))

        with stage_span("decode", request_context) as span:
            image = renderer.decode(image_bytes)
            span.set_attribute("width", image.width)
            span.set_attribute("height", image.height)

        with stage_span("render", request_context):
            art = renderer.render(image)

        logger.debug(f"Rendered {image.width}x{image.height} image into {len(art)} chars")
        return art

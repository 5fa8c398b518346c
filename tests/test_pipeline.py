"""Tests for the pipeline orchestrator and its spans."""

import httpx
import pytest
from opentelemetry import trace
from opentelemetry.trace import StatusCode

from catscii.context import RequestContext
from catscii.errors import DecodeError, EmptyResultError, UpstreamError
from catscii.services.pipeline import ArtPipeline

from tests.conftest import CAT_API_URL, IMAGE_URL, make_png

tracer = trace.get_tracer(__name__)

STAGES = ["fetch-url", "download", "decode", "render"]


async def run_under_root(pipeline, http_client):
    """Run the pipeline under a test root span, like the handler does."""
    with tracer.start_as_current_span("test-root") as root:
        request_context = RequestContext(
            user_agent="pytest",
            trace_context=trace.set_span_in_context(root),
            http_client=http_client,
        )
        return await pipeline.run(request_context)


def spans_by_name(span_exporter):
    return {span.name: span for span in span_exporter.get_finished_spans()}


class TestArtPipeline:

    @pytest.fixture
    def pipeline(self):
        return ArtPipeline(api_url=CAT_API_URL)

    @pytest.mark.asyncio
    async def test_success_runs_every_stage_in_order(self, pipeline, http_client, upstream, span_exporter):
        markup = await run_under_root(pipeline, http_client)

        assert markup.startswith("<!DOCTYPE html>")
        assert upstream.requested_urls() == [CAT_API_URL, IMAGE_URL]

        stage_spans = [s for s in span_exporter.get_finished_spans() if s.name in STAGES]
        assert [s.name for s in stage_spans] == STAGES

    @pytest.mark.asyncio
    async def test_stage_spans_are_children_of_root(self, pipeline, http_client, span_exporter):
        await run_under_root(pipeline, http_client)

        spans = spans_by_name(span_exporter)
        root = spans["test-root"]
        for name in STAGES:
            assert spans[name].parent is not None
            assert spans[name].parent.span_id == root.context.span_id
            assert spans[name].context.trace_id == root.context.trace_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("width,height", [(10, 10), (37, 5), (1, 64)])
    async def test_decode_span_records_dimensions(self, pipeline, http_client, upstream, span_exporter,
                                                  width, height):
        upstream.routes[IMAGE_URL] = lambda request: httpx.Response(200, content=make_png(width, height))

        await run_under_root(pipeline, http_client)

        decode_span = spans_by_name(span_exporter)["decode"]
        assert decode_span.attributes["width"] == width
        assert decode_span.attributes["height"] == height

    @pytest.mark.asyncio
    async def test_empty_result_stops_before_download(self, pipeline, http_client, upstream, span_exporter):
        upstream.routes[CAT_API_URL] = lambda request: httpx.Response(200, json=[])

        with pytest.raises(EmptyResultError):
            await run_under_root(pipeline, http_client)

        assert upstream.requested_urls() == [CAT_API_URL]

        spans = spans_by_name(span_exporter)
        assert "download" not in spans
        assert spans["fetch-url"].status.status_code == StatusCode.ERROR
        assert "no images" in spans["fetch-url"].status.description

    @pytest.mark.asyncio
    async def test_download_failure_marks_download_span(self, pipeline, http_client, upstream, span_exporter):
        upstream.routes[IMAGE_URL] = lambda request: httpx.Response(403)

        with pytest.raises(UpstreamError):
            await run_under_root(pipeline, http_client)

        spans = spans_by_name(span_exporter)
        assert spans["fetch-url"].status.status_code == StatusCode.UNSET
        assert spans["download"].status.status_code == StatusCode.ERROR
        assert "HTTP 403" in spans["download"].status.description
        assert IMAGE_URL not in spans["download"].status.description
        assert "decode" not in spans

    @pytest.mark.asyncio
    async def test_undecodable_bytes_never_render(self, pipeline, http_client, upstream, span_exporter):
        upstream.routes[IMAGE_URL] = lambda request: httpx.Response(200, content=b"<html>not a cat</html>")

        with pytest.raises(DecodeError):
            await run_under_root(pipeline, http_client)

        spans = spans_by_name(span_exporter)
        assert spans["decode"].status.status_code == StatusCode.ERROR
        assert "width" not in spans["decode"].attributes
        assert "render" not in spans

"""
Pipeline Error Taxonomy

Every failure inside the request pipeline is raised as a PipelineError
subclass tagged with the stage that failed.

CRITICAL: The description is what ends up on the span status and in Sentry.
It names the stage and the kind of failure, never the upstream URL, the
response body or the raw library message. The client never sees any of it:
the handler collapses every PipelineError into the same generic 500.
"""

from typing import Optional


# Stage names (also used as metric labels)
STAGE_IMAGE_SOURCE = "image-source"
STAGE_DOWNLOAD = "download"
STAGE_DECODE = "decode"


class PipelineError(Exception):
    """Base class for stage-tagged pipeline failures."""

    kind = "pipeline error"

    def __init__(self, stage: str, detail: Optional[str] = None):
        self.stage = stage
        self.detail = detail
        super().__init__(self.description)

    @property
    def description(self) -> str:
        """Sanitized, human-readable cause (safe for telemetry)."""
        if self.detail:
            return f"{self.stage}: {self.kind} ({self.detail})"
        return f"{self.stage}: {self.kind}"


class UpstreamError(PipelineError):
    """An external dependency answered with a non-success status."""

    kind = "upstream returned an error status"

    def __init__(self, stage: str, status_code: int):
        self.status_code = status_code
        super().__init__(stage, f"HTTP {status_code}")


class ParseError(PipelineError):
    """Response body did not match the expected shape."""

    kind = "unexpected response body"


class EmptyResultError(PipelineError):
    """The image source returned zero candidates."""

    kind = "the cat API returned no images"

    def __init__(self, stage: str = STAGE_IMAGE_SOURCE):
        super().__init__(stage)


class DecodeError(PipelineError):
    """Downloaded bytes could not be decoded as an image."""

    kind = "downloaded bytes are not a decodable image"

    def __init__(self, stage: str = STAGE_DECODE, detail: Optional[str] = None):
        super().__init__(stage, detail)


class TransportError(PipelineError):
    """Network-level failure (timeout, connection reset) on an outbound call."""

    kind = "network failure"

"""Byte Fetcher: plain GET returning the whole response body."""

import logging

import httpx

from catscii.errors import TransportError, UpstreamError, STAGE_DOWNLOAD

logger = logging.getLogger(__name__)


async def download(client: httpx.AsyncClient, url: str) -> bytes:
    """
    Download `url` and return the raw body.

    No streaming and no size cap: the whole body is buffered in memory.

    Raises:
        TransportError: Network failure
        UpstreamError: Non-2xx status
    """
    try:
        response = await client.get(url)
    except (httpx.RequestError, httpx.InvalidURL) as e:
        logger.warning(f"Download failed: {type(e).__name__}")
        raise TransportError(STAGE_DOWNLOAD, type(e).__name__) from e

    if not response.is_success:
        logger.warning(f"Image host returned HTTP {response.status_code}")
        raise UpstreamError(STAGE_DOWNLOAD, response.status_code)

    return response.content

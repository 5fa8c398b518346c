"""
Image Source Client

Asks The Cat API for one random picture and returns its URL.

The API answers with a JSON array:

    [{"id": "abc", "url": "https://cdn2.thecatapi.com/images/abc.jpg", ...}]

In practice the array always holds one entry. We still accept longer arrays
and take the last element, so exactly one URL comes out no matter what.
"""

import logging
from typing import List

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from catscii.config import DEFAULT_CAT_API_URL
from catscii.errors import (
    EmptyResultError,
    ParseError,
    TransportError,
    UpstreamError,
    STAGE_IMAGE_SOURCE,
)

logger = logging.getLogger(__name__)


class CatImage(BaseModel):
    """One search result. Extra fields (id, width, height...) are ignored."""
    url: str


_search_results = TypeAdapter(List[CatImage])


async def fetch_image_url(client: httpx.AsyncClient, api_url: str = DEFAULT_CAT_API_URL) -> str:
    """
    Fetch one random cat picture URL.

    Args:
        client: HTTP client owned by the current request
        api_url: Image search endpoint

    Returns:
        The URL of the selected picture

    Raises:
        TransportError: Network failure talking to the API
        UpstreamError: Non-2xx status
        ParseError: Body is not a JSON array of {"url": ...} objects
        EmptyResultError: The array was empty
    """
    try:
        response = await client.get(api_url)
    except (httpx.RequestError, httpx.InvalidURL) as e:
        logger.warning(f"Cat API request failed: {type(e).__name__}")
        raise TransportError(STAGE_IMAGE_SOURCE, type(e).__name__) from e

    if not response.is_success:
        logger.warning(f"Cat API returned HTTP {response.status_code}")
        raise UpstreamError(STAGE_IMAGE_SOURCE, response.status_code)

    try:
        images = _search_results.validate_json(response.content)
    except ValidationError as e:
        logger.warning(f"Cat API body did not match the expected shape ({e.error_count()} errors)")
        raise ParseError(STAGE_IMAGE_SOURCE) from e

    if not images:
        raise EmptyResultError()

    image = images.pop()
    logger.debug(f"Cat API returned {len(images) + 1} candidate(s)")
    return image.url

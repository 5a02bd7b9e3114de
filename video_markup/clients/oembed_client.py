import logging

import httpx

from video_markup.config import settings
from video_markup.errors import DependencyError
from video_markup.models import VideoMetadata

logger = logging.getLogger(__name__)


class OEmbedClient:
    """Async lookup of a video's title and thumbnail via an oEmbed endpoint.

    Usage::

        client = OEmbedClient()                       # endpoint/timeout from settings
        meta = await client.fetch("https://youtu.be/abc")
        meta.title, meta.thumbnail_url

    Any failure (network error, timeout, non-2xx, unparsable body) raises
    :class:`DependencyError`, which aborts session creation.  The timeout
    bounds how long session creation can wait on the lookup.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint or settings.oembed_endpoint
        self._timeout = timeout if timeout is not None else settings.oembed_timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def fetch(self, video_url: str) -> VideoMetadata:
        params = {"url": video_url, "format": "json"}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(self._endpoint, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("oEmbed lookup failed for %s: %s", video_url, e)
            raise DependencyError("Invalid YouTube URL") from e

        if not isinstance(data, dict):
            raise DependencyError("Invalid YouTube URL")
        return VideoMetadata(
            title=data.get("title"),
            thumbnail_url=data.get("thumbnail_url"),
        )

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedMedia:
    url: str
    content: bytes
    content_type: str = ""


class MediaFetcher:
    """Downloads generated media without sending cookies or credentials."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._transport = transport

    async def fetch(self, url: str) -> FetchedMedia:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        logger.debug(
            "media.fetch.complete url=%s bytes=%s content_type=%s",
            url,
            len(response.content),
            content_type,
        )
        return FetchedMedia(url=url, content=response.content, content_type=content_type)


__all__ = ["FetchedMedia", "MediaFetcher"]

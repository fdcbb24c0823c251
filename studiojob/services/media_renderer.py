from __future__ import annotations

import io
import logging
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

from studiojob.clients.generation_client import describe_http_error
from studiojob.clients.media_client import MediaFetcher
from studiojob.common.job_store import MediaReference
from studiojob.common.rendered_media import RenderedMedia, RenderedMediaCache

logger = logging.getLogger(__name__)


class MediaRenderer:
    """Load a resolved image once and keep the decoded copy for later export.

    Rendering is best effort: a failed fetch or decode leaves the cache
    untouched and the result is still displayed by reference.
    """

    def __init__(self, fetcher: MediaFetcher, cache: RenderedMediaCache) -> None:
        self._fetcher = fetcher
        self._cache = cache

    @property
    def cache(self) -> RenderedMediaCache:
        return self._cache

    async def render(self, media: MediaReference) -> Optional[RenderedMedia]:
        if media.is_video:
            return None

        try:
            fetched = await self._fetcher.fetch(media.url)
        except httpx.HTTPError as exc:
            logger.warning("media_renderer.fetch_failed url=%s error=%s", media.url, describe_http_error(exc))
            return None

        try:
            with Image.open(io.BytesIO(fetched.content)) as image:
                image.load()
                width, height = image.size
        except (UnidentifiedImageError, OSError) as exc:
            logger.warning("media_renderer.decode_failed url=%s error=%s", media.url, exc)
            return None

        rendered = RenderedMedia(url=media.url, content=fetched.content, width=width, height=height)
        self._cache.store(rendered)
        return rendered


__all__ = ["MediaRenderer"]

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

__all__ = ["RenderedMedia", "RenderedMediaCache"]


@dataclass(frozen=True)
class RenderedMedia:
    """Decoded copy of a result that the presentation layer has on screen."""

    url: str
    content: bytes
    width: int
    height: int

    @property
    def is_loaded(self) -> bool:
        return bool(self.content) and self.width > 0 and self.height > 0


class RenderedMediaCache:

    def __init__(self) -> None:
        self._items: Dict[str, RenderedMedia] = {}

    def store(self, media: RenderedMedia) -> None:
        logger.debug(
            "rendered_media.store url=%s width=%s height=%s bytes=%s",
            media.url,
            media.width,
            media.height,
            len(media.content),
        )
        self._items[media.url] = media

    def get(self, url: str) -> Optional[RenderedMedia]:
        return self._items.get(url)

"""Ways of getting a generated media file onto the user's machine.

Each sink either delivers the media or raises; the download chain decides
what to try next.
"""

from __future__ import annotations

import io
import logging
import os
import re
import tempfile
import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from PIL import Image

from studiojob.clients.media_client import MediaFetcher
from studiojob.common.identifiers import nano_id
from studiojob.common.job_store import MediaReference
from studiojob.common.rendered_media import RenderedMediaCache
from studiojob.services.exceptions import ExportError
from studiojob.services.presentation import BasePresenter

logger = logging.getLogger(__name__)


MANUAL_SAVE_MESSAGE = 'Direct download failed. Opening in new tab - please right click and "Save as..."'

_VIDEO_URL = re.compile(r"\.(mp4|webm)", re.IGNORECASE)
_PNG_URL = re.compile(r"\.png", re.IGNORECASE)
_WEBP_URL = re.compile(r"\.webp", re.IGNORECASE)


def infer_extension(content_type: str, url: str) -> str:
    content_type = (content_type or "").lower()
    if "video" in content_type or _VIDEO_URL.search(url):
        return "mp4"
    if "png" in content_type or _PNG_URL.search(url):
        return "png"
    if "webp" in content_type or _WEBP_URL.search(url):
        return "webp"
    return "jpg"


@dataclass(frozen=True)
class ExportResult:
    sink: str
    path: Optional[Path] = None


class ExportSink:
    name = "base"

    def applies_to(self, media: MediaReference) -> bool:
        return True

    async def export(self, media: MediaReference) -> ExportResult:
        raise NotImplementedError


class _FileSaveMixin:
    """Writes through a temporary file so a partial save never carries the final name."""

    def __init__(self, output_dir: Path, filename_prefix: str, token_length: int) -> None:
        self._output_dir = Path(output_dir)
        self._prefix = filename_prefix
        self._token_length = token_length

    def _filename(self, extension: str) -> str:
        return f"{self._prefix}_{nano_id(self._token_length)}.{extension}"

    def _save_bytes(self, content: bytes, extension: str) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        target = self._output_dir / self._filename(extension)
        handle, temp_name = tempfile.mkstemp(dir=self._output_dir, prefix=".", suffix=".part")
        try:
            with os.fdopen(handle, "wb") as stream:
                stream.write(content)
            os.replace(temp_name, target)
        finally:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
        return target


class BlobSaveSink(_FileSaveMixin, ExportSink):
    name = "blob_save"

    def __init__(
        self,
        fetcher: MediaFetcher,
        *,
        output_dir: Path,
        filename_prefix: str = "mugshot",
        token_length: int = 8,
    ) -> None:
        super().__init__(output_dir, filename_prefix, token_length)
        self._fetcher = fetcher

    async def export(self, media: MediaReference) -> ExportResult:
        try:
            fetched = await self._fetcher.fetch(media.url)
        except Exception as exc:
            raise ExportError(f"Fetch failed: {exc}") from exc
        extension = infer_extension(fetched.content_type, media.url)
        path = self._save_bytes(fetched.content, extension)
        logger.info("export.blob_save.complete url=%s path=%s bytes=%s", media.url, path, len(fetched.content))
        return ExportResult(sink=self.name, path=path)


class ReencodeSaveSink(_FileSaveMixin, ExportSink):
    """Re-encode the copy already rendered on screen as PNG. Images only."""

    name = "reencode_save"

    def __init__(
        self,
        rendered: RenderedMediaCache,
        *,
        output_dir: Path,
        filename_prefix: str = "mugshot",
        token_length: int = 8,
    ) -> None:
        super().__init__(output_dir, filename_prefix, token_length)
        self._rendered = rendered

    def applies_to(self, media: MediaReference) -> bool:
        return not media.is_video

    async def export(self, media: MediaReference) -> ExportResult:
        copy = self._rendered.get(media.url)
        if copy is None or not copy.is_loaded:
            raise ExportError("No rendered copy available")

        with Image.open(io.BytesIO(copy.content)) as source:
            source.load()
            natural_size = source.size
            canvas = Image.new("RGBA", natural_size)
            canvas.paste(source.convert("RGBA"), (0, 0))

        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        encoded = buffer.getvalue()
        if not encoded:
            raise ExportError("Canvas encode failed")

        path = self._save_bytes(encoded, "png")
        logger.info(
            "export.reencode_save.complete url=%s path=%s size=%sx%s",
            media.url,
            path,
            natural_size[0],
            natural_size[1],
        )
        return ExportResult(sink=self.name, path=path)


class OpenReferenceSink(ExportSink):
    """Last resort: tell the user to save manually and open the URL for them."""

    name = "open_reference"

    def __init__(
        self,
        presenter: BasePresenter,
        *,
        opener: Callable[[str], object] = webbrowser.open_new_tab,
    ) -> None:
        self._presenter = presenter
        self._opener = opener

    async def export(self, media: MediaReference) -> ExportResult:
        self._presenter.error(MANUAL_SAVE_MESSAGE)
        try:
            self._opener(media.url)
        except Exception:
            logger.exception("export.open_reference.failed url=%s", media.url)
        return ExportResult(sink=self.name)


__all__ = [
    "BlobSaveSink",
    "ExportResult",
    "ExportSink",
    "MANUAL_SAVE_MESSAGE",
    "OpenReferenceSink",
    "ReencodeSaveSink",
    "infer_extension",
]

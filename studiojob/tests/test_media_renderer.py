from __future__ import annotations

import io

import httpx
import pytest
from PIL import Image

from studiojob.clients.media_client import MediaFetcher
from studiojob.common.job_store import MediaReference
from studiojob.common.rendered_media import RenderedMediaCache
from studiojob.services.media_renderer import MediaRenderer


def _png_bytes(size: tuple[int, int] = (5, 7)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(10, 120, 10)).save(buffer, format="PNG")
    return buffer.getvalue()


def _renderer(handler) -> MediaRenderer:
    return MediaRenderer(MediaFetcher(transport=httpx.MockTransport(handler)), RenderedMediaCache())


@pytest.mark.asyncio
async def test_render_stores_decoded_copy_with_natural_size() -> None:
    png = _png_bytes()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=png, headers={"content-type": "image/png"})

    renderer = _renderer(handler)
    rendered = await renderer.render(MediaReference.from_url("https://x/a.png"))

    assert rendered is not None
    assert (rendered.width, rendered.height) == (5, 7)
    assert rendered.is_loaded
    assert renderer.cache.get("https://x/a.png") == rendered


@pytest.mark.asyncio
async def test_render_skips_video() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(200, content=b"video")

    renderer = _renderer(handler)

    assert await renderer.render(MediaReference.from_url("https://x/b.mp4")) is None
    assert calls["n"] == 0


@pytest.mark.asyncio
async def test_render_returns_none_on_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="forbidden")

    renderer = _renderer(handler)

    assert await renderer.render(MediaReference.from_url("https://x/a.png")) is None
    assert renderer.cache.get("https://x/a.png") is None


@pytest.mark.asyncio
async def test_render_returns_none_for_undecodable_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not an image", headers={"content-type": "image/png"})

    renderer = _renderer(handler)

    assert await renderer.render(MediaReference.from_url("https://x/a.png")) is None
    assert renderer.cache.get("https://x/a.png") is None

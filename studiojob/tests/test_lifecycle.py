from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from PIL import Image

from studiojob.common.job_store import AssetReference, MediaKind, MediaReference
from studiojob.config import StudioConfig
from studiojob.dependencies import DependencyRegistry, build_dependencies
from studiojob.services.export_sinks import MANUAL_SAVE_MESSAGE
from studiojob.services.lifecycle import LifecycleSession, MISSING_ASSET_MESSAGE
from studiojob.services.presentation import BasePresenter


API = "https://api.example.test"
CONTENTS = "https://contents.example.test"
ASSET = AssetReference(url=f"{CONTENTS}/input.png")


class _RecordingPresenter(BasePresenter):
    def __init__(self) -> None:
        self.events: List[tuple[str, Any]] = []

    def progress(self, label: str) -> None:
        self.events.append(("progress", label))

    def display(self, media: MediaReference) -> None:
        self.events.append(("display", media))

    def error(self, message: str) -> None:
        self.events.append(("error", message))

    @property
    def labels(self) -> List[str]:
        return [value for kind, value in self.events if kind == "progress"]

    @property
    def errors(self) -> List[str]:
        return [value for kind, value in self.events if kind == "error"]


class _Api:
    """Fake generation API: one submission response and a queue of status documents."""

    def __init__(
        self,
        *,
        submit: httpx.Response | None = None,
        statuses: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self._submit = submit or httpx.Response(200, json={"jobId": "j1"})
        self._statuses = statuses or [{"status": "completed", "result": {"mediaUrl": "https://x/a.png"}}]
        self.submissions: List[Dict[str, Any]] = []
        self.status_calls = 0
        self.on_status: Optional[Callable[[int], None]] = None
        self.media: Dict[str, httpx.Response] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if request.method == "POST" and url == f"{API}/image-gen":
            self.submissions.append(json.loads(request.content))
            return self._submit
        if request.method == "GET" and url.startswith(f"{API}/image-gen/") and url.endswith("/status"):
            self.status_calls += 1
            if self.on_status is not None:
                self.on_status(self.status_calls)
            index = min(self.status_calls - 1, len(self._statuses) - 1)
            return httpx.Response(200, json=self._statuses[index])
        if url in self.media:
            return self.media[url]
        return httpx.Response(404, text="not found")


async def _no_sleep(seconds: float) -> None:
    return None


def _registry(api: _Api, presenter: BasePresenter, tmp_path: Path, opened: List[str] | None = None) -> DependencyRegistry:
    config = StudioConfig.from_dict(
        {
            "api": {"base_url": API, "contents_base_url": CONTENTS},
            "job": {"user_id": "user-1"},
            "download": {"output_dir": str(tmp_path)},
        }
    )
    opener = opened.append if opened is not None else (lambda url: True)
    return build_dependencies(
        config,
        presenter=presenter,
        transport=httpx.MockTransport(api),
        sleep=_no_sleep,
        opener=opener,
    )


@pytest.mark.asyncio
async def test_processing_then_completed_resolves_image(tmp_path: Path) -> None:
    api = _Api(
        statuses=[
            {"status": "processing"},
            {"status": "completed", "result": {"mediaUrl": "https://x/a.png"}},
        ]
    )
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)
    session = LifecycleSession(asset=ASSET)

    media = await registry.orchestrator.generate(session)

    assert media == MediaReference(url="https://x/a.png", kind=MediaKind.IMAGE)
    assert session.last_media == media
    assert session.busy is False
    assert api.submissions[0]["imageUrl"] == ASSET.url
    assert api.status_calls == 2
    assert presenter.events == [
        ("progress", "SUBMITTING..."),
        ("progress", "QUEUED..."),
        ("progress", "PROCESSING... (1)"),
        ("display", media),
        ("progress", "COMPLETE"),
    ]


@pytest.mark.asyncio
async def test_timeout_is_reported_after_sixty_status_calls(tmp_path: Path) -> None:
    api = _Api(statuses=[{"status": "processing"}])
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)
    session = LifecycleSession(asset=ASSET)

    media = await registry.orchestrator.generate(session)

    assert media is None
    assert api.status_calls == 60
    assert presenter.labels[-2:] == ["PROCESSING... (60)", "ERROR"]
    assert presenter.errors == ["Job timed out after 60 polls"]
    assert session.busy is False
    assert session.asset == ASSET


@pytest.mark.asyncio
async def test_video_result_in_sequence_resolves_video(tmp_path: Path) -> None:
    api = _Api(statuses=[{"status": "completed", "result": [{"video": "https://x/b.mp4"}]}])
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)

    media = await registry.orchestrator.generate(LifecycleSession(asset=ASSET))

    assert media == MediaReference(url="https://x/b.mp4", kind=MediaKind.VIDEO)


@pytest.mark.asyncio
async def test_submission_server_error_stops_before_polling(tmp_path: Path) -> None:
    api = _Api(submit=httpx.Response(500, text="boom"))
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)
    session = LifecycleSession(asset=ASSET)

    media = await registry.orchestrator.generate(session)

    assert media is None
    assert api.status_calls == 0
    assert presenter.labels == ["SUBMITTING...", "ERROR"]
    assert len(presenter.errors) == 1
    assert presenter.errors[0].startswith("Failed to submit job")
    assert session.asset == ASSET


@pytest.mark.asyncio
async def test_server_failure_message_is_surfaced(tmp_path: Path) -> None:
    api = _Api(statuses=[{"status": "failed", "error": "No face found"}])
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)

    await registry.orchestrator.generate(LifecycleSession(asset=ASSET))

    assert presenter.errors == ["No face found"]


@pytest.mark.asyncio
async def test_completed_without_locator_is_reported(tmp_path: Path) -> None:
    api = _Api(statuses=[{"status": "completed", "result": [{"thumbnail": "https://x/t.png"}]}])
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)

    media = await registry.orchestrator.generate(LifecycleSession(asset=ASSET))

    assert media is None
    assert presenter.errors == ["No image URL in response"]


@pytest.mark.asyncio
async def test_generate_without_asset_issues_no_request(tmp_path: Path) -> None:
    api = _Api()
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)

    media = await registry.orchestrator.generate(LifecycleSession())

    assert media is None
    assert api.submissions == []
    assert presenter.events == [("error", MISSING_ASSET_MESSAGE)]


@pytest.mark.asyncio
async def test_reset_during_polling_discards_stale_result(tmp_path: Path) -> None:
    api = _Api(
        statuses=[
            {"status": "processing"},
            {"status": "completed", "result": {"mediaUrl": "https://x/a.png"}},
        ]
    )
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path)
    session = LifecycleSession(asset=ASSET)

    def _reset_on_second_status(call: int) -> None:
        if call == 2:
            registry.orchestrator.reset(session)

    api.on_status = _reset_on_second_status

    media = await registry.orchestrator.generate(session)

    assert media is None
    assert session.last_media is None
    assert session.asset is None
    assert not any(kind == "display" for kind, _ in presenter.events)
    assert "COMPLETE" not in presenter.labels


@pytest.mark.asyncio
async def test_new_run_supersedes_previous_run(tmp_path: Path) -> None:
    session = LifecycleSession(asset=ASSET)
    first = session.begin_run()
    second = session.begin_run()

    session.finish_run(first)
    assert session.busy is True
    assert not session.is_current(first)

    session.finish_run(second)
    assert session.busy is False


@pytest.mark.asyncio
async def test_upload_then_generate(tmp_path: Path) -> None:
    image = tmp_path / "face.png"
    image.write_bytes(b"\x89PNG fake")
    api = _Api()
    uploads: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith(f"{API}/get-emd-upload-url"):
            return httpx.Response(200, text="https://signed.example.test/put")
        if request.method == "PUT":
            uploads.append(request.headers["content-type"])
            return httpx.Response(200)
        return api(request)

    presenter = _RecordingPresenter()
    config = StudioConfig.from_dict({"api": {"base_url": API, "contents_base_url": CONTENTS}})
    registry = build_dependencies(
        config,
        presenter=presenter,
        transport=httpx.MockTransport(handler),
        sleep=_no_sleep,
    )
    session = LifecycleSession()

    asset = await registry.orchestrator.upload(session, image)
    media = await registry.orchestrator.generate(session)

    assert asset is not None
    assert session.asset == asset
    assert asset.url.startswith(f"{CONTENTS}/")
    assert asset.url.endswith(".png")
    assert uploads == ["image/png"]
    assert api.submissions[0]["imageUrl"] == asset.url
    assert media is not None
    assert presenter.labels[:2] == ["UPLOADING...", "READY"]


@pytest.mark.asyncio
async def test_upload_validation_error_is_reported(tmp_path: Path) -> None:
    document = tmp_path / "notes.txt"
    document.write_text("hello")
    presenter = _RecordingPresenter()
    registry = _registry(_Api(), presenter, tmp_path)
    session = LifecycleSession()

    asset = await registry.orchestrator.upload(session, document)

    assert asset is None
    assert session.asset is None
    assert presenter.labels == ["UPLOADING...", "ERROR"]
    assert presenter.errors == ["Please upload a valid image file (JPEG, PNG)."]


@pytest.mark.asyncio
async def test_download_saves_last_media(tmp_path: Path) -> None:
    api = _Api()
    api.media["https://x/a.png"] = httpx.Response(200, content=b"png", headers={"content-type": "image/png"})
    presenter = _RecordingPresenter()
    registry = _registry(api, presenter, tmp_path / "out")
    session = LifecycleSession(asset=ASSET)

    await registry.orchestrator.generate(session)
    outcome = await registry.orchestrator.download(session)

    assert outcome is not None
    assert outcome.delivered_by == "blob_save"
    assert outcome.path is not None
    assert outcome.path.read_bytes() == b"png"
    assert presenter.labels[-1] == f"SAVED {outcome.path}"


def _png_bytes(size: tuple[int, int] = (4, 3)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.asyncio
async def test_download_reencodes_rendered_copy_when_refetch_is_forbidden(tmp_path: Path) -> None:
    api = _Api()
    png = _png_bytes()
    fetches = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == "https://x/a.png":
            fetches["n"] += 1
            if fetches["n"] == 1:
                return httpx.Response(200, content=png, headers={"content-type": "image/png"})
            return httpx.Response(403, text="forbidden")
        return api(request)

    presenter = _RecordingPresenter()
    opened: List[str] = []
    config = StudioConfig.from_dict(
        {
            "api": {"base_url": API, "contents_base_url": CONTENTS},
            "job": {"user_id": "user-1"},
            "download": {"output_dir": str(tmp_path / "out")},
        }
    )
    registry = build_dependencies(
        config,
        presenter=presenter,
        transport=httpx.MockTransport(handler),
        sleep=_no_sleep,
        opener=opened.append,
    )
    session = LifecycleSession(asset=ASSET)

    media = await registry.orchestrator.generate(session)
    rendered = registry.rendered_media.get("https://x/a.png")
    outcome = await registry.orchestrator.download(session)

    assert media is not None
    assert rendered is not None
    assert (rendered.width, rendered.height) == (4, 3)
    assert outcome is not None
    assert outcome.delivered_by == "reencode_save"
    assert outcome.path is not None
    assert outcome.path.suffix == ".png"
    assert len(outcome.failures) == 1
    assert outcome.failures[0].startswith("blob_save")
    assert fetches["n"] == 2
    assert opened == []
    with Image.open(outcome.path) as saved:
        assert saved.size == (4, 3)


@pytest.mark.asyncio
async def test_download_falls_back_to_new_tab(tmp_path: Path) -> None:
    api = _Api()
    presenter = _RecordingPresenter()
    opened: List[str] = []
    registry = _registry(api, presenter, tmp_path, opened=opened)
    media = MediaReference.from_url("https://x/missing.mp4")

    outcome = await registry.orchestrator.download(LifecycleSession(), media)

    assert outcome is not None
    assert outcome.delivered_by == "open_reference"
    assert opened == ["https://x/missing.mp4"]
    assert presenter.errors == [MANUAL_SAVE_MESSAGE]


@pytest.mark.asyncio
async def test_download_without_media_reports_error(tmp_path: Path) -> None:
    presenter = _RecordingPresenter()
    registry = _registry(_Api(), presenter, tmp_path)

    outcome = await registry.orchestrator.download(LifecycleSession())

    assert outcome is None
    assert len(presenter.errors) == 1

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from studiojob.clients.upload_client import UploadClient
from studiojob.common.job_store import AssetReference, MediaReference
from studiojob.common.structured_logging import StructuredLogger
from studiojob.services import result_resolver
from studiojob.services.download_chain import DownloadFallbackChain, DownloadOutcome
from studiojob.services.exceptions import ServiceError
from studiojob.services.job_poller import JobPoller
from studiojob.services.job_submitter import JobSubmitter
from studiojob.services.media_renderer import MediaRenderer
from studiojob.services.presentation import BasePresenter

logger = logging.getLogger(__name__)


LABEL_UPLOADING = "UPLOADING..."
LABEL_READY = "READY"
LABEL_SUBMITTING = "SUBMITTING..."
LABEL_QUEUED = "QUEUED..."
LABEL_COMPLETE = "COMPLETE"
LABEL_ERROR = "ERROR"
LABEL_DOWNLOADING = "DOWNLOADING..."

MISSING_ASSET_MESSAGE = "Please upload an image first."
MISSING_MEDIA_MESSAGE = "Nothing to download yet. Generate an image first."


def processing_label(attempt: int) -> str:
    return f"PROCESSING... ({attempt})"


@dataclass
class LifecycleSession:
    """State owned by one user of the lifecycle, passed in on every call.

    ``generation`` increases whenever a run starts or the session is reset;
    a run whose token no longer matches is stale and its outcome is dropped.
    """

    asset: Optional[AssetReference] = None
    last_media: Optional[MediaReference] = None
    busy: bool = False
    generation: int = field(default=0)

    def begin_run(self) -> int:
        self.generation += 1
        self.busy = True
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation

    def finish_run(self, token: int) -> None:
        if self.is_current(token):
            self.busy = False

    def reset(self) -> None:
        self.asset = None
        self.last_media = None
        self.busy = False
        self.generation += 1


class LifecycleOrchestrator:

    def __init__(
        self,
        *,
        submitter: JobSubmitter,
        poller: JobPoller,
        presenter: BasePresenter,
        uploader: Optional[UploadClient] = None,
        download_chain: Optional[DownloadFallbackChain] = None,
        renderer: Optional[MediaRenderer] = None,
        structured_logger: Optional[StructuredLogger] = None,
    ) -> None:
        self._submitter = submitter
        self._poller = poller
        self._presenter = presenter
        self._uploader = uploader
        self._download_chain = download_chain
        self._renderer = renderer
        self._logger = structured_logger or StructuredLogger(name="studiojob.lifecycle")

    async def upload(self, session: LifecycleSession, path: str | Path) -> Optional[AssetReference]:
        if self._uploader is None:
            raise RuntimeError("UploadClient not configured")

        self._presenter.progress(LABEL_UPLOADING)
        try:
            asset = await self._uploader.upload(path)
        except ServiceError as exc:
            self._logger.warning("lifecycle.upload_failed", path=str(path), error=str(exc))
            self._presenter.progress(LABEL_ERROR)
            self._presenter.error(str(exc))
            return None

        session.asset = asset
        self._logger.info("lifecycle.uploaded", asset=asset.url)
        self._presenter.progress(LABEL_READY)
        return asset

    async def generate(self, session: LifecycleSession) -> Optional[MediaReference]:
        """Submit, poll and resolve one generation for the session's asset.

        Errors are reported to the presenter and ``None`` is returned; the
        uploaded asset stays on the session so the user can try again.
        """

        asset = session.asset
        if asset is None:
            self._presenter.error(MISSING_ASSET_MESSAGE)
            return None

        token = session.begin_run()
        run_logger = self._logger.with_context(run=token)
        run_logger.info("lifecycle.started", asset=asset.url)

        def _report_attempt(attempt: int) -> None:
            if session.is_current(token):
                self._presenter.progress(processing_label(attempt))

        try:
            self._presenter.progress(LABEL_SUBMITTING)
            job = await self._submitter.submit(asset)
            run_logger.info("lifecycle.submitted", job_id=job.job_id)

            if session.is_current(token):
                self._presenter.progress(LABEL_QUEUED)
            payload = await self._poller.poll(job, on_progress=_report_attempt)
            media = result_resolver.resolve(payload)
        except Exception as exc:
            if not isinstance(exc, ServiceError):
                logger.exception("lifecycle.unexpected_error run=%s", token)
            self._fail(session, token, run_logger, exc)
            return None

        if not session.is_current(token):
            run_logger.warning("lifecycle.stale_result", url=media.url)
            return None

        if self._renderer is not None:
            rendered = await self._renderer.render(media)
            if not session.is_current(token):
                run_logger.warning("lifecycle.stale_result", url=media.url)
                return None
            if rendered is not None:
                run_logger.debug("lifecycle.rendered", url=media.url, width=rendered.width, height=rendered.height)

        session.last_media = media
        session.finish_run(token)
        self._presenter.display(media)
        self._presenter.progress(LABEL_COMPLETE)
        run_logger.info("lifecycle.completed", job_id=job.job_id, url=media.url, kind=media.kind.value)
        return media

    async def download(
        self,
        session: LifecycleSession,
        media: Optional[MediaReference] = None,
    ) -> Optional[DownloadOutcome]:
        if self._download_chain is None:
            raise RuntimeError("DownloadFallbackChain not configured")

        target = media or session.last_media
        if target is None:
            self._presenter.error(MISSING_MEDIA_MESSAGE)
            return None

        self._presenter.progress(LABEL_DOWNLOADING)
        outcome = await self._download_chain.download(target)
        if outcome.path is not None:
            self._presenter.progress(f"SAVED {outcome.path}")
        self._logger.info(
            "lifecycle.downloaded",
            url=target.url,
            sink=outcome.delivered_by,
            path=str(outcome.path) if outcome.path else None,
            failures=outcome.failures,
        )
        return outcome

    def reset(self, session: LifecycleSession) -> None:
        session.reset()
        self._logger.info("lifecycle.reset", generation=session.generation)

    def _fail(
        self,
        session: LifecycleSession,
        token: int,
        run_logger: StructuredLogger,
        exc: Exception,
    ) -> None:
        message = str(exc) or exc.__class__.__name__
        if not session.is_current(token):
            run_logger.warning("lifecycle.stale_error", error=message)
            return
        session.finish_run(token)
        run_logger.error("lifecycle.failed", error=message, error_type=exc.__class__.__name__)
        self._presenter.progress(LABEL_ERROR)
        self._presenter.error(message)


__all__ = [
    "LifecycleOrchestrator",
    "LifecycleSession",
    "processing_label",
]

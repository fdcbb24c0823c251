from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from studiojob.clients.generation_client import GenerationClientSettings, GenerationHttpClient
from studiojob.clients.media_client import MediaFetcher
from studiojob.clients.upload_client import UploadClient, UploadSettings
from studiojob.common.rendered_media import RenderedMediaCache
from studiojob.common.structured_logging import StructuredLogger
from studiojob.config import StudioConfig
from studiojob.services.download_chain import DownloadFallbackChain
from studiojob.services.export_sinks import BlobSaveSink, OpenReferenceSink, ReencodeSaveSink
from studiojob.services.job_poller import JobPoller, SleepFn
from studiojob.services.job_submitter import JobSubmitter
from studiojob.services.lifecycle import LifecycleOrchestrator
from studiojob.services.media_renderer import MediaRenderer
from studiojob.services.presentation import BasePresenter, LoggingPresenter


@dataclass
class DependencyRegistry:
    config: StudioConfig
    presenter: BasePresenter
    generation_client: GenerationHttpClient
    upload_client: UploadClient
    submitter: JobSubmitter
    poller: JobPoller
    download_chain: DownloadFallbackChain
    orchestrator: LifecycleOrchestrator
    rendered_media: RenderedMediaCache = field(default_factory=RenderedMediaCache)


def build_dependencies(
    config: StudioConfig,
    *,
    presenter: Optional[BasePresenter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: SleepFn = asyncio.sleep,
    opener: Optional[Callable[[str], object]] = None,
    rendered_media: Optional[RenderedMediaCache] = None,
) -> DependencyRegistry:
    """Wire clients and services for one process from configuration."""

    presenter = presenter or LoggingPresenter(
        StructuredLogger(name="studiojob.presentation", base_context={"pipeline": config.job.pipeline.value})
    )
    rendered_media = rendered_media or RenderedMediaCache()

    generation_client = GenerationHttpClient(
        GenerationClientSettings(
            base_url=config.api.base_url,
            timeout_seconds=config.api.timeout_seconds,
        ),
        transport=transport,
    )
    upload_client = UploadClient(
        UploadSettings(
            api_base_url=config.api.base_url,
            contents_base_url=config.api.contents_base_url,
            max_bytes=config.upload.max_bytes,
            timeout_seconds=config.api.timeout_seconds,
        ),
        transport=transport,
    )
    submitter = JobSubmitter(generation_client, config.job)
    poller = JobPoller(
        generation_client,
        user_id=config.job.user_id,
        policy=config.poll.policy(),
        sleep=sleep,
    )

    download = config.download
    fetcher = MediaFetcher(timeout_seconds=config.api.timeout_seconds, transport=transport)
    terminal = OpenReferenceSink(presenter) if opener is None else OpenReferenceSink(presenter, opener=opener)
    download_chain = DownloadFallbackChain(
        [
            BlobSaveSink(
                fetcher,
                output_dir=download.output_dir,
                filename_prefix=download.filename_prefix,
                token_length=download.token_length,
            ),
            ReencodeSaveSink(
                rendered_media,
                output_dir=download.output_dir,
                filename_prefix=download.filename_prefix,
                token_length=download.token_length,
            ),
        ],
        terminal,
    )

    orchestrator = LifecycleOrchestrator(
        submitter=submitter,
        poller=poller,
        presenter=presenter,
        uploader=upload_client,
        download_chain=download_chain,
        renderer=MediaRenderer(fetcher, rendered_media),
        structured_logger=StructuredLogger(
            name="studiojob.lifecycle",
            base_context={"pipeline": config.job.pipeline.value, "effect_id": config.job.effect_id},
        ),
    )

    return DependencyRegistry(
        config=config,
        presenter=presenter,
        generation_client=generation_client,
        upload_client=upload_client,
        submitter=submitter,
        poller=poller,
        download_chain=download_chain,
        orchestrator=orchestrator,
        rendered_media=rendered_media,
    )


__all__ = ["DependencyRegistry", "build_dependencies"]

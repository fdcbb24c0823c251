from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from studiojob.clients.generation_client import (
    BaseGenerationClient,
    MalformedResponseError,
    describe_http_error,
)
from studiojob.common.job_store import AssetReference, GenerationJob, JobStatus
from studiojob.config import JobConfig
from studiojob.schemas.job import SubmissionRequest, SubmissionResponse
from studiojob.services.exceptions import SubmissionError

logger = logging.getLogger(__name__)


class JobSubmitter:
    """Issue one generation request for an uploaded asset."""

    def __init__(self, client: BaseGenerationClient, job_config: JobConfig) -> None:
        if client is None:
            raise ValueError("generation client must be provided")
        self._client = client
        self._config = job_config

    def build_request(self, asset: AssetReference) -> SubmissionRequest:
        return SubmissionRequest(
            model=self._config.model,
            tool_type=self._config.tool_type,
            effect_id=self._config.effect_id,
            image_url=asset.url,
            user_id=self._config.user_id,
            remove_watermark=self._config.remove_watermark,
            is_private=self._config.is_private,
        )

    async def submit(self, asset: AssetReference) -> GenerationJob:
        if asset is None or not asset.url:
            raise ValueError("asset reference must be provided")

        pipeline = self._config.pipeline
        request = self.build_request(asset)
        try:
            data = await self._client.submit(pipeline, request.to_wire())
        except (httpx.HTTPError, MalformedResponseError) as exc:
            raise SubmissionError(f"Failed to submit job: {describe_http_error(exc)}") from exc

        try:
            response = SubmissionResponse.model_validate(data)
        except ValidationError as exc:
            logger.warning("job_submitter.invalid_response keys=%s", sorted(data.keys()))
            raise SubmissionError("Failed to submit job: response carried no jobId") from exc

        # Whatever status the submission echoes, the job starts out queued.
        job = GenerationJob(
            job_id=response.job_id,
            asset=asset,
            pipeline=pipeline,
            status=JobStatus.QUEUED,
        )
        logger.info(
            "job_submitter.submitted job_id=%s pipeline=%s effect_id=%s",
            job.job_id,
            pipeline.value,
            self._config.effect_id,
        )
        return job


__all__ = ["JobSubmitter"]

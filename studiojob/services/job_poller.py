from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from studiojob.clients.generation_client import (
    BaseGenerationClient,
    MalformedResponseError,
    describe_http_error,
)
from studiojob.common.job_store import GenerationJob, JobStatus
from studiojob.common.poll_policy import PollPolicy
from studiojob.schemas.job import StatusResponse
from studiojob.services.exceptions import JobFailedError, PollTimeoutError, PollTransportError

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[int], None]
SleepFn = Callable[[float], Awaitable[Any]]

COMPLETED_STATUSES = frozenset({"completed"})
FAILED_STATUSES = frozenset({"failed", "error"})


class PollState(str, Enum):
    QUERYING = "querying"
    WAITING = "waiting"


class JobPoller:
    """Query a job's status at a fixed interval until it settles.

    One status request per attempt, strictly sequential. Completion returns
    the raw status document; failure, transport errors and an exhausted
    budget raise. Nothing is retried on error.
    """

    def __init__(
        self,
        client: BaseGenerationClient,
        *,
        user_id: str,
        policy: PollPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if client is None:
            raise ValueError("generation client must be provided")
        self._client = client
        self._user_id = user_id
        self._policy = policy or PollPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> PollPolicy:
        return self._policy

    async def poll(
        self,
        job: GenerationJob,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        if job.is_terminal:
            raise ValueError(f"Job {job.job_id} is already {job.status.value}")

        attempts = 0
        state = PollState.QUERYING
        while True:
            if state is PollState.QUERYING:
                data = await self._query(job)
                status = StatusResponse.model_validate(data)
                logger.debug(
                    "job_poller.attempt job_id=%s attempt=%s status=%s",
                    job.job_id,
                    attempts + 1,
                    status.status or "<none>",
                )

                if status.status in COMPLETED_STATUSES:
                    job.transition(JobStatus.COMPLETED)
                    logger.info("job_poller.completed job_id=%s attempts=%s", job.job_id, attempts + 1)
                    return data

                if status.status in FAILED_STATUSES:
                    message = status.error or "Job processing failed"
                    job.transition(JobStatus.FAILED, reason=message)
                    logger.warning("job_poller.failed job_id=%s error=%s", job.job_id, message)
                    raise JobFailedError(message, job_id=job.job_id)

                if job.status is JobStatus.QUEUED and status.status == JobStatus.PROCESSING.value:
                    job.transition(JobStatus.PROCESSING)
                if on_progress is not None:
                    on_progress(attempts + 1)
                state = PollState.WAITING
                continue

            # PollState.WAITING
            await self._sleep(self._policy.interval_seconds)
            attempts += 1
            if self._policy.exhausted(attempts):
                message = f"Job timed out after {self._policy.max_attempts} polls"
                job.transition(JobStatus.TIMED_OUT, reason=message)
                logger.warning("job_poller.timed_out job_id=%s attempts=%s", job.job_id, attempts)
                raise PollTimeoutError(message, job_id=job.job_id, attempts=attempts)
            state = PollState.QUERYING

    async def _query(self, job: GenerationJob) -> Dict[str, Any]:
        try:
            return await self._client.fetch_status(job.pipeline, self._user_id, job.job_id)
        except (httpx.HTTPError, MalformedResponseError) as exc:
            reason = describe_http_error(exc)
            job.transition(JobStatus.FAILED, reason=reason)
            raise PollTransportError(f"Failed to check status: {reason}") from exc


__all__ = ["JobPoller", "PollState"]

"""Async client for the remote generation API (submission + status)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from studiojob.common.job_store import Pipeline

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    "Accept": "application/json, text/plain, */*",
}


class MalformedResponseError(ValueError):
    """Raised when a successful response does not carry a JSON object."""


class BaseGenerationClient:

    async def submit(self, pipeline: Pipeline, body: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - noop
        logger.debug("generation.submit.noop pipeline=%s", pipeline.value)
        return {}

    async def fetch_status(
        self,
        pipeline: Pipeline,
        user_id: str,
        job_id: str,
    ) -> Dict[str, Any]:  # pragma: no cover - noop
        logger.debug("generation.status.noop pipeline=%s job_id=%s", pipeline.value, job_id)
        return {}


@dataclass
class GenerationClientSettings:
    base_url: str
    timeout_seconds: float = 30.0


class GenerationHttpClient(BaseGenerationClient):
    """Talks to ``{base_url}/image-gen`` or ``{base_url}/video-gen``.

    Every call opens its own ``httpx.AsyncClient``; ``transport`` lets tests
    swap the network for an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        settings: GenerationClientSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = settings.base_url.rstrip("/")
        self._timeout = settings.timeout_seconds
        self._transport = transport

    def endpoint(self, pipeline: Pipeline) -> str:
        return f"{self._base_url}{pipeline.path}"

    async def submit(self, pipeline: Pipeline, body: Dict[str, Any]) -> Dict[str, Any]:
        url = self.endpoint(pipeline)
        return self._expect_object("POST", url, await self._request("POST", url, json=body))

    async def fetch_status(self, pipeline: Pipeline, user_id: str, job_id: str) -> Dict[str, Any]:
        url = f"{self.endpoint(pipeline)}/{user_id}/{job_id}/status"
        return self._expect_object("GET", url, await self._request("GET", url, json=None))

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]],
    ) -> Any:
        headers = dict(DEFAULT_HEADERS)
        if json is not None:
            headers["Content-Type"] = "application/json"

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.request(method, url, json=json, headers=headers)
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.warning(
                    "generation.request.failed method=%s url=%s status=%s body=%s",
                    method,
                    url,
                    exc.response.status_code,
                    exc.response.text[:500],
                )
                raise
        if response.content:
            try:
                return response.json()
            except ValueError as exc:
                logger.warning(
                    "generation.response.not_json method=%s url=%s body=%s",
                    method,
                    url,
                    response.text[:200],
                )
                raise MalformedResponseError("Response body is not valid JSON") from exc
        return None

    @staticmethod
    def _expect_object(method: str, url: str, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            logger.warning(
                "generation.response.not_object method=%s url=%s type=%s",
                method,
                url,
                type(payload).__name__,
            )
            raise MalformedResponseError("Response body is not a JSON object")
        return payload


def describe_http_error(exc: Exception) -> str:
    """Human-readable reason for an httpx failure, e.g. ``500 Internal Server Error``."""

    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        reason = response.reason_phrase or ""
        return f"{response.status_code} {reason}".strip()
    text = str(exc).strip()
    return text or exc.__class__.__name__


__all__ = [
    "BaseGenerationClient",
    "GenerationClientSettings",
    "GenerationHttpClient",
    "MalformedResponseError",
    "describe_http_error",
]

"""Signed-URL upload of input images to the content host."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from studiojob.common.identifiers import nano_id
from studiojob.common.job_store import AssetReference
from studiojob.services.exceptions import UploadError, UploadValidationError

logger = logging.getLogger(__name__)


SIGNED_URL_PATH = "/get-emd-upload-url"


@dataclass
class UploadSettings:
    api_base_url: str
    contents_base_url: str
    max_bytes: int = 10 * 1024 * 1024
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class UploadCandidate:
    path: Path
    content_type: str
    size: int

    @property
    def extension(self) -> str:
        suffix = self.path.suffix.lstrip(".")
        return suffix or "jpg"


class UploadClient:

    def __init__(
        self,
        settings: UploadSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_base = settings.api_base_url.rstrip("/")
        self._contents_base = settings.contents_base_url.rstrip("/")
        self._max_bytes = settings.max_bytes
        self._timeout = settings.timeout_seconds
        self._transport = transport

    def validate(self, path: str | Path) -> UploadCandidate:
        candidate = Path(path)
        if not candidate.is_file():
            raise UploadValidationError(f"File not found: {candidate}")
        content_type, _ = mimetypes.guess_type(candidate.name)
        if not content_type or not content_type.startswith("image/"):
            raise UploadValidationError("Please upload a valid image file (JPEG, PNG).")
        size = candidate.stat().st_size
        if size > self._max_bytes:
            limit_mb = self._max_bytes // (1024 * 1024)
            raise UploadValidationError(f"File is too large. Max size is {limit_mb}MB.")
        return UploadCandidate(path=candidate, content_type=content_type, size=size)

    async def upload(self, path: str | Path) -> AssetReference:
        candidate = self.validate(path)
        file_name = f"{nano_id()}.{candidate.extension}"
        content = candidate.path.read_bytes()

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            signed_url = await self._request_signed_url(client, file_name)
            try:
                response = await client.put(
                    signed_url,
                    content=content,
                    headers={"Content-Type": candidate.content_type},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.warning(
                    "upload.put.failed file_name=%s status=%s",
                    file_name,
                    exc.response.status_code,
                )
                raise UploadError(f"Failed to upload file: {exc.response.reason_phrase}") from exc
            except httpx.HTTPError as exc:
                raise UploadError(f"Failed to upload file: {exc}") from exc

        asset = AssetReference(url=f"{self._contents_base}/{file_name}")
        logger.info("upload.complete file_name=%s bytes=%s url=%s", file_name, candidate.size, asset.url)
        return asset

    async def _request_signed_url(self, client: httpx.AsyncClient, file_name: str) -> str:
        try:
            response = await client.get(
                f"{self._api_base}{SIGNED_URL_PATH}",
                params={"fileName": file_name},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "upload.signed_url.failed file_name=%s status=%s",
                file_name,
                exc.response.status_code,
            )
            raise UploadError(f"Failed to get signed URL: {exc.response.reason_phrase}") from exc
        except httpx.HTTPError as exc:
            raise UploadError(f"Failed to get signed URL: {exc}") from exc

        signed_url = response.text.strip()
        if not signed_url:
            raise UploadError("Failed to get signed URL: empty response")
        return signed_url


__all__ = ["UploadCandidate", "UploadClient", "UploadSettings"]

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubmissionRequest(BaseModel):
    """JSON body accepted by the ``/image-gen`` and ``/video-gen`` endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    model: str
    tool_type: str = Field(alias="toolType")
    effect_id: str = Field(alias="effectId")
    image_url: str = Field(alias="imageUrl")
    user_id: str = Field(alias="userId")
    remove_watermark: bool = Field(default=True, alias="removeWatermark")
    is_private: bool = Field(default=True, alias="isPrivate")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: Optional[str] = None

    @field_validator("job_id", mode="before")
    @classmethod
    def _coerce_job_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("jobId must not be empty")
        return value


ResultItem = Dict[str, Any]


class StatusResponse(BaseModel):
    """Status document returned by ``{base}/{user}/{job}/status``."""

    model_config = ConfigDict(extra="allow")

    status: str = ""
    result: Any = None
    error: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip().lower()

    @field_validator("error", mode="before")
    @classmethod
    def _stringify_error(cls, value: Any) -> Optional[str]:
        if value in (None, ""):
            return None
        if isinstance(value, dict):
            message = value.get("message") or value.get("detail")
            return str(message) if message else str(value)
        return str(value)


__all__ = [
    "ResultItem",
    "StatusResponse",
    "SubmissionRequest",
    "SubmissionResponse",
]

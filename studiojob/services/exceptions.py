"""Domain-specific exceptions for studiojob services."""

from __future__ import annotations


class ServiceError(Exception):
    """Base exception for service-layer failures."""


# Generation lifecycle errors ---------------------------------------------


class GenerationError(ServiceError):
    """Base class for failures between submission and result resolution."""


class SubmissionError(GenerationError):
    """Raised when the submission endpoint rejects or fails a request."""


class PollTransportError(GenerationError):
    """Raised when a status request returns a non-success response."""


class JobFailedError(GenerationError):
    """Raised when the server reports the job as failed."""

    def __init__(self, message: str, *, job_id: str | None = None) -> None:
        super().__init__(message)
        self.job_id = job_id


class PollTimeoutError(GenerationError):
    """Raised when the polling budget is exhausted without a terminal state."""

    def __init__(self, message: str, *, job_id: str | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.attempts = attempts


class ResultResolutionError(GenerationError):
    """Raised when a completed payload exposes no usable media locator."""


# Upload errors ------------------------------------------------------------


class UploadError(ServiceError):
    """Raised when the signed-URL handshake or the PUT itself fails."""


class UploadValidationError(UploadError):
    """Raised when a file is rejected before any request is made."""


# Export errors ------------------------------------------------------------


class ExportError(ServiceError):
    """Raised by an export sink that could not deliver the media."""


__all__ = [
    "ServiceError",
    "GenerationError",
    "SubmissionError",
    "PollTransportError",
    "JobFailedError",
    "PollTimeoutError",
    "ResultResolutionError",
    "UploadError",
    "UploadValidationError",
    "ExportError",
]

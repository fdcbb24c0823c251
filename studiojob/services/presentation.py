from __future__ import annotations

import logging
import sys
from typing import TextIO

from studiojob.common.job_store import MediaReference
from studiojob.common.structured_logging import StructuredLogger


class BasePresenter:
    """The three calls the lifecycle makes into whatever shows results to the user."""

    def progress(self, label: str) -> None:  # pragma: no cover - noop
        pass

    def display(self, media: MediaReference) -> None:  # pragma: no cover - noop
        pass

    def error(self, message: str) -> None:  # pragma: no cover - noop
        pass


class LoggingPresenter(BasePresenter):

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger = logger or StructuredLogger(name="studiojob.presentation")

    def progress(self, label: str) -> None:
        self._logger.info("presentation.progress", label=label)

    def display(self, media: MediaReference) -> None:
        self._logger.info("presentation.display", url=media.url, kind=media.kind.value)

    def error(self, message: str) -> None:
        self._logger.error("presentation.error", message=message)


class ConsolePresenter(BasePresenter):
    """Plain terminal output used by the command line entry point."""

    def __init__(self, stream: TextIO | None = None, error_stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout
        self._error_stream = error_stream or sys.stderr
        self._logger = logging.getLogger(__name__)

    def progress(self, label: str) -> None:
        print(label, file=self._stream, flush=True)

    def display(self, media: MediaReference) -> None:
        print(f"{media.kind.value}: {media.url}", file=self._stream, flush=True)

    def error(self, message: str) -> None:
        self._logger.debug("presentation.console.error message=%s", message)
        print(f"Error: {message}", file=self._error_stream, flush=True)


__all__ = ["BasePresenter", "ConsolePresenter", "LoggingPresenter"]

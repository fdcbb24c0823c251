from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

_HANDLER_MARKER = "_studiojob_json_handler"


def _coerce(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _encode(record: Dict[str, Any]) -> str:
    return json.dumps(record, separators=(",", ":"), default=_coerce)


def _attach_stdout_handler(logger: logging.Logger) -> None:
    # Only when the application has not configured logging itself.
    if logging.getLogger().handlers:
        return
    if any(getattr(handler, _HANDLER_MARKER, False) for handler in logger.handlers):
        return
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)


@dataclass
class StructuredLogger:
    """Emit one JSON object per lifecycle event through stdlib logging.

    ``with_context`` returns a run-scoped logger: it carries the merged
    context and stamps every event with ``elapsed_ms`` since it was bound,
    so a single generation run can be followed from submit to completion.

      lifecycle = StructuredLogger(name="studiojob.lifecycle", base_context={"pipeline": "image"})
      run_logger = lifecycle.with_context(run=3)
      run_logger.info("lifecycle.submitted", job_id="j1")
    """

    name: str = "studiojob"
    base_context: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[float] = None

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(self.name)
        _attach_stdout_handler(self._logger)
        if self._logger.level == logging.NOTSET:
            self._logger.setLevel(logging.INFO)

    def with_context(self, **ctx: Any) -> "StructuredLogger":
        return StructuredLogger(
            name=self.name,
            base_context={**self.base_context, **ctx},
            started_at=time.monotonic(),
        )

    def _emit(self, level: int, event: str, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        record: Dict[str, Any] = {
            "ts": round(time.time(), 3),
            "level": logging.getLevelName(level).lower(),
            "event": event,
            **self.base_context,
        }
        if self.started_at is not None:
            record["elapsed_ms"] = int((time.monotonic() - self.started_at) * 1000)
        record.update(fields)
        self._logger.log(level, _encode(record))

    def debug(self, event: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit(logging.ERROR, event, **fields)


__all__ = ["StructuredLogger"]

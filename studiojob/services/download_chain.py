from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from studiojob.common.job_store import MediaReference
from studiojob.services.export_sinks import ExportResult, ExportSink

logger = logging.getLogger(__name__)


@dataclass
class DownloadOutcome:
    media: MediaReference
    delivered_by: str
    path: Optional[Path] = None
    failures: List[str] = field(default_factory=list)

    @property
    def used_terminal_fallback(self) -> bool:
        return self.path is None


class DownloadFallbackChain:
    """Try each sink in order and stop at the first one that delivers.

    Sinks that do not apply to the media are skipped. An error inside a sink
    is logged and the next one is tried; the terminal sink runs exactly once
    when everything before it failed or was skipped.
    """

    def __init__(self, sinks: Sequence[ExportSink], terminal: ExportSink) -> None:
        if terminal is None:
            raise ValueError("terminal sink must be provided")
        self._sinks = list(sinks)
        self._terminal = terminal

    @property
    def strategies(self) -> List[str]:
        return [sink.name for sink in self._sinks] + [self._terminal.name]

    async def download(self, media: MediaReference) -> DownloadOutcome:
        failures: List[str] = []
        for sink in self._sinks:
            if not sink.applies_to(media):
                logger.debug("download_chain.skip sink=%s url=%s kind=%s", sink.name, media.url, media.kind.value)
                continue
            try:
                result = await sink.export(media)
            except Exception as exc:
                logger.warning("download_chain.sink_failed sink=%s url=%s error=%s", sink.name, media.url, exc)
                failures.append(f"{sink.name}: {exc}")
                continue
            return self._outcome(media, result, failures)

        result = await self._terminal.export(media)
        logger.info("download_chain.terminal sink=%s url=%s failures=%s", self._terminal.name, media.url, len(failures))
        return self._outcome(media, result, failures)

    @staticmethod
    def _outcome(media: MediaReference, result: ExportResult, failures: List[str]) -> DownloadOutcome:
        return DownloadOutcome(media=media, delivered_by=result.sink, path=result.path, failures=failures)


__all__ = ["DownloadFallbackChain", "DownloadOutcome"]

"""Normalize heterogeneous job results into a single media reference."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from studiojob.common.job_store import MediaReference
from studiojob.services.exceptions import ResultResolutionError

logger = logging.getLogger(__name__)


NO_LOCATOR_MESSAGE = "No image URL in response"

ExtractorRule = Callable[[Mapping[str, Any]], Optional[str]]


def _field(name: str) -> ExtractorRule:
    def _extract(item: Mapping[str, Any]) -> Optional[str]:
        value = item.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    _extract.__name__ = f"field_{name}"
    return _extract


# Checked in order; the first rule returning a locator wins.
LOCATOR_RULES: Tuple[ExtractorRule, ...] = (
    _field("mediaUrl"),
    _field("video"),
    _field("image"),
)


def first_result_item(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping) or payload.get("result") is None:
        raise ResultResolutionError(NO_LOCATOR_MESSAGE)

    result = payload["result"]
    if isinstance(result, Sequence) and not isinstance(result, (str, bytes)):
        if not result:
            raise ResultResolutionError(NO_LOCATOR_MESSAGE)
        head = result[0]
    else:
        head = result

    if not isinstance(head, Mapping):
        raise ResultResolutionError(NO_LOCATOR_MESSAGE)
    return head


def resolve(
    payload: Mapping[str, Any],
    *,
    rules: Sequence[ExtractorRule] = LOCATOR_RULES,
) -> MediaReference:
    item = first_result_item(payload)
    for rule in rules:
        url = rule(item)
        if url:
            return MediaReference.from_url(url)

    logger.warning("result_resolver.no_locator keys=%s", sorted(item.keys()))
    raise ResultResolutionError(NO_LOCATOR_MESSAGE)


__all__ = ["ExtractorRule", "LOCATOR_RULES", "NO_LOCATOR_MESSAGE", "first_result_item", "resolve"]

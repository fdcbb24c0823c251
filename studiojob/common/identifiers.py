"""Short random identifiers used for uploaded and exported file names."""

from __future__ import annotations

import secrets
import string

__all__ = ["nano_id"]

_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def nano_id(length: int = 21) -> str:
    """Return ``length`` random alphanumeric characters."""

    size = max(1, int(length))
    return "".join(secrets.choice(_ALPHABET) for _ in range(size))

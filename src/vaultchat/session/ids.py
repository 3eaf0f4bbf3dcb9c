"""Event identifier and clock helpers."""

from __future__ import annotations

import itertools
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

#: Produces a fresh identifier for the given prefix (``assistant``, ``error``, ...).
IdFactory = Callable[[str], str]

#: Returns the creation time stamped onto each event.
Clock = Callable[[], datetime]


def new_id(prefix: str) -> str:
    """Return ``<prefix>-<uuid4 hex>``."""
    return f"{prefix}-{uuid.uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def counter_ids(start: int = 1) -> IdFactory:
    """Return a deterministic factory yielding ``prefix-1``, ``prefix-2``, ...

    The counter is shared across prefixes so ids stay unique.
    """
    counter = itertools.count(start)

    def _next(prefix: str) -> str:
        return f"{prefix}-{next(counter)}"

    return _next

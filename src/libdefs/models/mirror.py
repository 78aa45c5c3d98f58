from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum


class MirrorStatus(StrEnum):
    """Outcome of one ``MirrorCache.ensure()`` refresh."""

    CLONED = "cloned"
    REBASED = "rebased"
    FRESH = "fresh"
    STALE = "stale"  # rebase failed; the previous checkout is still in use


@dataclass
class MirrorState:
    """Debounce and single-flight bookkeeping for one mirror directory.

    Owned by whoever owns the ``MirrorCache``; construct one per process (or
    one per test) and pass it in. Never torn down.
    """

    # epoch milliseconds of the last ensure() that scheduled a refresh
    last_assured_at: int = 0

    # the most recently scheduled refresh; later refreshes chain after it
    pending: asyncio.Future[MirrorStatus] | None = None

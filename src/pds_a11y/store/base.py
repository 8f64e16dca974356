"""Port: score store, plus typed read helpers shared by its clients."""

from __future__ import annotations

import math
from typing import Protocol

from pds_a11y.models import (
    LAST_UPDATED_KEY,
    SCORE_KEY,
    AggregateRecord,
    ScoreRecord,
    is_reserved_key,
)


class ScoreStorePort(Protocol):
    """Port for a last-write-wins key-value store with string values.

    Per-repository scores are keyed by did; the aggregate lives under
    the two reserved keys in ``pds_a11y.models.RESERVED_KEYS``.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    async def put(self, key: str, value: str) -> None:
        """Store *value* under *key*. Raises StoreWriteError on failure."""
        ...

    async def list_keys(self) -> set[str]:
        """Return every key currently stored, reserved keys included."""
        ...


def parse_score(value: str | None) -> float | None:
    """Parse a stored value as a finite number; anything else is None."""
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


async def read_score(store: ScoreStorePort, did: str) -> float | None:
    """Read one repository's score. Reserved keys are never scores."""
    if is_reserved_key(did):
        return None
    return parse_score(await store.get(did))


def format_score(score: float) -> str:
    """Whole numbers are stored without a trailing ``.0``."""
    if score.is_integer():
        return str(int(score))
    return repr(score)


async def write_score(store: ScoreStorePort, record: ScoreRecord) -> None:
    """Store one repository score. Raises StoreWriteError on failure."""
    await store.put(record.did, format_score(record.score))


async def list_scores(store: ScoreStorePort) -> dict[str, float]:
    """Return every numeric per-repository score, excluding reserved keys."""
    scores: dict[str, float] = {}
    for key in sorted(await store.list_keys()):
        if is_reserved_key(key):
            continue
        score = parse_score(await store.get(key))
        if score is not None:
            scores[key] = score
    return scores


async def read_aggregate(store: ScoreStorePort) -> AggregateRecord:
    return AggregateRecord(
        pds_accessibility_score=parse_score(await store.get(SCORE_KEY)),
        last_updated=await store.get(LAST_UPDATED_KEY),
    )

"""Fetch a single repository's accessibility score."""

from __future__ import annotations

import logging

import httpx

from pds_a11y.errors import PdsA11yError
from pds_a11y.upstream.base import ScoreSourcePort

logger = logging.getLogger(__name__)


class ScoreFetcher:
    """Translate a did into a score, or ``None`` when the fetch failed.

    There is exactly one attempt per call; the caller decides what a
    failure means for the run.
    """

    def __init__(self, source: ScoreSourcePort) -> None:
        self._source = source

    async def fetch(self, did: str) -> float | None:
        try:
            return await self._source.get_score(did)
        except (PdsA11yError, httpx.HTTPError) as exc:
            logger.warning("Skipping %s this run: %s", did, exc)
            return None

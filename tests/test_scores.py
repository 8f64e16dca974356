"""Tests for the score fetcher (scores.py)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx

from pds_a11y.errors import ScoreFetchError
from pds_a11y.scores import ScoreFetcher


def _fetcher(**kwargs) -> tuple[ScoreFetcher, AsyncMock]:
    source = AsyncMock()
    source.get_score = AsyncMock(**kwargs)
    return ScoreFetcher(source), source


class TestScoreFetcher:
    async def test_returns_score(self):
        fetcher, _ = _fetcher(return_value=80.0)
        assert await fetcher.fetch("did:plc:a") == 80.0

    async def test_fetch_error_returns_none_and_logs(self, caplog):
        fetcher, _ = _fetcher(side_effect=ScoreFetchError("Failed to fetch score: 500"))

        assert await fetcher.fetch("did:plc:a") is None
        assert "Skipping did:plc:a this run" in caplog.text

    async def test_transport_error_returns_none(self):
        fetcher, _ = _fetcher(side_effect=httpx.ReadTimeout("slow"))
        assert await fetcher.fetch("did:plc:a") is None

    async def test_single_attempt(self):
        fetcher, source = _fetcher(side_effect=ScoreFetchError("nope"))
        await fetcher.fetch("did:plc:a")
        assert source.get_score.await_count == 1

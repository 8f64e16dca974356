"""Shared test fixtures."""

from __future__ import annotations

import pytest

from pds_a11y.errors import ListingError
from pds_a11y.store.memory import InMemoryScoreStore


@pytest.fixture
def store() -> InMemoryScoreStore:
    return InMemoryScoreStore()


@pytest.fixture
def listing_down() -> ListingError:
    return ListingError("Failed to fetch repos: 503")

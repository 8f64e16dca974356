"""In-process score store, used for tests and throwaway runs."""

from __future__ import annotations

from collections.abc import Mapping


class InMemoryScoreStore:
    """Dict-backed implementation of ScoreStorePort."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    async def list_keys(self) -> set[str]:
        return set(self._data)

    def snapshot(self) -> dict[str, str]:
        """Copy of the current contents (for assertions and debugging)."""
        return dict(self._data)

"""Durable score store backed by a single JSON document.

Writes replace the document atomically (tempfile + os.replace) while
holding both a per-path threading lock and an ``fcntl`` lock, so the
ingestion job and the query server can share one file.
"""

from __future__ import annotations

import asyncio
import contextlib
import fcntl
import json
import os
import tempfile
import threading
from pathlib import Path

from pds_a11y.errors import StoreReadError, StoreWriteError

_path_locks: dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _get_path_lock(path: Path) -> threading.Lock:
    """Get or create a per-path threading lock for in-process safety."""
    key = str(path.resolve())
    with _path_locks_guard:
        if key not in _path_locks:
            _path_locks[key] = threading.Lock()
        return _path_locks[key]


class JsonFileScoreStore:
    """ScoreStorePort over a JSON object of ``{key: value}`` strings."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock_path = self.path.with_name(self.path.name + ".lck")

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._update, key, value)

    async def list_keys(self) -> set[str]:
        data = await asyncio.to_thread(self._read)
        return set(data)

    # ── Blocking helpers (run in a worker thread) ──────────────

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreReadError(f"Cannot read score store {self.path}: {exc}") from exc
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreReadError(f"Invalid JSON in score store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreReadError(f"Score store {self.path} is not a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _update(self, key: str, value: str) -> None:
        lock = _get_path_lock(self.path)
        with lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._lock_path, "w") as lock_fd:
                    fcntl.flock(lock_fd, fcntl.LOCK_EX)
                    try:
                        try:
                            data = self._read()
                        except StoreReadError as exc:
                            raise StoreWriteError(str(exc)) from exc
                        data[key] = value
                        self._atomic_write(data)
                    finally:
                        fcntl.flock(lock_fd, fcntl.LOCK_UN)
            except OSError as exc:
                raise StoreWriteError(f"Cannot write {key} to {self.path}: {exc}") from exc

    def _atomic_write(self, data: dict[str, str]) -> None:
        fd = None
        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), suffix=".tmp", prefix=".scores_"
            )
            content = json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True) + "\n"
            os.write(fd, content.encode("utf-8"))
            os.close(fd)
            fd = None
            os.replace(tmp_path, str(self.path))
            tmp_path = None
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)

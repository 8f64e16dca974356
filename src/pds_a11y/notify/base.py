"""Port: best-effort run notifications."""

from __future__ import annotations

from typing import Protocol


class NotifierPort(Protocol):
    """Port for sending a one-line run summary somewhere humans will see it."""

    async def notify(self, message: str) -> None:
        """Deliver *message*. Raises NotifyError on failure."""
        ...

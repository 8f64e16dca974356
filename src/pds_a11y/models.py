"""Domain models for pds-a11y. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

# ─── Reserved store keys ──────────────────────────────────────

SCORE_KEY = "pdsAccessibilityScore"
LAST_UPDATED_KEY = "lastUpdated"
RESERVED_KEYS: frozenset[str] = frozenset({SCORE_KEY, LAST_UPDATED_KEY})


def is_reserved_key(key: str) -> bool:
    """True for the aggregate keys that share the store with per-repo scores."""
    return key in RESERVED_KEYS


# ─── Enumerations ─────────────────────────────────────────────


class Participation(StrEnum):
    PARTICIPATES = "participates"
    OPTED_OUT = "opted_out"
    UNKNOWN = "unknown"

    @property
    def includes(self) -> bool:
        """Whether the repository is scored. Unknown counts as participating."""
        return self is not Participation.OPTED_OUT


class RunOutcome(StrEnum):
    COMPLETED = "completed"
    ABORTED = "aborted"


# ─── Ingestion Models ─────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RepositoryDescriptor:
    """One repository as listed by the upstream service for a single run."""

    did: str
    active: bool = True


@dataclass(frozen=True, slots=True)
class ScoreRecord:
    """A successfully fetched score for one repository."""

    did: str
    score: float


@dataclass(frozen=True, slots=True)
class AggregateRecord:
    """Fleet-wide score plus the time it was last refreshed."""

    pds_accessibility_score: float | None = None
    last_updated: str | None = None


@dataclass(frozen=True, slots=True)
class RunReport:
    """Outcome and counters of one ingestion run."""

    outcome: RunOutcome
    started_at: str
    finished_at: str
    listed: int = 0
    inactive: int = 0
    opted_out: int = 0
    fetch_failed: int = 0
    store_failed: int = 0
    scored: int = 0
    timed_out: int = 0
    average: float | None = None
    error: str = ""

    def summary(self) -> str:
        """One-line human-readable summary, used as the notification text."""
        if self.outcome is RunOutcome.ABORTED:
            return f"Accessibility score update aborted: {self.error}"
        if self.average is not None:
            return (
                f"Accessibility scores updated: PDS average is {self.average:.2f} "
                f"({self.scored} of {self.listed} repositories refreshed)."
            )
        return (
            f"Accessibility scores updated: no scores available "
            f"across {self.listed} repositories."
        )

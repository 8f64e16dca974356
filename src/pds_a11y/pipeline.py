"""Ingestion pipeline -- list, fan out, store, aggregate, notify.

One run:
1. List repositories. Failure aborts the run before any write.
2. For every listed repository concurrently: skip inactive ones, resolve
   participation, fetch the score and store it. Per-repository failures
   are logged and contained.
3. After every repository has settled, re-read the stored score of each
   listed did and average them.
4. Write ``lastUpdated`` always and ``pdsAccessibilityScore`` when the
   average is defined.
5. Hand a summary to the notifier without waiting for it.
"""

from __future__ import annotations

import asyncio
import logging
import statistics
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from enum import StrEnum

from pds_a11y.errors import ListingError, StoreError
from pds_a11y.models import (
    LAST_UPDATED_KEY,
    SCORE_KEY,
    RepositoryDescriptor,
    RunOutcome,
    RunReport,
    ScoreRecord,
)
from pds_a11y.notify.base import NotifierPort
from pds_a11y.notify.webhook import dispatch_notification
from pds_a11y.participation import ParticipationResolver
from pds_a11y.scores import ScoreFetcher
from pds_a11y.store.base import ScoreStorePort, read_score, write_score
from pds_a11y.upstream.base import RepositoryListingPort

logger = logging.getLogger(__name__)


class _Step(StrEnum):
    """Where a single repository's processing ended."""

    INACTIVE = "inactive"
    OPTED_OUT = "opted_out"
    FETCH_FAILED = "fetch_failed"
    STORE_FAILED = "store_failed"
    SCORED = "scored"


def now_iso() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def unique_repositories(repos: Iterable[RepositoryDescriptor]) -> list[RepositoryDescriptor]:
    """Drop repeated dids, keeping the first listing entry for each."""
    seen: set[str] = set()
    unique: list[RepositoryDescriptor] = []
    for repo in repos:
        if repo.did in seen:
            continue
        seen.add(repo.did)
        unique.append(repo)
    return unique


class IngestionPipeline:
    """Periodic job that refreshes per-repository and aggregate scores.

    Collaborators are injected so the pipeline can run against fakes.
    Outbound concurrency is bounded by the limiter shared inside the
    upstream client; store operations are not gated.
    """

    def __init__(
        self,
        listing: RepositoryListingPort,
        resolver: ParticipationResolver,
        fetcher: ScoreFetcher,
        store: ScoreStorePort,
        notifier: NotifierPort,
        *,
        deadline_seconds: float | None = None,
        clock: Callable[[], str] = now_iso,
    ) -> None:
        self._listing = listing
        self._resolver = resolver
        self._fetcher = fetcher
        self._store = store
        self._notifier = notifier
        self._deadline_seconds = deadline_seconds
        self._clock = clock
        self._notify_tasks: set[asyncio.Task[None]] = set()

    async def run(self) -> RunReport:
        started_at = self._clock()
        try:
            listed = await self._listing.list_repos()
        except ListingError as exc:
            logger.error("Error during scheduled task: %s", exc)
            return RunReport(
                outcome=RunOutcome.ABORTED,
                started_at=started_at,
                finished_at=self._clock(),
                error=str(exc),
            )

        repos = unique_repositories(listed)
        logger.info("Processing %d repositories", len(repos))

        steps, timed_out = await self._fan_out(repos)
        average = await self._aggregate([repo.did for repo in repos])

        finished_at = self._clock()
        await self._persist_aggregate(average, finished_at)

        report = RunReport(
            outcome=RunOutcome.COMPLETED,
            started_at=started_at,
            finished_at=finished_at,
            listed=len(repos),
            inactive=steps[_Step.INACTIVE],
            opted_out=steps[_Step.OPTED_OUT],
            fetch_failed=steps[_Step.FETCH_FAILED],
            store_failed=steps[_Step.STORE_FAILED],
            scored=steps[_Step.SCORED],
            timed_out=timed_out,
            average=round(average, 2) if average is not None else None,
        )
        logger.info("%s", report.summary())
        self._schedule_notification(report.summary())
        return report

    async def drain_notifications(self) -> None:
        """Wait for notifications still in flight. Used before shutdown."""
        pending = list(self._notify_tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ── Fan-out ──────────────────────────────────────────────

    async def _fan_out(self, repos: list[RepositoryDescriptor]) -> tuple[Counter[_Step], int]:
        """Process every repository concurrently and wait for all of them.

        Returns per-step counts and the number of repositories abandoned
        when the run deadline expired.
        """
        steps: Counter[_Step] = Counter()
        if not repos:
            return steps, 0

        tasks = [asyncio.create_task(self._process_contained(repo)) for repo in repos]
        done, pending = await asyncio.wait(tasks, timeout=self._deadline_seconds)

        for task in done:
            steps[task.result()] += 1

        if pending:
            logger.warning(
                "Run deadline of %ss reached; abandoning %d unfinished repositories",
                self._deadline_seconds,
                len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        return steps, len(pending)

    async def _process_contained(self, repo: RepositoryDescriptor) -> _Step:
        try:
            return await self._process(repo)
        except Exception:
            logger.exception("Unexpected error while processing %s", repo.did)
            return _Step.FETCH_FAILED

    async def _process(self, repo: RepositoryDescriptor) -> _Step:
        if not repo.active:
            logger.debug("Skipping inactive repository %s", repo.did)
            return _Step.INACTIVE

        participation = await self._resolver.resolve(repo.did)
        if not participation.includes:
            logger.info("Skipping %s: opted out of accessibility scoring", repo.did)
            return _Step.OPTED_OUT

        score = await self._fetcher.fetch(repo.did)
        if score is None:
            return _Step.FETCH_FAILED

        try:
            await write_score(self._store, ScoreRecord(did=repo.did, score=score))
        except StoreError as exc:
            logger.warning("Could not store accessibility score for %s: %s", repo.did, exc)
            return _Step.STORE_FAILED

        logger.debug("Stored score for %s: %s", repo.did, score)
        return _Step.SCORED

    # ── Aggregate ────────────────────────────────────────────

    async def _aggregate(self, dids: list[str]) -> float | None:
        """Mean of the stored scores of every listed did, or None if there are none.

        Reads the store rather than this run's results, so a repository
        whose fetch failed today still counts with its last known score.
        """
        results = await asyncio.gather(
            *(read_score(self._store, did) for did in dids),
            return_exceptions=True,
        )
        values: list[float] = []
        for did, result in zip(dids, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Could not read stored score for %s: %s", did, result)
            elif result is not None:
                values.append(result)

        if not values:
            return None
        return statistics.fmean(values)

    async def _persist_aggregate(self, average: float | None, last_updated: str) -> None:
        try:
            await self._store.put(LAST_UPDATED_KEY, last_updated)
        except StoreError as exc:
            logger.warning("Could not store %s: %s", LAST_UPDATED_KEY, exc)

        if average is None:
            logger.info("No stored scores for listed repositories; average left unchanged")
            return

        try:
            await self._store.put(SCORE_KEY, f"{average:.2f}")
        except StoreError as exc:
            logger.warning("Could not store %s: %s", SCORE_KEY, exc)

    # ── Notify ───────────────────────────────────────────────

    def _schedule_notification(self, message: str) -> None:
        task = asyncio.create_task(dispatch_notification(self._notifier, message))
        self._notify_tasks.add(task)
        task.add_done_callback(self._notify_tasks.discard)

"""Composition root and periodic trigger for the ingestion pipeline."""

from __future__ import annotations

import asyncio
import logging

import httpx

from pds_a11y.config import Settings
from pds_a11y.limiter import ConcurrencyLimiter
from pds_a11y.models import RunReport
from pds_a11y.notify.base import NotifierPort
from pds_a11y.notify.webhook import NullNotifier, WebhookNotifier
from pds_a11y.participation import ParticipationResolver
from pds_a11y.pipeline import IngestionPipeline
from pds_a11y.scores import ScoreFetcher
from pds_a11y.store.base import ScoreStorePort
from pds_a11y.store.file import JsonFileScoreStore
from pds_a11y.upstream.client import UpstreamClient

logger = logging.getLogger(__name__)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Shared client for one run. No transport retries: one attempt per request."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout, connect=10.0),
        follow_redirects=True,
        limits=httpx.Limits(
            max_connections=settings.concurrency_limit + 1,
            max_keepalive_connections=settings.concurrency_limit,
        ),
    )


def build_pipeline(
    settings: Settings,
    http: httpx.AsyncClient,
    store: ScoreStorePort,
) -> IngestionPipeline:
    """Wire the pipeline from settings. The limiter is shared by all upstream calls."""
    limiter = ConcurrencyLimiter(settings.concurrency_limit)
    upstream = UpstreamClient(
        http=http,
        limiter=limiter,
        api_base=settings.api_base,
        pds_base=settings.pds_base,
        preference_collection=settings.preference_collection,
        headers=settings.outbound_headers(),
    )
    notifier: NotifierPort
    if settings.webhook_url:
        notifier = WebhookNotifier(http=http, url=settings.webhook_url)
    else:
        notifier = NullNotifier()

    return IngestionPipeline(
        listing=upstream,
        resolver=ParticipationResolver(upstream, settings.preference_path),
        fetcher=ScoreFetcher(upstream),
        store=store,
        notifier=notifier,
        deadline_seconds=settings.run_deadline_seconds,
    )


async def run_once(settings: Settings, store: ScoreStorePort | None = None) -> RunReport:
    """Run the pipeline a single time and wait for its notification to go out."""
    if store is None:
        store = JsonFileScoreStore(settings.store_path)
    async with create_http_client(settings) as http:
        pipeline = build_pipeline(settings, http, store)
        report = await pipeline.run()
        await pipeline.drain_notifications()
    return report


async def run_forever(settings: Settings, store: ScoreStorePort | None = None) -> None:
    """Run the pipeline every ``interval_seconds`` until cancelled.

    A run that crashes is logged; the next one still happens on schedule.
    """
    if store is None:
        store = JsonFileScoreStore(settings.store_path)
    loop = asyncio.get_running_loop()
    while True:
        started = loop.time()
        try:
            report = await run_once(settings, store)
            logger.info("Run %s at %s", report.outcome, report.finished_at)
        except Exception:
            logger.exception("Scheduled run crashed")
        delay = max(0.0, settings.interval_seconds - (loop.time() - started))
        logger.info("Next run in %.0fs", delay)
        await asyncio.sleep(delay)

"""HTTP client for the upstream score service and the PDS record API.

Score service:  {api_base}/pds/repos, {api_base}/pds/accessibilityScore/<did>
PDS XRPC:       {pds_base}/xrpc/com.atproto.repo.getRecord
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from urllib.parse import quote as urlquote

import httpx

from pds_a11y.errors import (
    ListingError,
    LookupFailedError,
    RecordNotFoundError,
    ScoreFetchError,
)
from pds_a11y.limiter import ConcurrencyLimiter
from pds_a11y.models import RepositoryDescriptor

logger = logging.getLogger(__name__)

_GET_RECORD_NSID = "com.atproto.repo.getRecord"
_RECORD_NOT_FOUND = "RecordNotFound"


@dataclass
class UpstreamClient:
    """Async client for every outbound read the ingestion job makes.

    Each request goes through ``limiter`` so the number of simultaneous
    outbound connections stays bounded across the whole run.
    """

    http: httpx.AsyncClient
    limiter: ConcurrencyLimiter
    api_base: str
    pds_base: str
    preference_collection: str
    headers: dict[str, str] = field(default_factory=dict)

    # ── Public API ────────────────────────────────────────────

    async def list_repos(self) -> list[RepositoryDescriptor]:
        """Fetch the repository listing.

        Raises:
            ListingError: On transport errors, non-2xx responses or a
                body without a ``repos`` array.
        """
        url = f"{self.api_base.rstrip('/')}/pds/repos"
        try:
            response = await self._get(url)
        except httpx.HTTPError as exc:
            raise ListingError(f"Failed to fetch repos: {exc}") from exc

        if not response.is_success:
            raise ListingError(f"Failed to fetch repos: {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ListingError("Failed to fetch repos: malformed JSON") from exc

        repos_raw = data.get("repos") if isinstance(data, dict) else None
        if not isinstance(repos_raw, list):
            raise ListingError("Failed to fetch repos: response has no 'repos' array")
        return self._parse_repos(repos_raw)

    async def get_profile_record(self, did: str) -> dict[str, object]:
        """Fetch the participation profile record (``rkey=self``) for *did*.

        Raises:
            RecordNotFoundError: The PDS reports ``RecordNotFound``.
            LookupFailedError: Any other transport, status or body problem.
        """
        url = f"{self.pds_base.rstrip('/')}/xrpc/{_GET_RECORD_NSID}"
        params = {
            "repo": did,
            "collection": self.preference_collection,
            "rkey": "self",
        }
        try:
            response = await self._get(url, params=params)
        except httpx.HTTPError as exc:
            raise LookupFailedError(f"Profile lookup for {did} failed: {exc}") from exc

        if response.is_success:
            try:
                data = response.json()
            except ValueError as exc:
                raise LookupFailedError(
                    f"Profile lookup for {did} returned malformed JSON"
                ) from exc
            value = data.get("value") if isinstance(data, dict) else None
            if not isinstance(value, dict):
                raise LookupFailedError(f"Profile lookup for {did} returned no record value")
            return value

        if self._error_name(response) == _RECORD_NOT_FOUND:
            raise RecordNotFoundError(f"No profile record for {did}")
        raise LookupFailedError(
            f"Profile lookup for {did} failed: HTTP {response.status_code}"
        )

    async def get_score(self, did: str) -> float:
        """Fetch the accessibility score for *did*.

        Raises:
            ScoreFetchError: On transport errors, non-2xx responses or a
                body whose ``score`` is not a finite number.
        """
        encoded = urlquote(did, safe=":")
        url = f"{self.api_base.rstrip('/')}/pds/accessibilityScore/{encoded}"
        try:
            response = await self._get(url)
        except httpx.HTTPError as exc:
            raise ScoreFetchError(f"Failed to fetch score for DID {did}: {exc}") from exc

        if not response.is_success:
            raise ScoreFetchError(
                f"Failed to fetch score for DID {did}: {response.status_code}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ScoreFetchError(f"Score for DID {did} is not valid JSON") from exc

        score = data.get("score") if isinstance(data, dict) else None
        if isinstance(score, bool) or not isinstance(score, int | float):
            raise ScoreFetchError(f"Score for DID {did} is missing or not numeric: {score!r}")
        try:
            value = float(score)
        except OverflowError as exc:
            raise ScoreFetchError(f"Score for DID {did} is out of range: {score!r}") from exc
        if not math.isfinite(value):
            raise ScoreFetchError(f"Score for DID {did} is not finite: {score!r}")
        return value

    # ── Helpers ──────────────────────────────────────────────

    async def _get(self, url: str, params: dict[str, str] | None = None) -> httpx.Response:
        return await self.limiter.run(
            lambda: self.http.get(url, params=params, headers=self.headers)
        )

    @staticmethod
    def _parse_repos(repos_raw: list) -> list[RepositoryDescriptor]:
        """Parse listing entries, dropping ones without a usable ``did``.

        A missing ``active`` flag counts as active.
        """
        repos: list[RepositoryDescriptor] = []
        for entry in repos_raw:
            if not isinstance(entry, dict):
                continue
            did = entry.get("did")
            if not isinstance(did, str) or not did:
                logger.warning("Skipping listing entry without a did: %r", entry)
                continue
            active = entry.get("active", True) is not False
            repos.append(RepositoryDescriptor(did=did, active=active))
        return repos

    @staticmethod
    def _error_name(response: httpx.Response) -> str:
        """Extract the XRPC ``error`` name from an error body, or ``""``."""
        try:
            body = response.json()
        except ValueError:
            return ""
        if isinstance(body, dict):
            return str(body.get("error", ""))
        return ""

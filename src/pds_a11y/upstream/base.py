"""Ports: upstream repository listing, participation lookup and score lookup."""

from __future__ import annotations

from typing import Protocol

from pds_a11y.models import RepositoryDescriptor


class RepositoryListingPort(Protocol):
    """Port for enumerating the repositories hosted on the PDS."""

    async def list_repos(self) -> list[RepositoryDescriptor]:
        """Return every listed repository. Raises ListingError on failure."""
        ...


class ParticipationLookupPort(Protocol):
    """Port for reading a repository's participation profile record."""

    async def get_profile_record(self, did: str) -> dict[str, object]:
        """Return the record value.

        Raises RecordNotFoundError when the repository has no record and
        LookupFailedError for any other failure.
        """
        ...


class ScoreSourcePort(Protocol):
    """Port for fetching one repository's accessibility score."""

    async def get_score(self, did: str) -> float:
        """Return the score. Raises ScoreFetchError on failure."""
        ...

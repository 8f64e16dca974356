"""Per-repository participation policy.

The policy fails open: any lookup outcome that is not an explicit
``false`` preference keeps the repository in scoring. A transient PDS
error must never silently drop a repository from the aggregate.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from pds_a11y.errors import PdsA11yError, RecordNotFoundError
from pds_a11y.models import Participation
from pds_a11y.upstream.base import ParticipationLookupPort

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCE_PATH: tuple[str, ...] = ("accessibility", "shareScore")


class ParticipationResolver:
    """Decide whether a repository is scored, with one lookup per call."""

    def __init__(
        self,
        lookup: ParticipationLookupPort,
        preference_path: Sequence[str] = DEFAULT_PREFERENCE_PATH,
    ) -> None:
        self._lookup = lookup
        self._preference_path = tuple(preference_path)

    async def resolve(self, did: str) -> Participation:
        try:
            record = await self._lookup.get_profile_record(did)
        except RecordNotFoundError:
            return Participation.PARTICIPATES
        except (PdsA11yError, httpx.HTTPError) as exc:
            logger.warning(
                "Participation lookup for %s failed, including it by default: %s", did, exc
            )
            return Participation.UNKNOWN

        preference = self._read_preference(record)
        if preference is False:
            return Participation.OPTED_OUT
        return Participation.PARTICIPATES

    def _read_preference(self, record: object) -> bool | None:
        """Walk the nested preference path; non-boolean leaves count as absent."""
        node = record
        for part in self._preference_path:
            if not isinstance(node, dict):
                return None
            node = node.get(part)
        return node if isinstance(node, bool) else None

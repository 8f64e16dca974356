"""Read-only queries over the score store.

Results carry an HTTP-style status so the same functions back both the
JSON routes and the MCP tools. Ingestion errors are never visible here:
a missing score is simply "not found".
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pds_a11y.models import LAST_UPDATED_KEY, SCORE_KEY
from pds_a11y.store.base import ScoreStorePort, list_scores, read_aggregate, read_score

LAST_UPDATED_PLACEHOLDER = "never"


@dataclass(frozen=True, slots=True)
class QueryResult:
    status: int
    body: dict[str, object] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.status == 200


def _not_found(what: str) -> QueryResult:
    return QueryResult(status=404, body={"error": "not found", "key": what})


async def get_score(store: ScoreStorePort, did: str) -> QueryResult:
    score = await read_score(store, did)
    if score is None:
        return _not_found(did)
    return QueryResult(status=200, body={"did": did, "score": score})


async def get_aggregate(store: ScoreStorePort) -> QueryResult:
    aggregate = await read_aggregate(store)
    if aggregate.pds_accessibility_score is None:
        return _not_found(SCORE_KEY)
    return QueryResult(
        status=200,
        body={
            SCORE_KEY: aggregate.pds_accessibility_score,
            LAST_UPDATED_KEY: aggregate.last_updated or LAST_UPDATED_PLACEHOLDER,
        },
    )


async def get_all_scores(store: ScoreStorePort) -> QueryResult:
    return QueryResult(status=200, body=dict(await list_scores(store)))

"""Query server: JSON routes and read-only MCP tools over the score store."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from pds_a11y import query
from pds_a11y.config import Settings
from pds_a11y.errors import StoreReadError
from pds_a11y.store.base import ScoreStorePort

logger = logging.getLogger(__name__)


def create_server(settings: Settings, store: ScoreStorePort) -> FastMCP:
    """Build the FastMCP app serving scores from *store*.

    HTTP routes (GET): ``/scores``, ``/scores/{did}``, ``/aggregate``.
    MCP tools: ``get_score``, ``get_aggregate``, ``list_scores``.
    """
    mcp = FastMCP(
        "pds-a11y",
        instructions=(
            "pds-a11y serves accessibility scores for repositories hosted on a PDS. "
            "Use get_aggregate for the fleet-wide average, get_score for one did, "
            "and list_scores for every known score."
        ),
        host=settings.host,
        port=settings.port,
    )
    headers = dict(settings.response_headers)

    def _respond(result: query.QueryResult) -> Response:
        return JSONResponse(result.body, status_code=result.status, headers=headers)

    async def _guarded(read: Callable[[], Awaitable[query.QueryResult]]) -> Response:
        try:
            return _respond(await read())
        except StoreReadError as exc:
            logger.error("Score store unavailable: %s", exc)
            return JSONResponse(
                {"error": "store unavailable"}, status_code=503, headers=headers
            )

    # ─── HTTP routes ──────────────────────────────────────────

    @mcp.custom_route("/scores", methods=["GET"])
    async def all_scores_route(request: Request) -> Response:
        return await _guarded(lambda: query.get_all_scores(store))

    @mcp.custom_route("/scores/{did}", methods=["GET"])
    async def score_route(request: Request) -> Response:
        did = request.path_params["did"]
        return await _guarded(lambda: query.get_score(store, did))

    @mcp.custom_route("/aggregate", methods=["GET"])
    async def aggregate_route(request: Request) -> Response:
        return await _guarded(lambda: query.get_aggregate(store))

    # ─── Read-only tools ──────────────────────────────────────

    async def get_score(did: str) -> dict[str, object]:
        """Return the stored accessibility score for one repository did."""
        return (await query.get_score(store, did)).body

    async def get_aggregate() -> dict[str, object]:
        """Return the PDS-wide average accessibility score and when it was computed."""
        return (await query.get_aggregate(store)).body

    async def list_scores() -> dict[str, object]:
        """Return every stored per-repository score keyed by did."""
        return (await query.get_all_scores(store)).body

    mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(get_score)
    mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(get_aggregate)
    mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(list_scores)

    return mcp

"""Tests for the participation resolver (participation.py).

The resolver fails open on purpose: every lookup outcome other than an
explicit ``false`` preference keeps the repository in scoring.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from pds_a11y.errors import LookupFailedError, RecordNotFoundError
from pds_a11y.models import Participation
from pds_a11y.participation import ParticipationResolver


def _resolver(**kwargs) -> tuple[ParticipationResolver, AsyncMock]:
    lookup = AsyncMock()
    lookup.get_profile_record = AsyncMock(**kwargs)
    return ParticipationResolver(lookup), lookup


class TestDecisionPolicy:
    async def test_record_not_found_participates(self):
        resolver, _ = _resolver(side_effect=RecordNotFoundError("no record"))
        assert await resolver.resolve("did:plc:a") is Participation.PARTICIPATES

    async def test_lookup_failure_is_fail_open(self, caplog):
        resolver, _ = _resolver(side_effect=LookupFailedError("HTTP 502"))

        result = await resolver.resolve("did:plc:a")

        assert result is Participation.UNKNOWN
        assert result.includes is True
        assert "including it by default" in caplog.text

    async def test_transport_error_is_fail_open(self):
        resolver, _ = _resolver(side_effect=httpx.ConnectError("refused"))
        assert (await resolver.resolve("did:plc:a")).includes is True

    async def test_record_without_preference_participates(self):
        resolver, _ = _resolver(return_value={"$type": "cloud.tophhie.a11y.profile"})
        assert await resolver.resolve("did:plc:a") is Participation.PARTICIPATES

    async def test_explicit_false_opts_out(self):
        resolver, _ = _resolver(return_value={"accessibility": {"shareScore": False}})
        result = await resolver.resolve("did:plc:a")
        assert result is Participation.OPTED_OUT
        assert result.includes is False

    async def test_explicit_true_participates(self):
        resolver, _ = _resolver(return_value={"accessibility": {"shareScore": True}})
        assert await resolver.resolve("did:plc:a") is Participation.PARTICIPATES

    @pytest.mark.parametrize(
        "record",
        [
            {"accessibility": {"shareScore": "false"}},
            {"accessibility": {"shareScore": 0}},
            {"accessibility": False},
            {"accessibility": None},
        ],
    )
    async def test_non_boolean_preference_is_treated_as_absent(self, record):
        resolver, _ = _resolver(return_value=record)
        assert await resolver.resolve("did:plc:a") is Participation.PARTICIPATES

    async def test_exactly_one_lookup_per_resolve(self):
        resolver, lookup = _resolver(return_value={})
        await resolver.resolve("did:plc:a")
        lookup.get_profile_record.assert_awaited_once_with("did:plc:a")


class TestPreferencePath:
    async def test_custom_path(self):
        lookup = AsyncMock()
        lookup.get_profile_record = AsyncMock(return_value={"optIn": False})
        resolver = ParticipationResolver(lookup, preference_path=["optIn"])
        assert await resolver.resolve("did:plc:a") is Participation.OPTED_OUT

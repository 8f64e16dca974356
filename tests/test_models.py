"""Tests for domain models (models.py)."""

from __future__ import annotations

import dataclasses

import pytest

from pds_a11y.models import (
    LAST_UPDATED_KEY,
    SCORE_KEY,
    Participation,
    RepositoryDescriptor,
    RunOutcome,
    RunReport,
    is_reserved_key,
)


class TestReservedKeys:
    def test_reserved(self):
        assert is_reserved_key(SCORE_KEY)
        assert is_reserved_key(LAST_UPDATED_KEY)
        assert not is_reserved_key("did:plc:a")


class TestParticipation:
    @pytest.mark.parametrize(
        ("value", "included"),
        [
            (Participation.PARTICIPATES, True),
            (Participation.UNKNOWN, True),
            (Participation.OPTED_OUT, False),
        ],
    )
    def test_includes(self, value: Participation, included: bool):
        assert value.includes is included


class TestRunReport:
    def test_aborted_summary(self):
        report = RunReport(
            outcome=RunOutcome.ABORTED,
            started_at="t0",
            finished_at="t1",
            error="Failed to fetch repos: 503",
        )
        assert report.summary() == "Accessibility score update aborted: Failed to fetch repos: 503"

    def test_frozen(self):
        descriptor = RepositoryDescriptor(did="did:plc:a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.active = False  # type: ignore[misc]

"""Exception hierarchy for pds-a11y.

All exceptions inherit from PdsA11yError (single catch point).
Only ListingError is fatal to an ingestion run; everything else is
contained per repository or per side effect.
"""

from __future__ import annotations


class PdsA11yError(Exception):
    """Base exception for all pds-a11y errors."""


class ConfigError(PdsA11yError):
    """Invalid or unreadable settings."""


class UpstreamError(PdsA11yError):
    """Error talking to the upstream score service or PDS."""


class ListingError(UpstreamError):
    """The repository listing could not be fetched. Aborts the run."""


class LookupFailedError(UpstreamError):
    """A participation record lookup failed for a reason other than absence."""


class RecordNotFoundError(LookupFailedError):
    """The repository has no participation record."""


class ScoreFetchError(UpstreamError):
    """A per-repository score could not be fetched or parsed."""


class StoreError(PdsA11yError):
    """Error reading or writing the score store."""


class StoreReadError(StoreError):
    """The score store could not be read."""


class StoreWriteError(StoreError):
    """A value could not be written to the score store."""


class NotifyError(PdsA11yError):
    """The notification webhook rejected or never received a message."""

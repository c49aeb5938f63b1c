"""Exception hierarchy for the collector pipeline."""

from __future__ import annotations


class CollectorError(Exception):
    """Base class for all collector failures."""


class ConfigurationError(CollectorError):
    """Credentials, account, or meters are missing."""


class RunInProgressError(CollectorError):
    """Another collection run holds the data directory lock."""


class AuthenticationError(CollectorError):
    """The portal login did not complete."""


class FetchError(CollectorError):
    """The usage query could not be issued or timed out."""


class DecodeError(CollectorError):
    """The response body matched none of the known encodings."""


class HistoryStoreError(CollectorError):
    """The persisted history could not be read back."""

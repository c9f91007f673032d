"""Errors and warnings raised by TaxoMatch."""


class TaxoMatchError(Exception):
    """Base class for TaxoMatch errors."""


class MalformedNameError(TaxoMatchError, ValueError):
    """A raw name yields no name tokens after normalization."""

    def __init__(self, raw_name, reason: str = "no name tokens remain after normalization"):
        self.raw_name = raw_name
        super().__init__(f"Malformed name {raw_name!r}: {reason}")


class SourceUnavailableError(TaxoMatchError):
    """A reference source could not be reached or returned invalid data."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source} unavailable: {message}")


class MissingApiKeyError(TaxoMatchError):
    """An authenticated client was created without credentials."""


class ReconciliationGapWarning(UserWarning):
    """A species record's genus has no classification."""


class AmbiguousRankWarning(UserWarning):
    """More than one infraspecific epithet is populated for one record."""

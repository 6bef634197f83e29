# errors.py


class BolsaError(Exception):
    """Base class for ingest and query failures."""


class FetchError(BolsaError):
    """Upstream source unreachable, timed out, or returned a non-success status."""


class EmptyUpstreamError(FetchError):
    """Upstream answered with zero records; handled exactly like FetchError."""


class WriteError(BolsaError):
    """Insert, prune or commit failed; the batch was rolled back."""


class QueryError(BolsaError):
    """Storage read failed while serving a request."""

"""Error taxonomy for export runs."""

from __future__ import annotations


class MastrFetchError(Exception):
    """Base class for every classified failure of a run."""


class InvalidInput(MastrFetchError):
    """Caller input rejected before any network activity."""


class Cancelled(MastrFetchError):
    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(f"Run cancelled: {reason}")
        self.reason = reason


class UnitNotFound(MastrFetchError):
    def __init__(self, mastr_number: str) -> None:
        super().__init__(f"No unit found for MaStR={mastr_number}")
        self.mastr_number = mastr_number


class UpstreamError(MastrFetchError):
    """Any failure attributable to the upstream registry."""


class UpstreamUnavailable(UpstreamError):
    """Transient failures persisted past the retry budget."""

    def __init__(self, url: str, attempts: int, status: int | None = None, cause: str | None = None) -> None:
        detail = f"HTTP {status}" if status is not None else (cause or "unknown failure")
        super().__init__(f"Upstream unavailable after {attempts} attempt(s): {detail}")
        self.url = url
        self.attempts = attempts
        self.status = status
        self.cause = cause


class UpstreamHTTPError(UpstreamError):
    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(f"Upstream HTTP {status}: {body}")
        self.status = status
        self.body = body


class UpstreamStructuredError(UpstreamError):
    def __init__(self, error_type: str, message: str) -> None:
        super().__init__(f"Upstream reported Error (Type={error_type}): {message}")
        self.error_type = error_type
        self.message = message


class UpstreamMalformed(UpstreamError):
    pass

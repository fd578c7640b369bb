"""Deployment ledger errors."""

from __future__ import annotations

_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_RATE_LIMITED = 429


class LedgerError(Exception):
    """Base class for ledger failures."""


class LedgerAPIError(LedgerError):
    """Raised when the Notion API returns an error or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, body: str) -> LedgerAPIError:
        """Return an error for a non-2xx response."""
        return cls(f"Notion API {status_code}: {body[:200]}", status_code=status_code)

    @classmethod
    def timeout(cls) -> LedgerAPIError:
        """Return an error for a request timeout."""
        return cls("Notion API request timed out")

    @classmethod
    def network_error(cls, detail: str) -> LedgerAPIError:
        """Return an error for connection-level failures."""
        return cls(f"Notion API network error: {detail}")

    @property
    def is_transient(self) -> bool:
        """Return True for failures worth retrying (network, 429, 5xx)."""
        return (
            self.status_code is None
            or self.status_code == _HTTP_RATE_LIMITED
            or self.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        )


class LedgerResponseShapeError(LedgerError):
    """Raised when a Notion response lacks an expected field."""

    @classmethod
    def missing(cls, field: str) -> LedgerResponseShapeError:
        """Return an error naming the missing field."""
        return cls(f"Notion response missing expected field: {field}")


class LedgerConfigError(LedgerError):
    """Raised when ledger configuration is unusable."""

    @classmethod
    def empty_token(cls) -> LedgerConfigError:
        """Return an error for a blank integration token."""
        return cls("Notion token must be non-empty")

"""GitHub dispatch errors."""

from __future__ import annotations

_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_RATE_LIMITED = 429


class DispatchAPIError(RuntimeError):
    """Raised when a ``repository_dispatch`` call fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, body: str) -> DispatchAPIError:
        """Return an error for a non-2xx response."""
        return cls(f"GitHub API {status_code}: {body[:200]}", status_code=status_code)

    @classmethod
    def timeout(cls) -> DispatchAPIError:
        """Return an error for a request timeout."""
        return cls("GitHub API request timed out")

    @classmethod
    def network_error(cls, detail: str) -> DispatchAPIError:
        """Return an error for connection-level failures."""
        return cls(f"GitHub API network error: {detail}")

    @property
    def is_transient(self) -> bool:
        """Return True for network errors, rate limiting and 5xx responses."""
        return (
            self.status_code is None
            or self.status_code == _HTTP_RATE_LIMITED
            or self.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        )


class DispatchConfigError(RuntimeError):
    """Raised when dispatch configuration is unusable."""

    @classmethod
    def empty_token(cls) -> DispatchConfigError:
        """Return an error for a blank token."""
        return cls("GitHub token must be non-empty")

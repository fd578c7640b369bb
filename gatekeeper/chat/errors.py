"""Chat platform errors."""

from __future__ import annotations


class ChatAPIError(RuntimeError):
    """Raised when a Slack Web API call fails."""

    def __init__(self, message: str, *, method: str, slack_error: str | None = None) -> None:
        """Initialise with the failing API method and Slack's error code."""
        self.method = method
        self.slack_error = slack_error
        super().__init__(message)

    @classmethod
    def from_slack(cls, method: str, slack_error: str | None) -> ChatAPIError:
        """Return an error for a Slack ``ok: false`` response."""
        detail = slack_error or "unknown_error"
        return cls(f"Slack {method} failed: {detail}", method=method, slack_error=detail)

    @classmethod
    def missing(cls, method: str, field: str) -> ChatAPIError:
        """Return an error for a response lacking an expected field."""
        return cls(f"Slack {method} response missing field: {field}", method=method)

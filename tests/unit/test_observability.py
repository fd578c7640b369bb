"""Unit tests for pipeline structured events."""

from __future__ import annotations

import pytest

from gatekeeper import observability
from gatekeeper.chat import ChatAPIError
from gatekeeper.config import ConfigError
from gatekeeper.dispatch import DispatchAPIError, DispatchConfigError
from gatekeeper.ledger import LedgerAPIError, LedgerResponseShapeError
from gatekeeper.observability import (
    ErrorCategory,
    PipelineEventLogger,
    PipelineEventType,
    categorize_error,
)


class _FakeLogger:
    """Collects (level, message) pairs."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        del exc_info, stack_info
        self.calls.append((level, message))
        return message


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> _FakeLogger:
    """Route the module logger into a fake."""
    fake = _FakeLogger()
    monkeypatch.setattr(observability, "logger", fake)
    return fake


class TestCategorizeError:
    """Tests for error categorization."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (LedgerAPIError.http_error(503, "down"), ErrorCategory.TRANSIENT),
            (LedgerAPIError.http_error(429, "slow down"), ErrorCategory.TRANSIENT),
            (LedgerAPIError.timeout(), ErrorCategory.TRANSIENT),
            (LedgerAPIError.http_error(404, "nope"), ErrorCategory.CLIENT_ERROR),
            (DispatchAPIError.http_error(502, "bad"), ErrorCategory.TRANSIENT),
            (DispatchAPIError.http_error(401, "auth"), ErrorCategory.CLIENT_ERROR),
            (LedgerResponseShapeError.missing("id"), ErrorCategory.SCHEMA_DRIFT),
            (DispatchConfigError.empty_token(), ErrorCategory.CONFIGURATION),
            (ConfigError.missing("X"), ErrorCategory.CONFIGURATION),
            (ChatAPIError.from_slack("chat.postMessage", "x"), ErrorCategory.CLIENT_ERROR),
            (ConnectionError("reset"), ErrorCategory.TRANSIENT),
            (ValueError("odd"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categorize(self, exc: BaseException, expected: ErrorCategory) -> None:
        """Exceptions map to alert categories."""
        assert categorize_error(exc) is expected


class TestPipelineEventLogger:
    """Tests for the structured log line format."""

    def test_lines_lead_with_event_and_deployment_id(
        self, captured: _FakeLogger
    ) -> None:
        """Every line starts with the event name and deployment id."""
        events = PipelineEventLogger()

        events.log_push_received(
            deployment_id="deploy-main-1",
            branch="main",
            repository="octo/reef",
            delivery_id="d-1",
        )
        events.log_decision_recorded(
            deployment_id="deploy-main-1",
            decision="approve",
            actor="Alice",
            ledger="applied",
        )

        assert captured.calls == [
            (
                "INFO",
                "[pipeline.push.received] deployment_id=deploy-main-1 "
                "repository=octo/reef branch=main delivery_id=d-1",
            ),
            (
                "INFO",
                "[pipeline.decision.recorded] deployment_id=deploy-main-1 "
                "decision=approve actor=Alice ledger=applied",
            ),
        ]

    @pytest.mark.parametrize(
        ("outcome", "level", "event"),
        [
            ("succeeded", "INFO", PipelineEventType.TRIGGER_SUCCEEDED),
            ("unavailable", "INFO", PipelineEventType.TRIGGER_UNAVAILABLE),
            ("failed", "ERROR", PipelineEventType.TRIGGER_FAILED),
        ],
    )
    def test_trigger_outcome_levels(
        self,
        captured: _FakeLogger,
        outcome: str,
        level: str,
        event: PipelineEventType,
    ) -> None:
        """Failed triggers log at ERROR, the rest at INFO."""
        PipelineEventLogger().log_trigger_outcome(
            deployment_id="deploy-main-1", strategy="ci_dispatch", outcome=outcome
        )

        [(logged_level, message)] = captured.calls
        assert logged_level == level
        assert message.startswith(f"[{event}] deployment_id=deploy-main-1")

    def test_ledger_failure_includes_category(self, captured: _FakeLogger) -> None:
        """Ledger failures are warnings carrying the error category."""
        PipelineEventLogger().log_ledger_failed(
            deployment_id="deploy-main-1",
            operation="create",
            error=LedgerAPIError.http_error(503, "down"),
        )

        [(level, message)] = captured.calls
        assert level == "WARNING"
        assert "error_category=transient" in message
        assert "operation=create" in message

"""Structured pipeline events correlated by deployment identifier.

Every event is one log line beginning with ``[<event>] deployment_id=<id>``
so that a push, its announcement, the reviewer's decision and the trigger
outcome can be followed with a single filter in a log aggregator.

Usage
-----
>>> events = PipelineEventLogger()
>>> events.log_push_received(deployment_id="deploy-main-1", branch="main",
...                          repository="octo/reef", delivery_id=None)

"""

from __future__ import annotations

import enum

from gatekeeper.chat.errors import ChatAPIError
from gatekeeper.config import ConfigError
from gatekeeper.dispatch.errors import DispatchAPIError, DispatchConfigError
from gatekeeper.ledger.errors import (
    LedgerAPIError,
    LedgerConfigError,
    LedgerResponseShapeError,
)
from gatekeeper.logging import get_logger, log_error, log_info, log_warning

__all__ = [
    "ErrorCategory",
    "PipelineEventLogger",
    "PipelineEventType",
    "categorize_error",
]

logger = get_logger(__name__)


class PipelineEventType(enum.StrEnum):
    """Structured log event types for the approval pipeline."""

    PUSH_RECEIVED = "pipeline.push.received"
    PUSH_IGNORED = "pipeline.push.ignored"
    ANNOUNCEMENT_PUBLISHED = "pipeline.announcement.published"
    ANNOUNCEMENT_FAILED = "pipeline.announcement.failed"
    INCIDENT_NOTICE_FAILED = "pipeline.incident_notice.failed"
    LEDGER_CREATED = "pipeline.ledger.created"
    LEDGER_SKIPPED = "pipeline.ledger.skipped"
    LEDGER_FAILED = "pipeline.ledger.failed"
    REACTION_IGNORED = "pipeline.reaction.ignored"
    DECISION_RECORDED = "pipeline.decision.recorded"
    TRANSITION_REFUSED = "pipeline.transition.refused"
    TRIGGER_SUCCEEDED = "pipeline.trigger.succeeded"
    TRIGGER_UNAVAILABLE = "pipeline.trigger.unavailable"
    TRIGGER_FAILED = "pipeline.trigger.failed"
    TASK_FAILED = "pipeline.task.failed"


class ErrorCategory(enum.StrEnum):
    """Coarse failure classes for alert routing."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (LedgerResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (LedgerConfigError, ErrorCategory.CONFIGURATION),
    (DispatchConfigError, ErrorCategory.CONFIGURATION),
    (ConfigError, ErrorCategory.CONFIGURATION),
    (ChatAPIError, ErrorCategory.CLIENT_ERROR),
    (TimeoutError, ErrorCategory.TRANSIENT),
    (ConnectionError, ErrorCategory.TRANSIENT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes."""
    # Status-bearing API errors split on whether a retry could help.
    if isinstance(exc, LedgerAPIError | DispatchAPIError):
        return ErrorCategory.TRANSIENT if exc.is_transient else ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class PipelineEventLogger:
    """Emit pipeline lifecycle events via femtologging."""

    def log_push_received(
        self,
        *,
        deployment_id: str,
        branch: str,
        repository: str,
        delivery_id: str | None,
    ) -> None:
        """Log acceptance of a deployable push."""
        log_info(
            logger,
            "[%s] deployment_id=%s repository=%s branch=%s delivery_id=%s",
            PipelineEventType.PUSH_RECEIVED,
            deployment_id,
            repository,
            branch,
            delivery_id,
        )

    def log_push_ignored(self, *, ref: str, reason: str) -> None:
        """Log a push that will not produce a deployment."""
        log_info(
            logger,
            "[%s] deployment_id=- ref=%s reason=%s",
            PipelineEventType.PUSH_IGNORED,
            ref,
            reason,
        )

    def log_announcement_published(
        self, *, deployment_id: str, channel: str, thread_ts: str
    ) -> None:
        """Log a successful announcement."""
        log_info(
            logger,
            "[%s] deployment_id=%s channel=%s thread_ts=%s",
            PipelineEventType.ANNOUNCEMENT_PUBLISHED,
            deployment_id,
            channel,
            thread_ts,
        )

    def log_announcement_failed(
        self, *, deployment_id: str, channel: str, error: BaseException
    ) -> None:
        """Log a failed announcement with error categorization."""
        log_error(
            logger,
            "[%s] deployment_id=%s channel=%s error_type=%s error_category=%s "
            "error_message=%s",
            PipelineEventType.ANNOUNCEMENT_FAILED,
            deployment_id,
            channel,
            type(error).__name__,
            categorize_error(error),
            error,
            exc_info=error,
        )

    def log_incident_notice_failed(
        self, *, deployment_id: str, error: BaseException
    ) -> None:
        """Log that even the INCIDENTS notice could not be posted."""
        log_error(
            logger,
            "[%s] deployment_id=%s error_type=%s error_message=%s",
            PipelineEventType.INCIDENT_NOTICE_FAILED,
            deployment_id,
            type(error).__name__,
            error,
        )

    def log_ledger_created(self, *, deployment_id: str, page_id: str) -> None:
        """Log creation of the ledger entry."""
        log_info(
            logger,
            "[%s] deployment_id=%s page_id=%s",
            PipelineEventType.LEDGER_CREATED,
            deployment_id,
            page_id,
        )

    def log_ledger_skipped(self, *, deployment_id: str, reason: str) -> None:
        """Log a ledger operation skipped in degraded mode."""
        log_warning(
            logger,
            "[%s] deployment_id=%s reason=%s",
            PipelineEventType.LEDGER_SKIPPED,
            deployment_id,
            reason,
        )

    def log_ledger_failed(
        self, *, deployment_id: str, operation: str, error: BaseException
    ) -> None:
        """Log a ledger failure; the pipeline continues without the record."""
        log_warning(
            logger,
            "[%s] deployment_id=%s operation=%s error_type=%s error_category=%s "
            "error_message=%s",
            PipelineEventType.LEDGER_FAILED,
            deployment_id,
            operation,
            type(error).__name__,
            categorize_error(error),
            error,
        )

    def log_reaction_ignored(
        self, *, reaction: str, user: str, item_type: str, reason: str
    ) -> None:
        """Log a reaction that causes no transition."""
        log_info(
            logger,
            "[%s] deployment_id=- reaction=%s user=%s item_type=%s reason=%s",
            PipelineEventType.REACTION_IGNORED,
            reaction,
            user,
            item_type,
            reason,
        )

    def log_decision_recorded(
        self, *, deployment_id: str, decision: str, actor: str, ledger: str
    ) -> None:
        """Log an approve or reject decision and its ledger outcome."""
        log_info(
            logger,
            "[%s] deployment_id=%s decision=%s actor=%s ledger=%s",
            PipelineEventType.DECISION_RECORDED,
            deployment_id,
            decision,
            actor,
            ledger,
        )

    def log_transition_refused(
        self, *, deployment_id: str, decision: str, actor: str, reason: str
    ) -> None:
        """Log a decision refused by the allow-list or a racing transition."""
        log_warning(
            logger,
            "[%s] deployment_id=%s decision=%s actor=%s reason=%s",
            PipelineEventType.TRANSITION_REFUSED,
            deployment_id,
            decision,
            actor,
            reason,
        )

    def log_trigger_outcome(
        self,
        *,
        deployment_id: str,
        strategy: str,
        outcome: str,
        detail: str | None = None,
    ) -> None:
        """Log the outcome of one trigger strategy."""
        event = {
            "succeeded": PipelineEventType.TRIGGER_SUCCEEDED,
            "unavailable": PipelineEventType.TRIGGER_UNAVAILABLE,
        }.get(outcome, PipelineEventType.TRIGGER_FAILED)
        emit = log_error if event is PipelineEventType.TRIGGER_FAILED else log_info
        emit(
            logger,
            "[%s] deployment_id=%s strategy=%s outcome=%s detail=%s",
            event,
            deployment_id,
            strategy,
            outcome,
            detail,
        )

    def log_task_failed(
        self, *, correlation_id: str, task_name: str, error: BaseException
    ) -> None:
        """Log an exception that escaped a background task."""
        log_error(
            logger,
            "[%s] deployment_id=%s task=%s error_type=%s error_category=%s "
            "error_message=%s",
            PipelineEventType.TASK_FAILED,
            correlation_id,
            task_name,
            type(error).__name__,
            categorize_error(error),
            error,
            exc_info=error,
        )

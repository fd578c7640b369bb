"""Build the webhook service's collaborators from environment configuration.

Every outbound client is constructed exactly once here and injected into
the pipeline objects that use it. Optional integrations degrade instead of
failing: without Notion credentials the ledger is skipped, and without a
GitHub token the trigger chain falls through to the manual fallback.

Usage
-----
Build dependencies for the API layer::

    from gatekeeper.api.factory import build_dependencies

    app = create_app(build_dependencies())

"""

from __future__ import annotations

from gatekeeper.api.app import AppDependencies
from gatekeeper.api.middleware import SupportsAclose
from gatekeeper.chat import SlackChatClient
from gatekeeper.config import (
    ApprovalConfig,
    ChannelMap,
    DispatchConfig,
    LedgerConfig,
    SlackConfig,
    WebhookSecrets,
)
from gatekeeper.dispatch import GitHubDispatchClient
from gatekeeper.ledger import NotionLedgerClient
from gatekeeper.logging import get_logger, log_warning
from gatekeeper.observability import PipelineEventLogger
from gatekeeper.pipeline import (
    ApprovalStateMachine,
    BackgroundTaskRunner,
    CIDispatchStrategy,
    DeploymentTriggerChain,
    ManualFallbackStrategy,
    NotificationFanout,
)

__all__ = ["build_dependencies"]

logger = get_logger(__name__)


def build_dependencies() -> AppDependencies:
    """Build ``AppDependencies`` from ``GATEKEEPER_*`` variables.

    Returns
    -------
    AppDependencies
        Fully wired collaborators for :func:`gatekeeper.api.app.create_app`.

    Raises
    ------
    ConfigError
        If a required secret, token or channel is missing.

    """
    secrets = WebhookSecrets.from_env()
    channels = ChannelMap.from_env()
    approval_config = ApprovalConfig.from_env()
    events = PipelineEventLogger()

    chat = SlackChatClient(SlackConfig.from_env())
    resources: list[SupportsAclose] = [chat]

    ledger: NotionLedgerClient | None = None
    if (ledger_config := LedgerConfig.from_env()) is not None:
        ledger = NotionLedgerClient(ledger_config)
        resources.append(ledger)
    else:
        log_warning(logger, "Notion ledger not configured; decisions are not recorded")

    dispatcher: GitHubDispatchClient | None = None
    if (dispatch_config := DispatchConfig.from_env()) is not None:
        dispatcher = GitHubDispatchClient(dispatch_config)
        resources.append(dispatcher)
    else:
        log_warning(
            logger, "GitHub dispatch not configured; approvals use the manual fallback"
        )

    trigger_chain = DeploymentTriggerChain(
        [
            CIDispatchStrategy(dispatcher, chat),
            ManualFallbackStrategy(chat, approval_config.manual_deploy_command),
        ],
        ledger=ledger,
        event_logger=events,
    )
    return AppDependencies(
        secrets=secrets,
        fanout=NotificationFanout(chat, channels, ledger=ledger, event_logger=events),
        approvals=ApprovalStateMachine(
            chat,
            trigger_chain,
            ledger=ledger,
            approvals=approval_config,
            event_logger=events,
        ),
        runner=BackgroundTaskRunner(events),
        event_logger=events,
        resources=tuple(resources),
    )

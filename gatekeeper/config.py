"""Environment-driven configuration for the Gatekeeper service.

Each external collaborator has its own frozen dataclass with a
``from_env()`` constructor. Required secrets raise :class:`ConfigError`
when absent; optional integrations (the Notion ledger and GitHub dispatch)
return ``None`` so the pipeline runs in its degraded mode instead.

Environment variables
---------------------
``GATEKEEPER_GITHUB_WEBHOOK_SECRET``
    Secret shared with the GitHub webhook (required).
``GATEKEEPER_SLACK_SIGNING_SECRET``
    Slack app signing secret (required).
``GATEKEEPER_SLACK_BOT_TOKEN``
    Slack bot token used for the Web API (required).
``GATEKEEPER_SLACK_{DEV,QA,PROD,INCIDENTS}_CHANNEL_ID``
    Destination channel per environment.
``GATEKEEPER_NOTION_TOKEN`` / ``GATEKEEPER_NOTION_DATABASE_ID``
    Ledger credentials; both must be set to enable the ledger.
``GATEKEEPER_GITHUB_TOKEN`` / ``GATEKEEPER_GITHUB_REPO``
    ``repository_dispatch`` credentials and ``owner/name`` target.
``GATEKEEPER_DISPATCH_MAX_ATTEMPTS`` / ``GATEKEEPER_DISPATCH_INITIAL_DELAY_S``
    Retry policy for dispatch and ledger calls.
``GATEKEEPER_APPROVER_ALLOWLIST``
    Comma-separated Slack user IDs allowed to approve; empty allows all.
``GATEKEEPER_MANUAL_DEPLOY_COMMAND``
    Command quoted in the manual fallback message.

"""

from __future__ import annotations

import dataclasses as dc
import os

from gatekeeper.deployments.models import Environment

__all__ = [
    "ApprovalConfig",
    "ChannelMap",
    "ConfigError",
    "DispatchConfig",
    "LedgerConfig",
    "RetryPolicy",
    "SlackConfig",
    "WebhookSecrets",
]

_DEFAULT_MANUAL_COMMAND = "git push heroku main"
_DEFAULT_NOTION_ENDPOINT = "https://api.notion.com/v1"
_DEFAULT_NOTION_VERSION = "2022-06-28"
_DEFAULT_GITHUB_API = "https://api.github.com"
_DEFAULT_TIMEOUT_S = 30.0


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed."""

    @classmethod
    def missing(cls, env_var: str) -> ConfigError:
        """Return an error for an unset required variable."""
        return cls(f"{env_var} is required")

    @classmethod
    def malformed_repo(cls, value: str) -> ConfigError:
        """Return an error for a repository slug without ``owner/name``."""
        return cls(f"GATEKEEPER_GITHUB_REPO must be 'owner/name', got: {value!r}")


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


def _require(name: str) -> str:
    value = _env(name)
    if not value:
        raise ConfigError.missing(name)
    return value


def _parse_positive_int(env_var: str, default: int) -> int:
    raw = _env(env_var)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def _parse_non_negative_float(env_var: str, default: float) -> float:
    raw = _env(env_var)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{env_var} must be a number, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 0:
        msg = f"{env_var} must not be negative, got: {value}"
        raise ValueError(msg)
    return value


@dc.dataclass(frozen=True, slots=True)
class WebhookSecrets:
    """Shared secrets used to authenticate inbound webhooks."""

    github_webhook_secret: str
    slack_signing_secret: str

    @classmethod
    def from_env(cls) -> WebhookSecrets:
        """Read both secrets; each is required."""
        return cls(
            github_webhook_secret=_require("GATEKEEPER_GITHUB_WEBHOOK_SECRET"),
            slack_signing_secret=_require("GATEKEEPER_SLACK_SIGNING_SECRET"),
        )


@dc.dataclass(frozen=True, slots=True)
class ChannelMap:
    """Slack channel ID per deployment environment."""

    dev: str
    qa: str
    prod: str
    incidents: str

    def resolve(self, environment: Environment) -> str:
        """Return the channel for ``environment``."""
        return {
            Environment.DEV: self.dev,
            Environment.QA: self.qa,
            Environment.PROD: self.prod,
            Environment.INCIDENTS: self.incidents,
        }[environment]

    @classmethod
    def from_env(cls) -> ChannelMap:
        """Read the four channel IDs; INCIDENTS is required."""
        return cls(
            dev=_env("GATEKEEPER_SLACK_DEV_CHANNEL_ID"),
            qa=_env("GATEKEEPER_SLACK_QA_CHANNEL_ID"),
            prod=_env("GATEKEEPER_SLACK_PROD_CHANNEL_ID"),
            incidents=_require("GATEKEEPER_SLACK_INCIDENTS_CHANNEL_ID"),
        )


@dc.dataclass(frozen=True, slots=True)
class SlackConfig:
    """Slack Web API credentials."""

    bot_token: str

    @classmethod
    def from_env(cls) -> SlackConfig:
        """Read ``GATEKEEPER_SLACK_BOT_TOKEN``."""
        return cls(bot_token=_require("GATEKEEPER_SLACK_BOT_TOKEN"))


@dc.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt budget for :func:`gatekeeper.retry.retry_with_backoff`."""

    max_attempts: int = 3
    initial_delay_s: float = 1.0

    @classmethod
    def from_env(cls) -> RetryPolicy:
        """Read the shared retry policy."""
        return cls(
            max_attempts=_parse_positive_int("GATEKEEPER_DISPATCH_MAX_ATTEMPTS", 3),
            initial_delay_s=_parse_non_negative_float(
                "GATEKEEPER_DISPATCH_INITIAL_DELAY_S", 1.0
            ),
        )


@dc.dataclass(frozen=True, slots=True)
class LedgerConfig:
    """Notion database used as the deployment ledger.

    Attributes
    ----------
    token
        Notion integration token.
    database_id
        Database holding one page per deployment.
    endpoint
        Notion REST API base URL.
    notion_version
        Value sent in the ``Notion-Version`` header.
    timeout_s
        Per-request timeout.
    retry
        Retry policy for ledger calls.

    """

    token: str
    database_id: str
    endpoint: str = _DEFAULT_NOTION_ENDPOINT
    notion_version: str = _DEFAULT_NOTION_VERSION
    timeout_s: float = _DEFAULT_TIMEOUT_S
    retry: RetryPolicy = dc.field(default_factory=RetryPolicy)

    @classmethod
    def from_env(cls) -> LedgerConfig | None:
        """Return the ledger config, or ``None`` when the ledger is not configured."""
        token = _env("GATEKEEPER_NOTION_TOKEN")
        database_id = _env("GATEKEEPER_NOTION_DATABASE_ID")
        if not token or not database_id:
            return None
        return cls(
            token=token,
            database_id=database_id,
            endpoint=_env("GATEKEEPER_NOTION_ENDPOINT") or _DEFAULT_NOTION_ENDPOINT,
            retry=RetryPolicy.from_env(),
        )


@dc.dataclass(frozen=True, slots=True)
class DispatchConfig:
    """GitHub ``repository_dispatch`` target for approved deployments."""

    token: str
    owner: str
    repo: str
    api_base: str = _DEFAULT_GITHUB_API
    event_type: str = "deployment-approved"
    workflow_file: str = "deploy.yml"
    timeout_s: float = _DEFAULT_TIMEOUT_S
    retry: RetryPolicy = dc.field(default_factory=RetryPolicy)

    @property
    def slug(self) -> str:
        """Return ``owner/repo``."""
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_env(cls) -> DispatchConfig | None:
        """Return the dispatch config, or ``None`` when dispatch is not configured."""
        token = _env("GATEKEEPER_GITHUB_TOKEN")
        slug = _env("GATEKEEPER_GITHUB_REPO")
        if not token or not slug:
            return None
        owner, _, repo = slug.partition("/")
        if not owner or not repo or "/" in repo:
            raise ConfigError.malformed_repo(slug)
        return cls(
            token=token,
            owner=owner,
            repo=repo,
            api_base=_env("GATEKEEPER_GITHUB_API") or _DEFAULT_GITHUB_API,
            retry=RetryPolicy.from_env(),
        )


@dc.dataclass(frozen=True, slots=True)
class ApprovalConfig:
    """Who may approve, and what to tell operators when automation is down."""

    approver_allowlist: frozenset[str] = frozenset()
    manual_deploy_command: str = _DEFAULT_MANUAL_COMMAND

    def is_allowed(self, user_id: str) -> bool:
        """Return True when ``user_id`` may approve or reject."""
        return not self.approver_allowlist or user_id in self.approver_allowlist

    @classmethod
    def from_env(cls) -> ApprovalConfig:
        """Read the allow-list and manual command."""
        raw = _env("GATEKEEPER_APPROVER_ALLOWLIST")
        allowlist = frozenset(part.strip() for part in raw.split(",") if part.strip())
        return cls(
            approver_allowlist=allowlist,
            manual_deploy_command=_env("GATEKEEPER_MANUAL_DEPLOY_COMMAND")
            or _DEFAULT_MANUAL_COMMAND,
        )

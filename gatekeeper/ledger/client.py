"""Notion-backed deployment ledger.

Each deployment is one page in a Notion database, keyed by the title
property ``Deployment ID``. Pages are created in ``Pending`` and advanced
with single-page PATCH updates. :meth:`NotionLedgerClient.transition`
re-reads the current status and only writes when it equals the expected
predecessor, which keeps racing reactions from overwriting each other's
decision.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import json
import typing as typ

import httpx

from gatekeeper.common.time import isoformat_z, utcnow
from gatekeeper.deployments.models import TERMINAL_STATUSES, LedgerStatus
from gatekeeper.retry import retry_with_backoff

from .errors import LedgerAPIError, LedgerConfigError, LedgerResponseShapeError

if typ.TYPE_CHECKING:
    import datetime as dt

    from gatekeeper.config import LedgerConfig
    from gatekeeper.deployments.models import DeploymentEvent

__all__ = [
    "DeploymentLedger",
    "LedgerEntry",
    "NotionLedgerClient",
    "TransitionResult",
]

_HTTP_ERROR_STATUS_THRESHOLD = 400
_ID_PROPERTY = "Deployment ID"
_STATUS_PROPERTY = "Status"

# (actor property, time property) written alongside each status.
_TRANSITION_PROPERTIES: dict[LedgerStatus, tuple[str | None, str]] = {
    LedgerStatus.APPROVED: ("Approved By", "Approval Time"),
    LedgerStatus.REJECTED: ("Rejected By", "Rejection Time"),
    LedgerStatus.DEPLOYED: (None, "Deployment Time"),
    LedgerStatus.FAILED: (None, "Failure Time"),
}


class TransitionResult(enum.StrEnum):
    """Outcome of a conditional status update."""

    APPLIED = "applied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dc.dataclass(frozen=True, slots=True)
class LedgerEntry:
    """A ledger page located by deployment identifier."""

    page_id: str
    deployment_id: str
    status: LedgerStatus | None


class DeploymentLedger(typ.Protocol):
    """Durable store tracking each deployment's lifecycle."""

    async def find_entry(self, deployment_id: str) -> LedgerEntry | None:
        """Return the entry for ``deployment_id``, if one exists."""
        ...

    async def create_entry(self, event: DeploymentEvent) -> str:
        """Create a ``Pending`` entry and return its page ID."""
        ...

    async def transition(
        self,
        deployment_id: str,
        target: LedgerStatus,
        *,
        expected: LedgerStatus,
        actor: str | None = None,
    ) -> TransitionResult:
        """Move the entry from ``expected`` to ``target``."""
        ...

    async def aclose(self) -> None:
        """Release owned resources."""
        ...


def _rich_text(content: str) -> dict[str, object]:
    return {"rich_text": [{"type": "text", "text": {"content": content}}]}


def _date(moment: dt.datetime) -> dict[str, object]:
    return {"date": {"start": isoformat_z(moment)}}


def _status(status: LedgerStatus) -> dict[str, object]:
    return {"status": {"name": status.value}}


def _get_nested(data: object, *keys: str) -> object:
    """Traverse nested dicts, returning None for missing keys."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _parse_status(page: object) -> LedgerStatus | None:
    name = _get_nested(page, "properties", _STATUS_PROPERTY, "status", "name")
    if not isinstance(name, str):
        return None
    try:
        return LedgerStatus(name)
    except ValueError:
        return None


def _is_transient(exc: Exception) -> bool:
    return isinstance(exc, LedgerAPIError) and exc.is_transient


class NotionLedgerClient:
    """``DeploymentLedger`` implementation over the Notion REST API.

    Parameters
    ----------
    config
        Notion credentials, database ID and retry policy.
    http_client
        Optional ``httpx.AsyncClient`` for testing. When omitted the
        instance creates and owns one.

    """

    def __init__(
        self,
        config: LedgerConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with configuration."""
        if not config.token.strip():
            raise LedgerConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "Notion-Version": config.notion_version,
            "Content-Type": "application/json",
        }

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def find_entry(self, deployment_id: str) -> LedgerEntry | None:
        """Query the database for the page titled ``deployment_id``."""
        query = {
            "filter": {
                "property": _ID_PROPERTY,
                "title": {"equals": deployment_id},
            },
            "page_size": 1,
        }
        data = await self._request(
            "POST", f"/databases/{self._config.database_id}/query", query
        )
        results = data.get("results")
        if not isinstance(results, list):
            raise LedgerResponseShapeError.missing("results")
        if not results:
            return None

        page = results[0]
        page_id = page.get("id") if isinstance(page, dict) else None
        if not isinstance(page_id, str):
            raise LedgerResponseShapeError.missing("results[0].id")
        return LedgerEntry(
            page_id=page_id,
            deployment_id=deployment_id,
            status=_parse_status(page),
        )

    async def create_entry(self, event: DeploymentEvent) -> str:
        """Create the ``Pending`` page for a newly announced deployment."""
        body = {
            "parent": {"database_id": self._config.database_id},
            "properties": {
                _ID_PROPERTY: {
                    "title": [
                        {"type": "text", "text": {"content": event.deployment_id}}
                    ]
                },
                _STATUS_PROPERTY: _status(LedgerStatus.PENDING),
                "Repository": _rich_text(event.repository),
                "Branch": _rich_text(event.branch),
                "Commit": _rich_text(f"{event.commit_sha} {event.commit_message}"),
                "Author": _rich_text(event.commit_author),
                "Triggered": {"date": {"start": event.triggered_at}},
            },
        }
        data = await self._request("POST", "/pages", body)
        page_id = data.get("id")
        if not isinstance(page_id, str):
            raise LedgerResponseShapeError.missing("id")
        return page_id

    async def transition(
        self,
        deployment_id: str,
        target: LedgerStatus,
        *,
        expected: LedgerStatus,
        actor: str | None = None,
    ) -> TransitionResult:
        """Conditionally move ``deployment_id`` from ``expected`` to ``target``.

        Returns
        -------
        TransitionResult
            ``NOT_FOUND`` when no page exists, ``CONFLICT`` when the page
            is terminal or no longer in ``expected``, otherwise ``APPLIED``.

        """
        entry = await self.find_entry(deployment_id)
        if entry is None:
            return TransitionResult.NOT_FOUND
        if entry.status in TERMINAL_STATUSES or entry.status is not expected:
            return TransitionResult.CONFLICT

        actor_property, time_property = _TRANSITION_PROPERTIES.get(
            target, (None, f"{target.value} Time")
        )
        properties: dict[str, object] = {
            _STATUS_PROPERTY: _status(target),
            time_property: _date(utcnow()),
        }
        if actor_property is not None and actor is not None:
            properties[actor_property] = _rich_text(actor)

        await self._request(
            "PATCH", f"/pages/{entry.page_id}", {"properties": properties}
        )
        return TransitionResult.APPLIED

    async def _request(
        self, method: str, path: str, body: dict[str, object]
    ) -> dict[str, typ.Any]:
        """Send one Notion API call with retry on transient failures."""
        url = f"{self._config.endpoint.rstrip('/')}{path}"

        async def _attempt() -> dict[str, typ.Any]:
            try:
                response = await self._client.request(
                    method, url, json=body, headers=self._headers
                )
            except httpx.TimeoutException as exc:
                raise LedgerAPIError.timeout() from exc
            except httpx.RequestError as exc:
                raise LedgerAPIError.network_error(str(exc)) from exc

            if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
                raise LedgerAPIError.http_error(response.status_code, response.text)
            try:
                data = response.json() if response.content else {}
            except json.JSONDecodeError as exc:
                raise LedgerResponseShapeError.missing("JSON body") from exc
            if not isinstance(data, dict):
                raise LedgerResponseShapeError.missing("JSON object")
            return data

        return await retry_with_backoff(
            _attempt,
            max_attempts=self._config.retry.max_attempts,
            initial_delay_s=self._config.retry.initial_delay_s,
            retry_if=_is_transient,
        )

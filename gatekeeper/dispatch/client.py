"""GitHub ``repository_dispatch`` client for approved deployments."""

from __future__ import annotations

import typing as typ

import httpx

from gatekeeper.retry import retry_with_backoff

from .errors import DispatchAPIError, DispatchConfigError

if typ.TYPE_CHECKING:
    from gatekeeper.config import DispatchConfig

__all__ = ["DeploymentDispatcher", "GitHubDispatchClient"]

_HTTP_ERROR_STATUS_THRESHOLD = 400


class DeploymentDispatcher(typ.Protocol):
    """Sends the CI event that starts an approved deployment."""

    @property
    def actions_url(self) -> str:
        """Link operators can follow to watch the deployment run."""
        ...

    async def dispatch_deployment(self, deployment_id: str, approver: str) -> None:
        """Emit the deployment event or raise ``DispatchAPIError``."""
        ...

    async def aclose(self) -> None:
        """Release owned resources."""
        ...


def _is_transient(exc: Exception) -> bool:
    return isinstance(exc, DispatchAPIError) and exc.is_transient


class GitHubDispatchClient:
    """Trigger the deploy workflow through ``POST /repos/{o}/{r}/dispatches``.

    Transient failures (network errors, 429 and 5xx) are retried with
    exponential backoff per ``config.retry``; anything else, or the final
    transient failure, surfaces as :class:`DispatchAPIError`.

    Parameters
    ----------
    config
        Token, target repository and retry policy.
    http_client
        Optional ``httpx.AsyncClient`` for testing.

    """

    def __init__(
        self,
        config: DispatchConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with configuration."""
        if not config.token.strip():
            raise DispatchConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "gatekeeper/0.1",
        }

    @property
    def dispatch_url(self) -> str:
        """Endpoint receiving the dispatch event."""
        base = self._config.api_base.rstrip("/")
        return f"{base}/repos/{self._config.slug}/dispatches"

    @property
    def actions_url(self) -> str:
        """Workflow page for the deploy workflow."""
        return (
            f"https://github.com/{self._config.slug}/actions/workflows/"
            f"{self._config.workflow_file}"
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def dispatch_deployment(self, deployment_id: str, approver: str) -> None:
        """Send the ``deployment-approved`` event for ``deployment_id``."""
        payload = {
            "event_type": self._config.event_type,
            "client_payload": {
                "deployment_id": deployment_id,
                "approver": approver,
            },
        }

        async def _attempt() -> None:
            try:
                response = await self._client.post(
                    self.dispatch_url, json=payload, headers=self._headers
                )
            except httpx.TimeoutException as exc:
                raise DispatchAPIError.timeout() from exc
            except httpx.RequestError as exc:
                raise DispatchAPIError.network_error(str(exc)) from exc

            if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
                raise DispatchAPIError.http_error(response.status_code, response.text)

        await retry_with_backoff(
            _attempt,
            max_attempts=self._config.retry.max_attempts,
            initial_delay_s=self._config.retry.initial_delay_s,
            retry_if=_is_transient,
        )

"""ASGI lifespan middleware that drains tasks and closes outbound clients.

Falcon calls ``process_shutdown`` once when the server stops. Outstanding
background tasks are awaited first so an in-flight approval is not cut
short, then every injected client is closed so its connection pool is
released.

Usage
-----
Register the middleware when creating the Falcon app::

    from gatekeeper.api.middleware import LifespanManager

    app = falcon.asgi.App(middleware=[LifespanManager(runner, [chat, ledger])])

"""

from __future__ import annotations

import typing as typ

from gatekeeper.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gatekeeper.pipeline.tasks import BackgroundTaskRunner

__all__ = ["LifespanManager", "SupportsAclose"]

logger = get_logger(__name__)


class SupportsAclose(typ.Protocol):
    """Anything holding a connection pool that must be closed."""

    async def aclose(self) -> None:
        """Release underlying resources."""
        ...


class LifespanManager:
    """Falcon middleware tied to ASGI lifespan events.

    Parameters
    ----------
    runner
        Task runner drained before shutdown completes.
    resources
        Clients closed, in order, after the runner has drained.

    """

    def __init__(
        self,
        runner: BackgroundTaskRunner,
        resources: cabc.Iterable[SupportsAclose] = (),
    ) -> None:
        """Store the runner and the resources to close."""
        self._runner = runner
        self._resources = tuple(resources)

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Log readiness once the server has started."""
        log_info(logger, "Gatekeeper webhook service started")

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Drain background tasks, then close every resource."""
        pending = self._runner.pending
        if pending:
            log_info(logger, "Waiting for %d background task(s) to finish", pending)
        await self._runner.drain()

        for resource in self._resources:
            try:
                await resource.aclose()
            except Exception as exc:  # noqa: BLE001 - close the rest regardless
                log_error(
                    logger,
                    "Failed to close %s during shutdown: %s",
                    type(resource).__name__,
                    exc,
                )

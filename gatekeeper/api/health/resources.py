"""Health probe resources for liveness and readiness checks.

``/health`` is stateless. ``/ready`` additionally reports how many
post-acknowledgement tasks are still running, which is useful when
draining a pod before shutdown.

Usage
-----
Register health endpoints on the Falcon app::

    from gatekeeper.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(runner))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from gatekeeper.pipeline.tasks import BackgroundTaskRunner

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource returning ``{"status": "ready"}``.

    When constructed with a task runner the body also carries
    ``pending_tasks``.

    Parameters
    ----------
    runner
        Background task runner whose outstanding work is reported.

    """

    def __init__(self, runner: BackgroundTaskRunner | None = None) -> None:
        """Store the optional task runner."""
        self._runner = runner

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        media: dict[str, object] = {"status": "ready"}
        if self._runner is not None:
            media["pending_tasks"] = self._runner.pending
        resp.media = media
        resp.status = HTTPStatus.OK

"""Gatekeeper runtime entrypoint.

This module provides the ASGI application factory used by Granian. It
delegates to :func:`gatekeeper.api.app.create_app` for application
construction while keeping the ``gatekeeper.runtime:create_app`` entrypoint
stable.

Configuration is driven by environment variables:

- ``GATEKEEPER_HOST``: Bind address (default ``0.0.0.0``)
- ``GATEKEEPER_PORT``: Listen port (default ``3001``)
- ``GATEKEEPER_LOG_LEVEL``: Log level (default ``INFO``)
- the ``GATEKEEPER_*`` credentials documented in :mod:`gatekeeper.config`

Run the service directly with ``python -m gatekeeper.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from gatekeeper.config import ConfigError
from gatekeeper.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["DEFAULT_PORT", "create_app", "main"]

logger = get_logger(__name__)

DEFAULT_PORT = 3001

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid GATEKEEPER_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the fully wired webhook service from the environment.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    Raises
    ------
    SystemExit
        If required configuration is missing or malformed.

    """
    from gatekeeper.api.app import create_app as _create_api_app
    from gatekeeper.api.factory import build_dependencies

    try:
        dependencies = build_dependencies()
    except (ConfigError, ValueError) as exc:
        log_error(logger, "Invalid Gatekeeper configuration: %s", exc)
        raise SystemExit(1) from exc
    return _create_api_app(dependencies)


def main() -> None:
    """Start the Gatekeeper webhook server using Granian.

    Reads ``GATEKEEPER_HOST``, ``GATEKEEPER_PORT``, and
    ``GATEKEEPER_LOG_LEVEL`` from the environment and starts the ASGI
    server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("GATEKEEPER_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("GATEKEEPER_PORT", str(DEFAULT_PORT)))
    log_level_str = os.environ.get("GATEKEEPER_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid GATEKEEPER_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Gatekeeper on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "gatekeeper.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()

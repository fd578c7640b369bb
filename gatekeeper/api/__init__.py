"""Gatekeeper HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application that receives GitHub push webhooks and Slack events.

Usage
-----
Create and run the application::

    from gatekeeper.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # full webhook service

Public API
----------
create_app
    Application factory that configures the Falcon ASGI app with health
    endpoints and, when dependencies are provided, the webhook endpoints.
"""

from gatekeeper.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]

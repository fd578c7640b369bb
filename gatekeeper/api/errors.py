"""Domain exceptions and Falcon error handlers for the webhook surface.

Resources raise these exceptions on the synchronous path, before any side
effect has been scheduled. The handlers translate them into JSON error
bodies so the sender learns why the delivery was refused.

Usage
-----
Register error handlers on the Falcon app::

    from gatekeeper.api.errors import (
        InvalidPayloadError,
        SignatureVerificationError,
        handle_invalid_payload,
        handle_signature_verification,
    )

    app.add_error_handler(SignatureVerificationError, handle_signature_verification)
    app.add_error_handler(InvalidPayloadError, handle_invalid_payload)

"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = [
    "InvalidPayloadError",
    "SignatureVerificationError",
    "handle_invalid_payload",
    "handle_signature_verification",
]


class SignatureVerificationError(Exception):
    """Raised when a webhook fails HMAC or freshness verification.

    Attributes
    ----------
    source
        Sender whose signature was rejected (``github`` or ``slack``).

    """

    def __init__(self, source: str) -> None:
        """Initialize with the name of the rejected sender."""
        self.source = source
        super().__init__(f"Invalid {source} signature")


class InvalidPayloadError(Exception):
    """Raised when an authenticated body cannot be decoded.

    Attributes
    ----------
    reason
        Human-readable description of the decoding failure.

    """

    def __init__(self, reason: str) -> None:
        """Initialize with the decoding failure reason."""
        self.reason = reason
        super().__init__(reason)


async def handle_signature_verification(
    _req: Request,
    resp: Response,
    _ex: SignatureVerificationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``SignatureVerificationError`` to an HTTP 401 JSON response."""
    resp.status = falcon.HTTP_401
    resp.media = {"error": "Invalid signature"}


async def handle_invalid_payload(
    _req: Request,
    resp: Response,
    ex: InvalidPayloadError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidPayloadError`` to an HTTP 400 JSON response.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The decoding exception carrying the reason.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_400
    resp.media = {"error": "Invalid payload", "description": ex.reason}

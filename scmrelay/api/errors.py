"""Domain exceptions and Falcon error handlers for the API layer.

Usage
-----
Register error handlers on the Falcon app::

    from scmrelay.api.errors import ERROR_HANDLERS

    for exc_type, handler in ERROR_HANDLERS:
        app.add_error_handler(exc_type, handler)

"""

from __future__ import annotations

import typing as typ

import falcon

from scmrelay.errors import ScmRelayError
from scmrelay.scm.errors import ConfigurationError, UpstreamAPIError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = [
    "ERROR_HANDLERS",
    "MalformedRequestError",
    "SecretNotConfiguredError",
    "SignatureInvalidError",
    "handle_configuration_error",
    "handle_malformed_request",
    "handle_secret_not_configured",
    "handle_signature_invalid",
    "handle_upstream_error",
]


class SignatureInvalidError(ScmRelayError):
    """Raised when a webhook signature does not match its body."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("Webhook signature does not match the request body.")


class MalformedRequestError(ScmRelayError):
    """Raised for requests that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the problem.
    field
        Optional name of the header or parameter at fault.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialise with a reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


class SecretNotConfiguredError(ConfigurationError):
    """Raised when webhooks arrive but no signing secret is configured."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("SCMRELAY_WEBHOOK_SECRET must be set")


async def handle_signature_invalid(
    _req: Request,
    resp: Response,
    ex: SignatureInvalidError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``SignatureInvalidError`` to HTTP 401."""
    resp.status = falcon.HTTP_401
    resp.media = {"title": "Invalid signature", "description": str(ex)}


async def handle_malformed_request(
    _req: Request,
    resp: Response,
    ex: MalformedRequestError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``MalformedRequestError`` to HTTP 400.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The exception carrying the reason and optional field.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {"title": "Malformed request", "description": ex.reason}
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_secret_not_configured(
    _req: Request,
    resp: Response,
    ex: SecretNotConfiguredError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a missing webhook secret to HTTP 500."""
    resp.status = falcon.HTTP_500
    resp.media = {"title": "Webhook secret not configured", "description": str(ex)}


async def handle_configuration_error(
    _req: Request,
    resp: Response,
    ex: ConfigurationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map an unconfigured provider to HTTP 503."""
    resp.status = falcon.HTTP_503
    resp.media = {"title": "Provider not configured", "description": str(ex)}


async def handle_upstream_error(
    _req: Request,
    resp: Response,
    ex: UpstreamAPIError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a failed provider API call to HTTP 502."""
    resp.status = falcon.HTTP_502
    media: dict[str, typ.Any] = {"title": "Provider API error", "description": str(ex)}
    if ex.status_code is not None:
        media["upstream_status"] = ex.status_code
    resp.media = media


ErrorHandler = typ.Callable[..., typ.Awaitable[None]]

# Falcon resolves handlers by the most specific registered base class, so the
# secret error keeps its 500 even though it subclasses ConfigurationError.
ERROR_HANDLERS: tuple[tuple[type[Exception], ErrorHandler], ...] = (
    (SignatureInvalidError, handle_signature_invalid),
    (MalformedRequestError, handle_malformed_request),
    (ConfigurationError, handle_configuration_error),
    (SecretNotConfiguredError, handle_secret_not_configured),
    (UpstreamAPIError, handle_upstream_error),
)

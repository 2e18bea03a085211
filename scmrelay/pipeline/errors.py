"""Errors raised while delivering events to the sink."""

from __future__ import annotations

from scmrelay.errors import ScmRelayError


class DeliveryError(ScmRelayError):
    """Raised when the sink is unreachable or rejects an event.

    Attributes
    ----------
    status_code
        HTTP status returned by the sink, or ``None`` for transport failures.

    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and the sink's status code, when known."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def transport(cls, url: str, exc: BaseException) -> DeliveryError:
        """Return an error for a sink that could not be reached."""
        return cls(f"sink at {url} unreachable: {exc!r}")

    @classmethod
    def http_error(cls, url: str, status_code: int, body: str) -> DeliveryError:
        """Return an error for a non-2xx sink response."""
        return cls(
            f"sink at {url} returned HTTP {status_code}: {body}",
            status_code=status_code,
        )

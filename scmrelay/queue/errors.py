"""Broker transport errors."""

from __future__ import annotations

from scmrelay.errors import ScmRelayError


class TransportError(ScmRelayError):
    """Raised when the broker cannot be reached or rejects an operation."""

    @classmethod
    def not_connected(cls) -> TransportError:
        """Return an error for a publish attempted without a connection."""
        return cls("queue client is not connected")

    @classmethod
    def connect_failed(cls, exc: BaseException) -> TransportError:
        """Return an error for a failed broker connection attempt."""
        return cls(f"could not connect to the broker: {exc!r}")

    @classmethod
    def publish_failed(cls, queue_name: str, exc: BaseException) -> TransportError:
        """Return an error for a message the broker did not confirm."""
        return cls(f"publish to {queue_name!r} failed: {exc!r}")

    @classmethod
    def consume_failed(cls, queue_name: str, exc: BaseException) -> TransportError:
        """Return an error for a consumer loop whose channel closed."""
        return cls(f"consumer on {queue_name!r} lost its channel: {exc!r}")

    @classmethod
    def consumer_cancelled(cls, queue_name: str) -> TransportError:
        """Return an error for a consumer the broker cancelled."""
        return cls(f"consumer on {queue_name!r} was cancelled by the broker")

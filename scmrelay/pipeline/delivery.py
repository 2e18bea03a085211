"""Deliver normalized events to the downstream sink over HTTP.

Without a configured sink URL the consumer runs in offline mode and logs each
event in full instead. Delivery is attempted once: a failed delivery is logged
and the message is still acknowledged, so one broken sink cannot stall the
queue.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

import httpx

from scmrelay.common.env import read_optional_str, read_positive_float
from scmrelay.events.codec import encode_message, event_fingerprint
from scmrelay.queue.client import NORMALIZED_EVENTS_QUEUE

from .errors import DeliveryError
from .observability import PipelineEventLogger

if typ.TYPE_CHECKING:
    from scmrelay.events.models import NormalizedEvent
    from scmrelay.queue.client import QueueClient

_DEFAULT_TIMEOUT_S = 10.0
_ERROR_BODY_LIMIT = 512

IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"


@dc.dataclass(frozen=True, slots=True)
class DeliveryConfig:
    """Sink endpoint and request deadline.

    Attributes
    ----------
    sink_url
        Endpoint receiving ``POST`` requests, or ``None`` for offline mode.
    timeout_s
        Deadline for each delivery request.

    """

    sink_url: str | None = None
    timeout_s: float = _DEFAULT_TIMEOUT_S

    @classmethod
    def from_env(cls) -> DeliveryConfig:
        """Read ``SCMRELAY_SINK_URL`` and ``SCMRELAY_SINK_TIMEOUT_S``."""
        return cls(
            sink_url=read_optional_str("SCMRELAY_SINK_URL"),
            timeout_s=read_positive_float(
                "SCMRELAY_SINK_TIMEOUT_S", _DEFAULT_TIMEOUT_S
            ),
        )


class DeliveryConsumer:
    """Consume ``normalized_events`` and POST each event to the sink."""

    queue_name = NORMALIZED_EVENTS_QUEUE

    def __init__(
        self,
        queue: QueueClient,
        config: DeliveryConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        events: PipelineEventLogger | None = None,
    ) -> None:
        """Store collaborators; an HTTP client is created on first use."""
        self._queue = queue
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client
        self._events = events or PipelineEventLogger()

    def run(self) -> None:
        """Consume until the queue client stops its consumers.

        Raises
        ------
        TransportError
            If the broker connection closes underneath the consumer.

        """
        with asyncio.Runner() as runner:
            try:
                self._queue.consume(
                    self.queue_name, lambda event: runner.run(self.handle(event))
                )
            finally:
                runner.run(self.aclose())

    async def aclose(self) -> None:
        """Close the HTTP client when this consumer created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout_s)
        return self._client

    async def deliver(self, event: NormalizedEvent) -> int | None:
        """Send ``event`` to the sink.

        Returns the sink's status code, or ``None`` in offline mode.

        Raises
        ------
        DeliveryError
            If the sink is unreachable or answers with a non-2xx status.

        """
        url = self._config.sink_url
        if not url:
            self._events.log_delivery_offline(event=event)
            return None

        headers = {
            "Content-Type": "application/json",
            IDEMPOTENCY_KEY_HEADER: event_fingerprint(event),
        }
        try:
            response = await self._http_client().post(
                url, content=encode_message(event), headers=headers
            )
        except httpx.HTTPError as exc:
            raise DeliveryError.transport(url, exc) from exc
        if not response.is_success:
            raise DeliveryError.http_error(
                url, response.status_code, response.text[:_ERROR_BODY_LIMIT]
            )
        return response.status_code

    async def handle(self, event: NormalizedEvent) -> None:
        """Deliver one event, logging the outcome instead of raising."""
        try:
            status_code = await self.deliver(event)
        except DeliveryError as exc:
            self._events.log_delivery_failed(event=event, error=exc)
            return
        if status_code is not None:
            self._events.log_delivery_completed(event=event, status_code=status_code)

"""Turn raw webhooks into normalized events.

The consumer reads ``raw_events``, asks the router for the provider's adapter,
normalises the payload and republishes the result on ``normalized_events``.
Each message is handled on its own: nothing is cached between messages and a
failure only drops the message that caused it.
"""

from __future__ import annotations

import asyncio
import typing as typ

from scmrelay.errors import ScmRelayError
from scmrelay.queue.client import NORMALIZED_EVENTS_QUEUE, RAW_EVENTS_QUEUE
from scmrelay.queue.errors import TransportError
from scmrelay.scm.errors import ConfigurationError

from .observability import PipelineEventLogger

if typ.TYPE_CHECKING:
    from scmrelay.events.models import NormalizedEvent, RawWebhookMessage
    from scmrelay.queue.client import QueueClient
    from scmrelay.scm.router import PlatformRouter


class NormalizationConsumer:
    """Consume ``raw_events`` and publish ``normalized_events``."""

    queue_name = RAW_EVENTS_QUEUE

    def __init__(
        self,
        queue: QueueClient,
        router: PlatformRouter,
        *,
        events: PipelineEventLogger | None = None,
    ) -> None:
        """Store the queue client, router and event logger."""
        self._queue = queue
        self._router = router
        self._events = events or PipelineEventLogger()

    def run(self) -> None:
        """Consume until the queue client stops its consumers.

        Blocks the calling thread, which owns one event loop for the lifetime
        of the loop.

        Raises
        ------
        TransportError
            If the broker connection closes underneath the consumer.

        """
        with asyncio.Runner() as runner:
            self._queue.consume(
                self.queue_name, lambda message: runner.run(self.handle(message))
            )

    async def handle(self, message: RawWebhookMessage) -> NormalizedEvent | None:
        """Normalise one raw webhook and publish it.

        Returns the published event, or ``None`` when the message was dropped.
        """
        try:
            adapter = self._router.new_adapter(message.platform)
        except ConfigurationError as exc:
            self._events.log_normalize_dropped(
                platform=message.platform, event_type=message.event_type, error=exc
            )
            return None

        try:
            event = await adapter.normalize_event(message.event_type, message.payload)
        except ScmRelayError as exc:
            self._events.log_normalize_dropped(
                platform=message.platform, event_type=message.event_type, error=exc
            )
            return None
        finally:
            await adapter.aclose()

        try:
            self._queue.publish(NORMALIZED_EVENTS_QUEUE, event)
        except TransportError as exc:
            self._events.log_normalize_dropped(
                platform=message.platform,
                event_type=message.event_type,
                error=exc,
                pr_number=event.pr.number,
            )
            return None

        self._events.log_normalize_completed(event=event)
        return event

"""Falcon lifespan middleware that runs the queue consumers.

Startup connects the shared queue client and starts one daemon thread per
consumer. Shutdown stops the consumers, lets each finish its current message
and only then closes the client. A consumer that loses its broker connection
is fatal: the process is asked to terminate so its supervisor can restart it
with fresh connections.
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import os
import signal
import threading
import typing as typ

from scmrelay.logging import get_logger, log_critical, log_error, log_info
from scmrelay.queue.errors import TransportError

if typ.TYPE_CHECKING:
    from scmrelay.queue.client import QueueClient

__all__ = ["Consumer", "PipelineLifecycle", "terminate_process"]

logger = get_logger(__name__)

_JOIN_TIMEOUT_S = 10.0


class Consumer(typ.Protocol):
    """A blocking consumer loop bound to one queue."""

    queue_name: str

    def run(self) -> None:
        """Consume until stopped; raise ``TransportError`` on broker loss."""
        ...


def terminate_process(exc: BaseException) -> None:
    """Send ``SIGTERM`` to this process so the server shuts down cleanly."""
    del exc
    os.kill(os.getpid(), signal.SIGTERM)


class PipelineLifecycle:
    """Connect the queue and supervise consumer threads.

    Parameters
    ----------
    queue
        Queue client shared with the webhook gateway.
    consumers
        Consumer loops to run, one thread each.
    on_fatal
        Called with the error when a consumer loop dies. Defaults to
        :func:`terminate_process`.

    """

    def __init__(
        self,
        queue: QueueClient,
        consumers: cabc.Sequence[Consumer],
        *,
        on_fatal: cabc.Callable[[BaseException], None] | None = None,
    ) -> None:
        """Store collaborators; threads start on application startup."""
        self._queue = queue
        self._consumers = tuple(consumers)
        self._on_fatal = on_fatal or terminate_process
        self._threads: list[threading.Thread] = []
        self._stopping = threading.Event()

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        """Return the consumer threads started by the last startup."""
        return tuple(self._threads)

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: object
    ) -> None:
        """Connect to the broker and start the consumer threads.

        A broker that cannot be reached is logged and leaves the consumers
        stopped; the gateway then drops webhooks and ``/ready`` reports the
        queue as disconnected.
        """
        self._stopping.clear()
        try:
            self._queue.connect()
        except TransportError as exc:
            log_error(logger, "Queue unavailable at startup: %s", exc)
            return

        self._threads = [
            threading.Thread(
                target=self._run_consumer,
                args=(consumer,),
                name=f"scmrelay-{consumer.queue_name}",
                daemon=True,
            )
            for consumer in self._consumers
        ]
        for thread in self._threads:
            thread.start()

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: object
    ) -> None:
        """Stop the consumers, wait for them, then close the queue client.

        The publish connection stays open until every consumer has finished
        its current message.
        """
        self._stopping.set()
        self._queue.stop_consumers()
        for thread in self._threads:
            await asyncio.to_thread(thread.join, _JOIN_TIMEOUT_S)
        self._threads = []
        self._queue.close()

    def _run_consumer(self, consumer: Consumer) -> None:
        try:
            consumer.run()
        except TransportError as exc:
            if self._stopping.is_set():
                log_info(
                    logger, "Consumer on %s ended during shutdown", consumer.queue_name
                )
                return
            log_critical(
                logger,
                "Consumer on %s stopped: %s",
                consumer.queue_name,
                exc,
                exc_info=exc,
            )
            self._on_fatal(exc)

"""Health probe resources for liveness and readiness checks.

Usage
-----
Register health endpoints on the Falcon app::

    from scmrelay.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(queue))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from scmrelay.queue.client import QueueClient

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with liveness status.

        """
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe reporting whether the queue client is connected.

    Always answers HTTP 200: webhooks are still acknowledged while the broker
    is away, they are just dropped, so the service stays routable.
    """

    def __init__(self, queue: QueueClient | None = None) -> None:
        """Configure the probe with the shared queue client, if any."""
        self._queue = queue

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        connected = self._queue is not None and self._queue.is_connected
        resp.media = {
            "status": "ready",
            "queue": "connected" if connected else "disconnected",
        }
        resp.status = HTTPStatus.OK

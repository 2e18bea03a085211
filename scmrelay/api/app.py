"""Application factory for the scmrelay Falcon ASGI application.

Usage
-----
Create an app with only the health endpoints and a gateway that rejects
every webhook::

    app = create_app()

Create the full service::

    from scmrelay.api.app import AppDependencies, create_app

    deps = AppDependencies(
        queue=queue,
        router=router,
        webhook_secret=secret,
        lifecycle=PipelineLifecycle(queue, consumers),
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from scmrelay.api.errors import ERROR_HANDLERS
from scmrelay.api.health.resources import HealthResource, ReadyResource
from scmrelay.api.pulls import PULLS_ROUTE, PullRequestResource
from scmrelay.api.webhooks import WebhookResource

if typ.TYPE_CHECKING:
    from scmrelay.pipeline.lifecycle import PipelineLifecycle
    from scmrelay.pipeline.observability import PipelineEventLogger
    from scmrelay.queue.client import QueueClient
    from scmrelay.scm.router import PlatformRouter

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Collaborators for the Falcon ASGI application.

    Attributes
    ----------
    queue
        Shared queue client. Without it webhooks are acknowledged and
        dropped.
    router
        Adapter router. Enables the pull request lookup endpoint.
    webhook_secret
        HMAC secret shared with the providers.
    lifecycle
        Lifespan middleware connecting the queue and running the consumers.
    events
        Structured event logger shared by the gateway.

    """

    queue: QueueClient | None = None
    router: PlatformRouter | None = None
    webhook_secret: str | None = None
    lifecycle: PipelineLifecycle | None = None
    events: PipelineEventLogger | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    ``/health``, ``/ready`` and ``POST /webhooks`` are always registered. The
    pull request lookup endpoint needs a router.

    Parameters
    ----------
    dependencies
        Optional application dependencies.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    middleware: list[object] = []
    if deps.lifecycle is not None:
        middleware.append(deps.lifecycle)

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(deps.queue))
    app.add_route(
        "/webhooks",
        WebhookResource(
            queue=deps.queue, secret=deps.webhook_secret, events=deps.events
        ),
    )

    if deps.router is not None:
        app.add_route(PULLS_ROUTE, PullRequestResource(deps.router))

    for exc_type, handler in ERROR_HANDLERS:
        app.add_error_handler(exc_type, handler)

    return app

"""scmrelay runtime entrypoint.

Builds the whole service from the environment and serves it with Granian.
``scmrelay.runtime:create_app`` is the Granian application factory.

Configuration is driven by environment variables:

- ``SCMRELAY_HOST``: Bind address (default ``0.0.0.0``)
- ``SCMRELAY_PORT``: Listen port (default ``8080``)
- ``SCMRELAY_LOG_LEVEL``: Log level (default ``INFO``)
- ``SCMRELAY_WEBHOOK_SECRET``: Shared HMAC secret for incoming webhooks
- ``SCMRELAY_RABBITMQ_URL``, ``SCMRELAY_PUBLISH_TIMEOUT_S``,
  ``SCMRELAY_CONSUMER_PREFETCH``, ``SCMRELAY_RABBITMQ_HEARTBEAT_S``: broker
  settings
- ``SCMRELAY_SINK_URL``, ``SCMRELAY_SINK_TIMEOUT_S``: downstream sink
- ``SCMRELAY_GITHUB_TOKEN``, ``SCMRELAY_BITBUCKET_TOKEN`` and the matching
  ``*_API_URL`` variables, ``SCMRELAY_SCM_TIMEOUT_S``: provider APIs

Run the service directly with ``python -m scmrelay.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from scmrelay.api.app import AppDependencies
from scmrelay.api.app import create_app as _create_api_app
from scmrelay.common.env import read_optional_str
from scmrelay.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from scmrelay.pipeline.delivery import DeliveryConfig, DeliveryConsumer
from scmrelay.pipeline.lifecycle import PipelineLifecycle
from scmrelay.pipeline.normalizer import NormalizationConsumer
from scmrelay.pipeline.observability import PipelineEventLogger
from scmrelay.queue.client import QueueClient, QueueConfig
from scmrelay.scm.config import AdapterConfig
from scmrelay.scm.router import PlatformRouter

if typ.TYPE_CHECKING:
    import falcon.asgi

    from scmrelay.queue.client import ConnectionFactory

__all__ = ["build_dependencies", "create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid SCMRELAY_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def build_dependencies(
    *,
    connection_factory: ConnectionFactory | None = None,
) -> AppDependencies:
    """Assemble the queue client, router, consumers and lifecycle.

    Nothing connects here; the broker is contacted on application startup.

    Parameters
    ----------
    connection_factory
        Optional replacement for :class:`pika.BlockingConnection`.

    Raises
    ------
    ValueError
        If a numeric setting is malformed.

    """
    queue = QueueClient(QueueConfig.from_env(), connection_factory=connection_factory)
    router = PlatformRouter(AdapterConfig.from_env())
    events = PipelineEventLogger()
    consumers = (
        NormalizationConsumer(queue, router, events=events),
        DeliveryConsumer(queue, DeliveryConfig.from_env(), events=events),
    )
    webhook_secret = read_optional_str("SCMRELAY_WEBHOOK_SECRET")
    if webhook_secret is None:
        log_warning(
            logger, "SCMRELAY_WEBHOOK_SECRET is not set; webhooks will be refused"
        )
    return AppDependencies(
        queue=queue,
        router=router,
        webhook_secret=webhook_secret,
        lifecycle=PipelineLifecycle(queue, consumers),
        events=events,
    )


def create_app() -> falcon.asgi.App:
    """Create the fully wired Falcon ASGI application from the environment."""
    return _create_api_app(build_dependencies())


def main() -> None:
    """Start the scmrelay server using Granian.

    Reads ``SCMRELAY_HOST``, ``SCMRELAY_PORT``, and ``SCMRELAY_LOG_LEVEL``
    from the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("SCMRELAY_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port_str = os.environ.get("SCMRELAY_PORT", "8080")
    port = _parse_port(port_str)
    log_level_str = os.environ.get("SCMRELAY_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid SCMRELAY_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting scmrelay on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    # One worker: the consumer threads and the publish connection live in
    # the worker process.
    server = Granian(
        "scmrelay.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
        workers=1,
    )
    server.serve()


if __name__ == "__main__":
    main()

"""Webhook gateway: verify, acknowledge, then queue.

``POST /webhooks`` answers as soon as the signature checks out. Filtering and
publishing to ``raw_events`` happen in a callback Falcon runs on its default
executor after the response has been sent, so broker latency never reaches
the provider.

Usage
-----
Register the resource on the Falcon app::

    app.add_route("/webhooks", WebhookResource(queue=queue, secret=secret))

"""

from __future__ import annotations

import functools
import typing as typ

import falcon
import msgspec

from scmrelay.events.models import Platform, RawWebhookMessage
from scmrelay.pipeline.observability import PipelineEventLogger
from scmrelay.queue.client import RAW_EVENTS_QUEUE
from scmrelay.queue.errors import TransportError
from scmrelay.scm.router import (
    detect_platform,
    event_type_for,
    is_pull_request_event,
    signature_for,
)

from .errors import (
    MalformedRequestError,
    SecretNotConfiguredError,
    SignatureInvalidError,
)
from .signature import verify_signature

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from scmrelay.queue.client import QueueClient

__all__ = ["ACKNOWLEDGEMENT", "WebhookResource"]

ACKNOWLEDGEMENT = "received"


class WebhookResource:
    """Receive provider webhooks and hand them to the raw events queue."""

    def __init__(
        self,
        *,
        queue: QueueClient | None,
        secret: str | None,
        events: PipelineEventLogger | None = None,
    ) -> None:
        """Configure the resource.

        Parameters
        ----------
        queue
            Queue client used after the response is sent. ``None`` makes the
            gateway acknowledge and drop every webhook.
        secret
            Shared HMAC secret. Requests fail with HTTP 500 while unset.
        events
            Structured event logger.

        """
        self._queue = queue
        self._secret = secret
        self._events = events or PipelineEventLogger()

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle ``POST /webhooks``.

        Raises
        ------
        SecretNotConfiguredError
            If no signing secret is configured.
        MalformedRequestError
            If the signature header is missing, the body is empty or the
            verified body is not a JSON object.
        SignatureInvalidError
            If the signature does not match the body.

        """
        body = await req.bounded_stream.read()
        if not self._secret:
            raise SecretNotConfiguredError

        headers = req.headers
        platform = detect_platform(headers)
        signature = signature_for(platform, headers)
        if not signature:
            self._events.log_webhook_rejected(
                platform=platform, reason="missing signature"
            )
            raise MalformedRequestError("signature header missing", field="signature")
        if not body:
            self._events.log_webhook_rejected(
                platform=platform, reason="empty body"
            )
            raise MalformedRequestError("request body is empty")
        if not verify_signature(body, signature, self._secret):
            self._events.log_webhook_rejected(
                platform=platform, reason="signature mismatch"
            )
            raise SignatureInvalidError
        try:
            msgspec.json.decode(body, type=dict)
        except msgspec.DecodeError as exc:
            self._events.log_webhook_rejected(
                platform=platform, reason="malformed payload"
            )
            msg = "request body is not a JSON object"
            raise MalformedRequestError(msg) from exc

        event_type = event_type_for(platform, headers)
        resp.status = falcon.HTTP_200
        resp.content_type = falcon.MEDIA_TEXT
        resp.text = ACKNOWLEDGEMENT
        resp.schedule_sync(functools.partial(self.forward, platform, event_type, body))

    def forward(self, platform: Platform, event_type: str, body: bytes) -> bool:
        """Publish an acknowledged webhook when it is a pull request event.

        Runs after the response is sent. Transport failures are logged as
        drops and never raised. Returns whether the webhook was queued.
        """
        if platform == Platform.UNKNOWN or not is_pull_request_event(
            platform, event_type
        ):
            self._events.log_webhook_dropped(
                platform=platform,
                event_type=event_type,
                reason="not a pull request event",
            )
            return False
        if self._queue is None:
            self._events.log_webhook_dropped(
                platform=platform, event_type=event_type, reason="queue unavailable"
            )
            return False

        message = RawWebhookMessage(
            platform=platform, event_type=event_type, payload=body
        )
        try:
            self._queue.publish(RAW_EVENTS_QUEUE, message)
        except TransportError as exc:
            self._events.log_webhook_dropped(
                platform=platform, event_type=event_type, reason=str(exc)
            )
            return False

        self._events.log_webhook_accepted(
            platform=platform, event_type=event_type, payload_bytes=len(body)
        )
        return True

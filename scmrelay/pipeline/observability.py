"""Structured log events for the webhook pipeline.

Every stage reports what happened to each event as one
``[<event type>] key=value ...`` line, so a dropped webhook can be traced from
the gateway to the sink with a log search.

Usage
-----
>>> events = PipelineEventLogger()
>>> events.log_webhook_dropped(
...     platform="github", event_type="push", reason="not a pull request event"
... )

"""

from __future__ import annotations

import enum
import typing as typ

from scmrelay.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    from scmrelay.events.models import NormalizedEvent

    from .errors import DeliveryError

logger = get_logger(__name__)


class PipelineEventType(enum.StrEnum):
    """Structured log event types emitted by the pipeline stages."""

    WEBHOOK_ACCEPTED = "webhook.accepted"
    WEBHOOK_REJECTED = "webhook.rejected"
    WEBHOOK_DROPPED = "webhook.dropped"
    NORMALIZE_COMPLETED = "normalize.completed"
    NORMALIZE_DROPPED = "normalize.dropped"
    DELIVERY_COMPLETED = "delivery.completed"
    DELIVERY_FAILED = "delivery.failed"
    DELIVERY_OFFLINE = "delivery.offline"


def _event_context(event: NormalizedEvent) -> tuple[str, str, int, str]:
    return (
        event.platform,
        event.repository.full_name,
        event.pr.number,
        event.event_type,
    )


class PipelineEventLogger:
    """Emit structured pipeline events via femtologging."""

    def log_webhook_accepted(
        self, *, platform: str, event_type: str, payload_bytes: int
    ) -> None:
        """Log a webhook published to the raw events queue."""
        log_info(
            logger,
            "[%s] platform=%s event_type=%s payload_bytes=%s",
            PipelineEventType.WEBHOOK_ACCEPTED,
            platform,
            event_type,
            payload_bytes,
        )

    def log_webhook_rejected(self, *, platform: str, reason: str) -> None:
        """Log a webhook refused at ingress.

        Parameters
        ----------
        platform
            Detected platform, ``unknown`` when no provider header matched.
        reason
            Why the request was refused, for example a signature mismatch.

        """
        log_warning(
            logger,
            "[%s] platform=%s reason=%s",
            PipelineEventType.WEBHOOK_REJECTED,
            platform,
            reason,
        )

    def log_webhook_dropped(
        self, *, platform: str, event_type: str, reason: str
    ) -> None:
        """Log an acknowledged webhook that never reached the raw queue."""
        log_warning(
            logger,
            "[%s] platform=%s event_type=%s reason=%s",
            PipelineEventType.WEBHOOK_DROPPED,
            platform,
            event_type,
            reason,
        )

    def log_normalize_completed(self, *, event: NormalizedEvent) -> None:
        """Log a normalised event published to the normalized events queue."""
        platform, repository, pr_number, event_type = _event_context(event)
        log_info(
            logger,
            "[%s] platform=%s repository=%s pr_number=%s event_type=%s files=%s",
            PipelineEventType.NORMALIZE_COMPLETED,
            platform,
            repository,
            pr_number,
            event_type,
            len(event.files),
        )

    def log_normalize_dropped(
        self,
        *,
        platform: str,
        event_type: str,
        error: BaseException,
        pr_number: int | None = None,
    ) -> None:
        """Log a raw webhook abandoned by the normalization consumer.

        Parameters
        ----------
        platform
            Platform recorded on the raw message.
        event_type
            Raw provider event name.
        error
            Exception that ended processing of the message.
        pr_number
            Pull request number when normalisation got far enough to know it.

        """
        log_error(
            logger,
            "[%s] platform=%s event_type=%s pr_number=%s error_type=%s "
            "error_message=%s",
            PipelineEventType.NORMALIZE_DROPPED,
            platform,
            event_type,
            pr_number,
            type(error).__name__,
            str(error),
        )

    def log_delivery_completed(
        self, *, event: NormalizedEvent, status_code: int
    ) -> None:
        """Log an event accepted by the sink, with the sink's status code."""
        platform, repository, pr_number, event_type = _event_context(event)
        log_info(
            logger,
            "[%s] platform=%s repository=%s pr_number=%s event_type=%s "
            "status_code=%s",
            PipelineEventType.DELIVERY_COMPLETED,
            platform,
            repository,
            pr_number,
            event_type,
            status_code,
        )

    def log_delivery_failed(
        self, *, event: NormalizedEvent, error: DeliveryError
    ) -> None:
        """Log an event the sink did not accept."""
        platform, repository, pr_number, event_type = _event_context(event)
        log_error(
            logger,
            "[%s] platform=%s repository=%s pr_number=%s event_type=%s "
            "status_code=%s error_message=%s",
            PipelineEventType.DELIVERY_FAILED,
            platform,
            repository,
            pr_number,
            event_type,
            error.status_code,
            str(error),
        )

    def log_delivery_offline(self, *, event: NormalizedEvent) -> None:
        """Log an event in full because no sink is configured."""
        platform, repository, pr_number, event_type = _event_context(event)
        files = ", ".join(f"{item.status}:{item.filename}" for item in event.files)
        log_info(
            logger,
            "[%s] platform=%s repository=%s pr_number=%s event_type=%s "
            "action=%s title=%s author=%s source_branch=%s target_branch=%s "
            "state=%s files=[%s]",
            PipelineEventType.DELIVERY_OFFLINE,
            platform,
            repository,
            pr_number,
            event_type,
            event.action,
            event.pr.title,
            event.pr.author,
            event.pr.source_branch,
            event.pr.target_branch,
            event.pr.state,
            files,
        )

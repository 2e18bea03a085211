"""Durable broker queues connecting the pipeline stages."""

from __future__ import annotations

from .client import (
    NORMALIZED_EVENTS_QUEUE,
    QUEUE_MESSAGE_TYPES,
    RAW_EVENTS_QUEUE,
    QueueClient,
    QueueConfig,
)
from .errors import TransportError

__all__ = [
    "NORMALIZED_EVENTS_QUEUE",
    "QUEUE_MESSAGE_TYPES",
    "RAW_EVENTS_QUEUE",
    "QueueClient",
    "QueueConfig",
    "TransportError",
]

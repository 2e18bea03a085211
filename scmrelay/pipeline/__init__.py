"""Queue consumers that normalise webhooks and deliver them to the sink."""

from __future__ import annotations

from .delivery import DeliveryConfig, DeliveryConsumer
from .errors import DeliveryError
from .lifecycle import PipelineLifecycle
from .normalizer import NormalizationConsumer
from .observability import PipelineEventLogger, PipelineEventType

__all__ = [
    "DeliveryConfig",
    "DeliveryConsumer",
    "DeliveryError",
    "NormalizationConsumer",
    "PipelineEventLogger",
    "PipelineEventType",
    "PipelineLifecycle",
]

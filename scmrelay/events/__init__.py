"""Provider-agnostic event schema and its JSON codec."""

from __future__ import annotations

from .codec import decode_message, encode_message, event_fingerprint
from .models import (
    FileStatus,
    NormalizedEvent,
    NormalizedFile,
    NormalizedPR,
    NormalizedRepository,
    Platform,
    RawWebhookMessage,
)

__all__ = [
    "FileStatus",
    "NormalizedEvent",
    "NormalizedFile",
    "NormalizedPR",
    "NormalizedRepository",
    "Platform",
    "RawWebhookMessage",
    "decode_message",
    "encode_message",
    "event_fingerprint",
]

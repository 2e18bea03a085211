"""JSON codec for queue messages and sink payloads."""

from __future__ import annotations

import hashlib
import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    from .models import NormalizedEvent

_ENCODER = msgspec.json.Encoder()
_DECODERS: dict[type, msgspec.json.Decoder[typ.Any]] = {}


def encode_message(message: msgspec.Struct) -> bytes:
    """Serialise ``message`` to JSON bytes; ``bytes`` fields become base64."""
    return _ENCODER.encode(message)


def decode_message[T](data: bytes, message_type: type[T]) -> T:
    """Decode JSON ``data`` into ``message_type``.

    Raises
    ------
    msgspec.DecodeError
        If ``data`` is not valid JSON.
    msgspec.ValidationError
        If the JSON does not match ``message_type`` or breaks one of its
        invariants. ``ValidationError`` subclasses ``DecodeError``.

    """
    decoder = _DECODERS.get(message_type)
    if decoder is None:
        decoder = msgspec.json.Decoder(message_type)
        _DECODERS[message_type] = decoder
    return decoder.decode(data)


def event_fingerprint(event: NormalizedEvent) -> str:
    """Return a stable idempotency key for ``event``.

    The key covers the platform, repository, pull request number, unified
    event type and a digest of the raw provider payload. Redelivering the same
    webhook yields the same key; ``received_at`` is excluded
    because it changes on every normalisation.
    """
    payload_digest = hashlib.sha256(event.raw_payload).hexdigest()
    material = "\x1f".join(
        (
            event.platform,
            event.repository.full_name,
            str(event.pr.number),
            event.event_type,
            payload_digest,
        )
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()

"""HMAC-SHA256 webhook signatures."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature of ``body`` under ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Check ``signature`` against the HMAC-SHA256 of the raw ``body``.

    Accepts both ``sha256=<hex>`` and a bare hex digest. The comparison runs
    in constant time.
    """
    supplied = signature.strip().removeprefix(SIGNATURE_PREFIX).lower()
    expected = compute_signature(body, secret).removeprefix(SIGNATURE_PREFIX)
    return hmac.compare_digest(expected.encode("ascii"), supplied.encode("utf-8"))

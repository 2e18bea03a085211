"""Root of the scmrelay exception hierarchy."""

from __future__ import annotations


class ScmRelayError(Exception):
    """Base class for errors raised by scmrelay components."""

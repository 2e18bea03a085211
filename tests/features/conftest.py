"""Shared fixtures for BDD feature tests."""

from __future__ import annotations

import threading

import httpx
import pytest


class RecordingSink:
    """Collect events POSTed to the downstream sink."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._received = threading.Condition()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._received:
            self.requests.append(request)
            self._received.notify_all()
        return httpx.Response(202)

    def wait_for(self, count: int, timeout: float = 5.0) -> bool:
        """Block until ``count`` requests have arrived or ``timeout`` passes."""
        with self._received:
            return self._received.wait_for(
                lambda: len(self.requests) >= count, timeout=timeout
            )


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Return an empty sink double."""
    return RecordingSink()

"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import os
import typing as typ

import pytest

from scmrelay.queue.client import QueueClient, QueueConfig
from scmrelay.scm.config import AdapterConfig
from scmrelay.scm.router import PlatformRouter
from tests.helpers.fake_broker import FakeBroker
from tests.helpers.provider_api import FakeProviderAPI
from tests.helpers.webhook_payloads import BITBUCKET_API_URL, GITHUB_API_URL

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@pytest.fixture(autouse=True)
def _isolate_scmrelay_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any ``SCMRELAY_*`` settings inherited from the shell."""
    for name in list(os.environ):
        if name.startswith("SCMRELAY_"):
            monkeypatch.delenv(name)


@pytest.fixture
def broker() -> FakeBroker:
    """Return an empty in-memory broker."""
    return FakeBroker()


@pytest.fixture
def queue_config() -> QueueConfig:
    """Return queue settings with a short idle poll for fast shutdown."""
    return QueueConfig(poll_interval_s=0.01)


@pytest.fixture
def queue_client(
    broker: FakeBroker, queue_config: QueueConfig
) -> cabc.Iterator[QueueClient]:
    """Yield a queue client connected to ``broker``."""
    client = QueueClient(queue_config, connection_factory=broker.connect)
    client.connect()
    yield client
    client.close()


@pytest.fixture
def provider_api() -> FakeProviderAPI:
    """Return a provider API double with no routes."""
    return FakeProviderAPI()


@pytest.fixture
def adapter_config() -> AdapterConfig:
    """Return adapter settings pointing at the test API hosts."""
    return AdapterConfig(
        github_token="ghp-test-token",
        github_api_url=GITHUB_API_URL,
        bitbucket_token="bb-test-token",
        bitbucket_api_url=BITBUCKET_API_URL,
        timeout_s=5.0,
    )


@pytest.fixture
def router(
    adapter_config: AdapterConfig, provider_api: FakeProviderAPI
) -> PlatformRouter:
    """Return a router whose adapters talk to ``provider_api``."""
    return PlatformRouter(adapter_config, http_client=provider_api.client())

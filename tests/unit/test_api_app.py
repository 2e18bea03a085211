"""Unit tests for scmrelay.api.app application factory.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_app.py

"""

from __future__ import annotations

import typing as typ

import falcon
import falcon.asgi
import falcon.testing
import pytest

from scmrelay.api.app import AppDependencies, create_app

if typ.TYPE_CHECKING:
    from scmrelay.queue.client import QueueClient
    from scmrelay.scm.router import PlatformRouter

_PULLS_PATH = "/platforms/github/repositories/acme/widgets/pulls/42"


@pytest.fixture
def health_client() -> falcon.testing.TestClient:
    """Build a test client without collaborators."""
    return falcon.testing.TestClient(create_app())


class TestCreateAppWithoutDependencies:
    """Tests for create_app() without collaborators."""

    def test_returns_falcon_app(self) -> None:
        """create_app() returns a Falcon ASGI App."""
        app = create_app()
        assert isinstance(app, falcon.asgi.App), "expected Falcon ASGI App"

    def test_has_health_route(self, health_client: falcon.testing.TestClient) -> None:
        """The app responds to /health."""
        result = health_client.simulate_get("/health")
        assert result.status == falcon.HTTP_200, "expected HTTP 200 from /health"
        assert result.json == {"status": "ok"}, "wrong /health body"

    def test_ready_reports_missing_queue(
        self, health_client: falcon.testing.TestClient
    ) -> None:
        """/ready still answers 200 with the queue disconnected."""
        result = health_client.simulate_get("/ready")
        assert result.status == falcon.HTTP_200, "expected HTTP 200 from /ready"
        assert result.json == {"status": "ready", "queue": "disconnected"}

    def test_pulls_endpoint_not_registered(
        self, health_client: falcon.testing.TestClient
    ) -> None:
        """Without a router, the pull request lookup returns 404."""
        result = health_client.simulate_get(_PULLS_PATH)
        assert result.status == falcon.HTTP_404, "expected HTTP 404"

    def test_webhooks_refused_without_secret(
        self, health_client: falcon.testing.TestClient
    ) -> None:
        """The gateway is registered but refuses webhooks until configured."""
        result = health_client.simulate_post(
            "/webhooks",
            body=b"{}",
            headers={"X-GitHub-Event": "pull_request", "X-Hub-Signature-256": "x"},
        )
        assert result.status == falcon.HTTP_500, "expected HTTP 500"


class TestCreateAppWithDependencies:
    """Tests for create_app() with collaborators."""

    def test_ready_reports_connected_queue(self, queue_client: QueueClient) -> None:
        """/ready reflects the queue client's connection."""
        client = falcon.testing.TestClient(
            create_app(AppDependencies(queue=queue_client))
        )

        assert client.simulate_get("/ready").json["queue"] == "connected"
        queue_client.close()
        assert client.simulate_get("/ready").json["queue"] == "disconnected"

    def test_registers_pulls_route(self, router: PlatformRouter) -> None:
        """A router enables the pull request lookup endpoint."""
        client = falcon.testing.TestClient(create_app(AppDependencies(router=router)))

        result = client.simulate_get(_PULLS_PATH)

        assert result.status == falcon.HTTP_502, (
            "expected the provider's 404 to surface as HTTP 502"
        )

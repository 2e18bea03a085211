"""Unit tests for the delivery consumer."""

from __future__ import annotations

import datetime as dt
import threading
import typing as typ

import httpx
import msgspec
import pytest

from scmrelay.events.codec import event_fingerprint
from scmrelay.events.models import (
    FileStatus,
    NormalizedEvent,
    NormalizedFile,
    NormalizedPR,
    NormalizedRepository,
    Platform,
)
from scmrelay.pipeline.delivery import (
    IDEMPOTENCY_KEY_HEADER,
    DeliveryConfig,
    DeliveryConsumer,
)
from scmrelay.pipeline.errors import DeliveryError
from scmrelay.queue.client import NORMALIZED_EVENTS_QUEUE
from tests.helpers.femtologging_capture import capture_femto_logs

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from scmrelay.queue.client import QueueClient
    from tests.helpers.fake_broker import FakeBroker

_EVENTS_LOGGER = "scmrelay.pipeline.observability"
_SINK_URL = "https://sink.test/events"


def _event() -> NormalizedEvent:
    return NormalizedEvent(
        platform=Platform.GITHUB,
        event_type="pull_request.opened",
        action="opened",
        pr=NormalizedPR(
            number=42,
            title="Add checklist",
            author="octocat",
            source_branch="feature/checklist",
            target_branch="main",
            state="open",
        ),
        repository=NormalizedRepository(
            name="widgets", full_name="acme/widgets", owner="acme"
        ),
        files=(
            NormalizedFile.build(
                filename="src/app.py",
                status=FileStatus.MODIFIED,
                additions=10,
                deletions=2,
            ),
        ),
        raw_payload=b'{"action":"opened"}',
        received_at=dt.datetime(2025, 1, 15, 10, 0, tzinfo=dt.UTC),
    )


class _Sink:
    """Record sink requests and answer with a fixed status."""

    def __init__(self, status_code: int = 202) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self.received = threading.Event()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.received.set()
        return httpx.Response(self.status_code, text="sink says no")


@pytest.fixture
def sink() -> _Sink:
    """Return a sink accepting every event."""
    return _Sink()


@pytest.fixture
async def sink_client(sink: _Sink) -> cabc.AsyncIterator[httpx.AsyncClient]:
    """Yield an HTTP client routed to the sink double."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(sink))
    yield client
    await client.aclose()


class TestDeliver:
    """Tests for DeliveryConsumer.deliver."""

    async def test_posts_event_json(
        self,
        queue_client: QueueClient,
        sink: _Sink,
        sink_client: httpx.AsyncClient,
    ) -> None:
        """Events are POSTed as JSON with an idempotency key."""
        consumer = DeliveryConsumer(
            queue_client, DeliveryConfig(sink_url=_SINK_URL), http_client=sink_client
        )
        event = _event()

        status_code = await consumer.deliver(event)

        assert status_code == 202
        (request,) = sink.requests
        assert request.method == "POST"
        assert str(request.url) == _SINK_URL
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers[IDEMPOTENCY_KEY_HEADER] == event_fingerprint(event)
        body = msgspec.json.decode(request.content)
        assert body["event_type"] == "pull_request.opened"
        assert body["pr"]["number"] == 42
        assert body["files"][0]["filename"] == "src/app.py"

    async def test_non_success_status_raises(
        self, queue_client: QueueClient, sink: _Sink, sink_client: httpx.AsyncClient
    ) -> None:
        """A non-2xx answer raises DeliveryError with the status code."""
        sink.status_code = 503
        consumer = DeliveryConsumer(
            queue_client, DeliveryConfig(sink_url=_SINK_URL), http_client=sink_client
        )

        with pytest.raises(DeliveryError, match="HTTP 503") as excinfo:
            await consumer.deliver(_event())

        assert excinfo.value.status_code == 503
        assert "sink says no" in str(excinfo.value)

    async def test_unreachable_sink_raises(self, queue_client: QueueClient) -> None:
        """Transport failures raise DeliveryError without a status code."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            consumer = DeliveryConsumer(
                queue_client, DeliveryConfig(sink_url=_SINK_URL), http_client=client
            )
            with pytest.raises(DeliveryError, match="unreachable") as excinfo:
                await consumer.deliver(_event())

        assert excinfo.value.status_code is None

    async def test_offline_mode_logs_event(self, queue_client: QueueClient) -> None:
        """Without a sink URL the event is logged in full instead."""
        consumer = DeliveryConsumer(queue_client, DeliveryConfig())

        with capture_femto_logs(_EVENTS_LOGGER) as capture:
            status_code = await consumer.deliver(_event())
            record = capture.wait_for_message("[delivery.offline]")

        assert status_code is None
        for fragment in (
            "repository=acme/widgets",
            "pr_number=42",
            "author=octocat",
            "source_branch=feature/checklist",
            "files=[modified:src/app.py]",
        ):
            assert fragment in record.message, f"Expected {fragment!r} logged."


class TestHandle:
    """Tests for DeliveryConsumer.handle."""

    async def test_logs_completed_delivery(
        self, queue_client: QueueClient, sink_client: httpx.AsyncClient
    ) -> None:
        """A 2xx answer is logged with its status code."""
        consumer = DeliveryConsumer(
            queue_client, DeliveryConfig(sink_url=_SINK_URL), http_client=sink_client
        )

        with capture_femto_logs(_EVENTS_LOGGER) as capture:
            await consumer.handle(_event())
            record = capture.wait_for_message("[delivery.completed]")

        assert "status_code=202" in record.message

    async def test_logs_failed_delivery(
        self, queue_client: QueueClient, sink: _Sink, sink_client: httpx.AsyncClient
    ) -> None:
        """A failed delivery is logged rather than raised."""
        sink.status_code = 400
        consumer = DeliveryConsumer(
            queue_client, DeliveryConfig(sink_url=_SINK_URL), http_client=sink_client
        )

        with capture_femto_logs(_EVENTS_LOGGER) as capture:
            await consumer.handle(_event())
            record = capture.wait_for_message("[delivery.failed]")

        assert record.level == "ERROR"
        assert "status_code=400" in record.message


async def test_aclose_keeps_injected_client(
    queue_client: QueueClient, sink_client: httpx.AsyncClient
) -> None:
    """The consumer never closes a client it was given."""
    consumer = DeliveryConsumer(
        queue_client, DeliveryConfig(sink_url=_SINK_URL), http_client=sink_client
    )

    await consumer.aclose()

    assert not sink_client.is_closed


def test_run_acknowledges_after_delivery(
    queue_client: QueueClient, broker: FakeBroker, sink: _Sink
) -> None:
    """run() posts each queued event and acknowledges it."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(sink))
    consumer = DeliveryConsumer(
        queue_client, DeliveryConfig(sink_url=_SINK_URL), http_client=client
    )
    queue_client.publish(NORMALIZED_EVENTS_QUEUE, _event())
    thread = threading.Thread(target=consumer.run)
    thread.start()
    try:
        assert sink.received.wait(timeout=2.0), "Expected the sink to be called."
        assert broker.wait_until(lambda: len(broker.acked) == 1)
    finally:
        queue_client.stop_consumers()
        thread.join(timeout=5.0)

    assert broker.acked[0][0] == NORMALIZED_EVENTS_QUEUE
    assert not client.is_closed, "Expected the injected client left open."


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Sink settings are read from SCMRELAY_* variables."""
    monkeypatch.setenv("SCMRELAY_SINK_URL", " https://sink.test/in ")
    monkeypatch.setenv("SCMRELAY_SINK_TIMEOUT_S", "3")

    config = DeliveryConfig.from_env()

    assert config == DeliveryConfig(sink_url="https://sink.test/in", timeout_s=3.0)


def test_config_defaults_to_offline() -> None:
    """An unset sink URL selects offline mode."""
    assert DeliveryConfig.from_env().sink_url is None

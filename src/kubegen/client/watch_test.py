import threading
import time
from typing import Any

import pytest

from kubegen.client.errors import DecodeFailure, Forbidden, Invalidated, TransportFailure, request_failure
from kubegen.client.events import Added, Bookmark, Deleted, Modified
from kubegen.client.model import K8sNamespace, ResourceType
from kubegen.client.resource import ResourceClient
from kubegen.client.testing import FakeTransport, fake_object, watch_event
from kubegen.client.watch import RetryPolicy, WatchSession, WatchState

PODS = ResourceType.of("v1", "pods")
NO_DELAY = RetryPolicy(base_delay=0)


def expired(resource_version: str = "1") -> bytes:
    status = {
        "kind": "Status",
        "apiVersion": "v1",
        "metadata": {},
        "status": "Failure",
        "message": f"too old resource version: {resource_version}",
        "reason": "Expired",
        "code": 410,
    }
    return watch_event("ERROR", status)


def added(name: str, resource_version: str) -> bytes:
    return watch_event("ADDED", fake_object(name, resource_version))


def client(transport: FakeTransport) -> ResourceClient[dict[str, Any]]:
    return ResourceClient(PODS, transport)


def take(session: WatchSession[Any], count: int) -> list[Any]:
    events = []
    for event in session:
        events.append(event)
        if len(events) == count:
            break
    return events


def names(events: list[Any]) -> list[str]:
    return [e.item["metadata"]["name"] if hasattr(e, "item") else type(e).__name__ for e in events]


def test_RetryPolicy_delay() -> None:
    policy = RetryPolicy()
    assert [policy.delay(n) for n in range(4)] == [0.0, 0.2, 0.4, 0.8]
    assert policy.delay(100) == 10.0


def test_WatchSession_decodes_events() -> None:
    transport = FakeTransport()
    transport.add_watch(
        added("a", "1"),
        b"",
        watch_event("MODIFIED", fake_object("a", "2")),
        watch_event("BOOKMARK", {"kind": "Pod", "metadata": {"resourceVersion": "3"}}),
        watch_event("DELETED", fake_object("a", "4")),
    )

    with client(transport).watch(K8sNamespace("default")) as session:
        events = take(session, 4)
        assert session.resource_version == "4"

    assert [type(e) for e in events] == [Added, Modified, Bookmark, Deleted]
    assert events[2] == Bookmark("3")
    assert transport.watch_requests[0].path == "/api/v1/namespaces/default/pods"
    assert transport.watch_requests[0].params == {
        "watch": "true",
        "allowWatchBookmarks": "true",
        "timeoutSeconds": "300",
    }


def test_WatchSession_resumes_after_disconnect_without_duplicates() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"), added("b", "2"), TransportFailure("connection reset"))
    transport.add_watch(added("c", "3"))
    transport.fail_watch(TransportFailure("connection refused"))
    transport.add_watch(watch_event("BOOKMARK", {"metadata": {"resourceVersion": "4"}}), added("d", "5"))

    session = client(transport).watch(resource_version="0", retry=NO_DELAY)
    events = take(session, 5)

    assert names(events) == ["a", "b", "c", "Bookmark", "d"]
    assert [r.params.get("resourceVersion") for r in transport.watch_requests] == ["0", "2", "3", "3"]
    assert session.state == WatchState.CLOSED


def test_WatchSession_reconnects_when_server_ends_the_stream() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"))
    transport.add_watch(added("b", "2"))

    events = take(client(transport).watch(retry=NO_DELAY), 2)

    assert names(events) == ["a", "b"]
    assert transport.watch_requests[1].params["resourceVersion"] == "1"


def test_WatchSession_asks_the_server_to_end_each_request_after_timeout_seconds() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"))
    transport.add_watch(added("b", "2"))
    transport.add_watch(added("c", "3"))

    events = take(client(transport).watch(resource_version="0", retry=NO_DELAY, timeout_seconds=5), 2)
    assert names(events) == ["a", "b"]
    assert [r.params["timeoutSeconds"] for r in transport.watch_requests] == ["5", "5"]
    assert [r.params["resourceVersion"] for r in transport.watch_requests] == ["0", "1"]

    take(client(transport).watch(timeout_seconds=None), 1)
    assert "timeoutSeconds" not in transport.watch_requests[2].params


def test_WatchSession_resyncs_once_when_invalidated() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "5"), expired("5"))
    transport.add_watch(added("a", "7"), added("b", "8"))

    events = take(client(transport).watch(resource_version="4", retry=NO_DELAY), 4)

    assert names(events) == ["a", "Reset", "a", "b"]
    assert [r.params.get("resourceVersion") for r in transport.watch_requests] == ["4", None]


def test_WatchSession_resyncs_when_watch_request_is_rejected_as_gone() -> None:
    transport = FakeTransport()
    transport.fail_watch(request_failure(410))
    transport.add_watch(added("a", "9"))

    events = take(client(transport).watch(resource_version="1", retry=NO_DELAY), 2)

    assert names(events) == ["Reset", "a"]
    assert "resourceVersion" not in transport.watch_requests[1].params


def test_WatchSession_raises_when_resyncs_are_exhausted() -> None:
    transport = FakeTransport()
    transport.add_watch(expired())

    session = client(transport).watch(resource_version="1", max_resyncs=0, retry=NO_DELAY)
    with pytest.raises(Invalidated):
        list(session)


def test_WatchSession_watch_forever_starts_with_reset_and_survives_repeated_invalidation() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"), expired("1"))
    transport.add_watch(expired("2"))
    transport.add_watch(added("a", "3"))
    transport.fail_watch(request_failure(403, message="pods is forbidden"))

    session = client(transport).watch_forever(retry=NO_DELAY)
    events = []
    with pytest.raises(Forbidden):
        for event in session:
            events.append(event)

    assert names(events) == ["Reset", "a", "Reset", "Reset", "a"]
    assert [r.params.get("resourceVersion") for r in transport.watch_requests] == [None, None, None, "3"]


def test_WatchSession_retries_transient_failures() -> None:
    transport = FakeTransport()
    transport.fail_watch(request_failure(503))
    transport.fail_watch(request_failure(429))
    transport.add_watch(added("a", "1"))

    assert names(take(client(transport).watch(retry=NO_DELAY), 1)) == ["a"]
    assert len(transport.watch_requests) == 3


def test_WatchSession_propagates_decode_failures() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"), b"{not json")

    events = []
    with pytest.raises(DecodeFailure):
        for event in client(transport).watch(retry=NO_DELAY):
            events.append(event)
    assert names(events) == ["a"]


def test_WatchSession_rejects_unknown_event_types() -> None:
    transport = FakeTransport()
    transport.add_watch(watch_event("SYNC", fake_object("a", "1")))

    with pytest.raises(DecodeFailure):
        list(client(transport).watch())


def test_WatchSession_can_only_be_iterated_once() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"))
    session = client(transport).watch()
    take(session, 1)

    with pytest.raises(RuntimeError):
        list(session)


def test_WatchSession_close_stops_the_session() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"), added("b", "2"), added("c", "3"))
    session = client(transport).watch()

    events = []
    for event in session:
        events.append(event)
        session.close()

    assert names(events) == ["a"]
    assert session.state == WatchState.CLOSED
    assert transport.streams[0].closed


def test_WatchSession_close_interrupts_reconnect_delay() -> None:
    transport = FakeTransport()
    transport.add_watch(added("a", "1"), TransportFailure("connection reset"))
    transport.fail_watch(TransportFailure("connection refused"))
    session = client(transport).watch(retry=RetryPolicy(base_delay=60, max_delay=60))

    events: list[Any] = []
    consumer = threading.Thread(target=lambda: events.extend(session))
    consumer.start()
    # The consumer now waits a minute before the third attempt, which close() cuts short.
    while len(transport.watch_requests) < 2:
        time.sleep(0.01)
    session.close()
    consumer.join(timeout=5)

    assert not consumer.is_alive()
    assert names(events) == ["a"]
    assert len(transport.watch_requests) == 2

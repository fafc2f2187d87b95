"""
An in-memory [Transport] for testing code that uses the clients without an API server.
"""

import json
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from kubegen.client.errors import NotFound
from kubegen.client.transport import EventStream, Params, Transport, encode_params

StreamItem = bytes | BaseException


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: dict[str, str]
    body: dict[str, Any] | None = None


def watch_event(event_type: str, obj: dict[str, Any]) -> bytes:
    """
    Encode a watch event the way the API server sends it.
    """

    return json.dumps({"type": event_type, "object": obj}).encode()


def fake_object(name: str, resource_version: str, **fields: Any) -> dict[str, Any]:
    return {"metadata": {"name": name, "resourceVersion": resource_version}, **fields}


class FakeStream(EventStream):
    """
    Replays scripted lines. An exception in the script is raised when it is reached, simulating an interrupted
    connection or similar.
    """

    def __init__(self, items: Iterable[StreamItem]) -> None:
        self._items = list(items)
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        for item in self._items:
            if self.closed:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    def close(self) -> None:
        self.closed = True


class FakeTransport(Transport):
    """
    Records all requests. Requests are answered by the *handler*; watch streams are taken from the scripts added with
    [add_watch()], in order.
    """

    def __init__(self, handler: Callable[[RecordedRequest], dict[str, Any]] | None = None) -> None:
        self.handler = handler
        self.requests: list[RecordedRequest] = []
        self.streams: list[FakeStream] = []
        self._watches: deque[list[StreamItem] | BaseException] = deque()

    def add_watch(self, *items: StreamItem) -> None:
        """
        Script the next watch stream to yield the given lines.
        """

        self._watches.append(list(items))

    def fail_watch(self, exc: BaseException) -> None:
        """
        Make the next attempt to open a watch stream fail with *exc*.
        """

        self._watches.append(exc)

    def request(
        self,
        method: str,
        path: str,
        params: Params | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        request = RecordedRequest(method, path, encode_params(params), body)
        self.requests.append(request)
        if self.handler is None:
            raise NotFound(f"{method} {path}", code=404)
        return self.handler(request)

    def stream(self, path: str, params: Params | None = None) -> EventStream:
        self.requests.append(RecordedRequest("GET", path, encode_params(params)))
        if not self._watches:
            raise RuntimeError(f"No scripted watch stream left for {path}")
        script = self._watches.popleft()
        if isinstance(script, BaseException):
            raise script
        stream = FakeStream(script)
        self.streams.append(stream)
        return stream

    @property
    def watch_requests(self) -> list[RecordedRequest]:
        return [r for r in self.requests if r.params.get("watch") == "true"]

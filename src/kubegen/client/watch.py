"""
The watch protocol.

A [WatchSession] is a long-lived subscription to the change events of a collection that survives interruptions:

* When the connection drops or the server ends the stream, the session reconnects from the resourceVersion of the
  last event it received. The consumer sees neither duplicated nor missing events, as long as the server still
  retains that resourceVersion.
* When the server no longer retains the resourceVersion (HTTP 410 Gone), the watch cannot be resumed. The session
  emits a [Reset] and reconnects without a resourceVersion, which makes the server send the full current state of the
  collection as `ADDED` events.

Any other error status, as well as an event that cannot be decoded, ends the session with an exception.
"""

import json
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from databind.core.converter import ConversionError
from loguru import logger

from kubegen.client.codec import ResourceCodec
from kubegen.client.errors import (
    DecodeFailure,
    Invalidated,
    RequestFailure,
    TransportFailure,
    is_transient,
    request_failure,
)
from kubegen.client.events import EVENT_TYPES, Bookmark, Reset, WatchEvent
from kubegen.client.model import Status
from kubegen.client.transport import EventStream, Params, Transport

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 300
""" How long the server keeps a single watch request open. The session reconnects from its cursor afterwards. """


class WatchState(str, Enum):
    CONNECTING = "Connecting"
    STREAMING = "Streaming"
    DISCONNECTED = "Disconnected"
    INVALIDATED = "Invalidated"
    CLOSED = "Closed"


@dataclass(frozen=True)
class RetryPolicy:
    """
    The delay before reconnecting a watch. The first attempt is immediate, after that the delay grows
    exponentially from *base_delay* up to *max_delay* seconds.
    """

    base_delay: float = 0.2
    factor: float = 2.0
    max_delay: float = 10.0

    def delay(self, attempt: int) -> float:
        if attempt <= 0:
            return 0.0
        return min(self.max_delay, self.base_delay * self.factor ** (attempt - 1))


class WatchSession(Generic[T]):
    """
    Watches the collection at *path*. Iterate over the session to receive [WatchEvent]s. A session can be iterated
    only once; it is closed when the iteration stops, when [close()] is called (which is safe from any thread) or
    when the `with` block it is used in is left.

    Args:
        transport: The transport to open the watch stream with.
        path: The URL path of the collection.
        codec: Decodes the objects of the events.
        resource_version: The resourceVersion to start watching after. If not specified, the watch starts with the
            current state of the collection.
        initial_reset: Emit a [Reset] before connecting, telling the consumer to start from an empty state.
        max_resyncs: How often the session resyncs after the server invalidated its resourceVersion. If exceeded,
            [Invalidated] is raised instead. `None` means there is no limit.
        retry: The delays between reconnects.
        timeout_seconds: Ask the server to end each watch request after this many seconds. The session
            reconnects transparently. Also bounds how long a dead connection can go unnoticed, as the transport
            gives up on reads that take longer than that. `None` keeps requests open indefinitely.
    """

    def __init__(
        self,
        transport: Transport,
        path: str,
        codec: ResourceCodec[T],
        resource_version: str | None = None,
        initial_reset: bool = False,
        max_resyncs: int | None = None,
        retry: RetryPolicy | None = None,
        timeout_seconds: int | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._transport = transport
        self._path = path
        self._codec = codec
        self._resource_version = resource_version
        self._initial_reset = initial_reset
        self._max_resyncs = max_resyncs
        self._retry = retry or RetryPolicy()
        self._timeout_seconds = timeout_seconds
        self._state = WatchState.CONNECTING
        self._closed = threading.Event()
        self._lock = threading.Lock()
        self._stream: EventStream | None = None
        self._started = False

    def __repr__(self) -> str:
        return f"WatchSession({self._path!r}, state={self._state.value}, resource_version={self._resource_version!r})"

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def resource_version(self) -> str | None:
        """
        The resourceVersion of the most recent event, i.e. the point the session would resume from.
        """

        return self._resource_version

    def __enter__(self) -> "WatchSession[T]":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """
        Stop the session. Interrupts a pending reconnect delay and a read blocked on the current connection, which
        is then released. A connection that is still being established is closed as soon as it is, i.e. within the
        transport's connect timeout; this method does not wait for that.
        """

        self._closed.set()
        self._state = WatchState.CLOSED
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()

    def _params(self) -> Params:
        return {
            "watch": True,
            "allowWatchBookmarks": True,
            "resourceVersion": self._resource_version,
            "timeoutSeconds": self._timeout_seconds,
        }

    def _decode(self, line: bytes) -> WatchEvent[T]:
        try:
            raw = json.loads(line)
        except ValueError as exc:
            raise DecodeFailure(f"Invalid watch event on {self._path}: {exc}", line)
        if not isinstance(raw, dict) or not isinstance(raw.get("object"), dict):
            raise DecodeFailure(f"Malformed watch event on {self._path}", raw)

        event_type, obj = raw.get("type"), raw["object"]
        if event_type == "ERROR":
            try:
                status = Status.from_json(obj)
            except ConversionError as exc:
                raise DecodeFailure(f"Invalid error event on {self._path}: {exc}", raw)
            raise request_failure(status.code or 0, status)

        resource_version = (obj.get("metadata") or {}).get("resourceVersion")
        if event_type == "BOOKMARK":
            if not resource_version:
                raise DecodeFailure(f"Bookmark without resourceVersion on {self._path}", raw)
            self._resource_version = resource_version
            return Bookmark(resource_version)

        if event_type not in EVENT_TYPES:
            raise DecodeFailure(f"Unknown watch event type {event_type!r} on {self._path}", raw)

        item = self._codec.decode(obj)
        if resource_version:
            self._resource_version = resource_version
        return EVENT_TYPES[event_type](item)

    def _open(self) -> EventStream | None:
        stream = self._transport.stream(self._path, self._params())
        with self._lock:
            if self._closed.is_set():
                stream.close()
                return None
            self._stream = stream
        return stream

    def __iter__(self) -> Iterator[WatchEvent[T]]:
        if self._started:
            raise RuntimeError("A WatchSession can only be iterated once")
        self._started = True

        try:
            yield from self._run()
        except GeneratorExit:
            self.close()
            raise
        finally:
            with self._lock:
                stream, self._stream = self._stream, None
            if stream is not None:
                stream.close()

    def _run(self) -> Iterator[WatchEvent[T]]:
        if self._initial_reset and not self._closed.is_set():
            yield Reset()

        attempt = 0
        resyncs = 0
        while not self._closed.is_set():
            self._state = WatchState.CONNECTING
            logger.debug("Watching {} from resourceVersion {}", self._path, self._resource_version or "<latest>")

            try:
                stream = self._open()
                if stream is None:
                    break
                with stream:
                    self._state = WatchState.STREAMING
                    for line in stream:
                        if not line.strip():
                            continue
                        event = self._decode(line)
                        attempt = 0
                        yield event
                        if self._closed.is_set():
                            return
                if self._closed.is_set():
                    break
                logger.debug("Watch of {} ended by the server", self._path)
                self._state = WatchState.DISCONNECTED

            except Invalidated as exc:
                if self._closed.is_set():
                    break
                if self._max_resyncs is not None and resyncs >= self._max_resyncs:
                    raise
                resyncs += 1
                logger.warning(
                    "Watch of {} at resourceVersion {} is no longer valid ({}), resyncing",
                    self._path,
                    self._resource_version,
                    exc.message,
                )
                self._state = WatchState.INVALIDATED
                self._resource_version = None
                yield Reset()

            except TransportFailure as exc:
                if self._closed.is_set():
                    break
                logger.debug("Watch of {} disconnected: {}", self._path, exc)
                self._state = WatchState.DISCONNECTED

            except RequestFailure as exc:
                if self._closed.is_set() or not is_transient(exc):
                    raise
                logger.debug("Watch of {} failed transiently: {}", self._path, exc)
                self._state = WatchState.DISCONNECTED

            finally:
                with self._lock:
                    self._stream = None

            delay = self._retry.delay(attempt)
            attempt += 1
            if delay and self._closed.wait(delay):
                break

        self._state = WatchState.CLOSED

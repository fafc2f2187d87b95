"""
The wire surface of the clients. [Transport] is the only thing the clients depend on to reach the API server;
[HttpTransport] implements it with `requests`.
"""

import json
import warnings
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Any

import requests
import urllib3
from databind.core.converter import ConversionError
from loguru import logger

from kubegen.client.errors import DecodeFailure, TransportFailure, request_failure
from kubegen.client.model import K8sCluster, Status

Params = Mapping[str, str | int | bool | None]


class EventStream(ABC):
    """
    A streaming response, iterated line by line. Closing it releases the underlying connection and makes a
    concurrent iteration stop.
    """

    @abstractmethod
    def __iter__(self) -> Iterator[bytes]: ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self) -> "EventStream":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class Transport(ABC):
    """
    Performs requests against the Kubernetes API server of one cluster.
    """

    @abstractmethod
    def request(
        self,
        method: str,
        path: str,
        params: Params | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Perform a request and return the decoded JSON response body.

        Raises:
            RequestFailure: If the server responded with an error status.
            TransportFailure: If the server could not be reached.
            DecodeFailure: If the response is not a JSON object.
        """

    @abstractmethod
    def stream(self, path: str, params: Params | None = None) -> EventStream:
        """
        Open a streaming `GET` request, e.g. a watch.

        Raises:
            RequestFailure: If the server responded with an error status.
            TransportFailure: If the server could not be reached.
        """

    def close(self) -> None:
        pass

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def encode_params(params: Params | None) -> dict[str, str]:
    """
    Drop unset parameters and render booleans the way the Kubernetes API expects them.
    """

    result = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            result[key] = "true" if value else "false"
        else:
            result[key] = str(value)
    return result


class _ResponseStream(EventStream):
    """
    A streaming response. [close()] may be called while another thread is blocked reading from the stream: the
    socket is shut down first, which wakes the reader, and the iteration then ends without an error.
    """

    def __init__(self, response: requests.Response) -> None:
        self._response = response
        self._closed = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            yield from self._response.iter_lines()
        except (requests.RequestException, urllib3.exceptions.HTTPError, OSError) as exc:
            if self._closed:
                return
            raise TransportFailure(f"Watch stream interrupted: {exc}", cause=exc)
        except (AttributeError, ValueError):
            # note: urllib3 and http.client fail this way when reading from a connection that close() released.
            if not self._closed:
                raise

    def close(self) -> None:
        self._closed = True
        if self._response.raw is not None:
            # note: Closing the response alone would wait for a read pending on another thread.
            self._response.raw.shutdown()
        self._response.close()


class HttpTransport(Transport):
    """
    A [Transport] that talks to the API server over HTTPS using a `requests.Session`.

    Args:
        cluster: The API server and bearer token.
        verify: Passed to `requests`: `True` to verify against the system CA bundle, the path of a CA certificate
            file, or `False` to disable verification.
        timeout: The connect timeout in seconds. Reads of watch streams time out only as described in [stream()].
        debug: Log every request.
        client_cert: A client certificate and key file to authenticate with.
        session: The session to use. A new one is created if not specified.
    """

    def __init__(
        self,
        cluster: K8sCluster,
        verify: bool | str = True,
        timeout: float = 30,
        debug: bool = False,
        client_cert: tuple[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.cluster = cluster
        self.timeout = timeout
        self.debug = debug
        self._session = session or requests.Session()
        self._session.verify = verify
        if client_cert is not None:
            self._session.cert = client_cert
        self._session.headers["Accept"] = "application/json"
        if cluster.token:
            self._session.headers["Authorization"] = f"Bearer {cluster.token}"

    def close(self) -> None:
        self._session.close()

    def _url(self, path: str) -> str:
        return self.cluster.host.rstrip("/") + path

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        if self.debug:
            logger.debug("{} {} params={}", method, path, kwargs.get("params"))
        try:
            with warnings.catch_warnings():
                if self._session.verify is False:
                    warnings.filterwarnings("ignore", category=urllib3.exceptions.InsecureRequestWarning)
                response = self._session.request(method, self._url(path), **kwargs)
        except requests.RequestException as exc:
            raise TransportFailure(f"{method} {path} failed: {exc}", cause=exc)

        if not response.ok:
            try:
                self._raise_for_status(response)
            finally:
                response.close()
        return response

    def _raise_for_status(self, response: requests.Response) -> None:
        status: Status | None = None
        try:
            payload = response.json()
            if isinstance(payload, dict) and payload.get("kind") == "Status":
                status = Status.from_json(payload)
        except (ValueError, ConversionError):
            logger.trace("Error response of {} is not a Status object", response.url)
        raise request_failure(response.status_code, status, None if status else (response.text or response.reason))

    def request(
        self,
        method: str,
        path: str,
        params: Params | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = self._send(method, path, params=encode_params(params), json=body, timeout=self.timeout)
        with response:
            try:
                payload = response.json()
            except (json.JSONDecodeError, requests.JSONDecodeError) as exc:
                raise DecodeFailure(f"{method} {path} returned invalid JSON: {exc}", response.text)
        if not isinstance(payload, dict):
            raise DecodeFailure(f"{method} {path} returned {type(payload).__name__}, expected an object", payload)
        if self.debug:
            logger.trace("{} {} -> {}", method, path, payload)
        return payload

    def stream(self, path: str, params: Params | None = None) -> EventStream:
        """
        Reads of the stream never time out, unless the request asks the server to end it after `timeoutSeconds`.
        Then a read that takes longer than that plus the connect timeout means the connection is dead, and it fails
        with a [TransportFailure].
        """

        read_timeout: float | None = None
        server_timeout = (params or {}).get("timeoutSeconds")
        if server_timeout is not None:
            read_timeout = float(server_timeout) + self.timeout

        response = self._send(
            "GET", path, params=encode_params(params), stream=True, timeout=(self.timeout, read_timeout)
        )
        return _ResponseStream(response)

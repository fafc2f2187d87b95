import dataclasses
from collections.abc import Iterator
from datetime import timedelta
from typing import Any, Generic, TypeVar

from databind.core.converter import ConversionError
from loguru import logger

from kubegen.client.codec import ResourceCodec
from kubegen.client.errors import DecodeFailure
from kubegen.client.model import (
    DEFAULT_CHUNK_SIZE,
    DeleteOptions,
    K8sNamespace,
    PropagationPolicy,
    ResourceType,
    Status,
    StatusDetails,
)
from kubegen.client.transport import Params, Transport
from kubegen.client.watch import DEFAULT_TIMEOUT_SECONDS, RetryPolicy, WatchSession

T = TypeVar("T")


def dry_run_params(dry_run: bool) -> Params:
    return {"dryRun": "All" if dry_run else None}


class ResourceListing(Generic[T]):
    """
    A lazy listing of all objects of a collection. The collection is fetched in chunks of *chunk_size* objects,
    following the continue token of each response. Every iteration starts a new listing.
    """

    def __init__(
        self,
        transport: Transport,
        path: str,
        codec: ResourceCodec[T],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._transport = transport
        self._path = path
        self._codec = codec
        self._chunk_size = chunk_size

    def __iter__(self) -> Iterator[T]:
        token: str | None = None
        while True:
            response = self._transport.request("GET", self._path, {"limit": self._chunk_size, "continue": token})
            items = response.get("items") or []
            if not isinstance(items, list):
                raise DecodeFailure(f"List response of {self._path} has no list of items", response)
            for item in items:
                yield self._codec.decode(item)

            token = (response.get("metadata") or {}).get("continue") or None
            if token is None:
                return
            logger.trace("Fetching next chunk of {}", self._path)


class ResourceClient(Generic[T]):
    """
    The generic client for a Kubernetes resource collection. All typed clients delegate to it.

    Args:
        resource_type: The collection to operate on.
        transport: The transport to send requests with.
        model: The type that objects are decoded into. Use `dict` to work with untyped objects.
        namespace: The namespace used when an operation is not given one explicitly. If this is also `None`,
            operations address the collection at cluster scope (or across all namespaces when listing).
    """

    def __init__(
        self,
        resource_type: ResourceType,
        transport: Transport,
        model: type[T] | Any = dict,
        namespace: K8sNamespace | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.transport = transport
        self.codec: ResourceCodec[T] = ResourceCodec(model)
        self.namespace = namespace

    def _namespace(self, namespace: K8sNamespace | None) -> K8sNamespace | None:
        return namespace if namespace is not None else self.namespace

    def _path(self, namespace: K8sNamespace | None, name: str | None = None) -> str:
        return self.resource_type.path(self._namespace(namespace), name)

    def get_all(
        self,
        namespace: K8sNamespace | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> ResourceListing[T]:
        """
        List all objects in a namespace, or in all namespaces if no namespace is specified. The listing is
        paginated transparently.
        """

        return ResourceListing(self.transport, self._path(namespace), self.codec, chunk_size)

    def get(self, name: str, namespace: K8sNamespace | None = None) -> T:
        """
        Get an object by name.

        Raises:
            NotFound: If the object does not exist.
        """

        return self.codec.decode(self.transport.request("GET", self._path(namespace, name)))

    def create(self, new_resource: T, namespace: K8sNamespace | None = None, dry_run: bool = False) -> T:
        """
        Create an object and return it as persisted by the server, i.e. with defaults applied.

        Raises:
            AlreadyExists: If an object with the same name exists.
        """

        response = self.transport.request(
            "POST", self._path(namespace), dry_run_params(dry_run), self.codec.encode(new_resource)
        )
        return self.codec.decode(response)

    def replace(
        self,
        name: str,
        updated_resource: T,
        namespace: K8sNamespace | None = None,
        dry_run: bool = False,
    ) -> T:
        """
        Replace an existing object.

        Raises:
            Conflict: If the object's resourceVersion does not match the one on the server.
        """

        response = self.transport.request(
            "PUT", self._path(namespace, name), dry_run_params(dry_run), self.codec.encode(updated_resource)
        )
        return self.codec.decode(response)

    def delete(
        self,
        name: str,
        delete_options: DeleteOptions | None = None,
        namespace: K8sNamespace | None = None,
        dry_run: bool = False,
        grace_period: timedelta | None = None,
        propagation_policy: PropagationPolicy | None = None,
    ) -> Status:
        """
        Delete an object. The *grace_period* and *propagation_policy* take precedence over the values in the
        *delete_options*.
        """

        options = dataclasses.replace(delete_options) if delete_options else DeleteOptions()
        if grace_period is not None:
            options.gracePeriodSeconds = int(grace_period.total_seconds())
        if propagation_policy is not None:
            options.propagationPolicy = propagation_policy
        if dry_run:
            options.dryRun = ["All"]

        params: dict[str, Any] = {**dry_run_params(dry_run)}
        params["gracePeriodSeconds"] = options.gracePeriodSeconds
        if options.propagationPolicy is not None:
            params["propagationPolicy"] = PropagationPolicy(options.propagationPolicy).value

        response = self.transport.request("DELETE", self._path(namespace, name), params, options.to_json())
        return _as_status(response)

    def watch(
        self,
        namespace: K8sNamespace | None = None,
        resource_version: str | None = None,
        *,
        max_resyncs: int | None = None,
        retry: RetryPolicy | None = None,
        timeout_seconds: int | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> WatchSession[T]:
        """
        Watch the collection, starting after *resource_version* or, if not specified, with the current state of
        the collection. See [WatchSession].
        """

        return WatchSession(
            self.transport,
            self._path(namespace),
            self.codec,
            resource_version=resource_version,
            max_resyncs=max_resyncs,
            retry=retry,
            timeout_seconds=timeout_seconds,
        )

    def watch_forever(
        self,
        namespace: K8sNamespace | None = None,
        *,
        retry: RetryPolicy | None = None,
        timeout_seconds: int | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> WatchSession[T]:
        """
        Watch the collection until the session is closed. The first event is always a [Reset], followed by the
        current state of the collection. Invalidation of the watch by the server is not an error: it results in
        another [Reset] and a full resync.
        """

        return WatchSession(
            self.transport,
            self._path(namespace),
            self.codec,
            initial_reset=True,
            max_resyncs=None,
            retry=retry,
            timeout_seconds=timeout_seconds,
        )


def _as_status(response: dict[str, Any]) -> Status:
    """
    Depending on the resource and propagation policy, deletions return a [Status] or the deleted object. The latter is
    converted to a successful status describing the object.
    """

    if response.get("kind") == "Status":
        try:
            return Status.from_json(response)
        except ConversionError as exc:
            raise DecodeFailure(f"Could not decode Status: {exc}", response)

    metadata = response.get("metadata") or {}
    api_version = response.get("apiVersion", "")
    return Status(
        status="Success",
        details=StatusDetails(
            name=metadata.get("name"),
            group=api_version.rpartition("/")[0] or None,
            kind=response.get("kind"),
            uid=metadata.get("uid"),
        ),
    )


class NamespacedResourceClient(Generic[T]):
    """
    A typed view on a [ResourceClient] for namespaced resources: operations on single objects require a namespace.
    """

    def __init__(self, client: ResourceClient[T]) -> None:
        self._client = client

    @staticmethod
    def make(
        resource_type: ResourceType,
        transport: Transport,
        model: type[T] | Any = dict,
    ) -> "NamespacedResourceClient[T]":
        return NamespacedResourceClient(ResourceClient(resource_type, transport, model))

    @property
    def as_generic_resource(self) -> ResourceClient[T]:
        return self._client

    def get_all(
        self,
        namespace: K8sNamespace | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> ResourceListing[T]:
        return self._client.get_all(namespace, chunk_size)

    def watch(
        self,
        namespace: K8sNamespace | None = None,
        resource_version: str | None = None,
        timeout_seconds: int | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> WatchSession[T]:
        return self._client.watch(namespace, resource_version, timeout_seconds=timeout_seconds)

    def watch_forever(
        self,
        namespace: K8sNamespace | None = None,
        timeout_seconds: int | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> WatchSession[T]:
        return self._client.watch_forever(namespace, timeout_seconds=timeout_seconds)

    def get(self, name: str, namespace: K8sNamespace) -> T:
        return self._client.get(name, namespace)

    def create(self, new_resource: T, namespace: K8sNamespace, dry_run: bool = False) -> T:
        return self._client.create(new_resource, namespace, dry_run)

    def replace(self, name: str, updated_resource: T, namespace: K8sNamespace, dry_run: bool = False) -> T:
        return self._client.replace(name, updated_resource, namespace, dry_run)

    def delete(
        self,
        name: str,
        delete_options: DeleteOptions | None,
        namespace: K8sNamespace,
        dry_run: bool = False,
        grace_period: timedelta | None = None,
        propagation_policy: PropagationPolicy | None = None,
    ) -> Status:
        return self._client.delete(name, delete_options, namespace, dry_run, grace_period, propagation_policy)


class ClusterResourceClient(Generic[T]):
    """
    A typed view on a [ResourceClient] for cluster scoped resources.
    """

    def __init__(self, client: ResourceClient[T]) -> None:
        self._client = client

    @staticmethod
    def make(
        resource_type: ResourceType,
        transport: Transport,
        model: type[T] | Any = dict,
    ) -> "ClusterResourceClient[T]":
        return ClusterResourceClient(ResourceClient(resource_type, transport, model))

    @property
    def as_generic_resource(self) -> ResourceClient[T]:
        return self._client

    def get_all(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> ResourceListing[T]:
        return self._client.get_all(None, chunk_size)

    def watch(
        self,
        resource_version: str | None = None,
        timeout_seconds: int | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> WatchSession[T]:
        return self._client.watch(None, resource_version, timeout_seconds=timeout_seconds)

    def watch_forever(self, timeout_seconds: int | None = DEFAULT_TIMEOUT_SECONDS) -> WatchSession[T]:
        return self._client.watch_forever(None, timeout_seconds=timeout_seconds)

    def get(self, name: str) -> T:
        return self._client.get(name, None)

    def create(self, new_resource: T, dry_run: bool = False) -> T:
        return self._client.create(new_resource, None, dry_run)

    def replace(self, name: str, updated_resource: T, dry_run: bool = False) -> T:
        return self._client.replace(name, updated_resource, None, dry_run)

    def delete(
        self,
        name: str,
        delete_options: DeleteOptions | None = None,
        dry_run: bool = False,
        grace_period: timedelta | None = None,
        propagation_policy: PropagationPolicy | None = None,
    ) -> Status:
        return self._client.delete(name, delete_options, None, dry_run, grace_period, propagation_policy)

from typing import Any, Generic, TypeVar

from kubegen.client.codec import ResourceCodec
from kubegen.client.model import K8sNamespace, ResourceType
from kubegen.client.resource import dry_run_params
from kubegen.client.transport import Transport

T = TypeVar("T")


class SubresourceClient(Generic[T]):
    """
    The generic client for a subresource, e.g. `status` or `scale`, of the objects in a resource collection.
    Generated subresource clients delegate to it.
    """

    def __init__(
        self,
        resource_type: ResourceType,
        transport: Transport,
        subresource: str,
        model: type[T] | Any = dict,
    ) -> None:
        self.resource_type = resource_type
        self.transport = transport
        self.subresource = subresource
        self.codec: ResourceCodec[T] = ResourceCodec(model)

    def __repr__(self) -> str:
        return f"SubresourceClient({self.resource_type.api_version}, {self.resource_type.resource}/{self.subresource})"

    def _path(self, name: str, namespace: K8sNamespace | None) -> str:
        return self.resource_type.path(namespace, name, self.subresource)

    def get(self, name: str, namespace: K8sNamespace | None = None) -> T:
        return self.codec.decode(self.transport.request("GET", self._path(name, namespace)))

    def replace(self, name: str, updated_value: T, namespace: K8sNamespace | None = None, dry_run: bool = False) -> T:
        response = self.transport.request(
            "PUT", self._path(name, namespace), dry_run_params(dry_run), self.codec.encode(updated_value)
        )
        return self.codec.decode(response)

    def create(self, name: str, value: T, namespace: K8sNamespace | None = None, dry_run: bool = False) -> T:
        response = self.transport.request(
            "POST", self._path(name, namespace), dry_run_params(dry_run), self.codec.encode(value)
        )
        return self.codec.decode(response)

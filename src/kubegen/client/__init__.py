"""
The runtime of the generated clients: a generic client for resource collections and subresources, and the watch
protocol.
"""

from kubegen.client.errors import (
    AlreadyExists,
    Conflict,
    DecodeFailure,
    Forbidden,
    Invalidated,
    K8sFailure,
    NotFound,
    RequestFailure,
    TransportFailure,
    Unauthorized,
)
from kubegen.client.events import Added, Bookmark, Deleted, Modified, Reset, WatchEvent
from kubegen.client.model import (
    DeleteOptions,
    K8sCluster,
    K8sNamespace,
    Manifest,
    ObjectMeta,
    PropagationPolicy,
    ResourceType,
    Status,
)
from kubegen.client.resource import ClusterResourceClient, NamespacedResourceClient, ResourceClient
from kubegen.client.subresource import SubresourceClient
from kubegen.client.transport import HttpTransport, Transport
from kubegen.client.watch import RetryPolicy, WatchSession, WatchState

__all__ = [
    "Added",
    "AlreadyExists",
    "Bookmark",
    "ClusterResourceClient",
    "Conflict",
    "DecodeFailure",
    "DeleteOptions",
    "Deleted",
    "Forbidden",
    "HttpTransport",
    "Invalidated",
    "K8sCluster",
    "K8sFailure",
    "K8sNamespace",
    "Manifest",
    "Modified",
    "NamespacedResourceClient",
    "NotFound",
    "ObjectMeta",
    "PropagationPolicy",
    "RequestFailure",
    "Reset",
    "ResourceClient",
    "ResourceType",
    "RetryPolicy",
    "Status",
    "SubresourceClient",
    "Transport",
    "TransportFailure",
    "Unauthorized",
    "WatchEvent",
    "WatchSession",
    "WatchState",
]

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NewType

from databind.core import ExtraKeys

K8sNamespace = NewType("K8sNamespace", str)
""" The name of a Kubernetes namespace. """

Manifest = NewType("Manifest", dict[str, Any])
""" An untyped Kubernetes object. """

DEFAULT_CHUNK_SIZE = 10


@dataclass(frozen=True)
class ResourceType:
    """
    Identifies a collection of resources on the Kubernetes API server.
    """

    group: str
    """ The API group. Empty for the core group. """

    version: str

    resource: str
    """ The plural resource name, e.g. `deployments`. """

    @staticmethod
    def of(api_version: str, resource: str) -> "ResourceType":
        """
        Create a resource type from an `apiVersion` string such as `v1` or `apps/v1`.
        """

        group, _, version = api_version.rpartition("/")
        return ResourceType(group, version, resource)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def path(
        self,
        namespace: str | None = None,
        name: str | None = None,
        subresource: str | None = None,
    ) -> str:
        """
        Return the URL path of the collection, or of a single object if *name* is given.
        """

        if subresource is not None and name is None:
            raise ValueError("A subresource can only be addressed on a named object")

        parts = ["api", self.version] if not self.group else ["apis", self.group, self.version]
        if namespace is not None:
            parts += ["namespaces", namespace]
        parts.append(self.resource)
        if name is not None:
            parts.append(name)
        if subresource is not None:
            parts.append(subresource)
        return "/" + "/".join(parts)


@dataclass(frozen=True)
class K8sCluster:
    """
    The API server to talk to and the credentials to use.
    """

    host: str
    token: str | None = None

    def __repr__(self) -> str:
        return f"K8sCluster(host={self.host!r}, token={'***' if self.token else None})"


class PropagationPolicy(str, Enum):
    ORPHAN = "Orphan"
    BACKGROUND = "Background"
    FOREGROUND = "Foreground"


@dataclass
class DeleteOptions:
    gracePeriodSeconds: int | None = None
    propagationPolicy: PropagationPolicy | None = None
    dryRun: list[str] | None = None
    preconditions: dict[str, str] | None = None

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {"apiVersion": "v1", "kind": "DeleteOptions"}
        if self.gracePeriodSeconds is not None:
            body["gracePeriodSeconds"] = self.gracePeriodSeconds
        if self.propagationPolicy is not None:
            body["propagationPolicy"] = PropagationPolicy(self.propagationPolicy).value
        if self.dryRun is not None:
            body["dryRun"] = list(self.dryRun)
        if self.preconditions is not None:
            body["preconditions"] = dict(self.preconditions)
        return body


@ExtraKeys()
@dataclass
class ObjectMeta:
    name: str | None = None
    namespace: str | None = None
    uid: str | None = None
    resourceVersion: str | None = None
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None


@ExtraKeys()
@dataclass
class ListMeta:
    resourceVersion: str | None = None
    # note: `continue` is a keyword, the token is read from the raw list response instead.


@ExtraKeys()
@dataclass
class StatusDetails:
    name: str | None = None
    group: str | None = None
    kind: str | None = None
    uid: str | None = None
    causes: list[dict[str, Any]] | None = None
    retryAfterSeconds: int | None = None


@ExtraKeys()
@dataclass
class Status:
    """
    The status object returned by the API server for operations that do not return an object, and for failures.
    """

    kind: str = "Status"
    apiVersion: str = "v1"
    metadata: ListMeta = field(default_factory=ListMeta)
    status: str | None = None
    message: str | None = None
    reason: str | None = None
    details: StatusDetails | None = None
    code: int | None = None

    @staticmethod
    def from_json(data: dict[str, Any]) -> "Status":
        from databind.json import load as deser

        return deser(data, Status)

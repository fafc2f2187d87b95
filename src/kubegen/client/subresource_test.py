from typing import Any

import pytest

from kubegen.client.errors import NotFound
from kubegen.client.model import K8sNamespace, ResourceType
from kubegen.client.subresource import SubresourceClient
from kubegen.client.testing import FakeTransport, RecordedRequest

DEPLOYMENTS = ResourceType.of("apps/v1", "deployments")


def test_SubresourceClient_addresses_the_subresource() -> None:
    transport = FakeTransport(lambda request: {"spec": {"replicas": 2}})
    client: SubresourceClient[dict[str, Any]] = SubresourceClient(DEPLOYMENTS, transport, "scale")

    assert client.get("web", K8sNamespace("default")) == {"spec": {"replicas": 2}}
    client.replace("web", {"spec": {"replicas": 3}}, K8sNamespace("default"), dry_run=True)
    client.create("web", {"spec": {}})

    assert transport.requests == [
        RecordedRequest("GET", "/apis/apps/v1/namespaces/default/deployments/web/scale", {}),
        RecordedRequest(
            "PUT",
            "/apis/apps/v1/namespaces/default/deployments/web/scale",
            {"dryRun": "All"},
            {"spec": {"replicas": 3}},
        ),
        RecordedRequest("POST", "/apis/apps/v1/deployments/web/scale", {}, {"spec": {}}),
    ]


def test_SubresourceClient_propagates_failures() -> None:
    client = SubresourceClient(DEPLOYMENTS, FakeTransport(), "status")
    with pytest.raises(NotFound):
        client.get("missing", K8sNamespace("default"))

from dataclasses import dataclass, field
from typing import Any

import pytest

from kubegen.client.codec import ResourceCodec
from kubegen.client.errors import DecodeFailure
from kubegen.client.model import Manifest, ObjectMeta


@dataclass
class Scale:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    replicas: int | None = None


def test_ResourceCodec_passes_untyped_objects_through() -> None:
    obj = {"metadata": {"name": "web"}, "anything": [1, 2]}
    for model in (dict, Manifest, dict[str, Any]):
        codec: ResourceCodec[Any] = ResourceCodec(model)
        assert codec.untyped
        assert codec.decode(obj) is obj
        assert codec.encode(obj) is obj


def test_ResourceCodec_typed_model() -> None:
    codec = ResourceCodec(Scale)

    scale = codec.decode({"metadata": {"name": "web", "resourceVersion": "7"}, "replicas": 3})

    assert scale == Scale(ObjectMeta(name="web", resourceVersion="7"), 3)
    assert codec.encode(Scale(ObjectMeta(name="web"))) == {"metadata": {"name": "web"}}


def test_ResourceCodec_decode_failures() -> None:
    codec = ResourceCodec(Scale)
    with pytest.raises(DecodeFailure):
        codec.decode([])
    with pytest.raises(DecodeFailure):
        codec.decode({"replicas": {"not": "an int"}})

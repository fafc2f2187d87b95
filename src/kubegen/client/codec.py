from typing import Any, Generic, TypeVar, cast

from databind.core import SerializeDefaults
from databind.core.converter import ConversionError

from kubegen.client.errors import DecodeFailure
from kubegen.client.model import Manifest

T = TypeVar("T")


class ResourceCodec(Generic[T]):
    """
    Converts between the JSON representation of a Kubernetes object and the model type *T* using [databind.json].
    Untyped models (`dict` or [Manifest]) are passed through unchanged.
    """

    def __init__(self, model: type[T] | Any) -> None:
        self.model = model

    @property
    def untyped(self) -> bool:
        return self.model in (dict, Manifest) or getattr(self.model, "__origin__", None) is dict

    def decode(self, data: Any) -> T:
        if not isinstance(data, dict):
            raise DecodeFailure(f"Expected a JSON object, got {type(data).__name__}", payload=data)
        if self.untyped:
            return cast(T, data)

        from databind.json import load as deser

        try:
            return cast(T, deser(data, self.model))
        except ConversionError as exc:
            raise DecodeFailure(f"Could not decode {getattr(self.model, '__name__', self.model)}: {exc}", data)

    def encode(self, value: T) -> dict[str, Any]:
        if self.untyped:
            return cast(dict[str, Any], value)

        from databind.json import dump as ser

        return cast(dict[str, Any], ser(value, self.model, settings=[SerializeDefaults(False)]))

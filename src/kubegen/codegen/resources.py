"""
Normalized descriptions of the subresources that clients are generated for.
"""

import keyword
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger


class Verb(str, Enum):
    """
    An action verb supported by a subresource. The declaration order is the order in which methods are generated.
    """

    GET = "get"
    PUT = "put"
    POST = "post"


class Scope(str, Enum):
    NAMESPACED = "Namespaced"
    CLUSTER = "Cluster"


VERB_ORDER: tuple[Verb, ...] = tuple(Verb)


@dataclass(frozen=True)
class ResourceActionSpec:
    """
    Describes a subresource and the verbs it supports.
    """

    name: str
    """ The name of the subresource, e.g. `status` or `scale`. """

    model: str
    """ Fully qualified name of the model type, e.g. `io.k8s.api.apps.v1.DeploymentStatus`. """

    verbs: frozenset[Verb] = frozenset()
    """ The verbs supported by the subresource. Generated clients expose exactly these. """

    scope: Scope = Scope.NAMESPACED

    @property
    def model_segments(self) -> list[str]:
        """
        The namespace segments of the model reference, without the class name.
        """

        return self.model.split(".")[:-1]

    @property
    def model_name(self) -> str:
        return self.model.split(".")[-1]

    @property
    def ordered_verbs(self) -> list[Verb]:
        return [verb for verb in VERB_ORDER if verb in self.verbs]


@dataclass
class ResourceEntry:
    """
    The YAML representation of a single subresource in a resources file.
    """

    model: str
    verbs: list[str] = field(default_factory=list)
    scope: str = Scope.NAMESPACED.value
    name: str | None = None


def to_identifier(value: str) -> str:
    """
    Turn *value* into a valid Python identifier.
    """

    result = "".join(c if c.isalnum() or c == "_" else "_" for c in value)
    if not result or result[0].isdigit():
        result = "_" + result
    if keyword.iskeyword(result):
        result += "_"
    return result


def parse_verbs(verbs: list[str]) -> frozenset[Verb]:
    """
    Parse the verbs of a subresource. Verbs that clients are not generated for (e.g. `patch`) are dropped.
    """

    result = set()
    for verb in verbs:
        try:
            result.add(Verb(verb.lower()))
        except ValueError:
            logger.debug("Ignoring unsupported verb '{}'", verb)
    return frozenset(result)


def parse_resource_specs(data: Any, filename: str | None = None) -> list[ResourceActionSpec]:
    """
    Parse a mapping of subresource identifiers (e.g. `deployments/status`) to their description into a list of
    [ResourceActionSpec] objects, sorted by subresource and model name.
    """

    from databind.json import load as deser

    entries = deser(data or {}, dict[str, ResourceEntry], filename=filename)

    specs = set()
    for identifier, entry in entries.items():
        name = entry.name or identifier.rsplit("/", 1)[-1]
        if not name:
            raise ValueError(f"Cannot derive a subresource name from '{identifier}'")
        try:
            scope = Scope(entry.scope)
        except ValueError:
            raise ValueError(f"Invalid scope for '{identifier}': {entry.scope!r}")
        specs.add(ResourceActionSpec(name=name, model=entry.model, verbs=parse_verbs(entry.verbs), scope=scope))

    return sorted(specs, key=lambda s: (s.name, s.model, s.scope.value, [v.value for v in s.ordered_verbs]))


def load_resource_specs(file: Path) -> list[ResourceActionSpec]:
    """
    Load the subresource descriptions from a YAML file.
    """

    from yaml import safe_load

    logger.debug("Loading resources from '{}'", file)
    return parse_resource_specs(safe_load(file.read_text()), filename=str(file))

"""
The canonical shape of a generated subresource client module.

For every subresource, two sibling clients are generated: one for namespaced resources and one for cluster scoped
resources. Each of them consists of

* an interface (a `typing.Protocol`) with the `as_generic_<name>_subresource` escape hatch plus one method per verb
  supported by the subresource,
* an implementation of that interface which delegates to a [SubresourceClient], and
* a factory function that binds the implementation to a transport and resource type.

The two variants only differ in whether a `namespace` parameter is threaded through.
"""

import json
from dataclasses import dataclass

from kubegen.codegen.nodes import (
    Assign,
    ClassDef,
    FunctionDef,
    ImportFrom,
    Module,
    ModuleMember,
    Param,
    Return,
    SetAttribute,
    Statement,
)
from kubegen.codegen.resources import ResourceActionSpec, Scope, Verb, to_identifier

DEFAULT_MODEL_PACKAGE = "kubegen_models"
""" The package that the model types referenced by generated modules are imported from. """

SCOPE_PREFIXES = {Scope.NAMESPACED: "Namespaced", Scope.CLUSTER: "Cluster"}


@dataclass(frozen=True)
class ClientNames:
    """
    The identifiers used for one scope variant of a generated client.
    """

    interface: str
    implementation: str
    factory: str
    accessor: str
    get: str
    replace: str
    create: str

    @staticmethod
    def of(spec: ResourceActionSpec, scope: Scope) -> "ClientNames":
        name = to_identifier(spec.name)
        cap_name = name[:1].upper() + name[1:]
        prefix = SCOPE_PREFIXES[scope]
        return ClientNames(
            interface=f"{prefix}{cap_name}Subresource",
            implementation=f"{prefix}{cap_name}SubresourceClient",
            factory=f"make_{prefix.lower()}_{name}_subresource",
            accessor=f"as_generic_{name}_subresource",
            get=f"get_{name}",
            replace=f"replace_{name}",
            create=f"create_{name}",
        )

    def method_for(self, verb: Verb) -> str:
        return {Verb.GET: self.get, Verb.PUT: self.replace, Verb.POST: self.create}[verb]


class ClientShapeTemplate:
    """
    Maps a [ResourceActionSpec] to the source tree of its client module. This is a pure function of the spec and the
    configured model package.
    """

    def __init__(self, model_package: str = DEFAULT_MODEL_PACKAGE) -> None:
        self.model_package = model_package

    def model_module(self, spec: ResourceActionSpec) -> str:
        parts = [p for p in self.model_package.split(".") if p] + [to_identifier(s) for s in spec.model_segments]
        if not parts:
            raise ValueError(f"Model '{spec.model}' has no namespace and no model package is configured")
        return ".".join(parts)

    def render(self, spec: ResourceActionSpec) -> Module:
        model = to_identifier(spec.model_name)
        body: list[ModuleMember] = [
            Assign("SUBRESOURCE", json.dumps(spec.name)),
            Assign("SCOPE", json.dumps(spec.scope.value)),
        ]

        for scope in (Scope.NAMESPACED, Scope.CLUSTER):
            names = ClientNames.of(spec, scope)
            body.append(self._interface(spec, scope, names, model))
            body.append(self._implementation(spec, scope, names, model))
            body.append(self._factory(names, model))

        body.append(Assign("make_client", ClientNames.of(spec, spec.scope).factory))

        return Module(
            docstring=(
                f"Typed clients for the `{spec.name}` subresource of `{spec.model}`.\n\n"
                "This module is generated by kubegen. Do not edit it by hand."
            ),
            imports=(
                ImportFrom("typing", ("Protocol",)),
                ImportFrom("kubegen.client.model", ("K8sNamespace", "ResourceType")),
                ImportFrom("kubegen.client.subresource", ("SubresourceClient",)),
                ImportFrom("kubegen.client.transport", ("Transport",)),
                ImportFrom(self.model_module(spec), (model,)),
            ),
            body=tuple(body),
        )

    def _signatures(self, spec: ResourceActionSpec, scope: Scope, names: ClientNames, model: str) -> list[FunctionDef]:
        namespace = (Param("namespace", "K8sNamespace"),) if scope is Scope.NAMESPACED else ()
        dry_run = Param("dry_run", "bool", "False")
        self_ = Param("self")
        name = Param("name", "str")

        methods = [
            FunctionDef(
                names.accessor, (self_,), returns=f"SubresourceClient[{model}]", decorators=("property",)
            )
        ]
        for verb in spec.ordered_verbs:
            match verb:
                case Verb.GET:
                    params = (self_, name, *namespace)
                case Verb.PUT:
                    params = (self_, name, Param("updated_value", model), *namespace, dry_run)
                case Verb.POST:
                    params = (self_, name, Param("value", model), *namespace, dry_run)
            methods.append(FunctionDef(names.method_for(verb), params, returns=model))
        return methods

    def _interface(self, spec: ResourceActionSpec, scope: Scope, names: ClientNames, model: str) -> ClassDef:
        where = "in a namespace" if scope is Scope.NAMESPACED else "at cluster scope"
        return ClassDef(
            names.interface,
            bases=("Protocol",),
            docstring=f"Access to the `{spec.name}` subresource of resources {where}.",
            body=tuple(self._signatures(spec, scope, names, model)),
        )

    def _implementation(self, spec: ResourceActionSpec, scope: Scope, names: ClientNames, model: str) -> ClassDef:
        namespace_arg = ", namespace=namespace" if scope is Scope.NAMESPACED else ""
        calls = {
            Verb.GET: f"self._client.get(name{namespace_arg})",
            Verb.PUT: f"self._client.replace(name, updated_value{namespace_arg}, dry_run=dry_run)",
            Verb.POST: f"self._client.create(name, value{namespace_arg}, dry_run=dry_run)",
        }

        init = FunctionDef(
            "__init__",
            (Param("self"), Param("client", f"SubresourceClient[{model}]")),
            returns="None",
            body=(SetAttribute("_client", "client"),),
        )
        methods = [init]
        for signature in self._signatures(spec, scope, names, model):
            statement: Statement
            if signature.name == names.accessor:
                statement = Return("self._client")
            else:
                verb = next(v for v in spec.ordered_verbs if names.method_for(v) == signature.name)
                statement = Return(calls[verb])
            methods.append(
                FunctionDef(
                    signature.name,
                    signature.params,
                    returns=signature.returns,
                    body=(statement,),
                    decorators=signature.decorators,
                )
            )

        return ClassDef(names.implementation, bases=(names.interface,), body=tuple(methods))

    def _factory(self, names: ClientNames, model: str) -> FunctionDef:
        return FunctionDef(
            names.factory,
            (Param("transport", "Transport"), Param("resource_type", "ResourceType")),
            returns=names.interface,
            body=(
                Return(
                    f"{names.implementation}(SubresourceClient(resource_type, transport, SUBRESOURCE, {model}))"
                ),
            ),
        )

"""
Generation of typed subresource client modules from a description of the verbs each subresource supports.
"""

from kubegen.codegen.emitter import ClientModuleEmitter, EmitReport
from kubegen.codegen.errors import GenerationFailure
from kubegen.codegen.resources import ResourceActionSpec, Scope, Verb, load_resource_specs
from kubegen.codegen.template import ClientShapeTemplate

__all__ = [
    "ClientModuleEmitter",
    "ClientShapeTemplate",
    "EmitReport",
    "GenerationFailure",
    "ResourceActionSpec",
    "Scope",
    "Verb",
    "load_resource_specs",
]

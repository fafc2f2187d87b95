"""
A small source tree for the modules that are generated. It covers exactly the constructs the client template
needs: imports, module level assignments, classes with methods and plain functions. Expressions are kept as
source text.
"""

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class ImportFrom:
    module: str
    names: tuple[str, ...]


@dataclass(frozen=True)
class Assign:
    target: str
    value: str


@dataclass(frozen=True)
class Return:
    value: str


@dataclass(frozen=True)
class SetAttribute:
    """ `self.<name> = <value>` """

    name: str
    value: str


Statement = Union[Return, SetAttribute]


@dataclass(frozen=True)
class Param:
    name: str
    annotation: str | None = None
    default: str | None = None


@dataclass(frozen=True)
class FunctionDef:
    """
    A function or method. A function without a body is a stub and is rendered with `...`.
    """

    name: str
    params: tuple[Param, ...] = ()
    returns: str | None = None
    body: tuple[Statement, ...] = ()
    decorators: tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassDef:
    name: str
    bases: tuple[str, ...] = ()
    docstring: str | None = None
    body: tuple[FunctionDef, ...] = ()


ModuleMember = Union[Assign, ClassDef, FunctionDef]


@dataclass(frozen=True)
class Module:
    docstring: str | None = None
    imports: tuple[ImportFrom, ...] = ()
    body: tuple[ModuleMember, ...] = field(default_factory=tuple)

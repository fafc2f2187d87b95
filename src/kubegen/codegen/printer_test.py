import ast

from kubegen.codegen.nodes import Assign, ClassDef, FunctionDef, ImportFrom, Module, Param, Return, SetAttribute
from kubegen.codegen.printer import SourcePrinter


def test_SourcePrinter_print_module() -> None:
    module = Module(
        docstring="Example.",
        imports=(ImportFrom("typing", ("Protocol",)),),
        body=(
            Assign("A", "1"),
            Assign("B", "2"),
            ClassDef(
                "Greeter",
                bases=("Protocol",),
                docstring="Says hello.",
                body=(FunctionDef("greet", (Param("self"), Param("name", "str")), returns="str"),),
            ),
            ClassDef(
                "Impl",
                body=(
                    FunctionDef(
                        "__init__",
                        (Param("self"), Param("prefix", "str", '"Hello"')),
                        returns="None",
                        body=(SetAttribute("_prefix", "prefix"),),
                    ),
                    FunctionDef(
                        "prefix",
                        (Param("self"),),
                        returns="str",
                        body=(Return("self._prefix"),),
                        decorators=("property",),
                    ),
                ),
            ),
            FunctionDef("make", (Param("x", default="1"),), body=(Return("Impl()"),)),
        ),
    )

    source = SourcePrinter().print_module(module)

    assert source.startswith('"""Example."""\n\n\nfrom typing import Protocol\n\n\nA = 1\nB = 2\n\n\nclass Greeter')
    assert "    def greet(self, name: str) -> str: ..." in source
    assert '    def __init__(self, prefix: str = "Hello") -> None:\n        self._prefix = prefix' in source
    assert "    @property\n    def prefix(self) -> str:\n        return self._prefix" in source
    assert "def make(x=1):\n    return Impl()\n" in source

    tree = ast.parse(source)
    assert [type(node).__name__ for node in tree.body] == [
        "Expr",
        "ImportFrom",
        "Assign",
        "Assign",
        "ClassDef",
        "ClassDef",
        "FunctionDef",
    ]


def test_SourcePrinter_renders_empty_class_with_pass() -> None:
    source = SourcePrinter().print_module(Module(body=(ClassDef("Empty"),)))
    assert source == "class Empty:\n    pass\n"


def test_SourcePrinter_renders_multiline_docstring() -> None:
    source = SourcePrinter().print_module(Module(docstring="First line.\n\nSecond line."))
    assert source == '"""\nFirst line.\n\nSecond line.\n"""\n'

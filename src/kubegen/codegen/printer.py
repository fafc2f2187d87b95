from collections.abc import Iterable

from kubegen.codegen.nodes import Assign, ClassDef, FunctionDef, ImportFrom, Module, Param, Return, SetAttribute

INDENT = "    "


class SourcePrinter:
    """
    Renders a [Module] to Python source text. The output only depends on the tree, never on the environment, so the
    same tree always produces the same text. The result is syntactically valid but not necessarily formatted the way
    a formatter would; pass it through one for canonical output.
    """

    def print_module(self, module: Module) -> str:
        blocks: list[str] = []

        if module.docstring is not None:
            blocks.append(self._docstring(module.docstring, ""))

        if module.imports:
            blocks.append("\n".join(self._import(imp) for imp in module.imports))

        previous: object = None
        for member in module.body:
            match member:
                case Assign():
                    line = f"{member.target} = {member.value}"
                    # Consecutive assignments share a block.
                    if isinstance(previous, Assign):
                        blocks[-1] += "\n" + line
                    else:
                        blocks.append(line)
                case ClassDef():
                    blocks.append(self._class(member))
                case FunctionDef():
                    blocks.append(self._function(member, ""))
                case _:
                    raise TypeError(f"Unsupported module member: {member!r}")
            previous = member

        return "\n\n\n".join(blocks) + "\n"

    def _import(self, node: ImportFrom) -> str:
        return f"from {node.module} import {', '.join(node.names)}"

    def _docstring(self, text: str, indent: str) -> str:
        lines = text.strip("\n").splitlines()
        if len(lines) == 1:
            return f'{indent}"""{lines[0]}"""'
        body = "\n".join((indent + line) if line else "" for line in lines)
        return f'{indent}"""\n{body}\n{indent}"""'

    def _class(self, node: ClassDef) -> str:
        header = f"class {node.name}({', '.join(node.bases)}):" if node.bases else f"class {node.name}:"
        parts: list[str] = []
        if node.docstring is not None:
            parts.append(self._docstring(node.docstring, INDENT))
        for method in node.body:
            parts.append(self._function(method, INDENT))
        if not parts:
            parts.append(INDENT + "pass")
        return header + "\n" + "\n\n".join(parts)

    def _function(self, node: FunctionDef, indent: str) -> str:
        lines = [f"{indent}@{decorator}" for decorator in node.decorators]
        signature = f"def {node.name}({self._params(node.params)})"
        if node.returns is not None:
            signature += f" -> {node.returns}"
        if not node.body:
            lines.append(f"{indent}{signature}: ...")
            return "\n".join(lines)
        lines.append(f"{indent}{signature}:")
        lines.extend(self._statements(node.body, indent + INDENT))
        return "\n".join(lines)

    def _params(self, params: Iterable[Param]) -> str:
        rendered = []
        for param in params:
            text = param.name
            if param.annotation is not None:
                text += f": {param.annotation}"
                if param.default is not None:
                    text += f" = {param.default}"
            elif param.default is not None:
                text += f"={param.default}"
            rendered.append(text)
        return ", ".join(rendered)

    def _statements(self, statements: Iterable[Return | SetAttribute], indent: str) -> list[str]:
        lines = []
        for statement in statements:
            match statement:
                case Return(value=value):
                    lines.append(f"{indent}return {value}")
                case SetAttribute(name=name, value=value):
                    lines.append(f"{indent}self.{name} = {value}")
                case _:
                    raise TypeError(f"Unsupported statement: {statement!r}")
        return lines

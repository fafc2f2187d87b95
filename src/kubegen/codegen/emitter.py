from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from kubegen.codegen.errors import GenerationFailure
from kubegen.codegen.printer import SourcePrinter
from kubegen.codegen.resources import ResourceActionSpec, to_identifier
from kubegen.codegen.template import DEFAULT_MODEL_PACKAGE, ClientShapeTemplate
from kubegen.tools.fs import ensure_package_dirs, write_text_atomic

DEFAULT_PACKAGE = "kubegen_clients.subresources"
""" The package that generated modules are placed in, relative to the target directory. """


@dataclass
class EmitReport:
    """
    The outcome of emitting a batch of client modules.
    """

    paths: list[Path] = field(default_factory=list)
    failures: list[GenerationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class ClientModuleEmitter:
    """
    Renders client modules and writes them below *target_root*.

    Args:
        target_root: The directory to write the generated package into.
        package: The dotted name of the package the modules are generated into.
        model_package: The package that model types are imported from in generated code.
        line_length: The line length passed to the formatter.
    """

    def __init__(
        self,
        target_root: Path,
        package: str = DEFAULT_PACKAGE,
        model_package: str = DEFAULT_MODEL_PACKAGE,
        line_length: int = 120,
    ) -> None:
        self.target_root = target_root
        self.package = package
        self.template = ClientShapeTemplate(model_package)
        self.printer = SourcePrinter()
        self.line_length = line_length

    def _package_parts(self, spec: ResourceActionSpec) -> list[str]:
        parts = [p for p in self.package.split(".") if p]
        return parts + [to_identifier(segment) for segment in spec.model_segments]

    def target_path(self, spec: ResourceActionSpec) -> Path:
        """
        Return the path that the client module for *spec* is written to. It only depends on the model's namespace
        segments and the subresource name.
        """

        directory = self.target_root.joinpath(*self._package_parts(spec))
        return directory / f"{to_identifier(spec.name)}.py"

    def render(self, spec: ResourceActionSpec) -> str:
        """
        Render the formatted source code of the client module for *spec*.
        """

        import black

        source = self.printer.print_module(self.template.render(spec))
        try:
            return black.format_str(source, mode=black.Mode(line_length=self.line_length))
        except black.InvalidInput as exc:
            raise GenerationFailure(spec.name, f"formatter rejected generated code: {exc}")

    def emit(self, spec: ResourceActionSpec) -> Path:
        """
        Write the client module for *spec*, replacing any previous version of it.

        Raises:
            GenerationFailure: If the module could not be rendered or written.
        """

        path = self.target_path(spec)
        try:
            source = self.render(spec)
            ensure_package_dirs(self.target_root, self._package_parts(spec))
            write_text_atomic(path, source)
        except GenerationFailure:
            raise
        except (OSError, ValueError) as exc:
            raise GenerationFailure(spec.name, str(exc)) from exc

        logger.debug("Wrote client for '{}' ({}) to '{}'", spec.name, spec.model, path)
        return path

    def emit_all(self, specs: Iterable[ResourceActionSpec], jobs: int | None = None) -> EmitReport:
        """
        Emit the client modules for all *specs* in parallel. A failure to emit one module is recorded in the report
        and does not affect any of the other modules.

        Specs that map to the same file are emitted once if they are identical. If they differ, none of them is
        emitted and each is reported as a failure.
        """

        report = EmitReport()

        by_path: dict[Path, set[ResourceActionSpec]] = {}
        for spec in specs:
            by_path.setdefault(self.target_path(spec), set()).add(spec)

        unique: list[ResourceActionSpec] = []
        for path, group in by_path.items():
            if len(group) == 1:
                unique.extend(group)
                continue
            for spec in group:
                report.failures.append(
                    GenerationFailure(spec.name, f"conflicts with {len(group) - 1} other definition(s) for '{path}'")
                )

        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = {executor.submit(self.emit, spec): spec for spec in unique}
            for future in as_completed(futures):
                spec = futures[future]
                try:
                    report.paths.append(future.result())
                except GenerationFailure as exc:
                    logger.error("{}", exc)
                    report.failures.append(exc)
                except Exception as exc:
                    logger.opt(exception=exc).error("Unexpected error generating client for '{}'", spec.name)
                    report.failures.append(GenerationFailure(spec.name, f"{type(exc).__name__}: {exc}"))

        report.paths.sort()
        report.failures.sort(key=lambda f: (f.resource, f.reason))
        logger.info("Generated {} client module(s), {} failure(s)", len(report.paths), len(report.failures))
        return report

from pathlib import Path

import yaml
from databind.core.converter import ConversionError
from loguru import logger
from typer import Argument, Exit, Option

from kubegen.codegen.emitter import DEFAULT_PACKAGE, ClientModuleEmitter
from kubegen.codegen.resources import load_resource_specs
from kubegen.codegen.template import DEFAULT_MODEL_PACKAGE

from . import app


@app.command()
def generate(
    resources: Path = Argument(..., help="A YAML file that maps subresource identifiers to their model and verbs."),
    target: Path = Option(Path("."), help="The directory to write the generated package into."),
    package: str = Option(DEFAULT_PACKAGE, help="The package to generate the client modules into."),
    model_package: str = Option(DEFAULT_MODEL_PACKAGE, help="The package to import the model types from."),
    jobs: int | None = Option(None, "--jobs", "-j", help="The number of modules to generate in parallel."),
) -> None:
    """
    Generate a typed client module for every subresource listed in the RESOURCES file.

    A failure to generate one module does not stop the others from being generated, but makes the command exit with
    a non-zero status code.
    """

    try:
        specs = load_resource_specs(resources)
    except (OSError, ValueError, ConversionError, yaml.YAMLError) as exc:
        logger.error("Could not load subresources from '{}': {}", resources, exc)
        raise Exit(1)

    logger.info("Generating clients for {} subresource(s) from '{}'", len(specs), resources)

    emitter = ClientModuleEmitter(target, package=package, model_package=model_package)
    report = emitter.emit_all(specs, jobs=jobs)

    for path in report.paths:
        print(path)

    if not report.ok:
        logger.error("Failed to generate {} client module(s)", len(report.failures))
        raise Exit(1)

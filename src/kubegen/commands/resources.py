from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from typer import Argument, Exit, Option

from kubegen.client.config import Config, transport_from_incluster, transport_from_kubeconfig
from kubegen.client.errors import K8sFailure
from kubegen.client.events import Added, Bookmark, Deleted, Modified, Reset
from kubegen.client.model import DEFAULT_CHUNK_SIZE, K8sNamespace, ResourceType
from kubegen.client.resource import ResourceClient
from kubegen.client.transport import Transport
from kubegen.client.watch import DEFAULT_TIMEOUT_SECONDS

from . import app

_CONFIG_HELP = "The `kubegen.yaml` to use. If not set, it is searched in the current directory and its parents."


def _connect(config: Path | None, kubeconfig: Path | None, context: str | None, in_cluster: bool) -> Transport:
    """
    Create the transport for the cluster selected on the command line. Without any option, the `kubegen.yaml` is
    used if there is one, otherwise the current context of the default kubeconfig.
    """

    if in_cluster:
        logger.info("Using in-cluster configuration.")
        return transport_from_incluster()
    if kubeconfig is not None or context is not None:
        logger.info("Using kubeconfig '{}' (context: {}).", kubeconfig or "<default>", context or "<current>")
        return transport_from_kubeconfig(kubeconfig, context)
    if config is None:
        try:
            return Config.load().create_transport()
        except FileNotFoundError:
            logger.debug("No {} found, falling back to the default kubeconfig.", Config.FILENAME)
            return transport_from_kubeconfig()
    return Config.load(config).create_transport()


def _print(data: Any) -> None:
    print("---")
    print(yaml.safe_dump(data), end="")


@app.command("list")
def list_(
    resource: str = Argument(..., help="The plural name of the resource, e.g. `deployments`."),
    api_version: str = Option("v1", help="The API version of the resource, e.g. `apps/v1`."),
    namespace: str | None = Option(None, "--namespace", "-n", help="List only in this namespace."),
    chunk_size: int = Option(DEFAULT_CHUNK_SIZE, help="The number of objects to fetch per request."),
    config: Path | None = Option(None, help=_CONFIG_HELP),
    kubeconfig: Path | None = Option(None, help="Use this kubeconfig file instead of a `kubegen.yaml`."),
    context: str | None = Option(None, help="The kubeconfig context to use."),
    in_cluster: bool = Option(False, help="Use the in-cluster configuration."),
) -> None:
    """
    Print all objects of a resource as YAML documents.
    """

    with _connect(config, kubeconfig, context, in_cluster) as transport:
        client: ResourceClient[dict[str, Any]] = ResourceClient(ResourceType.of(api_version, resource), transport)
        try:
            for item in client.get_all(K8sNamespace(namespace) if namespace else None, chunk_size):
                _print(item)
        except K8sFailure as exc:
            logger.error("{}", exc)
            raise Exit(1)


@app.command()
def watch(
    resource: str = Argument(..., help="The plural name of the resource, e.g. `deployments`."),
    api_version: str = Option("v1", help="The API version of the resource, e.g. `apps/v1`."),
    namespace: str | None = Option(None, "--namespace", "-n", help="Watch only in this namespace."),
    resource_version: str | None = Option(None, help="The resourceVersion to start watching after."),
    forever: bool = Option(False, help="Start with a RESET event and never give up on an invalidated watch."),
    timeout_seconds: int = Option(
        DEFAULT_TIMEOUT_SECONDS, help="Reconnect after this many seconds, which also detects dead connections."
    ),
    config: Path | None = Option(None, help=_CONFIG_HELP),
    kubeconfig: Path | None = Option(None, help="Use this kubeconfig file instead of a `kubegen.yaml`."),
    context: str | None = Option(None, help="The kubeconfig context to use."),
    in_cluster: bool = Option(False, help="Use the in-cluster configuration."),
) -> None:
    """
    Watch a resource and print every event as a YAML document until interrupted.
    """

    with _connect(config, kubeconfig, context, in_cluster) as transport:
        client: ResourceClient[dict[str, Any]] = ResourceClient(ResourceType.of(api_version, resource), transport)
        ns = K8sNamespace(namespace) if namespace else None
        session = (
            client.watch_forever(ns, timeout_seconds=timeout_seconds)
            if forever
            else client.watch(ns, resource_version, timeout_seconds=timeout_seconds)
        )

        with session:
            try:
                for event in session:
                    match event:
                        case Added(item) | Modified(item) | Deleted(item):
                            _print({"type": type(event).__name__.upper(), "object": item})
                        case Bookmark(resource_version=version):
                            _print({"type": "BOOKMARK", "resourceVersion": version})
                        case Reset():
                            _print({"type": "RESET"})
            except KeyboardInterrupt:
                logger.info("Stopped watching {}.", resource)
            except K8sFailure as exc:
                logger.error("{}", exc)
                raise Exit(1)

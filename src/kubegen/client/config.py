"""
Configuration of the cluster to connect to.

The configuration is read from a `kubegen.yaml` file:

```yaml
cluster:
  host: https://kubernetes.default.svc
  token-file: /var/run/secrets/kubernetes.io/serviceaccount/token
client:
  cert: /var/run/secrets/kubernetes.io/serviceaccount/ca.crt
```

Alternatively, the connection details can be taken from a kubeconfig file or the in-cluster environment through the
official `kubernetes` package.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any

from databind.core import Alias
from loguru import logger

from kubegen.client.model import K8sCluster
from kubegen.client.transport import HttpTransport
from kubegen.tools.fs import find_config_file

SERVICE_ACCOUNT_TOKEN_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/token"


@dataclass
class ClusterConfig:
    host: str

    token: str | None = None
    """
    The bearer token to authenticate with. Takes precedence over the *token_file*.
    """

    token_file: Annotated[str, Alias("token-file")] = SERVICE_ACCOUNT_TOKEN_FILE
    """
    A file to read the bearer token from if no *token* is configured. Relative to the configuration file.
    """


@dataclass
class ClientConfig:
    insecure: bool = False
    """
    Do not verify the API server's certificate. Only use this for local test clusters.
    """

    debug: bool = False
    """
    Log every request that is sent to the API server.
    """

    cert: str | None = None
    """
    A CA certificate file to verify the API server's certificate with. Relative to the configuration file.
    """


@dataclass
class Config:
    FILENAME = "kubegen.yaml"

    cluster: ClusterConfig
    client: ClientConfig = field(default_factory=ClientConfig)
    file: Path | None = None

    @staticmethod
    def load(file: Path | None = None, /) -> "Config":
        """
        Load the configuration from the given file, or find `kubegen.yaml` in the current directory or any of its
        parents.
        """

        from databind.json import load as deser
        from yaml import safe_load

        if file is None:
            file = find_config_file(Config.FILENAME)

        logger.debug("Loading cluster configuration from '{}'", file)
        data = safe_load(file.read_text()) or {}
        cluster = deser(data.get("cluster"), ClusterConfig, filename=str(file))
        client = deser(data.get("client") or {}, ClientConfig, filename=str(file))
        return Config(cluster, client, file)

    def _resolve(self, path: str) -> Path:
        base = self.file.parent if self.file is not None else Path.cwd()
        return base / path

    def load_cluster(self) -> K8sCluster:
        """
        Resolve the cluster configuration, reading the token from the token file if none is given explicitly.
        """

        if self.cluster.token:
            return K8sCluster(host=self.cluster.host, token=self.cluster.token)

        token_file = self._resolve(self.cluster.token_file)
        logger.debug("Reading API token from '{}'", token_file)
        return K8sCluster(host=self.cluster.host, token=token_file.read_text(encoding="utf-8").strip())

    def verify(self) -> bool | str:
        """
        The certificate verification setting for `requests`.
        """

        if self.client.insecure:
            return False
        if self.client.cert:
            return str(self._resolve(self.client.cert))
        return True

    def create_transport(self) -> HttpTransport:
        return HttpTransport(self.load_cluster(), verify=self.verify(), debug=self.client.debug)


def transport_from_kubeconfig(
    kubeconfig: Path | None = None,
    context: str | None = None,
    debug: bool = False,
) -> HttpTransport:
    """
    Create a transport for a context of a kubeconfig file, defaulting to `$KUBECONFIG` or `~/.kube/config` and its
    current context.
    """

    from kubernetes.client import Configuration
    from kubernetes.config.kube_config import load_kube_config

    configuration = Configuration()
    load_kube_config(
        config_file=str(kubeconfig) if kubeconfig else None,
        context=context,
        client_configuration=configuration,
    )
    return _transport_from_configuration(configuration, debug)


def transport_from_incluster(debug: bool = False) -> HttpTransport:
    """
    Create a transport from the service account of the pod this process runs in.
    """

    from kubernetes.client import Configuration
    from kubernetes.config.incluster_config import load_incluster_config

    configuration = Configuration()
    load_incluster_config(client_configuration=configuration)
    return _transport_from_configuration(configuration, debug)


def _transport_from_configuration(configuration: Any, debug: bool) -> HttpTransport:
    token: str | None = None
    authorization = configuration.api_key.get("authorization") or configuration.api_key.get("BearerToken")
    if authorization:
        token = authorization.removeprefix("Bearer ").strip()

    verify: bool | str = configuration.ssl_ca_cert or True
    if not configuration.verify_ssl:
        verify = False

    client_cert = None
    if configuration.cert_file and configuration.key_file:
        client_cert = (configuration.cert_file, configuration.key_file)

    return HttpTransport(
        K8sCluster(host=configuration.host, token=token), verify=verify, debug=debug, client_cert=client_cert
    )

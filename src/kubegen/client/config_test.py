from pathlib import Path

import pytest

from kubegen.client.config import ClientConfig, ClusterConfig, Config, transport_from_kubeconfig


def test_Config_load_reads_token_file_relative_to_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "token").write_text("s3cret\n")
    (tmp_path / "kubegen.yaml").write_text(
        """
cluster:
  host: https://k8s.example.com:6443
  token-file: token
client:
  cert: ca.crt
"""
    )
    subdir = tmp_path / "a" / "b"
    subdir.mkdir(parents=True)

    monkeypatch.chdir(subdir)
    config = Config.load()

    assert config.file == tmp_path / "kubegen.yaml"
    assert config.cluster == ClusterConfig(host="https://k8s.example.com:6443", token_file="token")
    assert config.load_cluster().token == "s3cret"
    assert config.verify() == str(tmp_path / "ca.crt")


def test_Config_prefers_explicit_token(tmp_path: Path) -> None:
    config = Config(ClusterConfig("https://localhost:6443", token="abc", token_file="missing"), file=tmp_path / "x")
    assert config.load_cluster().token == "abc"


def test_Config_verify() -> None:
    assert Config(ClusterConfig("https://localhost")).verify() is True
    assert Config(ClusterConfig("https://localhost"), ClientConfig(insecure=True, cert="ca.crt")).verify() is False


def test_Config_create_transport(tmp_path: Path) -> None:
    file = tmp_path / "kubegen.yaml"
    file.write_text(
        """
cluster:
  host: https://localhost:6443
  token: abc
client:
  insecure: true
  debug: true
"""
    )

    transport = Config.load(file).create_transport()

    assert transport.cluster.token == "abc"
    assert transport.debug
    assert transport._session.verify is False


def test_Config_load_without_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        Config.load(tmp_path / "kubegen.yaml")


def test_transport_from_kubeconfig(tmp_path: Path) -> None:
    kubeconfig = tmp_path / "config"
    kubeconfig.write_text(
        """
apiVersion: v1
kind: Config
current-context: dev
clusters:
- name: dev
  cluster:
    server: https://dev.example.com:6443
    insecure-skip-tls-verify: true
- name: prod
  cluster:
    server: https://prod.example.com:6443
users:
- name: dev
  user:
    token: dev-token
- name: prod
  user:
    token: prod-token
contexts:
- name: dev
  context: {cluster: dev, user: dev}
- name: prod
  context: {cluster: prod, user: prod}
"""
    )

    dev = transport_from_kubeconfig(kubeconfig)
    assert dev.cluster.host == "https://dev.example.com:6443"
    assert dev.cluster.token == "dev-token"
    assert dev._session.verify is False

    prod = transport_from_kubeconfig(kubeconfig, context="prod")
    assert prod.cluster.host == "https://prod.example.com:6443"
    assert prod.cluster.token == "prod-token"
    assert prod._session.verify is True

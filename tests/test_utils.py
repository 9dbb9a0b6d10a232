from types import SimpleNamespace

import pytest

from plugin_deployment import utils


def _connected_to(monkeypatch, network_name, ecosystem_name):
    network = SimpleNamespace(name=network_name, ecosystem=SimpleNamespace(name=ecosystem_name))
    ape_networks = SimpleNamespace(provider=SimpleNamespace(network=network))
    monkeypatch.setattr("plugin_deployment.networks.networks", ape_networks)
    monkeypatch.setattr(utils, "networks", ape_networks)


def test_etherscan_check_skipped_on_local_network(monkeypatch):
    _connected_to(monkeypatch, "local", "ethereum")
    monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)

    assert utils.check_etherscan_plugin() is None


def test_etherscan_check_requires_api_key(monkeypatch):
    pytest.importorskip("ape_etherscan")
    _connected_to(monkeypatch, "sepolia", "arbitrum")
    monkeypatch.delenv("ARBISCAN_API_KEY", raising=False)

    with pytest.raises(ValueError, match="ARBISCAN_API_KEY"):
        utils.check_etherscan_plugin()

    monkeypatch.setenv("ARBISCAN_API_KEY", "secret")
    utils.check_etherscan_plugin()


def test_load_yaml(tmp_path):
    filepath = tmp_path / "params.yml"
    filepath.write_text("deployment:\n  network: local\n", encoding="utf-8")
    assert utils._load_yaml(filepath) == {"deployment": {"network": "local"}}

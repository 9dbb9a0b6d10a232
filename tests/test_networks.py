import pytest

from plugin_deployment import networks as networks_module
from plugin_deployment.exceptions import ConfigurationMissing
from plugin_deployment.networks import Network, get_connection, get_network_config

ENVIRONMENT = {"ALCHEMY_API_KEY": "secret-key", "DEPLOYER_ACCOUNT": "plugin-deployer"}


def test_network_values():
    assert Network.values() == ["local", "arb-sepolia"]
    assert Network("arb-sepolia") is Network.ARBITRUM_SEPOLIA
    with pytest.raises(ValueError):
        Network("mainnet")


def test_remote_connection():
    connection = get_connection(Network.ARBITRUM_SEPOLIA, environ=ENVIRONMENT)

    assert connection.chain_id == 421614
    assert connection.rpc_url == "https://arb-sepolia.g.alchemy.com/v2/secret-key"
    assert connection.network_choice == f"arbitrum:sepolia:{connection.rpc_url}"
    assert connection.account_alias == "plugin-deployer"
    assert not connection.is_local


@pytest.mark.parametrize("missing", ["ALCHEMY_API_KEY", "DEPLOYER_ACCOUNT"])
def test_remote_connection_requires_environment(missing):
    environ = dict(ENVIRONMENT)
    environ[missing] = ""
    with pytest.raises(ConfigurationMissing, match=missing):
        get_connection(Network.ARBITRUM_SEPOLIA, environ=environ)

    del environ[missing]
    with pytest.raises(ConfigurationMissing, match=missing):
        get_connection(Network.ARBITRUM_SEPOLIA, environ=environ)


def test_local_connection_needs_no_environment():
    connection = get_connection(Network.LOCAL, environ={})

    assert connection.is_local
    assert connection.rpc_url is None
    assert connection.account_alias is None
    assert connection.network_choice == "ethereum:local:test"


def test_network_without_configuration(monkeypatch):
    configs = dict(networks_module.NETWORK_CONFIGS)
    del configs[Network.ARBITRUM_SEPOLIA]
    monkeypatch.setattr(networks_module, "NETWORK_CONFIGS", configs)

    with pytest.raises(ConfigurationMissing):
        get_network_config(Network.ARBITRUM_SEPOLIA)
    with pytest.raises(ConfigurationMissing):
        get_connection(Network.ARBITRUM_SEPOLIA, environ=ENVIRONMENT)

import os
import typing
from enum import Enum
from typing import Mapping, NamedTuple, Optional

from ape import networks

from plugin_deployment.constants import (
    ALCHEMY_API_KEY_ENVVAR,
    ALCHEMY_URL_TEMPLATE,
    DEPLOYER_ACCOUNT_ENVVAR,
    LOCAL_NETWORK_NAMES,
)
from plugin_deployment.exceptions import ConfigurationMissing


class Network(Enum):
    LOCAL = "local"
    ARBITRUM_SEPOLIA = "arb-sepolia"

    @classmethod
    def values(cls) -> typing.List[str]:
        return [network.value for network in cls]


class NetworkConfig(NamedTuple):
    """Static wiring of a network: which ape network to use and where its secrets live."""

    chain_id: int
    ape_network: str
    endpoint_template: Optional[str] = None
    api_key_envvar: Optional[str] = None
    account_envvar: Optional[str] = None


class Connection(NamedTuple):
    network: Network
    chain_id: int
    network_choice: str
    rpc_url: Optional[str]
    account_alias: Optional[str]

    @property
    def is_local(self) -> bool:
        return self.network is Network.LOCAL


NETWORK_CONFIGS: typing.Dict[Network, NetworkConfig] = {
    Network.LOCAL: NetworkConfig(chain_id=1337, ape_network="ethereum:local:test"),
    Network.ARBITRUM_SEPOLIA: NetworkConfig(
        chain_id=421614,
        ape_network="arbitrum:sepolia",
        endpoint_template=ALCHEMY_URL_TEMPLATE,
        api_key_envvar=ALCHEMY_API_KEY_ENVVAR,
        account_envvar=DEPLOYER_ACCOUNT_ENVVAR,
    ),
}


def _required_envvar(environ: Mapping[str, str], name: str, network: Network) -> str:
    value = environ.get(name)
    if not value:
        raise ConfigurationMissing(f"{name} is not set (required for network '{network.value}').")
    return value


def get_network_config(network: Network) -> NetworkConfig:
    try:
        return NETWORK_CONFIGS[network]
    except KeyError:
        raise ConfigurationMissing(f"No connection parameters defined for network '{network}'.")


def get_connection(network: Network, environ: Optional[Mapping[str, str]] = None) -> Connection:
    """
    Resolves the connection parameters of a network from the process environment.
    Secrets are only checked for presence.
    """
    environ = os.environ if environ is None else environ
    config = get_network_config(network)

    rpc_url = None
    network_choice = config.ape_network
    if config.endpoint_template:
        api_key = _required_envvar(environ, config.api_key_envvar, network)
        rpc_url = config.endpoint_template.format(network=network.value, api_key=api_key)
        # ape accepts a provider URI in place of the provider name
        network_choice = f"{config.ape_network}:{rpc_url}"

    account_alias = None
    if config.account_envvar:
        account_alias = _required_envvar(environ, config.account_envvar, network)

    return Connection(
        network=network,
        chain_id=config.chain_id,
        network_choice=network_choice,
        rpc_url=rpc_url,
        account_alias=account_alias,
    )


def is_local_network() -> bool:
    """Returns True if the connected ape provider is a local network."""
    return networks.provider.network.name in LOCAL_NETWORK_NAMES

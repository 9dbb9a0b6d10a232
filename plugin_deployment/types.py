import click
from eth_utils import to_checksum_address

from plugin_deployment.contracts import ContractId
from plugin_deployment.networks import Network


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail(f"Invalid ethereum address {value}", param, ctx)
        else:
            return value


class NetworkType(click.Choice):
    """Choice over the supported networks, converted to Network members."""

    name = "network"

    def __init__(self):
        super().__init__(Network.values())

    def convert(self, value, param, ctx):
        if isinstance(value, Network):
            return value
        return Network(super().convert(value, param, ctx))


class ContractIdType(click.Choice):
    name = "contract"

    def __init__(self):
        super().__init__([contract.value for contract in ContractId])

    def convert(self, value, param, ctx):
        if isinstance(value, ContractId):
            return value
        return ContractId(super().convert(value, param, ctx))

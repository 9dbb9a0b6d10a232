import typing
from abc import ABC, abstractmethod
from typing import Any, List, NamedTuple, Optional

from ape import accounts, networks
from ape.api import AccountAPI
from ape.cli.choices import select_account
from ape_accounts import KeyfileAccount
from eth_utils import to_checksum_address
from web3.auto import w3

from plugin_deployment.confirm import _confirm_resolution
from plugin_deployment.exceptions import InvalidConstructorArguments
from plugin_deployment.networks import Connection
from plugin_deployment.utils import check_etherscan_plugin, get_contract_container


class Deployment(NamedTuple):
    """A confirmed contract creation."""

    address: str
    tx_hash: str


class Ledger(ABC):
    """Submits contract creations to a network on behalf of a single signing account."""

    @property
    @abstractmethod
    def deployer_address(self) -> str:
        raise NotImplementedError

    def check_arguments(self, contract_name: str, args: List[Any]) -> None:
        """Validates constructor arguments before anything is submitted."""

    @abstractmethod
    def deploy(self, contract_name: str, args: List[Any]) -> Deployment:
        """Submits a creation transaction and returns once it is confirmed."""
        raise NotImplementedError


def _validate_constructor_abi_inputs(
    contract_name: str, abi_inputs: List[Any], args: typing.Sequence[Any]
) -> None:
    """Validates constructor arguments against the constructor ABI."""
    if len(args) != len(abi_inputs):
        raise InvalidConstructorArguments(
            f"Constructor arguments length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(args)}."
        )

    for position, (abi_input, value) in enumerate(zip(abi_inputs, args)):
        if not w3.is_encodable(abi_input.type, value):
            raise InvalidConstructorArguments(
                f"{contract_name} constructor argument '{abi_input.name}' at position {position} "
                f"has a value '{value}' whose type does not match expected ABI type "
                f"'{abi_input.type}'."
            )


class ApeLedger(Ledger):
    """
    Represents an ape account plus validated/annotated contract creation.
    """

    def __init__(
        self,
        account: Optional[AccountAPI] = None,
        verify: bool = False,
        autosign: bool = False,
        required_confirmations: Optional[int] = None,
    ):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
            if isinstance(self._account, KeyfileAccount):
                self._account.set_autosign(True)
        self._autosign = autosign
        self.verify = verify
        self.required_confirmations = required_confirmations
        if verify:
            check_etherscan_plugin()

    @classmethod
    def from_connection(cls, connection: Connection, **kwargs) -> "ApeLedger":
        """Loads the signing account of a connection. Must be called with a connected provider."""
        if connection.is_local:
            account = accounts.test_accounts[0]
        else:
            account = accounts.load(connection.account_alias)
        return cls(account=account, **kwargs)

    @property
    def deployer_address(self) -> str:
        return self._account.address

    def check_arguments(self, contract_name: str, args: List[Any]) -> None:
        contract_container = get_contract_container(contract_name)
        _validate_constructor_abi_inputs(
            contract_name=contract_name,
            abi_inputs=contract_container.constructor.abi.inputs,
            args=args,
        )

    def _get_kwargs(self) -> typing.Dict[str, Any]:
        kwargs = {"publish": self.verify}
        if self.required_confirmations is not None:
            kwargs["required_confirmations"] = self.required_confirmations
        return kwargs

    def deploy(self, contract_name: str, args: List[Any]) -> Deployment:
        container = get_contract_container(contract_name)
        if not self._autosign:
            _confirm_resolution(args, contract_name)

        instance = self._account.deploy(container, *args, **self._get_kwargs())
        return Deployment(
            address=to_checksum_address(instance.address),
            tx_hash=instance.receipt.txn_hash,
        )


def connect(connection: Connection):
    """Returns a context manager connecting ape to the network of a connection."""
    return networks.parse_network_choice(connection.network_choice)


def check_chain_id(connection: Connection) -> None:
    """Checks that the connected provider serves the chain the connection expects."""
    if connection.is_local:
        return
    chain_id = networks.provider.chain_id
    if chain_id != connection.chain_id:
        raise ValueError(
            f"chain_id of connected provider ({chain_id}) does not match "
            f"chain_id of network {connection.network.value} ({connection.chain_id})."
        )


def print_connection_info(ledger: ApeLedger, connection: Connection) -> None:
    print(
        f"Account: {ledger.deployer_address}",
        f"Network: {connection.network.value}",
        f"Ecosystem: {networks.provider.network.ecosystem.name}",
        f"Chain ID: {networks.provider.chain_id}",
        f"Gas Price: {networks.provider.gas_price}",
        f"Verify: {ledger.verify}",
        sep="\n",
    )

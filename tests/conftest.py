from pathlib import Path

import pytest
from eth_utils import to_checksum_address

from plugin_deployment.exceptions import InvalidConstructorArguments
from plugin_deployment.ledger import Deployment, Ledger
from plugin_deployment.networks import Network
from plugin_deployment.params import ParameterSet

# Common constants
DEPLOYER = to_checksum_address("0x" + "de" * 20)
POSITION_MANAGER = to_checksum_address("0x" + "aa" * 20)
FACTORY = to_checksum_address("0x" + "bb" * 20)
FEE_HANDLER = to_checksum_address("0x" + "cc" * 20)


class FakeLedger(Ledger):
    """In-memory ledger; every creation is confirmed immediately unless told to fail."""

    def __init__(self):
        self.submissions = list()
        self.checked = list()
        self.fail_on = set()
        self.invalid = set()

    @property
    def deployer_address(self) -> str:
        return DEPLOYER

    def check_arguments(self, contract_name, args):
        self.checked.append((contract_name, list(args)))
        if contract_name in self.invalid:
            raise InvalidConstructorArguments(f"{contract_name} rejects {args}")

    def deploy(self, contract_name, args):
        if contract_name in self.fail_on:
            raise RuntimeError(f"{contract_name} creation rejected")
        self.submissions.append((contract_name, list(args)))
        index = len(self.submissions)
        return Deployment(
            address=to_checksum_address(f"0x{index:040x}"),
            tx_hash=f"0x{index:064x}",
        )

    def submitted(self):
        return [contract_name for contract_name, _ in self.submissions]

    def address_of(self, contract_name):
        index = self.submitted().index(contract_name) + 1
        return to_checksum_address(f"0x{index:040x}")


def parameter_set(modules, constants=None, network=Network.LOCAL) -> ParameterSet:
    config = {
        "deployment": {"name": "test", "network": network.value},
        "constants": constants or dict(),
        "modules": modules,
    }
    return ParameterSet.from_config(config, network=network)


# Fixtures
@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def make_parameters():
    return parameter_set


@pytest.fixture
def write_file(tmp_path):
    def _write(name: str, content: str) -> Path:
        filepath = tmp_path / name
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(content)
        return filepath

    return _write

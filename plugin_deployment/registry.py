import json
import sys
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Union

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from plugin_deployment.constants import ARTIFACTS_DIR, REGISTRY_FILE_SUFFIX
from plugin_deployment.contracts import ContractId, to_contract_id
from plugin_deployment.exceptions import AddressNotFound
from plugin_deployment.networks import Network
from plugin_deployment.utils import _load_json

STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single entry in an address registry."""

    network: Network
    contract: ContractId
    address: ChecksumAddress


def registry_filepath(network: Network, directory: Path = ARTIFACTS_DIR) -> Path:
    return Path(directory) / f"{network.value}{REGISTRY_FILE_SUFFIX}"


def read_registry(filepath: Path, network: Network) -> List[RegistryEntry]:
    """Reads the entries of a single-network registry file."""
    data = _load_json(filepath)
    entries = list()
    for contract, address in data.items():
        entry = RegistryEntry(
            network=network,
            contract=to_contract_id(contract),
            address=to_checksum_address(address),
        )
        entries.append(entry)
    return entries


def write_registry(entries: List[RegistryEntry], filepath: Path) -> Path:
    """Writes the entries of a single network to a registry file, replacing its contents."""
    networks = {entry.network for entry in entries}
    if len(networks) > 1:
        raise ValueError(
            f"Registry file {filepath} can hold a single network, got "
            f"{', '.join(sorted(n.value for n in networks))}."
        )

    # Sort registry entries to enforce common order
    data = {
        entry.contract.value: entry.address
        for entry in sorted(entries, key=lambda e: e.contract.value)
    }

    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)
        file.write("\n")

    return filepath


class AddressRegistry:
    """
    Per-network mapping of contract identifiers to their current deployed address.
    Recording an address overwrites the previous one; no history is kept.
    """

    def __init__(self, entries: Optional[Iterable[RegistryEntry]] = None):
        self._addresses: Dict[Network, Dict[ContractId, ChecksumAddress]] = defaultdict(dict)
        for entry in entries or list():
            self.record(entry.network, entry.contract, entry.address)

    @classmethod
    def from_directory(cls, directory: Path = ARTIFACTS_DIR) -> "AddressRegistry":
        """Loads the registry files of every known network found in a directory."""
        entries = list()
        for network in Network:
            filepath = registry_filepath(network, directory)
            if filepath.exists():
                entries.extend(read_registry(filepath, network))
        return cls(entries)

    def lookup(self, network: Network, contract: Union[ContractId, str]) -> ChecksumAddress:
        contract_id = to_contract_id(contract)
        try:
            return self._addresses[network][contract_id]
        except KeyError:
            raise AddressNotFound(
                f"No address recorded for {contract_id.value} on network '{network.value}'."
            )

    def get(
        self, network: Network, contract: Union[ContractId, str]
    ) -> Optional[ChecksumAddress]:
        contract_id = to_contract_id(contract)
        return self._addresses[network].get(contract_id)

    def record(self, network: Network, contract: Union[ContractId, str], address: str) -> None:
        contract_id = to_contract_id(contract)
        self._addresses[network][contract_id] = to_checksum_address(address)

    def record_result(
        self, result, contracts: Mapping[str, Union[ContractId, str]]
    ) -> List[RegistryEntry]:
        """
        Records the outputs of a deployment result.
        `contracts` maps output names of the result to the contract identifiers to record them as.
        """
        # validate everything before touching the registry
        pending = [(to_contract_id(contract), result[name]) for name, contract in contracts.items()]
        recorded = list()
        for contract_id, address in pending:
            self.record(result.network, contract_id, address)
            entry = RegistryEntry(
                network=result.network,
                contract=contract_id,
                address=self.lookup(result.network, contract_id),
            )
            recorded.append(entry)
        return recorded

    def entries(self, network: Network) -> List[RegistryEntry]:
        return [
            RegistryEntry(network=network, contract=contract, address=address)
            for contract, address in self._addresses[network].items()
        ]

    def networks(self) -> List[Network]:
        return [network for network, addresses in self._addresses.items() if addresses]

    def write(self, directory: Path = ARTIFACTS_DIR) -> List[Path]:
        """Writes one registry file per network with at least one entry."""
        filepaths = list()
        for network in self.networks():
            filepath = write_registry(
                entries=self.entries(network), filepath=registry_filepath(network, directory)
            )
            filepaths.append(filepath)
        return filepaths


class ConflictResolution(Enum):
    USE_1 = 1
    USE_2 = 2


def _select_conflict_resolution(
    registry_1_entry, registry_1_filepath, registry_2_entry, registry_2_filepath
) -> ConflictResolution:
    print(
        f"\n! Conflict detected for {registry_1_entry.contract.value} "
        f"on network {registry_1_entry.network.value}:"
    )
    print(f"[1]: {registry_1_entry.address} for {registry_1_filepath}")
    print(f"[2]: {registry_2_entry.address} for {registry_2_filepath}")
    print("[A]: Abort merge")

    valid_str_answers = [
        str(ConflictResolution.USE_1.value),
        str(ConflictResolution.USE_2.value),
        "A",
    ]
    answer = None
    while answer not in valid_str_answers:
        answer = input(f"Merge resolution, {valid_str_answers}? ")

    if answer == "A":
        print("Merge Aborted!")
        sys.exit(-1)
    return ConflictResolution(int(answer))


def merge_registries(
    registry_1_filepath: Path,
    registry_2_filepath: Path,
    output_filepath: Path,
    network: Network,
    deprecated_contracts: Optional[List[str]] = None,
    force_conflict_resolution: Optional[ConflictResolution] = None,
) -> Path:
    """Merges two registry files of the same network."""
    deprecated = {to_contract_id(c) for c in deprecated_contracts or list()}

    reg1 = {e.contract: e for e in read_registry(registry_1_filepath, network)}
    reg2 = {e.contract: e for e in read_registry(registry_2_filepath, network)}

    merged: List[RegistryEntry] = list()
    for contract in sorted(set(reg1) | set(reg2), key=lambda c: c.value):
        if contract in deprecated:
            continue
        entry_1, entry_2 = reg1.get(contract), reg2.get(contract)
        if entry_1 and entry_2 and entry_1.address != entry_2.address:
            resolution = force_conflict_resolution or _select_conflict_resolution(
                registry_1_entry=entry_1,
                registry_2_entry=entry_2,
                registry_1_filepath=registry_1_filepath,
                registry_2_filepath=registry_2_filepath,
            )
            selected_entry = entry_1 if resolution == ConflictResolution.USE_1 else entry_2
        else:
            selected_entry = entry_1 or entry_2
        merged.append(selected_entry)

    write_registry(entries=merged, filepath=output_filepath)
    print(f"Merged registry output to {output_filepath}")
    return output_filepath

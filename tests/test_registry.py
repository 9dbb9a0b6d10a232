import json
from collections import OrderedDict

import pytest
from eth_utils import to_checksum_address

from plugin_deployment.constants import ARTIFACTS_DIR
from plugin_deployment.contracts import ContractId
from plugin_deployment.exceptions import AddressNotFound, UnknownContract
from plugin_deployment.executor import DeploymentResult, NodeRecord, NodeState
from plugin_deployment.networks import Network
from plugin_deployment.registry import (
    AddressRegistry,
    ConflictResolution,
    RegistryEntry,
    merge_registries,
    read_registry,
    registry_filepath,
    write_registry,
)
from tests.conftest import FACTORY, FEE_HANDLER, POSITION_MANAGER


@pytest.fixture
def registry():
    return AddressRegistry()


def test_lookup_unrecorded(registry):
    with pytest.raises(AddressNotFound):
        registry.lookup(Network.ARBITRUM_SEPOLIA, ContractId.FEE_HANDLER)
    assert registry.get(Network.ARBITRUM_SEPOLIA, ContractId.FEE_HANDLER) is None


def test_record_then_lookup(registry):
    registry.record(Network.ARBITRUM_SEPOLIA, ContractId.FEE_HANDLER, FEE_HANDLER.lower())
    assert registry.lookup(Network.ARBITRUM_SEPOLIA, ContractId.FEE_HANDLER) == FEE_HANDLER

    # scoped per network
    with pytest.raises(AddressNotFound):
        registry.lookup(Network.LOCAL, ContractId.FEE_HANDLER)


def test_last_write_wins(registry):
    registry.record(Network.LOCAL, ContractId.PRICE_ORACLE, FACTORY)
    registry.record(Network.LOCAL, ContractId.PRICE_ORACLE, POSITION_MANAGER)
    assert registry.lookup(Network.LOCAL, ContractId.PRICE_ORACLE) == POSITION_MANAGER
    assert registry.entries(Network.LOCAL) == [
        RegistryEntry(Network.LOCAL, ContractId.PRICE_ORACLE, POSITION_MANAGER)
    ]


def test_contract_ids_by_value(registry):
    registry.record(Network.LOCAL, "feeController", FACTORY)
    assert registry.lookup(Network.LOCAL, ContractId.FEE_CONTROLLER) == FACTORY


def test_unknown_contract(registry):
    with pytest.raises(UnknownContract):
        registry.record(Network.LOCAL, "notAContract", FACTORY)
    with pytest.raises(UnknownContract):
        registry.lookup(Network.LOCAL, "notAContract")


def test_invalid_address(registry):
    with pytest.raises(ValueError):
        registry.record(Network.LOCAL, ContractId.FEE_HANDLER, "0x1234")


def test_write_and_load_directory(tmp_path, registry):
    registry.record(Network.ARBITRUM_SEPOLIA, ContractId.PRICE_ORACLE, FACTORY)
    registry.record(Network.ARBITRUM_SEPOLIA, ContractId.FEE_HANDLER, FEE_HANDLER)
    registry.record(Network.LOCAL, ContractId.FEE_HANDLER, POSITION_MANAGER)

    filepaths = registry.write(tmp_path)
    assert sorted(filepaths) == sorted([tmp_path / "arb-sepolia.json", tmp_path / "local.json"])

    with open(tmp_path / "arb-sepolia.json") as file:
        data = json.load(file, object_pairs_hook=OrderedDict)
    assert list(data.items()) == [("feeHandler", FEE_HANDLER), ("priceOracle", FACTORY)]

    loaded = AddressRegistry.from_directory(tmp_path)
    assert loaded.lookup(Network.LOCAL, ContractId.FEE_HANDLER) == POSITION_MANAGER
    assert loaded.lookup(Network.ARBITRUM_SEPOLIA, ContractId.PRICE_ORACLE) == FACTORY


def test_write_registry_single_network(tmp_path):
    entries = [
        RegistryEntry(Network.LOCAL, ContractId.FEE_HANDLER, FEE_HANDLER),
        RegistryEntry(Network.ARBITRUM_SEPOLIA, ContractId.FEE_HANDLER, FEE_HANDLER),
    ]
    with pytest.raises(ValueError):
        write_registry(entries, tmp_path / "mixed.json")


def test_record_result(registry):
    record = NodeRecord(
        "UniswapV3ActionsModule#UniswapV3LPActions",
        contract_name="UniswapV3LPActions",
        state=NodeState.CONFIRMED,
        address=FACTORY,
        tx_hash="0x01",
    )
    result = DeploymentResult(
        network=Network.ARBITRUM_SEPOLIA,
        records=OrderedDict([(record.future_id, record)]),
        output_ids={"lpAction": record.future_id},
    )

    entries = registry.record_result(result, {"lpAction": ContractId.UNISWAP_V3_LP_ACTIONS})

    assert entries == [
        RegistryEntry(Network.ARBITRUM_SEPOLIA, ContractId.UNISWAP_V3_LP_ACTIONS, FACTORY)
    ]
    assert registry.lookup(Network.ARBITRUM_SEPOLIA, ContractId.UNISWAP_V3_LP_ACTIONS) == FACTORY

    # nothing is recorded when an identifier is unknown
    with pytest.raises(UnknownContract):
        registry.record_result(result, {"lpAction": "unknown"})


def test_merge_registries(tmp_path):
    registry_1 = write_registry(
        [
            RegistryEntry(Network.LOCAL, ContractId.FEE_HANDLER, FEE_HANDLER),
            RegistryEntry(Network.LOCAL, ContractId.PRICE_ORACLE, FACTORY),
            RegistryEntry(Network.LOCAL, ContractId.FEE_CONTROLLER, FACTORY),
        ],
        tmp_path / "1.json",
    )
    registry_2 = write_registry(
        [
            RegistryEntry(Network.LOCAL, ContractId.PRICE_ORACLE, POSITION_MANAGER),
            RegistryEntry(Network.LOCAL, ContractId.STRATEGY_BUILDER_PLUGIN, FACTORY),
        ],
        tmp_path / "2.json",
    )

    output = merge_registries(
        registry_1_filepath=registry_1,
        registry_2_filepath=registry_2,
        output_filepath=tmp_path / "merged.json",
        network=Network.LOCAL,
        deprecated_contracts=["feeController"],
        force_conflict_resolution=ConflictResolution.USE_2,
    )

    merged = {entry.contract: entry.address for entry in read_registry(output, Network.LOCAL)}
    assert merged == {
        ContractId.FEE_HANDLER: FEE_HANDLER,
        ContractId.PRICE_ORACLE: POSITION_MANAGER,
        ContractId.STRATEGY_BUILDER_PLUGIN: FACTORY,
    }


def test_shipped_registry():
    assert registry_filepath(Network.ARBITRUM_SEPOLIA) == ARTIFACTS_DIR / "arb-sepolia.json"

    registry = AddressRegistry.from_directory()
    assert registry.lookup(Network.ARBITRUM_SEPOLIA, ContractId.FEE_HANDLER) == (
        "0x8804615641422382359690192207736354395780"
    )
    assert registry.lookup(Network.ARBITRUM_SEPOLIA, ContractId.UNISWAP_V3_POSITION_MANAGER) == (
        to_checksum_address("0x6b2937Bde17889EDCf8fbD8dE31C3C2a70Bc4d65")
    )
    assert registry.networks() == [Network.ARBITRUM_SEPOLIA]

from enum import Enum
from typing import Union

from plugin_deployment.exceptions import UnknownContract


class ContractId(Enum):
    """Logical contract and plugin roles; the same role has a different address per network."""

    FEE_HANDLER = "feeHandler"
    FEE_CONTROLLER = "feeController"
    PRICE_ORACLE = "priceOracle"
    STRATEGY_BUILDER_PLUGIN = "strategyBuilderPlugin"

    # Uniswap V3
    UNISWAP_V3_SWAP_ROUTER_V2 = "swapRouterV2"
    UNISWAP_V3_POSITION_MANAGER = "positionManager"
    UNISWAP_V3_LP_ACTIONS = "uniswapV3LPActions"


def to_contract_id(contract: Union[ContractId, str]) -> ContractId:
    """Coerces a contract identifier or its string value into a ContractId."""
    if isinstance(contract, ContractId):
        return contract
    try:
        return ContractId(contract)
    except ValueError:
        raise UnknownContract(f"Unknown contract '{contract}'.")

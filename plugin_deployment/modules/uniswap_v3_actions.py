from plugin_deployment.graph import Module, build_module


@build_module("UniswapV3ActionsModule")
def uniswap_v3_actions(m: Module):
    factory = m.declare_parameter("factory", abi_type="address")
    position_manager = m.declare_parameter("positionManager", abi_type="address")

    lp_action = m.declare_contract("UniswapV3LPActions", [position_manager, factory])

    return {"lpAction": lp_action}

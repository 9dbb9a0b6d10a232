from plugin_deployment.contracts import ContractId
from plugin_deployment.modules.uniswap_v3_actions import uniswap_v3_actions

MODULES = {
    uniswap_v3_actions.name: uniswap_v3_actions,
}

# module output -> registry entry written when a deployment is recorded
REGISTRY_OUTPUTS = {
    uniswap_v3_actions.name: {"lpAction": ContractId.UNISWAP_V3_LP_ACTIONS},
}

from pathlib import Path

import plugin_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(plugin_deployment.__file__).parent
PARAMETERS_DIR = DEPLOYMENT_DIR / "parameters"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"
JOURNALS_DIR = DEPLOYMENT_DIR / "journals"

PARAMETERS_FILE_SUFFIX = ".yml"
REGISTRY_FILE_SUFFIX = ".json"

#
# Environment
#

ALCHEMY_API_KEY_ENVVAR = "ALCHEMY_API_KEY"
DEPLOYER_ACCOUNT_ENVVAR = "DEPLOYER_ACCOUNT"

ALCHEMY_URL_TEMPLATE = "https://{network}.g.alchemy.com/v2/{api_key}"

EXPLORER_API_KEY_ENVVARS = {
    "ethereum": "ETHERSCAN_API_KEY",
    "arbitrum": "ARBISCAN_API_KEY",
}

#
# Chain
#

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

LOCAL_NETWORK_NAMES = ["local", "development"]

#
# Parameters
#

VARIABLE_PREFIX = "$"
DEPLOYER_VARIABLE = "deployer"
MODULE_OUTPUT_DELIMITER = "."
FUTURE_ID_DELIMITER = "#"

import pytest

from plugin_deployment.constants import PARAMETERS_DIR
from plugin_deployment.exceptions import ParameterFileMissing, ParameterParseError
from plugin_deployment.networks import Network
from plugin_deployment.params import (
    Constant,
    DeployerAccount,
    ModuleOutput,
    VariableContext,
    load_parameters,
    parameters_filepath,
    resolve_value,
)

PARAMETERS_YAML = """
deployment:
  name: actions
  network: arb-sepolia
  chain_id: 421614

constants:
  FACTORY: "0x248AB79Bbb9bC29bB72f7Cd42F17e054Fc40188e"

modules:
  UniswapV3ActionsModule:
    factory: $FACTORY
    positionManager: "0x6b2937Bde17889EDCf8fbD8dE31C3C2a70Bc4d65"
    fee: 3000
  StrategyModule:
    owner: $deployer
    actions: $UniswapV3ActionsModule.lpAction
    plugins: [$deployer, "0x0000000000000000000000000000000000000001"]
"""


@pytest.fixture
def parameters_dir(write_file):
    return write_file("arb-sepolia.yml", PARAMETERS_YAML).parent


def test_load_parameters(parameters_dir):
    parameters = load_parameters(Network.ARBITRUM_SEPOLIA, directory=parameters_dir)

    assert parameters.network is Network.ARBITRUM_SEPOLIA
    assert parameters.name == "actions"
    assert parameters.filepath == parameters_dir / "arb-sepolia.yml"
    assert parameters.module_ids() == ["UniswapV3ActionsModule", "StrategyModule"]
    assert ("UniswapV3ActionsModule", "fee") in parameters
    assert ("UniswapV3ActionsModule", "missing") not in parameters
    assert ("OtherModule", "fee") not in parameters

    assert parameters.get("UniswapV3ActionsModule", "fee") == 3000
    assert (
        parameters.get("UniswapV3ActionsModule", "positionManager")
        == "0x6b2937Bde17889EDCf8fbD8dE31C3C2a70Bc4d65"
    )


def test_variables_are_parsed(parameters_dir):
    parameters = load_parameters(Network.ARBITRUM_SEPOLIA, directory=parameters_dir)

    factory = parameters.get("UniswapV3ActionsModule", "factory")
    assert isinstance(factory, Constant)
    assert factory.constant_value == "0x248AB79Bbb9bC29bB72f7Cd42F17e054Fc40188e"

    assert isinstance(parameters.get("StrategyModule", "owner"), DeployerAccount)

    actions = parameters.get("StrategyModule", "actions")
    assert isinstance(actions, ModuleOutput)
    assert (actions.module_id, actions.output_name) == ("UniswapV3ActionsModule", "lpAction")

    plugins = parameters.get("StrategyModule", "plugins")
    assert isinstance(plugins[0], DeployerAccount)
    assert plugins[1] == "0x0000000000000000000000000000000000000001"


def test_resolve_variables(parameters_dir):
    parameters = load_parameters(Network.ARBITRUM_SEPOLIA, directory=parameters_dir)
    context = VariableContext(
        deployer_address="0xDeployer",
        output_address=lambda module_id, output: f"{module_id}.{output}",
    )

    resolved = resolve_value(parameters.get("StrategyModule", "plugins"), context)
    assert resolved == ["0xDeployer", "0x0000000000000000000000000000000000000001"]
    resolved = resolve_value(parameters.get("StrategyModule", "actions"), context)
    assert resolved == "UniswapV3ActionsModule.lpAction"


def test_parameter_set_is_read_only(parameters_dir):
    parameters = load_parameters(Network.ARBITRUM_SEPOLIA, directory=parameters_dir)
    with pytest.raises(TypeError):
        parameters.module_values("UniswapV3ActionsModule")["fee"] = 1


def test_missing_parameters_file(tmp_path):
    with pytest.raises(ParameterFileMissing):
        load_parameters(Network.ARBITRUM_SEPOLIA, directory=tmp_path)


def test_malformed_yaml(write_file):
    filepath = write_file("local.yml", "deployment: [unclosed\n")
    with pytest.raises(ParameterParseError):
        load_parameters(Network.LOCAL, directory=filepath.parent)


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "modules: {}\n",
        "deployment:\n  network: arb-sepolia\n",
        "deployment:\n  network: local\n  chain_id: 1\n",
        "deployment:\n  network: local\n  chain_id: sepolia\n",
        "deployment:\n  network: local\n  chain_id: [1337]\n",
        "deployment:\n  network: local\nmodules:\n  M: [1, 2]\n",
        "deployment:\n  network: local\nmodules:\n  M:\n    p: $MISSING_CONSTANT\n",
        "deployment:\n  network: local\nmodules:\n  M:\n    p: $lowercase\n",
        "deployment:\n  network: local\nmodules:\n  M:\n    p: $Module.\n",
    ],
)
def test_invalid_parameters_file(write_file, content):
    filepath = write_file("local.yml", content)
    with pytest.raises(ParameterParseError):
        load_parameters(Network.LOCAL, directory=filepath.parent)


def test_undecodable_parameters_file(tmp_path):
    (tmp_path / "local.yml").write_bytes(b"deployment:\n  name: \xff\xfe\n")
    with pytest.raises(ParameterParseError):
        load_parameters(Network.LOCAL, directory=tmp_path)


def test_module_values_are_not_coerced(write_file):
    content = "deployment:\n  network: local\nmodules:\n  M:\n    fee: '3000'\n    flag: true\n"
    filepath = write_file("local.yml", content)
    parameters = load_parameters(Network.LOCAL, directory=filepath.parent)
    assert parameters.get("M", "fee") == "3000"
    assert parameters.get("M", "flag") is True


def test_shipped_parameters_files():
    for network in Network:
        assert parameters_filepath(network).exists()
        parameters = load_parameters(network)
        assert parameters.network is network
        assert ("UniswapV3ActionsModule", "factory") in parameters
        assert ("UniswapV3ActionsModule", "positionManager") in parameters

    assert parameters_filepath(Network.ARBITRUM_SEPOLIA) == PARAMETERS_DIR / "arb-sepolia.yml"

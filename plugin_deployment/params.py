import typing
from abc import ABC, abstractmethod
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Optional

import yaml

from plugin_deployment.constants import (
    DEPLOYER_VARIABLE,
    MODULE_OUTPUT_DELIMITER,
    PARAMETERS_DIR,
    PARAMETERS_FILE_SUFFIX,
    VARIABLE_PREFIX,
)
from plugin_deployment.exceptions import ParameterFileMissing, ParameterParseError
from plugin_deployment.networks import Network, get_network_config
from plugin_deployment.utils import _load_yaml

DEPLOYMENT_KEY = "deployment"
CONSTANTS_KEY = "constants"
MODULES_KEY = "modules"


class VariableContext:
    """What a variable needs to know to resolve itself at execution time."""

    def __init__(self, deployer_address: str, output_address: typing.Callable[[str, str], str]):
        self.deployer_address = deployer_address
        self.output_address = output_address


# Variables


class Variable(ABC):
    @abstractmethod
    def resolve(self, context: VariableContext) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(VARIABLE_PREFIX)
        return result


class DeployerAccount(Variable):
    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == DEPLOYER_VARIABLE

    def resolve(self, context: VariableContext) -> Any:
        return context.deployer_address

    def __repr__(self):
        return f"{VARIABLE_PREFIX}{DEPLOYER_VARIABLE}"


class Constant(Variable):
    def __init__(self, constant_name: str, constants: typing.Mapping[str, Any]):
        try:
            self.constant_value = constants[constant_name]
        except KeyError:
            raise ParameterParseError(f"Constant '{constant_name}' not found in parameters file.")
        self.constant_name = constant_name

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a parameters file constant."""
        return value.isupper()

    def resolve(self, context: VariableContext) -> Any:
        return self.constant_value

    def __repr__(self):
        return f"{VARIABLE_PREFIX}{self.constant_name}"


class ModuleOutput(Variable):
    """Forward reference to an output exposed by another module of the same deployment."""

    def __init__(self, module_id: str, output_name: str):
        self.module_id = module_id
        self.output_name = output_name

    @classmethod
    def is_module_output(cls, value: str) -> bool:
        return MODULE_OUTPUT_DELIMITER in value

    def resolve(self, context: VariableContext) -> Any:
        return context.output_address(self.module_id, self.output_name)

    def __repr__(self):
        return f"{VARIABLE_PREFIX}{self.module_id}{MODULE_OUTPUT_DELIMITER}{self.output_name}"


def _variable_from_value(value: str, constants: typing.Mapping[str, Any]) -> Variable:
    variable = value[len(VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif ModuleOutput.is_module_output(variable):
        module_id, _, output_name = variable.partition(MODULE_OUTPUT_DELIMITER)
        if not module_id or not output_name:
            raise ParameterParseError(f"Malformed module output reference '{value}'.")
        return ModuleOutput(module_id, output_name)
    elif Constant.is_constant(variable):
        return Constant(variable, constants)
    raise ParameterParseError(f"Variable {value} is not resolvable.")


def _process_raw_value(value: Any, constants: typing.Mapping[str, Any]) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, constants) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, constants)

    return value


def resolve_value(value: Any, context: VariableContext) -> Any:
    """Resolves a single value or a list of values."""
    if isinstance(value, list):
        return [resolve_value(v, context) for v in value]

    if isinstance(value, Variable):
        return value.resolve(context)

    return value  # literally a value


def iter_variables(value: Any) -> typing.Iterator[Variable]:
    if isinstance(value, list):
        for v in value:
            yield from iter_variables(v)
    elif isinstance(value, Variable):
        yield value


#
# Parameter files
#


def validate_config(config: Any, network: Network) -> None:
    """Checks the layout of a parameters file and that it targets the expected network."""
    if not isinstance(config, dict):
        raise ParameterParseError("Parameters file must be a mapping.")

    deployment = config.get(DEPLOYMENT_KEY)
    if not isinstance(deployment, dict):
        raise ParameterParseError("deployment is not set in parameters file.")

    config_network = deployment.get("network")
    if config_network != network.value:
        raise ParameterParseError(
            f"network in parameters file ({config_network}) does not match "
            f"requested network ({network.value})."
        )

    config_chain_id = deployment.get("chain_id")
    if config_chain_id is not None:
        expected_chain_id = get_network_config(network).chain_id
        try:
            config_chain_id = int(config_chain_id)
        except (TypeError, ValueError) as e:
            raise ParameterParseError(
                f"chain_id in parameters file ({config_chain_id}) is not an integer."
            ) from e
        if config_chain_id != expected_chain_id:
            raise ParameterParseError(
                f"chain_id in parameters file ({config_chain_id}) does not match "
                f"chain_id of network {network.value} ({expected_chain_id})."
            )

    constants = config.get(CONSTANTS_KEY) or dict()
    if not isinstance(constants, dict):
        raise ParameterParseError("constants must be a mapping.")

    modules = config.get(MODULES_KEY) or dict()
    if not isinstance(modules, dict):
        raise ParameterParseError("modules must be a mapping of module names to parameters.")
    for module_id, values in modules.items():
        if not isinstance(values, dict):
            raise ParameterParseError(f"Malformed parameters for module {module_id}.")


class ParameterSet:
    """Read-only parameter values of one network, keyed by module and parameter name."""

    def __init__(
        self,
        network: Network,
        values: Dict[str, Dict[str, Any]],
        name: Optional[str] = None,
        constants: Optional[Dict[str, Any]] = None,
        filepath: Optional[Path] = None,
    ):
        self.network = network
        self.name = name
        self.filepath = filepath
        self.constants = MappingProxyType(dict(constants or dict()))
        self._values = MappingProxyType(
            {module_id: MappingProxyType(dict(params)) for module_id, params in values.items()}
        )

    @classmethod
    def from_config(
        cls, config: Dict, network: Network, filepath: Optional[Path] = None
    ) -> "ParameterSet":
        validate_config(config, network)
        constants = config.get(CONSTANTS_KEY) or dict()
        values = dict()
        for module_id, raw_values in (config.get(MODULES_KEY) or dict()).items():
            values[module_id] = {
                name: _process_raw_value(value, constants) for name, value in raw_values.items()
            }
        return cls(
            network=network,
            values=values,
            name=config[DEPLOYMENT_KEY].get("name"),
            constants=constants,
            filepath=filepath,
        )

    def get(self, module_id: str, name: str) -> Any:
        return self._values[module_id][name]

    def __contains__(self, key: typing.Tuple[str, str]) -> bool:
        module_id, name = key
        return name in self._values.get(module_id, dict())

    def module_ids(self) -> List[str]:
        return list(self._values)

    def module_values(self, module_id: str) -> typing.Mapping[str, Any]:
        return self._values.get(module_id, MappingProxyType(dict()))


def parameters_filepath(network: Network, directory: Path = PARAMETERS_DIR) -> Path:
    return Path(directory) / f"{network.value}{PARAMETERS_FILE_SUFFIX}"


def load_parameters(network: Network, directory: Path = PARAMETERS_DIR) -> ParameterSet:
    """Loads the parameter set of a network from its parameters file."""
    filepath = parameters_filepath(network, directory)
    if not filepath.exists():
        raise ParameterFileMissing(
            f"No parameters file for network '{network.value}' at {filepath}."
        )

    print(f"Processing parameters from {filepath}...")
    try:
        config = _load_yaml(filepath)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ParameterParseError(f"Malformed parameters file {filepath}: {e}") from e

    return ParameterSet.from_config(config, network=network, filepath=filepath)

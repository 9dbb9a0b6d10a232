class DeploymentError(Exception):
    """Base class for all deployment errors."""


#
# Configuration
#


class ConfigurationMissing(DeploymentError):
    """Raised when a network has no connection parameters defined."""


#
# Module authoring
#


class UnknownContract(DeploymentError, ValueError):
    """Raised when a contract identifier is not a member of ContractId."""


class DuplicateParameterName(DeploymentError):
    """Raised when a module declares the same parameter twice."""


class DuplicateNodeName(DeploymentError):
    """Raised when a module declares the same node twice."""


class CyclicDependency(DeploymentError):
    """Raised when node references form a cycle."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.cycle)}")


class UnresolvedReference(DeploymentError):
    """Raised when a handle points at a node that was never declared."""


#
# Input binding
#


class ParameterFileMissing(DeploymentError, FileNotFoundError):
    """Raised when no parameter file exists for a network."""


class ParameterParseError(DeploymentError):
    """Raised when a parameter file is malformed."""


class UnboundParameter(DeploymentError):
    """Raised when a declared parameter has no value in the bound parameter set."""

    def __init__(self, module_id: str, name: str):
        self.module_id = module_id
        self.name = name
        super().__init__(f"Parameter '{name}' of module '{module_id}' is not bound.")


class InvalidParameter(DeploymentError):
    """Raised when a bound parameter value does not match its declared shape."""


class InvalidConstructorArguments(DeploymentError):
    """Raised when resolved constructor arguments do not match the contract ABI."""


class AddressNotFound(DeploymentError, LookupError):
    """Raised when the address registry has no entry for a network and contract."""


class JournalMismatch(DeploymentError):
    """Raised when a journaled node no longer matches its declaration."""


#
# Ledger interaction
#


class DeploymentFailed(DeploymentError):
    """
    Raised when a creation transaction for a node is rejected or not confirmed.
    Nodes confirmed before the failure stay deployed; they are available in `result`.
    """

    def __init__(self, node_name: str, cause: BaseException, result=None):
        self.node_name = node_name
        self.cause = cause
        self.result = result
        super().__init__(f"Deployment of {node_name} failed: {cause}")

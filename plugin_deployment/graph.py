import typing
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from plugin_deployment.constants import FUTURE_ID_DELIMITER
from plugin_deployment.contracts import ContractId
from plugin_deployment.exceptions import (
    CyclicDependency,
    DuplicateNodeName,
    DuplicateParameterName,
    UnresolvedReference,
)


class _Missing:
    def __repr__(self):
        return "<MISSING>"


MISSING = _Missing()


def future_id(module_id: str, node_name: str) -> str:
    return f"{module_id}{FUTURE_ID_DELIMITER}{node_name}"


#
# Handles
#


class ParameterHandle:
    """A named module input, bound to a value from the parameter set at execution time."""

    def __init__(self, module: "Module", name: str, default: Any = MISSING, abi_type: str = None):
        self.module = module
        self.name = name
        self.default = default
        self.abi_type = abi_type

    @property
    def module_id(self) -> str:
        return self.module.name

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def __repr__(self):
        return f"ParameterHandle({self.module_id}.{self.name})"


class NodeOutputHandle:
    """Refers to the address a node resolves to. The node may not be declared yet."""

    def __init__(self, module: "Module", node_name: str):
        self.module = module
        self.node_name = node_name

    @property
    def module_id(self) -> str:
        return self.module.name

    @property
    def future_id(self) -> str:
        return future_id(self.module_id, self.node_name)

    @property
    def node(self) -> Optional["Node"]:
        return self.module.nodes.get(self.node_name)

    def __eq__(self, other):
        if not isinstance(other, NodeOutputHandle):
            return NotImplemented
        return self.module is other.module and self.node_name == other.node_name

    def __hash__(self):
        return hash((id(self.module), self.node_name))

    def __repr__(self):
        return f"NodeOutputHandle({self.future_id})"


Argument = Union[ParameterHandle, NodeOutputHandle, Any]


def _iter_instances(value: Any, cls: type) -> Iterator[Any]:
    """Yields every instance of `cls` in a (possibly nested) argument value."""
    if isinstance(value, cls):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_instances(item, cls)


#
# Nodes
#


class Node:
    def __init__(self, module: "Module", name: str):
        self.module = module
        self.name = name

    @property
    def module_id(self) -> str:
        return self.module.name

    @property
    def future_id(self) -> str:
        return future_id(self.module_id, self.name)

    def _values(self) -> List[Any]:
        raise NotImplementedError

    def dependencies(self) -> List[NodeOutputHandle]:
        return list(_iter_instances(self._values(), NodeOutputHandle))

    def parameters(self) -> List[ParameterHandle]:
        return list(_iter_instances(self._values(), ParameterHandle))

    def __repr__(self):
        return f"{self.__class__.__name__}({self.future_id})"


class ContractNode(Node):
    """A contract creation step."""

    def __init__(self, module: "Module", name: str, contract_name: str, args: List[Argument]):
        super().__init__(module, name)
        self.contract_name = contract_name
        self.args = list(args)

    def _values(self) -> List[Any]:
        return self.args


class ExternalNode(Node):
    """A contract deployed outside of this run, referenced by its address."""

    def __init__(
        self, module: "Module", name: str, address: Union[str, ParameterHandle, ContractId]
    ):
        super().__init__(module, name)
        self.address = address

    def _values(self) -> List[Any]:
        return [self.address]


def _find_path(source: Node, target: Node, visited: typing.Set[str]) -> Optional[List[str]]:
    """Returns the future ids leading from source to target through declared dependencies."""
    for handle in source.dependencies():
        node = handle.node
        if node is None or node.future_id in visited:
            continue
        if node is target:
            return [node.future_id]
        visited.add(node.future_id)
        path = _find_path(node, target, visited)
        if path is not None:
            return [node.future_id] + path
    return None


#
# Modules
#


class Module:
    """
    Declarative description of a set of deployment steps.

    Nodes are stored by name in declaration order; handles refer to nodes
    by module and name, so a module can reference nodes of other modules
    (through their exposed outputs) and, with `reference`, nodes of its own
    that are declared later.
    """

    def __init__(self, name: str):
        if not name or FUTURE_ID_DELIMITER in name:
            raise ValueError(f"Invalid module name '{name}'.")
        self.name = name
        self.parameters: typing.OrderedDict[str, ParameterHandle] = OrderedDict()
        self.nodes: typing.OrderedDict[str, Node] = OrderedDict()
        self.outputs: typing.OrderedDict[str, NodeOutputHandle] = OrderedDict()

    def __repr__(self):
        return f"Module({self.name})"

    def declare_parameter(
        self, name: str, default: Any = MISSING, abi_type: str = None
    ) -> ParameterHandle:
        if name in self.parameters:
            raise DuplicateParameterName(
                f"Parameter '{name}' is already declared in module '{self.name}'."
            )
        handle = ParameterHandle(module=self, name=name, default=default, abi_type=abi_type)
        self.parameters[name] = handle
        return handle

    def declare_contract(
        self, node_name: str, args: typing.Sequence[Argument] = (), contract_name: str = None
    ) -> NodeOutputHandle:
        node = ContractNode(
            module=self,
            name=node_name,
            contract_name=contract_name or node_name,
            args=list(args),
        )
        return self._add_node(node)

    def declare_external(
        self, node_name: str, address: Union[str, ParameterHandle, ContractId]
    ) -> NodeOutputHandle:
        if isinstance(address, NodeOutputHandle):
            raise TypeError("External nodes take an address, a parameter or a ContractId.")
        node = ExternalNode(module=self, name=node_name, address=address)
        return self._add_node(node)

    def reference(self, node_name: str) -> NodeOutputHandle:
        return NodeOutputHandle(module=self, node_name=node_name)

    def expose_output(self, name: str, handle: NodeOutputHandle) -> None:
        if not isinstance(handle, NodeOutputHandle):
            raise TypeError(f"Output '{name}' of module '{self.name}' must be a node handle.")
        self.outputs[name] = handle

    def _add_node(self, node: Node) -> NodeOutputHandle:
        if node.name in self.nodes:
            raise DuplicateNodeName(f"Node '{node.name}' is already declared in '{self.name}'.")

        self.nodes[node.name] = node
        path = _find_path(node, node, set())
        if path is not None:
            del self.nodes[node.name]
            raise CyclicDependency([node.future_id] + path)

        return NodeOutputHandle(module=self, node_name=node.name)

    def referenced_modules(self) -> List["Module"]:
        """Other modules whose nodes or parameters this module uses."""
        modules = OrderedDict()
        handles = list(self.outputs.values())
        for node in self.nodes.values():
            handles.extend(node.dependencies())
            handles.extend(node.parameters())
        for handle in handles:
            if handle.module is not self:
                modules[id(handle.module)] = handle.module
        return list(modules.values())


def build_module(name: str) -> Callable[[Callable[[Module], Dict]], Module]:
    """
    Decorator building a module from a function; the function receives the
    module builder and returns the outputs to expose.
    """

    def decorator(func: Callable[[Module], Dict]) -> Module:
        module = Module(name)
        outputs = func(module) or dict()
        for output_name, handle in outputs.items():
            module.expose_output(output_name, handle)
        return module

    return decorator


#
# Graph
#


class DeploymentGraph:
    """The combined graph of one or more root modules and every module they use."""

    def __init__(self, roots: typing.Sequence[Module]):
        if not roots:
            raise ValueError("At least one module is required.")
        self.roots = list(roots)
        self.modules: typing.OrderedDict[str, Module] = OrderedDict()
        for root in self.roots:
            self._collect(root, visiting=set())
        self.outputs = self._root_outputs()
        self._validate_references()

    @classmethod
    def from_modules(cls, *modules: Module) -> "DeploymentGraph":
        return cls(roots=modules)

    def _collect(self, module: Module, visiting: typing.Set[int]) -> None:
        existing = self.modules.get(module.name)
        if existing is module:
            return
        if existing is not None:
            raise ValueError(f"Two different modules are named '{module.name}'.")
        if id(module) in visiting:
            # modules referencing each other; node level cycles are checked when planning
            return
        visiting.add(id(module))
        for dependency in module.referenced_modules():
            self._collect(dependency, visiting)
        self.modules[module.name] = module

    def _root_outputs(self) -> typing.OrderedDict[str, NodeOutputHandle]:
        outputs = OrderedDict()
        for root in self.roots:
            for name, handle in root.outputs.items():
                if name in outputs and outputs[name] != handle:
                    raise ValueError(f"Output '{name}' is exposed by more than one module.")
                outputs[name] = handle
        return outputs

    def _validate_references(self) -> None:
        handles = list(self.outputs.values())
        for node in self.nodes():
            handles.extend(node.dependencies())
        for module in self.modules.values():
            handles.extend(module.outputs.values())
        for handle in handles:
            if handle.node is None:
                raise UnresolvedReference(f"{handle.future_id} is referenced but never declared.")

    def nodes(self) -> List[Node]:
        return [node for module in self.modules.values() for node in module.nodes.values()]

    def get_module(self, module_id: str) -> Module:
        try:
            return self.modules[module_id]
        except KeyError:
            raise UnresolvedReference(f"Module '{module_id}' is not part of this deployment.")

    def get_output(self, module_id: str, output_name: str) -> NodeOutputHandle:
        module = self.get_module(module_id)
        try:
            return module.outputs[output_name]
        except KeyError:
            raise UnresolvedReference(f"Module '{module_id}' has no output '{output_name}'.")

import json
import typing
from collections import OrderedDict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from eth_utils import to_checksum_address, to_hex
from web3.auto import w3

from plugin_deployment.constants import JOURNALS_DIR, ZERO_ADDRESS
from plugin_deployment.contracts import ContractId
from plugin_deployment.exceptions import (
    AddressNotFound,
    CyclicDependency,
    DeploymentFailed,
    InvalidParameter,
    JournalMismatch,
    UnboundParameter,
)
from plugin_deployment.graph import (
    ContractNode,
    DeploymentGraph,
    ExternalNode,
    Node,
    NodeOutputHandle,
    ParameterHandle,
)
from plugin_deployment.ledger import Ledger
from plugin_deployment.networks import Network
from plugin_deployment.params import (
    ModuleOutput,
    ParameterSet,
    VariableContext,
    iter_variables,
    resolve_value,
)
from plugin_deployment.registry import AddressRegistry

STANDARD_JOURNAL_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class NodeState(Enum):
    DECLARED = "declared"
    RESOLVING = "resolving"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ResumePolicy(Enum):
    NEVER = "never"  # always submit every contract node
    JOURNAL = "journal"  # reuse nodes confirmed by a previous run


def _to_json_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_to_json_value(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    return value


class NodeRecord:
    """Execution state of a single node."""

    def __init__(
        self,
        future_id: str,
        contract_name: Optional[str] = None,
        state: NodeState = NodeState.DECLARED,
        address: Optional[str] = None,
        tx_hash: Optional[str] = None,
        args: Optional[List[Any]] = None,
        reused: bool = False,
    ):
        self.future_id = future_id
        self.contract_name = contract_name
        self.state = state
        self.address = address
        self.tx_hash = tx_hash
        self.args = args
        self.reused = reused

    @property
    def is_confirmed(self) -> bool:
        return self.state is NodeState.CONFIRMED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract_name": self.contract_name,
            "state": self.state.value,
            "address": self.address,
            "tx_hash": self.tx_hash,
            "args": _to_json_value(self.args),
        }

    @classmethod
    def from_dict(cls, future_id: str, data: Dict[str, Any]) -> "NodeRecord":
        return cls(
            future_id=future_id,
            contract_name=data.get("contract_name"),
            state=NodeState(data["state"]),
            address=data.get("address"),
            tx_hash=data.get("tx_hash"),
            args=data.get("args"),
        )

    def __repr__(self):
        return f"NodeRecord({self.future_id}, {self.state.value}, {self.address})"


class DeploymentResult:
    """
    Outcome of a single run: the record of every node plus the addresses of the
    exposed outputs. Outputs are available as items and as attributes.
    """

    def __init__(
        self,
        network: Network,
        records: typing.OrderedDict[str, NodeRecord],
        output_ids: Dict[str, str],
    ):
        self.network = network
        self.records = records
        self.output_ids = output_ids

    @property
    def outputs(self) -> Dict[str, str]:
        """Addresses of the exposed outputs whose node has been confirmed."""
        outputs = OrderedDict()
        for name, future_id in self.output_ids.items():
            record = self.records.get(future_id)
            if record is not None and record.is_confirmed:
                outputs[name] = record.address
        return outputs

    @property
    def transactions(self) -> Dict[str, str]:
        return {fid: r.tx_hash for fid, r in self.records.items() if r.tx_hash and r.is_confirmed}

    @property
    def is_complete(self) -> bool:
        return all(record.is_confirmed for record in self.records.values())

    def confirmed(self) -> List[NodeRecord]:
        return [record for record in self.records.values() if record.is_confirmed]

    def __getitem__(self, name: str) -> str:
        outputs = self.outputs
        if name not in outputs:
            raise KeyError(f"Output '{name}' was not deployed.")
        return outputs[name]

    def __getattr__(self, name: str) -> str:
        if name.startswith("_") or name not in self.__dict__.get("output_ids", dict()):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(str(e))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network.value,
            "outputs": dict(self.output_ids),
            "nodes": {fid: record.to_dict() for fid, record in self.records.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentResult":
        records = OrderedDict(
            (fid, NodeRecord.from_dict(fid, node)) for fid, node in data["nodes"].items()
        )
        return cls(
            network=Network(data["network"]),
            records=records,
            output_ids=dict(data.get("outputs", dict())),
        )


def journal_filepath(name: str, network: Network, directory: Path = JOURNALS_DIR) -> Path:
    return Path(directory) / f"{name}-{network.value}.json"


def write_journal(result: DeploymentResult, filepath: Path) -> Path:
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(result.to_dict(), file, **STANDARD_JOURNAL_JSON_FORMAT)
    return filepath


def read_journal(filepath: Path) -> DeploymentResult:
    with open(filepath, "r") as file:
        return DeploymentResult.from_dict(json.load(file))


class PlannedNode(NamedTuple):
    node: Node
    dependencies: Tuple[str, ...]


class ExecutionPlan(NamedTuple):
    graph: DeploymentGraph
    order: List[PlannedNode]
    bindings: Dict[Tuple[str, str], Any]

    @property
    def future_ids(self) -> List[str]:
        return [planned.node.future_id for planned in self.order]


class DeploymentExecutor:
    """
    Deploys a module graph on one network: binds parameters, orders the nodes
    so that every node comes after the nodes it references, then submits
    contract creations one at a time through the ledger.
    """

    def __init__(
        self,
        ledger: Ledger,
        parameters: ParameterSet,
        registry: Optional[AddressRegistry] = None,
        resume: ResumePolicy = ResumePolicy.NEVER,
        journal_filepath: Optional[Path] = None,
    ):
        self.ledger = ledger
        self.parameters = parameters
        self.registry = registry
        self.resume = resume
        self.journal_filepath = journal_filepath

    @property
    def network(self) -> Network:
        return self.parameters.network

    #
    # Planning
    #

    def _bind(self, handle: ParameterHandle) -> Any:
        key = (handle.module_id, handle.name)
        if key in self.parameters:
            value = self.parameters.get(*key)
        elif handle.has_default:
            value = handle.default
        else:
            raise UnboundParameter(handle.module_id, handle.name)

        if handle.abi_type is not None:
            sample = resolve_value(value, self._context(addresses=None))
            if not w3.is_encodable(handle.abi_type, sample):
                raise InvalidParameter(
                    f"Parameter '{handle.name}' of module '{handle.module_id}' has a value "
                    f"'{value}' whose type does not match expected ABI type '{handle.abi_type}'."
                )
        return value

    def _bind_all(self, graph: DeploymentGraph) -> Dict[Tuple[str, str], Any]:
        bindings = dict()
        for node in graph.nodes():
            for handle in node.parameters():
                key = (handle.module_id, handle.name)
                if key not in bindings:
                    bindings[key] = self._bind(handle)
        return bindings

    def _dependencies(
        self, graph: DeploymentGraph, node: Node, bindings: Dict[Tuple[str, str], Any]
    ) -> Tuple[str, ...]:
        dependencies = OrderedDict()
        for handle in node.dependencies():
            dependencies[handle.future_id] = None
        for handle in node.parameters():
            for variable in iter_variables(bindings[(handle.module_id, handle.name)]):
                if isinstance(variable, ModuleOutput):
                    output = graph.get_output(variable.module_id, variable.output_name)
                    dependencies[output.future_id] = None
        return tuple(dependencies)

    @staticmethod
    def _topological_order(
        nodes: typing.OrderedDict[str, PlannedNode]
    ) -> List[PlannedNode]:
        """Depth-first ordering that keeps declaration order wherever dependencies allow."""
        order = list()
        done = set()
        path = list()

        def visit(future_id: str) -> None:
            if future_id in done:
                return
            if future_id in path:
                cycle = path[path.index(future_id) :] + [future_id]
                raise CyclicDependency(cycle)
            path.append(future_id)
            for dependency in nodes[future_id].dependencies:
                visit(dependency)
            path.pop()
            done.add(future_id)
            order.append(nodes[future_id])

        for future_id in nodes:
            visit(future_id)
        return order

    def plan(
        self, graph: DeploymentGraph, previous: Optional[DeploymentResult] = None
    ) -> ExecutionPlan:
        """
        Binds parameters, orders the nodes and validates every contract node's
        arguments. When resuming, the journaled nodes are checked against the
        graph as well. Nothing is submitted; failures leave no trace on the ledger.
        """
        bindings = self._bind_all(graph)
        nodes = OrderedDict()
        for node in graph.nodes():
            nodes[node.future_id] = PlannedNode(
                node=node, dependencies=self._dependencies(graph, node, bindings)
            )
        order = self._topological_order(nodes)

        # eager validation; addresses of nodes deployed during the run are not known yet
        for planned in order:
            node = planned.node
            if isinstance(node, ExternalNode):
                self._resolve_external(node, bindings, addresses=None)
            elif isinstance(node, ContractNode):
                args = self._resolve_args(graph, node, bindings, addresses=None)
                self.ledger.check_arguments(node.contract_name, args)

        if previous is not None and self.resume is ResumePolicy.JOURNAL:
            self._check_journal(graph, order, bindings, previous)

        return ExecutionPlan(graph=graph, order=order, bindings=bindings)

    #
    # Resolution
    #

    def _context(
        self, addresses: Optional[Dict[str, str]], graph: Optional[DeploymentGraph] = None
    ) -> VariableContext:
        def output_address(module_id: str, output_name: str) -> str:
            if addresses is None:
                return ZERO_ADDRESS
            handle = graph.get_output(module_id, output_name)
            return addresses[handle.future_id]

        return VariableContext(
            deployer_address=self.ledger.deployer_address,
            output_address=output_address,
        )

    def _resolve_arg(
        self,
        value: Any,
        bindings: Dict[Tuple[str, str], Any],
        addresses: Optional[Dict[str, str]],
        context: VariableContext,
    ) -> Any:
        if isinstance(value, (list, tuple)):
            return [self._resolve_arg(v, bindings, addresses, context) for v in value]
        if isinstance(value, NodeOutputHandle):
            if addresses is None:
                return ZERO_ADDRESS
            return addresses[value.future_id]
        if isinstance(value, ParameterHandle):
            return resolve_value(bindings[(value.module_id, value.name)], context)
        return value

    def _resolve_args(
        self,
        graph: DeploymentGraph,
        node: ContractNode,
        bindings: Dict[Tuple[str, str], Any],
        addresses: Optional[Dict[str, str]],
    ) -> List[Any]:
        context = self._context(addresses, graph)
        return [self._resolve_arg(arg, bindings, addresses, context) for arg in node.args]

    def _resolve_external(
        self,
        node: ExternalNode,
        bindings: Dict[Tuple[str, str], Any],
        addresses: Optional[Dict[str, str]],
        graph: Optional[DeploymentGraph] = None,
    ) -> str:
        address = node.address
        if isinstance(address, ContractId):
            if self.registry is None:
                raise AddressNotFound(
                    f"{node.future_id} refers to {address.value} but no address registry is set."
                )
            return self.registry.lookup(self.network, address)
        if isinstance(address, ParameterHandle):
            context = self._context(addresses, graph)
            address = self._resolve_arg(address, bindings, addresses, context)
        try:
            return to_checksum_address(address)
        except (TypeError, ValueError):
            raise InvalidParameter(f"{node.future_id} has an invalid address '{address}'.")

    #
    # Execution
    #

    def _reusable_record(
        self, previous: Optional[DeploymentResult], node: ContractNode, args: List[Any]
    ) -> Optional[NodeRecord]:
        if previous is None or self.resume is not ResumePolicy.JOURNAL:
            return None
        record = previous.records.get(node.future_id)
        if record is None or not record.is_confirmed:
            return None
        if record.contract_name != node.contract_name:
            raise JournalMismatch(
                f"{node.future_id} was deployed as {record.contract_name}, "
                f"now declared as {node.contract_name}."
            )
        if record.args is not None and _to_json_value(record.args) != _to_json_value(args):
            raise JournalMismatch(
                f"{node.future_id} was deployed with arguments {record.args}, now {args}."
            )
        return record

    def _check_journal(
        self,
        graph: DeploymentGraph,
        order: List[PlannedNode],
        bindings: Dict[Tuple[str, str], Any],
        previous: DeploymentResult,
    ) -> None:
        """
        Replays the reuse decisions of a resumed run with the journaled addresses,
        so that a mismatch surfaces before the first submission.
        """
        addresses = dict()
        for planned in order:
            node = planned.node
            unknown = [d for d in planned.dependencies if d not in addresses]
            if isinstance(node, ExternalNode):
                if not unknown:
                    addresses[node.future_id] = self._resolve_external(
                        node, bindings, addresses, graph
                    )
                continue

            record = previous.records.get(node.future_id)
            if record is None or not record.is_confirmed:
                continue
            if unknown:
                if record.args is None:
                    continue
                # a node deployed again in this run gets a new address
                raise JournalMismatch(
                    f"{node.future_id} was deployed with arguments {record.args}, "
                    f"but {', '.join(unknown)} will be deployed again."
                )
            args = self._resolve_args(graph, node, bindings, addresses)
            self._reusable_record(previous, node, args)
            addresses[node.future_id] = record.address

    def _journal(self, result: DeploymentResult) -> None:
        if self.journal_filepath is not None:
            write_journal(result, self.journal_filepath)

    def execute(
        self, graph: DeploymentGraph, previous: Optional[DeploymentResult] = None
    ) -> DeploymentResult:
        if previous is not None and previous.network is not self.network:
            raise ValueError(
                f"Previous result is for network {previous.network.value}, "
                f"not {self.network.value}."
            )

        plan = self.plan(graph, previous=previous)
        records = OrderedDict()
        for planned in plan.order:
            node = planned.node
            contract_name = node.contract_name if isinstance(node, ContractNode) else None
            records[node.future_id] = NodeRecord(node.future_id, contract_name=contract_name)
        output_ids = {name: handle.future_id for name, handle in graph.outputs.items()}
        result = DeploymentResult(network=self.network, records=records, output_ids=output_ids)

        addresses = dict()
        for planned in plan.order:
            node = planned.node
            record = result.records[node.future_id]
            record.state = NodeState.RESOLVING

            if isinstance(node, ExternalNode):
                record.address = self._resolve_external(node, plan.bindings, addresses, graph)
                record.state = NodeState.CONFIRMED
                addresses[node.future_id] = record.address
                continue

            args = self._resolve_args(graph, node, plan.bindings, addresses)
            record.args = args
            previous_record = self._reusable_record(previous, node, args)
            if previous_record is not None:
                print(f"\n(i) Reusing {node.future_id} at {previous_record.address}")
                record.address = previous_record.address
                record.tx_hash = previous_record.tx_hash
                record.reused = True
                record.state = NodeState.CONFIRMED
                addresses[node.future_id] = record.address
                continue

            print(f"\nDeploying {node.future_id} ({node.contract_name})...")
            record.state = NodeState.SUBMITTED
            try:
                deployment = self.ledger.deploy(node.contract_name, args)
            except Exception as e:
                record.state = NodeState.FAILED
                self._journal(result)
                raise DeploymentFailed(node.future_id, e, result=result) from e

            record.address = to_checksum_address(deployment.address)
            record.tx_hash = deployment.tx_hash
            record.state = NodeState.CONFIRMED
            addresses[node.future_id] = record.address
            print(f"(i) {node.future_id} deployed to {record.address}")
            self._journal(result)

        self._journal(result)
        return result


def deploy(
    *modules,
    ledger: Ledger,
    parameters: ParameterSet,
    registry: Optional[AddressRegistry] = None,
    resume: ResumePolicy = ResumePolicy.NEVER,
    previous: Optional[DeploymentResult] = None,
    journal_filepath: Optional[Path] = None,
) -> DeploymentResult:
    """Builds the graph of the given modules and executes it."""
    graph = DeploymentGraph.from_modules(*modules)
    executor = DeploymentExecutor(
        ledger=ledger,
        parameters=parameters,
        registry=registry,
        resume=resume,
        journal_filepath=journal_filepath,
    )
    return executor.execute(graph, previous=previous)

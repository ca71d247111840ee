"""
Interface registry: declared contracts plus the fact table of confirmed
implementations.

Everything here is append-only for the lifetime of the registry. Interfaces
cannot be redefined and recorded ``(candidate, interface)`` facts are never
removed; no negative fact is ever stored.
"""

from collections import ChainMap
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Set, Tuple, Union
import logging
import threading

import networkx as nx

from .interface import make_interface
from ..contracts import Contract, ContractCompiler
from ..exceptions import (
    CyclicInterfaceDefinition, CyclicObligation, InterfaceImplementationError, MalformedContract,
)
from ..operations import MethodRegistryQuery, OperationRegistry
from ..validation import ContractValidator, Mode, ValidatorExecutor

logger = logging.getLogger(__name__)


class InterfaceRegistry:
    """
    Holds every interface declared through it and answers conformance
    questions about them.

    - ``define`` compiles a requirement block and marks its identity as an interface
    - ``implements`` re-validates on every call and never touches the fact table
    - ``assert_implements`` validates once and records the fact on success

    Args:
        operations: Operation registry the validators query; a fresh
            ``OperationRegistry`` when omitted
    """

    def __init__(self, operations: Optional[MethodRegistryQuery] = None):
        self.operations = operations if operations is not None else OperationRegistry()
        self.executor = ValidatorExecutor(self.operations, self)
        self._contracts: Dict[type, Contract] = {}
        self._validators: Dict[type, ContractValidator] = {}
        self._by_name: Dict[str, type] = {}
        self._registrations: Set[Tuple[type, type]] = set()
        self._lock = threading.Lock()

    def define(self,
               identity: Union[str, type],
               block: str,
               alias: Optional[str] = None,
               namespace: Optional[Mapping[str, Any]] = None,
               module: Optional[str] = None) -> type:
        """
        Declare an interface.

        Args:
            identity: Interface name (a new class is created) or an existing class
            block: Requirement block
            alias: Extra name for the candidate inside the block
            namespace: Names visible to requirement expressions; declared
                interfaces are always visible by name
            module: ``__module__`` for a class created from a name

        Returns:
            The interface class

        Raises:
            MalformedContract: If the block does not compile, the interface
                already exists, or it closes a cycle of interface return obligations
        """
        if isinstance(identity, str):
            if not identity.isidentifier():
                raise MalformedContract(identity, "interface name must be an identifier")
            identity = make_interface(identity, module=module, doc=block)
        elif not isinstance(identity, type):
            raise TypeError(f"interface identity must be a name or a class, got {identity!r}")

        name = identity.__name__
        self._check_new(identity)
        names = ChainMap(namespace if namespace is not None else {}, self._by_name)
        contract = ContractCompiler(identity, block, alias=alias, namespace=names).compile()

        with self._lock:
            self._check_new(identity)
            cycle = self._cycle_through(contract)
            if cycle:
                raise CyclicInterfaceDefinition(name, cycle)
            self._contracts[identity] = contract
            self._validators[identity] = ContractValidator(contract, self.executor)
            self._by_name[name] = identity

        logger.info("Defined interface %s (%d requirements, operations: %s)",
                    name, len(contract.requirements), ", ".join(contract.operations()) or "none")
        return identity

    def _check_new(self, identity: type):
        name = identity.__name__
        if identity in self._contracts or name in self._by_name:
            raise MalformedContract(name, "interface already defined")

    def is_interface_type(self, obj: Any) -> bool:
        """True when ``obj`` was declared as an interface through this registry."""
        return isinstance(obj, type) and obj in self._contracts

    def contract_for(self, interface: type) -> Contract:
        return self._validator(interface).contract

    def lookup(self, name: str) -> Optional[type]:
        """Interface class declared under ``name``, if any."""
        return self._by_name.get(name)

    def interfaces(self) -> List[type]:
        return list(self._contracts)

    def _validator(self, interface: Any) -> ContractValidator:
        if not self.is_interface_type(interface):
            raise TypeError(f"{interface!r} is not an interface")
        return self._validators[interface]

    def check(self,
              candidate: type,
              interface: type,
              scopes: Optional[Sequence[str]] = None,
              mode: Mode = Mode.STRICT,
              stack: Tuple[type, ...] = ()) -> bool:
        """
        Run ``interface``'s validator on ``candidate``.

        Args:
            candidate: The candidate class
            interface: A declared interface
            scopes: Scope tags to search (default: the candidate's module)
            mode: Strict raises diagnostics, probe returns False
            stack: Interfaces whose checks are already in progress

        Raises:
            InterfaceImplementationError: In strict mode, on the first violation
            CyclicObligation: If ``interface`` is already on ``stack``
        """
        validator = self._validator(interface)
        if not isinstance(candidate, type):
            raise TypeError(f"candidate must be a class, got {candidate!r}")
        if interface in stack:
            path = [i.__name__ for i in stack[stack.index(interface):]] + [interface.__name__]
            raise CyclicObligation(interface.__name__, candidate, path)
        return validator(candidate, scopes, mode, stack + (interface,))

    def implements(self,
                   candidate: type,
                   interface: type,
                   scopes: Optional[Sequence[str]] = None,
                   stack: Tuple[type, ...] = ()) -> bool:
        """
        Does ``candidate`` implement ``interface``?

        Always validates afresh; the fact table is neither read nor written.
        Diagnostics raised internally are folded into ``False``.
        """
        try:
            return self.check(candidate, interface, scopes, Mode.STRICT, stack)
        except InterfaceImplementationError as e:
            logger.debug("%s does not implement %s: %s", candidate.__qualname__, interface.__name__, e)
            return False

    def assert_implements(self,
                          candidate: type,
                          interface: type,
                          scopes: Optional[Sequence[str]] = None) -> type:
        """
        Validate ``candidate`` against ``interface`` and record the fact.

        Returns:
            ``candidate``, so the call can be used as a class decorator

        Raises:
            InterfaceImplementationError: If any requirement is unmet
        """
        self.check(candidate, interface, scopes, Mode.STRICT)
        with self._lock:
            new = (candidate, interface) not in self._registrations
            self._registrations.add((candidate, interface))
        if new:
            logger.info("Registered %s as implementing %s", candidate.__qualname__, interface.__name__)
        return candidate

    def is_registered(self, candidate: type, interface: type) -> bool:
        """True once ``assert_implements(candidate, interface)`` has succeeded."""
        return (candidate, interface) in self._registrations

    def registrations(self) -> FrozenSet[Tuple[type, type]]:
        return frozenset(self._registrations)

    def _references(self, contract: Contract) -> List[str]:
        """Interface names ``contract`` needs through return obligations."""
        refs = []
        for declared in contract.return_references():
            value = contract.namespace.get(declared.text)
            if value is None:
                if declared.lazy:
                    # Forward reference to something not declared yet
                    refs.append(declared.text)
            elif value is contract.identity or self.is_interface_type(value):
                refs.append(value.__name__)
        return refs

    def dependency_graph(self, extra: Optional[Contract] = None) -> nx.DiGraph:
        """
        Directed graph of interfaces; an edge A -> B means one of A's
        operations must return something implementing B.

        Nodes for names that are referenced but not declared carry
        ``defined=False``.
        """
        graph = nx.DiGraph()
        contracts = list(self._contracts.values()) + ([extra] if extra is not None else [])
        for contract in contracts:
            graph.add_node(contract.name, defined=True)
        for contract in contracts:
            for ref in self._references(contract):
                if ref not in graph:
                    graph.add_node(ref, defined=False)
                graph.add_edge(contract.name, ref)
        return graph

    def find_cycles(self) -> List[List[str]]:
        """All elementary cycles of the dependency graph, each as a list of names."""
        return [sorted(cycle) for cycle in nx.simple_cycles(self.dependency_graph())]

    def _cycle_through(self, contract: Contract) -> Optional[List[str]]:
        graph = self.dependency_graph(extra=contract)
        try:
            edges = nx.find_cycle(graph, source=contract.name)
        except nx.NetworkXNoCycle:
            return None
        return [u for u, _ in edges] + [edges[0][0]]

    def __contains__(self, interface: Any) -> bool:
        return self.is_interface_type(interface)

    def __len__(self) -> int:
        return len(self._contracts)

    def __str__(self) -> str:
        return f"InterfaceRegistry({len(self._contracts)} interfaces, {len(self._registrations)} registrations)"

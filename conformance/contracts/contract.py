"""
Compiled interface contract.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Mapping, Optional, Tuple
from .requirements import BindingReq, Expression, MethodReq, RequirementNode, walk


@dataclass(frozen=True)
class Contract:
    """
    The immutable result of compiling an interface's requirement block.

    - identity: the interface class the contract belongs to
    - placeholder: name standing for the candidate type in the authored block
    - requirements: top-level requirement nodes, in document order
    - source: the requirement block as authored (dedented)
    - alias: optional second name for the candidate
    - namespace: names visible to requirement expressions (live mapping)
    """
    identity: type
    placeholder: str
    requirements: Tuple[RequirementNode, ...]
    source: str
    alias: Optional[str] = None
    namespace: Mapping = field(default_factory=dict, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.identity.__name__

    def nodes(self) -> Iterator[RequirementNode]:
        """All nodes of the requirement tree, depth first."""
        return walk(self.requirements)

    def operations(self) -> List[str]:
        """Names of all operations mentioned by method requirements, in first-seen order."""
        seen = []
        for node in self.nodes():
            if isinstance(node, MethodReq) and node.name not in seen:
                seen.append(node.name)
        return seen

    def return_references(self) -> List[Expression]:
        """
        Declared return types that are a single name, excluding the candidate
        itself and ``returntype`` bindings.

        The interface registry turns the ones naming interfaces into edges of
        its dependency graph.
        """
        nodes = list(self.nodes())
        bound = {node.name for node in nodes if isinstance(node, BindingReq)}
        refs = []
        for node in nodes:
            if isinstance(node, MethodReq) and node.returns is not None:
                declared = node.returns.declared
                if declared.is_name and not declared.mentions_candidate and declared.text not in bound:
                    refs.append(declared)
        return refs

    def __str__(self) -> str:
        return f"Contract({self.name}, {len(self.requirements)} requirements)"

"""
Requirement AST for compiled interface contracts.

Every node is a frozen dataclass. A contract's tree is built once by the
compiler and only read afterwards, by the validator and by the interface
registry (for its dependency graph).

Type and predicate expressions are held as ``Expression`` objects: the
authored text plus a code object compiled from the parsed expression after
the placeholder was renamed to ``CANDIDATE``. Evaluating one binds the
candidate type without touching the source again.
"""

from dataclasses import dataclass, field
from types import CodeType
from typing import Any, FrozenSet, Iterator, Optional, Tuple, Union

# Name the placeholder (and its alias) is rewritten to inside expressions
CANDIDATE = "__candidate__"


@dataclass(frozen=True)
class Expression:
    """
    A compiled type or predicate expression.

    Attributes:
        text: Expression as authored (forward references without quotes)
        code: Code object ready for ``eval``
        names: Free names referenced, with the placeholder as ``CANDIDATE``
        lazy: True for quoted forward references, resolved at validation time
    """
    text: str
    code: CodeType = field(compare=False, repr=False)
    names: FrozenSet[str] = frozenset()
    lazy: bool = False

    @property
    def mentions_candidate(self) -> bool:
        return CANDIDATE in self.names

    @property
    def is_name(self) -> bool:
        """True when the expression is a single identifier."""
        return self.text.isidentifier()

    def evaluate(self, namespace: dict) -> Any:
        return eval(self.code, namespace)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class ParamConstraint:
    """One parameter position of a required operation; no constraint means ``Any``."""
    name: str
    constraint: Optional[Expression] = None


@dataclass(frozen=True)
class ReturnObligation:
    """Declared return of a required operation: a type, or an interface."""
    declared: Expression


@dataclass(frozen=True)
class MethodReq:
    """An operation named ``name`` must accept the constrained parameter tuple."""
    name: str
    params: Tuple[ParamConstraint, ...]
    returns: Optional[ReturnObligation] = None
    source: str = ""


@dataclass(frozen=True)
class SubtypeReq:
    """The candidate must be declared as a subclass of the interface itself."""
    source: str = ""


@dataclass(frozen=True)
class SequenceReq:
    """Logical AND of the children, checked in order."""
    children: Tuple['RequirementNode', ...] = ()
    source: str = ""


@dataclass(frozen=True)
class ConditionalReq:
    """
    ``if``/``elif``/``else`` group. Only the body of the first branch whose
    predicate holds (or the ``else`` body) is checked.
    """
    branches: Tuple[Tuple[Expression, SequenceReq], ...]
    else_body: Optional[SequenceReq] = None
    source: str = ""


@dataclass(frozen=True)
class AlternativeReq:
    """At least one child must be satisfied."""
    children: Tuple['RequirementNode', ...]
    source: str = ""

    def __post_init__(self):
        if len(self.children) < 2:
            raise ValueError(f"alternative group needs at least 2 requirements, got {len(self.children)}")


@dataclass(frozen=True)
class BindingReq:
    """Bind ``name`` to the inferred return type of ``operation`` for later requirements."""
    name: str
    operation: str
    params: Tuple[Expression, ...]
    source: str = ""


RequirementNode = Union[MethodReq, SubtypeReq, SequenceReq, ConditionalReq, AlternativeReq, BindingReq]


def walk(nodes: Tuple[RequirementNode, ...]) -> Iterator[RequirementNode]:
    """Depth-first, document-order iteration over a requirement tree."""
    for node in nodes:
        yield node
        if isinstance(node, (SequenceReq, AlternativeReq)):
            yield from walk(node.children)
        elif isinstance(node, ConditionalReq):
            for _, body in node.branches:
                yield body
                yield from walk(body.children)
            if node.else_body is not None:
                yield node.else_body
                yield from walk(node.else_body.children)

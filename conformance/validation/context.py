"""
Per-check validation state.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple
from ..contracts import Contract


class Mode(Enum):
    """How unmet requirements are reported."""
    STRICT = "strict"  # raise on the first violation
    PROBE = "probe"  # return False, used for alternative children


def default_scopes(candidate: type) -> Tuple[str, ...]:
    """The scope owning ``candidate``: the module it was defined in."""
    return (candidate.__module__,)


@dataclass
class ValidationContext:
    """
    State of one conformance check, discarded afterwards.

    ``namespace`` is the evaluation namespace for requirement expressions: the
    contract's names, the candidate bound to ``CANDIDATE`` and any
    ``returntype`` bindings made so far. ``stack`` holds the interfaces
    whose checks are in progress further up, for cycle detection.
    """
    contract: Contract
    candidate: type
    scopes: Tuple[str, ...]
    mode: Mode = Mode.STRICT
    namespace: Dict[str, Any] = field(default_factory=dict, repr=False)
    stack: Tuple[type, ...] = ()

    @classmethod
    def create(cls,
               contract: Contract,
               candidate: type,
               scopes: Optional[Sequence[str]] = None,
               mode: Mode = Mode.STRICT,
               stack: Tuple[type, ...] = ()) -> 'ValidationContext':
        scopes = tuple(scopes) if scopes is not None else default_scopes(candidate)
        return cls(contract=contract, candidate=candidate, scopes=scopes, mode=mode, stack=stack)

    @property
    def strict(self) -> bool:
        return self.mode is Mode.STRICT

    def probe(self) -> 'ValidationContext':
        """Child context for an alternative: probe mode, private bindings."""
        return replace(self, mode=Mode.PROBE, namespace=dict(self.namespace))

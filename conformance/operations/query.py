"""Boundary between the validator and whatever holds the registered operations."""

from abc import ABC, abstractmethod
from typing import Any, Sequence


class MethodRegistryQuery(ABC):
    """
    Read-only view of an operation registry.

    The validator only ever asks two things: whether an operation accepting a
    given argument tuple exists within some scopes, and what such a call is
    expected to return. Any object answering both can stand in for the
    registry, which keeps the conformance core testable in isolation.
    """

    @abstractmethod
    def exists(self, name: str, arg_types: Sequence[Any], scopes: Sequence[str]) -> bool:
        """
        Check for an operation ``name`` whose signature accepts ``arg_types``.

        Args:
            name: Operation name
            arg_types: Argument types the operation must accept
            scopes: Scope tags the search is restricted to
        """

    @abstractmethod
    def infer_return_type(self, name: str, arg_types: Sequence[Any]) -> Any:
        """
        Return type of calling ``name`` with ``arg_types``.

        Raises:
            LookupError: If no registered signature applies
        """

"""
Exceptions for interface declaration and conformance checking.

Two families live here:

- ``MalformedContract``: raised while a requirement block is being compiled.
  These are authoring errors and always surface at declaration time.
- ``InterfaceImplementationError``: raised while a candidate type is being
  validated against a compiled contract. Each subclass carries the data a
  caller needs to understand the violation (interface, operation, argument
  types, return types, scopes).
"""

from typing import Any, Dict, Optional, Sequence, Tuple


def type_name(tp: Any) -> str:
    """Short, readable name for a type used in diagnostics."""
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def signature_str(operation: str, arg_types: Sequence[Any]) -> str:
    """Render ``operation(T1, T2)`` for messages."""
    return f"{operation}({', '.join(type_name(t) for t in arg_types)})"


class InterfaceError(Exception):
    """Root of every error raised by the conformance engine."""


class MalformedContract(InterfaceError, ValueError):
    """
    A requirement block could not be compiled.

    Attributes:
        interface: Name of the interface being declared
        reason: What is wrong with the block
        source: The offending requirement text, when known
    """

    def __init__(self, interface: str, reason: str, source: Optional[str] = None):
        self.interface = interface
        self.reason = reason
        self.source = source
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        msg = f"invalid `{self.interface}` interface: {self.reason}"
        if self.source:
            msg += f": `{self.source}`"
        return msg


class CyclicInterfaceDefinition(MalformedContract):
    """
    Interfaces require each other through interface-typed return obligations.

    Attributes:
        cycle: Interface names along the cycle, first name repeated at the end
    """

    def __init__(self, interface: str, cycle: Sequence[str]):
        self.cycle = tuple(cycle)
        super().__init__(interface, "cyclic interface return obligations: " + " -> ".join(self.cycle))


class InterfaceImplementationError(InterfaceError):
    """
    Base class for violations found while validating a candidate type.

    Attributes:
        interface: Name of the interface being checked
        candidate: The candidate type
    """

    def __init__(self, interface: str, candidate: Any):
        self.interface = interface
        self.candidate = candidate
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        return f"`{type_name(self.candidate)}` does not implement `{self.interface}`"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary with all exception attributes in serializable form
        """
        return {
            "kind": type(self).__name__,
            "interface": self.interface,
            "candidate": type_name(self.candidate),
            "message": str(self),
        }


class MissingOperation(InterfaceImplementationError):
    """
    A required operation has no applicable signature in the searched scopes.

    Attributes:
        operation: Required operation name
        arg_types: Argument types the operation must accept
        scopes: Scope tags that were searched
    """

    def __init__(self,
                 interface: str,
                 candidate: Any,
                 operation: str,
                 arg_types: Tuple[Any, ...],
                 scopes: Tuple[str, ...]):
        self.operation = operation
        self.arg_types = tuple(arg_types)
        self.scopes = tuple(scopes)
        super().__init__(interface, candidate)

    def _build_message(self) -> str:
        return (f"missing `{self.interface}` interface method definition: "
                f"`{signature_str(self.operation, self.arg_types)}`, "
                f"in scope(s): `{', '.join(self.scopes)}`")

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "operation": self.operation,
            "arg_types": [type_name(t) for t in self.arg_types],
            "scopes": list(self.scopes),
        })
        return result


class InvalidReturnType(InterfaceImplementationError):
    """
    A required operation exists but its inferred return type does not meet
    the declared obligation.

    Attributes:
        operation: Required operation name
        arg_types: Argument types the operation was resolved with
        required: Declared return type or interface
        inferred: Return type reported by the operation registry
    """

    def __init__(self,
                 interface: str,
                 candidate: Any,
                 operation: str,
                 arg_types: Tuple[Any, ...],
                 required: Any,
                 inferred: Any):
        self.operation = operation
        self.arg_types = tuple(arg_types)
        self.required = required
        self.inferred = inferred
        super().__init__(interface, candidate)

    def _build_message(self) -> str:
        return (f"invalid return type for `{self.interface}` interface method definition: "
                f"`{signature_str(self.operation, self.arg_types)}`; "
                f"inferred {type_name(self.inferred)}, required {type_name(self.required)}")

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "operation": self.operation,
            "arg_types": [type_name(t) for t in self.arg_types],
            "required": type_name(self.required),
            "inferred": type_name(self.inferred),
        })
        return result


class SubtypingRequired(InterfaceImplementationError):
    """The interface demands nominal ancestry and the candidate lacks it."""

    def _build_message(self) -> str:
        return (f"interface `{self.interface}` requires implementing types to subclass, "
                f"like: `class {type_name(self.candidate)}({self.interface})`")


class AlternativeUnsatisfied(InterfaceImplementationError):
    """
    None of the requirements of an alternative group were met.

    Attributes:
        group: Source text of the whole alternative group, as authored
    """

    def __init__(self, interface: str, candidate: Any, group: str):
        self.group = group
        super().__init__(interface, candidate)

    def _build_message(self) -> str:
        return (f"for `{self.interface}` interface, one of the following method "
                f"definitions is required: `{self.group}`")

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["group"] = self.group
        return result


class UnresolvedObligation(InterfaceImplementationError):
    """
    A type named by a requirement could not be resolved while checking,
    typically a quoted forward reference to an interface never declared.

    Attributes:
        reference: The expression as authored
    """

    def __init__(self, interface: str, candidate: Any, reference: str):
        self.reference = reference
        super().__init__(interface, candidate)

    def _build_message(self) -> str:
        return f"for `{self.interface}` interface, `{self.reference}` cannot be resolved"

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["reference"] = self.reference
        return result


class CyclicObligation(InterfaceImplementationError):
    """
    Checking an interface-typed return led back to an interface whose check
    is already in progress.

    Attributes:
        cycle: Interface names along the cycle, first name repeated at the end
    """

    def __init__(self, interface: str, candidate: Any, cycle: Sequence[str]):
        self.cycle = tuple(cycle)
        super().__init__(interface, candidate)

    def _build_message(self) -> str:
        return (f"cyclic interface return obligations while checking "
                f"`{type_name(self.candidate)}`: " + " -> ".join(self.cycle))

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["cycle"] = list(self.cycle)
        return result

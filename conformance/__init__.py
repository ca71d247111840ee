"""Interface conformance checking for Python types."""

from .api import (
    assert_implements, conforms_to, define_interface, implements, interface,
    interface_registry, is_interface_type, operation_registry, register_methods, register_operation,
)
from .contracts import Contract, ContractCompiler
from .exceptions import (
    AlternativeUnsatisfied, CyclicInterfaceDefinition, CyclicObligation, InterfaceError,
    InterfaceImplementationError, InvalidReturnType, MalformedContract,
    MissingOperation, SubtypingRequired, UnresolvedObligation,
)
from .interfaces import Interface, InterfaceRegistry
from .operations import MethodRegistryQuery, OperationRegistry
from .validation import Mode

__all__ = [
    'assert_implements', 'conforms_to', 'define_interface', 'implements', 'interface',
    'interface_registry', 'is_interface_type', 'operation_registry', 'register_methods', 'register_operation',
    'Contract', 'ContractCompiler',
    'AlternativeUnsatisfied', 'CyclicInterfaceDefinition', 'CyclicObligation', 'InterfaceError',
    'InterfaceImplementationError', 'InvalidReturnType', 'MalformedContract',
    'MissingOperation', 'SubtypingRequired', 'UnresolvedObligation',
    'Interface', 'InterfaceRegistry', 'MethodRegistryQuery', 'OperationRegistry', 'Mode',
]

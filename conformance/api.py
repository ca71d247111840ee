"""
Process-wide declaration, assertion and query surfaces.

One ``OperationRegistry`` and one ``InterfaceRegistry`` live for the whole
process; the functions here are thin wrappers around them. Code that needs
isolated registries (tests, plugins) can build its own ``InterfaceRegistry``.
"""

from typing import Any, Callable, Mapping, Optional, Sequence, Union
import sys

from .interfaces import InterfaceRegistry
from .operations import OperationRegistry

operation_registry = OperationRegistry()
interface_registry = InterfaceRegistry(operation_registry)

register_operation = operation_registry.register
register_methods = operation_registry.register_methods


def _caller_globals(depth: int = 2) -> Mapping[str, Any]:
    # Same trick namedtuple uses to find the defining module
    return sys._getframe(depth).f_globals


def define_interface(identity: Union[str, type],
                     block: str,
                     alias: Optional[str] = None,
                     namespace: Optional[Mapping[str, Any]] = None) -> type:
    """
    Declare an interface and return its class.

    Names in the requirement block resolve against ``namespace``, by default
    the globals of the calling module.

    Example:
        >>> Shape = define_interface("Shape", '''
        ...     def area(s: Shape) -> float: ...
        ... ''')
    """
    if namespace is None:
        namespace = _caller_globals()
    return interface_registry.define(identity, block, alias=alias, namespace=namespace,
                                     module=namespace.get("__name__"))


def interface(block: str, alias: Optional[str] = None) -> Callable[[type], type]:
    """Class decorator form of ``define_interface``: the class becomes the interface."""
    namespace = _caller_globals()

    def decorate(cls: type) -> type:
        return interface_registry.define(cls, block, alias=alias, namespace=namespace)
    return decorate


def implements(candidate: type, iface: type, scopes: Optional[Sequence[str]] = None) -> bool:
    """Does ``candidate`` implement ``iface``? Never raises a conformance diagnostic."""
    return interface_registry.implements(candidate, iface, scopes)


def assert_implements(candidate: type, iface: type, scopes: Optional[Sequence[str]] = None) -> type:
    """Validate once, record the fact, raise the diagnostic on failure."""
    return interface_registry.assert_implements(candidate, iface, scopes)


def conforms_to(iface: type, scopes: Optional[Sequence[str]] = None) -> Callable[[type], type]:
    """
    Class decorator asserting conformance when the class is created.

    Operations must be registered before the decorator runs, typically by
    stacking it above ``@register_methods``.
    """
    def decorate(cls: type) -> type:
        return interface_registry.assert_implements(cls, iface, scopes)
    return decorate


def is_interface_type(obj: Any) -> bool:
    return interface_registry.is_interface_type(obj)

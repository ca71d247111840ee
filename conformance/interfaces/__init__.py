"""Interface identities and the registry of declared interfaces."""

from .interface import Interface, make_interface
from .registry import InterfaceRegistry

__all__ = ['Interface', 'make_interface', 'InterfaceRegistry']

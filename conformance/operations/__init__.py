"""Operation registry and the query boundary the validator depends on."""

from .query import MethodRegistryQuery
from .registry import OperationRegistry, Signature
from .subtyping import is_subtype

__all__ = ['MethodRegistryQuery', 'OperationRegistry', 'Signature', 'is_subtype']

"""
Subtype-or-equal relation over the types that appear in signatures.

Handles plain classes, ``typing.Any`` (top), ``None`` (as ``NoneType``),
unions (``typing.Union`` and ``X | Y``) and parameterized generics
(``list[int]``), which are treated invariantly in their arguments.
"""

import types
from typing import Any, Sequence, Union, get_args, get_origin

_UNION_ORIGINS = (Union, types.UnionType)


def normalize(tp: Any) -> Any:
    """Map ``None`` to ``NoneType``; leave everything else untouched."""
    return type(None) if tp is None else tp


def is_union(tp: Any) -> bool:
    return get_origin(tp) in _UNION_ORIGINS


def is_subtype(a: Any, b: Any) -> bool:
    """True when every value of type ``a`` is also a value of type ``b``."""
    a, b = normalize(a), normalize(b)
    if b is Any or a == b:
        return True
    if a is Any:
        return False
    if is_union(a):
        return all(is_subtype(member, b) for member in get_args(a))
    if is_union(b):
        return any(is_subtype(a, member) for member in get_args(b))

    origin_a, origin_b = get_origin(a) or a, get_origin(b) or b
    if not (isinstance(origin_a, type) and isinstance(origin_b, type)):
        return False
    if not issubclass(origin_a, origin_b):
        return False
    # Bare ``list`` accepts any ``list[...]``; parameterized targets are invariant
    args_b = get_args(b)
    return not args_b or get_args(a) == args_b


def tuple_is_subtype(a: Sequence[Any], b: Sequence[Any]) -> bool:
    """Element-wise ``is_subtype`` for argument tuples of equal arity."""
    return len(a) == len(b) and all(is_subtype(x, y) for x, y in zip(a, b))

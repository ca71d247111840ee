"""
Interface identities.
"""

from typing import Optional


class Interface:
    """
    Base class of interfaces declared by name.

    An interface is just a class: candidates that must satisfy an
    ``issubclass(self)`` requirement subclass it directly. Interfaces may also
    be declared on existing classes, which then need not derive from this one.
    """


def make_interface(name: str, module: Optional[str] = None, doc: Optional[str] = None) -> type:
    """
    Create a fresh interface class called ``name``.

    Args:
        name: Class name; must be an identifier
        module: Value for ``__module__`` (the declaring module)
        doc: Docstring, usually the requirement block
    """
    if not name.isidentifier():
        raise ValueError(f"invalid interface name: {name!r}")
    namespace = {"__doc__": doc}
    if module is not None:
        namespace["__module__"] = module
    return type(name, (Interface,), namespace)

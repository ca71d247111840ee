"""
Operation registry: a symbol table mapping operation names to the
signatures registered for them, each tagged with the scope it lives in.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import inspect
import logging
import threading
import typing
import warnings

from .query import MethodRegistryQuery
from .subtyping import normalize, tuple_is_subtype
from ..exceptions import signature_str, type_name

logger = logging.getLogger(__name__)

_UNSUPPORTED_KINDS = (
    inspect.Parameter.VAR_POSITIONAL,
    inspect.Parameter.KEYWORD_ONLY,
    inspect.Parameter.VAR_KEYWORD,
)


@dataclass(frozen=True)
class Signature:
    """
    One registered method of an operation.

    ``params`` and ``returns`` use ``typing.Any`` for unannotated positions.
    """
    name: str
    params: Tuple[Any, ...]
    returns: Any
    scope: str
    func: Optional[Callable] = field(default=None, compare=False, repr=False)

    @property
    def arity(self) -> int:
        return len(self.params)

    def accepts(self, arg_types: Sequence[Any]) -> bool:
        """True when every argument type is a subtype of the parameter type."""
        return tuple_is_subtype(arg_types, self.params)

    def __str__(self) -> str:
        return f"{signature_str(self.name, self.params)} -> {type_name(self.returns)} [{self.scope}]"


class OperationRegistry(MethodRegistryQuery):
    """
    Registry of operations available to conformance checks.

    Operations are plain callables registered under a name, one signature per
    accepted arity. Registration is append-only: an identical signature in the
    same scope replaces the previous one (with a warning) but nothing is ever
    removed.
    """

    def __init__(self):
        self._signatures: Dict[str, List[Signature]] = {}
        self._lock = threading.Lock()

    def register(self,
                 func: Optional[Callable] = None,
                 *,
                 name: Optional[str] = None,
                 scope: Optional[str] = None,
                 returns: Any = None) -> Callable:
        """
        Register ``func`` as an operation; usable bare or as a decorator factory.

        Parameter types are read from annotations. A parameter with a default
        makes the operation callable at several arities, so one signature is
        recorded per arity.

        Args:
            func: The implementation
            name: Operation name (default: ``func.__name__``)
            scope: Scope tag (default: ``func.__module__``)
            returns: Declared return type overriding the return annotation

        Returns:
            ``func`` unchanged, so the decorator can be stacked
        """
        def decorate(f: Callable) -> Callable:
            self._register_function(f, name or f.__name__, scope or f.__module__, returns)
            return f

        if func is None:
            return decorate
        return decorate(func)

    def register_methods(self, cls: Optional[type] = None, *, scope: Optional[str] = None):
        """
        Register the public methods defined in a class body as operations.

        The first parameter of an instance method is typed as ``cls``, so
        ``Circle.area(self) -> float`` becomes the operation ``area(Circle) -> float``.
        Static methods are registered as they are; class methods, properties
        and names starting with an underscore are skipped.

        Returns:
            ``cls`` unchanged, so this works as a class decorator
        """
        def decorate(klass: type) -> type:
            tag = scope or klass.__module__
            for attr, value in vars(klass).items():
                if attr.startswith("_"):
                    continue
                if isinstance(value, staticmethod):
                    self._register_function(value.__func__, attr, tag, None)
                elif inspect.isfunction(value):
                    self._register_function(value, attr, tag, None, self_type=klass)
            return klass

        if cls is None:
            return decorate
        return decorate(cls)

    def _register_function(self,
                           f: Callable,
                           op_name: str,
                           scope: str,
                           returns: Any,
                           self_type: Optional[type] = None):
        hints = typing.get_type_hints(f)
        params = []
        required = 0
        for i, param in enumerate(inspect.signature(f).parameters.values()):
            if param.kind in _UNSUPPORTED_KINDS:
                raise TypeError(
                    f"operation `{op_name}` has unsupported parameter `{param}`; "
                    f"only positional parameters can be registered")
            if i == 0 and self_type is not None:
                params.append(self_type)
            else:
                params.append(hints.get(param.name, Any))
            if param.default is inspect.Parameter.empty:
                required += 1

        declared = returns if returns is not None else hints.get("return", Any)
        for arity in range(required, len(params) + 1):
            self.add(op_name, params[:arity], declared, scope=scope, func=f)

    def add(self,
            name: str,
            params: Iterable[Any],
            returns: Any = Any,
            *,
            scope: str,
            func: Optional[Callable] = None) -> Signature:
        """Record one explicit signature for ``name``."""
        sig = Signature(name=name,
                        params=tuple(normalize(p) for p in params),
                        returns=normalize(returns),
                        scope=scope,
                        func=func)
        with self._lock:
            existing = list(self._signatures.get(name, ()))
            for i, old in enumerate(existing):
                if old.params == sig.params and old.scope == sig.scope:
                    warnings.warn(
                        f"operation signature `{signature_str(name, sig.params)}` "
                        f"in scope `{scope}` overwritten",
                        RuntimeWarning,
                        stacklevel=2,
                    )
                    existing[i] = sig
                    break
            else:
                existing.append(sig)
            self._signatures[name] = existing

        logger.debug("Registered operation %s", sig)
        return sig

    def signatures(self, name: str, scopes: Optional[Sequence[str]] = None) -> List[Signature]:
        """Signatures registered for ``name``, optionally restricted to ``scopes``."""
        sigs = self._signatures.get(name, [])
        if scopes is None:
            return list(sigs)
        return [sig for sig in sigs if sig.scope in scopes]

    def names(self) -> List[str]:
        return sorted(self._signatures)

    def __contains__(self, name: str) -> bool:
        return name in self._signatures

    def exists(self, name: str, arg_types: Sequence[Any], scopes: Optional[Sequence[str]] = None) -> bool:
        """
        Check for an applicable signature of ``name``.

        ``scopes=None`` searches every scope.
        """
        arg_types = tuple(normalize(t) for t in arg_types)
        return any(sig.accepts(arg_types) for sig in self.signatures(name, scopes))

    def infer_return_type(self, name: str, arg_types: Sequence[Any]) -> Any:
        """
        Declared return of the most specific applicable signature.

        Ties between equally specific signatures go to the one registered first.
        """
        arg_types = tuple(normalize(t) for t in arg_types)
        applicable = [sig for sig in self.signatures(name) if sig.accepts(arg_types)]
        if not applicable:
            raise LookupError(f"no operation matching `{signature_str(name, arg_types)}`")

        best = applicable[0]
        for sig in applicable[1:]:
            if tuple_is_subtype(sig.params, best.params) and not tuple_is_subtype(best.params, sig.params):
                best = sig
        return best.returns

    def __str__(self) -> str:
        count = sum(len(sigs) for sigs in self._signatures.values())
        return f"OperationRegistry({len(self._signatures)} operations, {count} signatures)"

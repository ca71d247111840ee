"""
Validator executor: interprets a contract's requirement tree against a
candidate type.

Strict mode raises the first violation met while walking the tree in
document order. Probe mode, used for the children of an alternative group,
answers with a boolean instead. ``SubtypingRequired`` is the exception: a
missing nominal ancestry is fatal in both modes.
"""

from typing import Any, Optional, Sequence, Tuple
import logging

from .context import Mode, ValidationContext
from ..contracts import (
    CANDIDATE, AlternativeReq, BindingReq, ConditionalReq, Contract, Expression,
    MethodReq, SequenceReq, SubtypeReq,
)
from ..contracts.compiler import BASE_NAMES
from ..exceptions import (
    AlternativeUnsatisfied, CyclicObligation, InterfaceImplementationError, InvalidReturnType,
    MissingOperation, SubtypingRequired, UnresolvedObligation,
)
from ..operations import MethodRegistryQuery, is_subtype

logger = logging.getLogger(__name__)


class ValidatorExecutor:
    """
    Walks requirement trees.

    Args:
        operations: Registry answering ``exists`` / ``infer_return_type``
        interfaces: Interface registry, used for interface-typed return
            obligations (``is_interface_type`` and ``implements``)
    """

    def __init__(self, operations: MethodRegistryQuery, interfaces):
        self.operations = operations
        self.interfaces = interfaces
        self._handlers = {
            MethodReq: self._method,
            SubtypeReq: self._subtype,
            ConditionalReq: self._conditional,
            AlternativeReq: self._alternative,
            SequenceReq: self._sequence,
            BindingReq: self._binding,
        }

    def run(self,
            contract: Contract,
            candidate: type,
            scopes: Optional[Sequence[str]] = None,
            mode: Mode = Mode.STRICT,
            stack: Tuple[type, ...] = ()) -> bool:
        """
        Validate ``candidate`` against ``contract``.

        Returns:
            True when every requirement holds; False only in probe mode

        Raises:
            InterfaceImplementationError: In strict mode, on the first violation
        """
        ctx = ValidationContext.create(contract, candidate, scopes, mode, stack)
        ctx.namespace.update(BASE_NAMES)
        ctx.namespace.update(contract.namespace)
        ctx.namespace[CANDIDATE] = candidate
        ctx.namespace["has_operation"] = lambda name, *arg_types: self.operations.exists(name, arg_types, ctx.scopes)

        logger.debug("Checking %s against %s in %s mode (scopes: %s)",
                     candidate.__qualname__, contract.name, mode.value, ", ".join(ctx.scopes))
        return self._run_all(contract.requirements, ctx)

    def validate(self, node, ctx: ValidationContext) -> bool:
        return self._handlers[type(node)](node, ctx)

    def _run_all(self, nodes, ctx: ValidationContext) -> bool:
        for node in nodes:
            if not self.validate(node, ctx):
                return False
        return True

    def _violation(self, ctx: ValidationContext, error: InterfaceImplementationError) -> bool:
        if ctx.strict:
            raise error
        logger.debug("Probe failed: %s", error)
        return False

    def _resolve(self, expr: Expression, ctx: ValidationContext) -> Any:
        try:
            return expr.evaluate(ctx.namespace)
        except NameError as e:
            raise UnresolvedObligation(ctx.contract.name, ctx.candidate, expr.text) from e

    def _infer(self, name: str, arg_types: Tuple[Any, ...]) -> Any:
        try:
            return self.operations.infer_return_type(name, arg_types)
        except LookupError:
            # Nothing inferable: only an `Any` obligation is met
            return Any

    def _arg_types(self, params, ctx: ValidationContext) -> Tuple[Any, ...]:
        return tuple(self._resolve(p.constraint, ctx) if p.constraint is not None else Any for p in params)

    def _method(self, node: MethodReq, ctx: ValidationContext) -> bool:
        arg_types = self._arg_types(node.params, ctx)
        if not self.operations.exists(node.name, arg_types, ctx.scopes):
            return self._violation(ctx, MissingOperation(
                ctx.contract.name, ctx.candidate, node.name, arg_types, ctx.scopes))

        if node.returns is None:
            return True

        inferred = self._infer(node.name, arg_types)
        required = self._resolve(node.returns.declared, ctx)
        if self.interfaces.is_interface_type(required):
            satisfied = self._conforms(inferred, required, ctx)
        else:
            satisfied = is_subtype(inferred, required)

        if not satisfied:
            return self._violation(ctx, InvalidReturnType(
                ctx.contract.name, ctx.candidate, node.name, arg_types, required, inferred))
        return True

    def _conforms(self, inferred: Any, required: type, ctx: ValidationContext) -> bool:
        if not isinstance(inferred, type):
            return False
        try:
            return self.interfaces.check(inferred, required, stack=ctx.stack)
        except CyclicObligation:
            raise
        except InterfaceImplementationError as e:
            logger.debug("Return type %s does not implement %s: %s", inferred.__qualname__, required.__name__, e)
            return False

    def _subtype(self, node: SubtypeReq, ctx: ValidationContext) -> bool:
        if issubclass(ctx.candidate, ctx.contract.identity):
            return True
        # Nominal ancestry cannot be probed away: raise in every mode
        raise SubtypingRequired(ctx.contract.name, ctx.candidate)

    def _conditional(self, node: ConditionalReq, ctx: ValidationContext) -> bool:
        for predicate, body in node.branches:
            if self._resolve(predicate, ctx):
                return self._sequence(body, ctx)
        if node.else_body is not None:
            return self._sequence(node.else_body, ctx)
        return True

    def _alternative(self, node: AlternativeReq, ctx: ValidationContext) -> bool:
        # Registry queries are pure, so stopping at the first success is safe
        for child in node.children:
            if self.validate(child, ctx.probe()):
                return True
        return self._violation(ctx, AlternativeUnsatisfied(ctx.contract.name, ctx.candidate, node.source))

    def _sequence(self, node: SequenceReq, ctx: ValidationContext) -> bool:
        return self._run_all(node.children, ctx)

    def _binding(self, node: BindingReq, ctx: ValidationContext) -> bool:
        arg_types = tuple(self._resolve(p, ctx) for p in node.params)
        if not self.operations.exists(node.operation, arg_types, ctx.scopes):
            return self._violation(ctx, MissingOperation(
                ctx.contract.name, ctx.candidate, node.operation, arg_types, ctx.scopes))
        ctx.namespace[node.name] = self._infer(node.operation, arg_types)
        return True


class ContractValidator:
    """A reusable conformance procedure bound to one compiled contract."""

    def __init__(self, contract: Contract, executor: ValidatorExecutor):
        self.contract = contract
        self.executor = executor

    def __call__(self,
                 candidate: type,
                 scopes: Optional[Sequence[str]] = None,
                 mode: Mode = Mode.STRICT,
                 stack: Tuple[type, ...] = ()) -> bool:
        return self.executor.run(self.contract, candidate, scopes, mode, stack)

    def __repr__(self) -> str:
        return f"ContractValidator({self.contract.name})"

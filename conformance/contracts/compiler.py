"""
Contract compiler: turns an authored requirement block into a frozen Contract.

A requirement block is Python source, parsed with ``ast`` but never executed.
Each top-level statement is one requirement:

    def area(s: Shape) -> float: ...      # operation + return obligation
    def draw(s: Shape, canvas): ...       # operation, second position unconstrained
    issubclass(self)                      # candidate must subclass the interface
    if issubclass(Shape, Sized):          # conditional group (elif / else allowed)
        def length(s: Shape) -> int: ...
    with any_of:                          # at least one child must hold
        def render(s: Shape): ...
        with all_of:                      # several requirements as one child
            def to_svg(s: Shape) -> str: ...
            def to_png(s: Shape) -> bytes: ...
    Key = returntype(key, Shape)          # bind an inferred return type
    def lookup(s: Shape, k: Key): ...

The interface name (and the optional alias) stands for the candidate type.
Inside every expression it is renamed to ``CANDIDATE`` before the expression
is compiled to a code object, so the block is parsed exactly once.
"""

from contextlib import contextmanager
from typing import Any, List, Mapping, Optional, Set, Tuple
import ast
import builtins
import copy
import logging
import textwrap

from .contract import Contract
from .requirements import (
    CANDIDATE, AlternativeReq, BindingReq, ConditionalReq, Expression, MethodReq,
    ParamConstraint, RequirementNode, ReturnObligation, SequenceReq, SubtypeReq,
)
from ..exceptions import MalformedContract

logger = logging.getLogger(__name__)

SUBTYPE_MARKER = "issubclass"
SELF_NAME = "self"
ANY_OF = "any_of"
ALL_OF = "all_of"
BINDING_CALL = "returntype"

# Always visible to requirement expressions, next to builtins
BASE_NAMES = {"Any": Any}
# Helpers the validator injects into the evaluation namespace of predicates
CONTEXT_NAMES = frozenset({CANDIDATE, "has_operation"})


class _CandidateRenamer(ast.NodeTransformer):
    """Rewrite every load of the placeholder (or alias) to ``CANDIDATE``."""

    def __init__(self, names: Set[str]):
        self.names = names

    def visit_Name(self, node: ast.Name) -> ast.Name:
        if node.id in self.names:
            return ast.copy_location(ast.Name(id=CANDIDATE, ctx=node.ctx), node)
        return node


def _free_names(tree: ast.AST) -> Set[str]:
    loaded, stored = set(), set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Name):
            (loaded if isinstance(node.ctx, ast.Load) else stored).add(node.id)
        elif isinstance(node, ast.arg):
            stored.add(node.arg)
    return loaded - stored


def _is_docstring(stmt: ast.stmt) -> bool:
    return (isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant)
            and isinstance(stmt.value.value, str))


def _is_stub_body(body: List[ast.stmt]) -> bool:
    """A required operation's body may only be ``...``, ``pass`` or a docstring."""
    for stmt in body:
        if isinstance(stmt, ast.Pass) or _is_docstring(stmt):
            continue
        if isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and stmt.value.value is Ellipsis:
            continue
        return False
    return True


class ContractCompiler:
    """
    Compiles one requirement block.

    Args:
        identity: The interface class the block describes
        block: Requirement source text
        alias: Optional extra name for the candidate inside the block
        namespace: Names visible to expressions (e.g. the declaring module's
            globals); builtins and ``Any`` are always visible
    """

    def __init__(self,
                 identity: type,
                 block: str,
                 alias: Optional[str] = None,
                 namespace: Optional[Mapping[str, Any]] = None):
        self.identity = identity
        self.name = identity.__name__
        self.alias = alias
        self.source = textwrap.dedent(block).strip("\n")
        self.namespace = namespace if namespace is not None else {}
        self._placeholders = {self.name} | ({alias} if alias else set())
        # Binding names visible in the enclosing blocks, innermost last
        self._scopes: List[Set[str]] = [set()]
        self._bound: Set[str] = set()

        if alias is not None and (not alias.isidentifier() or alias in (CANDIDATE, SELF_NAME)):
            raise MalformedContract(self.name, "invalid placeholder alias", alias)

    def compile(self) -> Contract:
        """
        Parse and classify the block.

        Raises:
            MalformedContract: On any statement that is not a requirement form
        """
        try:
            tree = ast.parse(self.source)
        except SyntaxError as e:
            raise MalformedContract(self.name, f"syntax error in requirement block: {e.msg} (line {e.lineno})") from e

        requirements = self._compile_body(tree.body)
        logger.debug("Compiled %d top-level requirement(s) for %s", len(requirements), self.name)
        return Contract(
            identity=self.identity,
            placeholder=self.name,
            requirements=requirements,
            source=self.source,
            alias=self.alias,
            namespace=self.namespace,
        )

    def _segment(self, node: ast.AST) -> str:
        return ast.get_source_segment(self.source, node) or ast.unparse(node)

    @contextmanager
    def _scope(self):
        """A nested block: bindings made inside are not visible after it."""
        self._scopes.append(set())
        try:
            yield
        finally:
            self._scopes.pop()

    def _compile_body(self, stmts: List[ast.stmt], scope_each: bool = False) -> Tuple[RequirementNode, ...]:
        nodes = []
        for stmt in stmts:
            if _is_docstring(stmt) or isinstance(stmt, ast.Pass):
                continue
            if scope_each:
                with self._scope():
                    nodes.append(self._compile_statement(stmt))
            else:
                nodes.append(self._compile_statement(stmt))
        return tuple(nodes)

    def _compile_block(self, stmts: List[ast.stmt]) -> Tuple[RequirementNode, ...]:
        with self._scope():
            return self._compile_body(stmts)

    def _compile_statement(self, stmt: ast.stmt) -> RequirementNode:
        if isinstance(stmt, ast.FunctionDef):
            return self._method(stmt)
        if self._is_subtype_marker(stmt):
            return SubtypeReq(source=self._segment(stmt))
        if isinstance(stmt, ast.If):
            return self._conditional(stmt)
        if isinstance(stmt, ast.With):
            return self._group(stmt)
        if isinstance(stmt, ast.Assign):
            return self._binding(stmt)
        raise MalformedContract(self.name, "unsupported requirement", self._segment(stmt))

    @staticmethod
    def _is_subtype_marker(stmt: ast.stmt) -> bool:
        if not (isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Call)):
            return False
        call = stmt.value
        return (isinstance(call.func, ast.Name) and call.func.id == SUBTYPE_MARKER
                and len(call.args) == 1 and not call.keywords
                and isinstance(call.args[0], ast.Name) and call.args[0].id == SELF_NAME)

    def _method(self, node: ast.FunctionDef) -> MethodReq:
        header = f"def {node.name}({ast.unparse(node.args)})"
        if node.returns is not None:
            header += f" -> {ast.unparse(node.returns)}"
        args = node.args
        if args.posonlyargs or args.vararg or args.kwonlyargs or args.kwarg or args.defaults:
            raise MalformedContract(self.name, f"invalid argument for method `{node.name}`", header)
        if node.decorator_list or not _is_stub_body(node.body):
            raise MalformedContract(self.name, f"method `{node.name}` must be a bare stub", header)
        if not args.args:
            raise MalformedContract(self.name, "method with zero arguments", f"{node.name}()")

        params = tuple(
            ParamConstraint(arg.arg, self._expression(arg.annotation) if arg.annotation is not None else None)
            for arg in args.args
        )
        returns = ReturnObligation(self._expression(node.returns)) if node.returns is not None else None
        return MethodReq(name=node.name, params=params, returns=returns, source=header)

    def _conditional(self, node: ast.If) -> ConditionalReq:
        source = self._segment(node)
        branches = []
        while True:
            predicate = self._expression(node.test, forward_refs=False)
            branches.append((predicate, SequenceReq(self._compile_block(node.body), source=self._segment(node.test))))
            orelse = node.orelse
            # ``elif`` and ``else: if`` parse identically and mean the same thing
            if len(orelse) == 1 and isinstance(orelse[0], ast.If):
                node = orelse[0]
                continue
            break
        else_body = SequenceReq(self._compile_block(orelse), source="else") if orelse else None
        return ConditionalReq(branches=tuple(branches), else_body=else_body, source=source)

    def _group(self, node: ast.With) -> RequirementNode:
        source = self._segment(node)
        if len(node.items) != 1:
            raise MalformedContract(self.name, "requirement groups take exactly one of `any_of`, `all_of`", source)
        item = node.items[0]
        kind = item.context_expr.id if isinstance(item.context_expr, ast.Name) else None
        if kind not in (ANY_OF, ALL_OF) or item.optional_vars is not None:
            raise MalformedContract(self.name, "requirement groups take exactly one of `any_of`, `all_of`", source)

        if kind == ALL_OF:
            return SequenceReq(self._compile_block(node.body), source=source)
        # Alternatives run on private copies of the bindings, so each child is its own block
        children = self._compile_body(node.body, scope_each=True)
        if len(children) < 2:
            raise MalformedContract(self.name, "alternative group needs at least two requirements", source)
        return AlternativeReq(children, source=source)

    def _binding(self, node: ast.Assign) -> BindingReq:
        source = self._segment(node)
        if len(node.targets) != 1 or not isinstance(node.targets[0], ast.Name):
            raise MalformedContract(self.name, "invalid assignment", source)
        target = node.targets[0].id
        if target in self._placeholders or target in (CANDIDATE, SELF_NAME):
            raise MalformedContract(self.name, f"invalid binding name `{target}`; must use another name", source)

        call = node.value
        if not (isinstance(call, ast.Call) and isinstance(call.func, ast.Name)
                and call.func.id == BINDING_CALL and not call.keywords
                and call.args and isinstance(call.args[0], ast.Name)):
            raise MalformedContract(
                self.name, f"may only assign the result of `{BINDING_CALL}(operation, T...)`", source)

        operation = call.args[0].id
        if len(call.args) == 1:
            raise MalformedContract(self.name, "method with zero arguments", f"{operation}()")
        params = tuple(self._expression(arg) for arg in call.args[1:])
        self._scopes[-1].add(target)
        self._bound.add(target)
        return BindingReq(name=target, operation=operation, params=params, source=source)

    def _expression(self, node: ast.expr, forward_refs: bool = True) -> Expression:
        """
        Compile a type or predicate expression.

        A string constant is a forward reference: its contents are parsed now
        and resolved when the contract is validated.
        """
        lazy = forward_refs and isinstance(node, ast.Constant) and isinstance(node.value, str)
        if lazy:
            try:
                node = ast.parse(node.value.strip(), mode="eval").body
            except SyntaxError as e:
                raise MalformedContract(self.name, "invalid forward reference", node.value) from e

        text = ast.unparse(node)
        renamed = _CandidateRenamer(self._placeholders).visit(copy.deepcopy(node))
        names = _free_names(renamed)
        if not lazy:
            unknown = sorted(n for n in names if not self._is_known(n))
            if unknown:
                if unknown[0] in self._bound:
                    raise MalformedContract(
                        self.name, f"binding `{unknown[0]}` is not visible outside the block that makes it", text)
                raise MalformedContract(self.name, f"unknown name `{unknown[0]}`", text)

        tree = ast.fix_missing_locations(ast.Expression(body=renamed))
        code = compile(tree, f"<interface {self.name}>", "eval")
        return Expression(text=text, code=code, names=frozenset(names), lazy=lazy)

    def _is_known(self, name: str) -> bool:
        return (name in CONTEXT_NAMES or name in BASE_NAMES or any(name in scope for scope in self._scopes)
                or name in self.namespace or hasattr(builtins, name))

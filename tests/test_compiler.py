"""
Tests for the contract compiler.

Covers classification of every requirement form, placeholder substitution
and the declaration-time MalformedContract failures.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
from conformance.contracts import (
    CANDIDATE, AlternativeReq, BindingReq, ConditionalReq, ContractCompiler,
    MethodReq, SequenceReq, SubtypeReq,
)
from conformance.exceptions import MalformedContract


class Shape:
    pass


class Canvas:
    pass


NAMESPACE = {"Canvas": Canvas}


def compile_block(block, alias=None, namespace=NAMESPACE):
    return ContractCompiler(Shape, block, alias=alias, namespace=namespace).compile()


def test_call_form():
    """Bare parameters are unconstrained, annotated ones carry a constraint"""
    contract = compile_block("""
        def draw(s: Shape, canvas): ...
    """)
    (req,) = contract.requirements
    assert isinstance(req, MethodReq)
    assert req.name == "draw"
    assert [p.name for p in req.params] == ["s", "canvas"]
    assert req.params[1].constraint is None
    assert req.returns is None


def test_placeholder_is_renamed():
    """The interface name inside a constraint becomes the canonical candidate symbol"""
    contract = compile_block("""
        def draw(s: Shape, c: Canvas): ...
    """)
    first, second = contract.requirements[0].params
    assert first.constraint.names == frozenset({CANDIDATE})
    assert first.constraint.mentions_candidate
    assert first.constraint.text == "Shape"
    assert not second.constraint.mentions_candidate

    class Circle:
        pass
    assert first.constraint.evaluate({CANDIDATE: Circle}) is Circle


def test_alias_is_renamed():
    contract = compile_block("""
        def area(s: S) -> float: ...
    """, alias="S")
    req = contract.requirements[0]
    assert req.params[0].constraint.mentions_candidate
    assert contract.alias == "S"


def test_annotated_call_form():
    contract = compile_block("""
        def area(s: Shape) -> float: ...
    """)
    req = contract.requirements[0]
    assert req.returns is not None
    assert req.returns.declared.text == "float"
    assert not req.returns.declared.lazy
    assert req.source == "def area(s: Shape) -> float"


def test_forward_reference_is_lazy():
    """Quoted return types are parsed now but may name things declared later"""
    contract = compile_block("""
        def outline(s: Shape) -> "Path": ...
    """)
    declared = contract.requirements[0].returns.declared
    assert declared.lazy
    assert declared.text == "Path"
    assert [ref.text for ref in contract.return_references()] == ["Path"]


def test_subtype_form():
    contract = compile_block("""
        issubclass(self)
        def area(s: Shape): ...
    """)
    assert isinstance(contract.requirements[0], SubtypeReq)
    assert isinstance(contract.requirements[1], MethodReq)


def test_conditional_form():
    contract = compile_block("""
        if issubclass(Shape, Canvas):
            def paint(s: Shape): ...
        elif hasattr(Shape, "radius"):
            def radius(s: Shape) -> float: ...
        else:
            def corners(s: Shape) -> int: ...
    """)
    (req,) = contract.requirements
    assert isinstance(req, ConditionalReq)
    assert len(req.branches) == 2
    assert isinstance(req.branches[0][1], SequenceReq)
    assert req.branches[0][0].mentions_candidate
    assert req.else_body is not None
    assert req.else_body.children[0].name == "corners"


def test_conditional_without_else():
    contract = compile_block("""
        if issubclass(Shape, Canvas):
            def paint(s: Shape): ...
    """)
    assert contract.requirements[0].else_body is None


def test_alternative_form():
    contract = compile_block("""
        with any_of:
            def render(s: Shape): ...
            with all_of:
                def to_svg(s: Shape) -> str: ...
                def to_png(s: Shape) -> bytes: ...
    """)
    (req,) = contract.requirements
    assert isinstance(req, AlternativeReq)
    assert isinstance(req.children[0], MethodReq)
    assert isinstance(req.children[1], SequenceReq)
    assert [c.name for c in req.children[1].children] == ["to_svg", "to_png"]
    assert req.source.startswith("with any_of:")
    assert "to_png" in req.source


def test_binding_form():
    contract = compile_block("""
        Key = returntype(key, Shape)
        def lookup(s: Shape, k: Key): ...
    """)
    binding, method = contract.requirements
    assert isinstance(binding, BindingReq)
    assert binding.name == "Key"
    assert binding.operation == "key"
    assert method.params[1].constraint.names == frozenset({"Key"})


def test_docstrings_and_pass_are_skipped():
    contract = compile_block('''
        """Things that can be drawn."""
        pass
        def draw(s: Shape): ...
    ''')
    assert len(contract.requirements) == 1


def test_operations_listing():
    contract = compile_block("""
        def area(s: Shape) -> float: ...
        with any_of:
            def render(s: Shape): ...
            def area(s: Shape, scale: float): ...
    """)
    assert contract.operations() == ["area", "render"]


def test_zero_parameter_method_rejected():
    """A required operation must name at least one parameter"""
    with pytest.raises(MalformedContract) as exc_info:
        compile_block("""
            def area(): ...
        """)
    assert "zero arguments" in str(exc_info.value)
    assert "area()" in str(exc_info.value)


def test_zero_parameter_binding_rejected():
    with pytest.raises(MalformedContract):
        compile_block("""
            R = returntype(area)
        """)


@pytest.mark.parametrize("block", [
    "def area(s: Shape, *rest): ...",
    "def area(s: Shape, scale=1.0): ...",
    "def area(s: Shape, *, scale): ...",
    "def area(s: Shape, **options): ...",
])
def test_invalid_arguments_rejected(block):
    with pytest.raises(MalformedContract) as exc_info:
        compile_block(block)
    assert "invalid argument" in str(exc_info.value)


@pytest.mark.parametrize("block", [
    "area(Shape)",
    "x = 1",
    "for s in Shape: pass",
    "import os",
    "with open('f'):\n    def area(s: Shape): ...",
])
def test_unsupported_statements_rejected(block):
    with pytest.raises(MalformedContract):
        compile_block(block)


def test_method_body_must_be_stub():
    with pytest.raises(MalformedContract):
        compile_block("""
            def area(s: Shape):
                return 1.0
        """)


def test_single_alternative_rejected():
    """Alternative groups need at least two requirements"""
    with pytest.raises(MalformedContract):
        compile_block("""
            with any_of:
                def render(s: Shape): ...
        """)


@pytest.mark.parametrize("name", ["Shape", "S", CANDIDATE, "self"])
def test_invalid_binding_names(name):
    with pytest.raises(MalformedContract) as exc_info:
        compile_block(f"""
            {name} = returntype(key, Shape)
        """, alias="S")
    assert "invalid binding name" in str(exc_info.value)


def test_binding_must_use_returntype():
    with pytest.raises(MalformedContract):
        compile_block("""
            Key = type(Shape)
        """)


def test_unknown_name_rejected():
    """Unquoted names must resolve when the interface is declared"""
    with pytest.raises(MalformedContract) as exc_info:
        compile_block("""
            def draw(s: Shape, b: Brush): ...
        """)
    assert "Brush" in str(exc_info.value)


def test_syntax_error_is_malformed_contract():
    with pytest.raises(MalformedContract):
        compile_block("""
            def area(s: Shape) -> : ...
        """)


def test_contract_is_frozen():
    contract = compile_block("""
        def area(s: Shape): ...
    """)
    with pytest.raises(AttributeError):
        contract.requirements = ()
    with pytest.raises(AttributeError):
        contract.requirements[0].name = "perimeter"


@pytest.mark.parametrize("block", [
    # made inside one alternative, used after the group
    """
    with any_of:
        Key = returntype(key, Shape)
        def other(s: Shape): ...
    def lookup(s: Shape, k: Key): ...
    """,
    # made inside one alternative, used by a sibling alternative
    """
    with any_of:
        Key = returntype(key, Shape)
        def lookup(s: Shape, k: Key): ...
    """,
    # made inside a conditional branch, used after the conditional
    """
    if issubclass(Shape, Canvas):
        Key = returntype(key, Shape)
    def lookup(s: Shape, k: Key): ...
    """,
    # made inside the taken branch, used by the else branch
    """
    if issubclass(Shape, Canvas):
        Key = returntype(key, Shape)
    else:
        def lookup(s: Shape, k: Key): ...
    """,
])
def test_binding_not_visible_outside_its_block(block):
    with pytest.raises(MalformedContract) as exc_info:
        compile_block(block)
    assert "binding `Key` is not visible" in str(exc_info.value)


def test_binding_visible_in_its_block_and_nested_blocks():
    contract = compile_block("""
        if issubclass(Shape, Canvas):
            Key = returntype(key, Shape)
            def lookup(s: Shape, k: Key): ...
            with any_of:
                def get(s: Shape, k: Key): ...
                with all_of:
                    Value = returntype(get, Shape, Key)
                    def put(s: Shape, k: Key, v: Value): ...
    """)
    assert contract.operations() == ["lookup", "get", "put"]


def test_decorated_stub_reported_by_signature():
    """The offending header is the def line, not the decorator"""
    with pytest.raises(MalformedContract) as exc_info:
        compile_block("""
            @staticmethod
            def area(s: Shape) -> float: ...
        """)
    assert exc_info.value.source == "def area(s: Shape) -> float"
    assert "@" not in str(exc_info.value)

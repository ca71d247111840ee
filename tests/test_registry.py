"""
Tests for the interface registry: declaration, lookups and the dependency
graph of interface-typed return obligations.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
from conformance.exceptions import CyclicInterfaceDefinition, CyclicObligation, MalformedContract
from conformance.interfaces import Interface, InterfaceRegistry
from conformance.operations import OperationRegistry

SCOPE = __name__


class Widget:
    pass


def test_define_by_name():
    reg = InterfaceRegistry()
    Shape = reg.define("Shape", """
        def area(s: Shape) -> float: ...
    """, module="geometry")

    assert issubclass(Shape, Interface)
    assert Shape.__name__ == "Shape"
    assert Shape.__module__ == "geometry"
    assert reg.is_interface_type(Shape)
    assert Shape in reg
    assert reg.lookup("Shape") is Shape
    assert reg.contract_for(Shape).operations() == ["area"]
    assert len(reg) == 1
    print(f"✓ {reg}")


def test_define_on_existing_class():
    reg = InterfaceRegistry()

    class Sized:
        """Has a size."""

    assert reg.define(Sized, """
        def size(s: Sized) -> int: ...
    """) is Sized
    assert reg.is_interface_type(Sized)
    assert not issubclass(Sized, Interface)


def test_is_interface_type_rejects_other_objects():
    reg = InterfaceRegistry()
    reg.define("Shape", "def area(s: Shape): ...")
    assert not reg.is_interface_type(Widget)
    assert not reg.is_interface_type("Shape")
    assert not reg.is_interface_type(42)


def test_redefinition_rejected():
    reg = InterfaceRegistry()
    reg.define("Shape", "def area(s: Shape): ...")
    with pytest.raises(MalformedContract) as exc_info:
        reg.define("Shape", "def perimeter(s: Shape): ...")
    assert "already defined" in str(exc_info.value)
    assert reg.contract_for(reg.lookup("Shape")).operations() == ["area"]


def test_invalid_identities():
    reg = InterfaceRegistry()
    with pytest.raises(MalformedContract):
        reg.define("not a name", "def area(s: Shape): ...")
    with pytest.raises(TypeError):
        reg.define(42, "def area(s: Shape): ...")


def test_malformed_block_registers_nothing():
    reg = InterfaceRegistry()
    with pytest.raises(MalformedContract):
        reg.define("Shape", """
            def area(): ...
        """)
    assert reg.lookup("Shape") is None
    assert len(reg) == 0


def test_check_argument_types():
    reg = InterfaceRegistry()
    Shape = reg.define("Shape", "def area(s: Shape): ...")
    with pytest.raises(TypeError):
        reg.implements(Widget, Widget)
    with pytest.raises(TypeError):
        reg.implements(Widget(), Shape)


def test_declared_interfaces_visible_by_name():
    """Later blocks may name earlier interfaces without passing a namespace"""
    reg = InterfaceRegistry()
    Point = reg.define("Point", "def coords(p: Point) -> tuple: ...")
    Polygon = reg.define("Polygon", """
        def vertex(p: Polygon, i: int) -> Point: ...
    """)
    graph = reg.dependency_graph()
    assert set(graph.nodes) == {"Point", "Polygon"}
    assert list(graph.edges) == [("Polygon", "Point")]
    assert reg.interfaces() == [Point, Polygon]


def test_forward_reference_node_is_undefined():
    reg = InterfaceRegistry()
    reg.define("Tree", """
        def root(t: Tree) -> "Node": ...
        def size(t: Tree) -> int: ...
    """)
    graph = reg.dependency_graph()
    assert graph.nodes["Tree"]["defined"] is True
    assert graph.nodes["Node"]["defined"] is False
    assert "int" not in graph

    reg.define("Node", "def value(n: Node) -> int: ...")
    assert reg.dependency_graph().nodes["Node"]["defined"] is True


def test_cycle_rejected_at_definition():
    """A returns B (forward reference), B returns A: the second declaration fails"""
    reg = InterfaceRegistry()
    reg.define("A", """
        def to_b(a: A) -> "B": ...
    """)
    with pytest.raises(CyclicInterfaceDefinition) as exc_info:
        reg.define("B", """
            def to_a(b: B) -> A: ...
        """)
    err = exc_info.value
    assert isinstance(err, MalformedContract)
    assert set(err.cycle) == {"A", "B"}
    assert err.cycle[0] == err.cycle[-1]

    assert reg.lookup("B") is None
    assert reg.find_cycles() == []


def test_self_return_is_not_a_cycle():
    reg = InterfaceRegistry()
    reg.define("Chain", """
        def next_link(c: Chain) -> Chain: ...
    """)
    assert reg.find_cycles() == []


def test_runtime_cycle_through_binding():
    """A binding may resolve to the interface being checked; that recursion is refused"""
    ops = OperationRegistry()
    reg = InterfaceRegistry(ops)
    Convertible = reg.define("Convertible", """
        Target = returntype(kind, Convertible)
        def convert(c: Convertible) -> Target: ...
    """)
    ops.add("kind", (Widget,), Convertible, scope=SCOPE)
    ops.add("convert", (Widget,), Widget, scope=SCOPE)

    assert reg.implements(Widget, Convertible) is False
    with pytest.raises(CyclicObligation) as exc_info:
        reg.assert_implements(Widget, Convertible)
    assert exc_info.value.cycle == ("Convertible", "Convertible")
    assert not reg.is_registered(Widget, Convertible)

import pytest

from jlsp.config import MODE_ANY, MODE_PREFER_FIELD, MODE_PREFER_METHOD
from jlsp.navigator import (
    collect_local_variables,
    find_member_in_hierarchy,
    find_top_level_class_or_method,
    find_top_level_variable,
    find_top_level_variable_with_type,
    score_overload,
    select_overload,
)
from jlsp.parser import parse_groovy

from conftest import load_fixture


@pytest.fixture(scope="module")
def basics():
    return parse_groovy(load_fixture("basics.groovy"))


def _parse(source: str):
    result = parse_groovy(source)
    return result.model, result.lines


# --- Locals & parameters ---


def test_locals_and_parameters_of_a_script_method(basics):
    method = basics.model.find_enclosing_top_level_method(33)
    found = collect_local_variables(method, basics.lines, 33)

    assert set(found) == {"foo", "rabauke", "f"}
    assert (found["foo"].line, found["foo"].column, found["foo"].kind) == (25, 26, "param")
    assert found["foo"].type_name == "String"
    assert (found["rabauke"].line, found["rabauke"].column, found["rabauke"].kind) == (28, 8, "local")
    assert found["rabauke"].type_name == "def"
    assert (found["f"].line, found["f"].column) == (31, 8)


def test_declaration_split_over_a_line_continuation(basics):
    method = basics.model.find_enclosing_top_level_method(49)
    what = collect_local_variables(method, basics.lines, 49)["what"]
    assert (what.line, what.column) == (47, 4)
    assert what.type_name == "Float"


def test_closure_scope_is_only_visible_inside_the_closure():
    model, lines = _parse(
        """def build() {
    def x = 1
    [1, 2].each { item ->
        def inner = item
        println(inner)
    }
    println(x)
}
"""
    )
    method = model.script_methods[0]

    inside = collect_local_variables(method, lines, 4)
    assert {"x", "item", "inner"} <= set(inside)
    assert (inside["item"].line, inside["item"].column, inside["item"].kind) == (2, 18, "param")
    assert (inside["inner"].line, inside["inner"].column) == (3, 12)

    outside = collect_local_variables(method, lines, 6)
    assert "item" not in outside
    assert "inner" not in outside
    assert "x" in outside


def test_catch_parameter_is_a_local_of_its_handler():
    model, lines = _parse(
        """def risky() {
    try {
        run()
    } catch (Exception e) {
        println(e)
    }
}
"""
    )
    found = collect_local_variables(model.script_methods[0], lines, 4)
    assert found["e"].type_name == "Exception"
    assert found["e"].line == 3


def test_no_method_means_no_locals():
    assert collect_local_variables(None, ["x"], 0) == {}


# --- Script-level variables ---


def test_last_top_level_declaration_wins():
    model, lines = _parse("def x = 1\ndef x = 2\nprintln(x)\n")
    found = find_top_level_variable("x", lines, model)
    assert (found.line, found.column, found.kind) == (1, 4, "variable")
    assert found.type_name is None


def test_typed_search_keeps_the_declared_type():
    model, lines = _parse('String label = "a"\nprintln(label)\n')
    found = find_top_level_variable_with_type("label", lines, model)
    assert (found.line, found.column, found.type_name) == (0, 7, "String")


def test_plain_assignment_counts_as_a_declaration():
    model, lines = _parse("def a = 1\nvoid f() {\n    println(a)\n}\na = 5\n")
    found = find_top_level_variable_with_type("a", lines, model)
    assert (found.line, found.column, found.type_name) == (4, 0, "def")


def test_before_line_prefers_earlier_declarations():
    model, lines = _parse("def a = 1\nvoid f() {\n    println(a)\n}\na = 5\n")
    found = find_top_level_variable("a", lines, model, before_line=1)
    assert (found.line, found.column) == (0, 4)


def test_declaration_inside_a_method_is_a_last_resort():
    model, lines = _parse("def build() {\n    def name = 'inner'\n}\nprintln(name)\n")
    found = find_top_level_variable("name", lines, model)
    assert (found.line, found.column) == (1, 8)

    model, lines = _parse("def build() {\n    def name = 'inner'\n}\nname = 'outer'\nprintln(name)\n")
    found = find_top_level_variable("name", lines, model)
    assert (found.line, found.column) == (3, 0)


def test_later_assignment_anywhere_beats_an_earlier_top_level_one():
    model, lines = _parse("def x = 1\nvoid f() {\n    x = 2\n}\nprintln(x)\n")
    found = find_top_level_variable("x", lines, model)
    assert (found.line, found.column) == (2, 4)

    found = find_top_level_variable("x", lines, model, before_line=1)
    assert (found.line, found.column) == (0, 4)


def test_method_definitions_are_not_variables():
    model, lines = _parse("def build() {\n    return 1\n}\n")
    assert find_top_level_variable("build", lines, model) is None


def test_unknown_name_and_empty_input():
    model, lines = _parse("def x = 1\n")
    assert find_top_level_variable("y", lines, model) is None
    assert find_top_level_variable(None, lines, model) is None
    assert find_top_level_variable("x", [], model) is None


# --- Top-level classes and methods ---


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Foo", (11, 6, "class")),
        ("heh", (14, 9, "method")),
        ("topLevelMethod", (25, 4, "method")),
        ("log", (7, 5, "method")),
    ],
)
def test_top_level_class_or_method(basics, name, expected):
    found = find_top_level_class_or_method(basics.model, name, basics.lines)
    assert (found.line, found.column, found.kind) == expected


def test_top_level_lookup_is_exact(basics):
    assert find_top_level_class_or_method(basics.model, "fo", basics.lines) is None
    assert find_top_level_class_or_method(basics.model, "rabauke", basics.lines) is None


# --- Hierarchy ---


def test_inherited_property(basics):
    bar = basics.model.find_class("Bar")
    found = find_member_in_hierarchy(basics.model, bar, "foo", basics.lines)
    assert (found.line, found.column, found.kind, found.type_name) == (12, 11, "property", "String")


def test_own_method(basics):
    bar = basics.model.find_class("Bar")
    found = find_member_in_hierarchy(basics.model, bar, "bar", basics.lines, MODE_PREFER_METHOD)
    assert (found.line, found.column, found.kind) == (20, 11, "method")


def test_search_mode_decides_between_field_and_method():
    model, lines = _parse('class Box {\n    private String size = "L"\n    String size() { return size }\n}\n')
    box = model.classes[0]

    method = find_member_in_hierarchy(model, box, "size", lines, MODE_PREFER_METHOD)
    assert (method.line, method.column, method.kind) == (2, 11, "method")

    found_field = find_member_in_hierarchy(model, box, "size", lines, MODE_PREFER_FIELD)
    assert (found_field.line, found_field.column, found_field.kind) == (1, 19, "field")

    assert find_member_in_hierarchy(model, box, "size", lines, MODE_ANY).kind == "field"


def test_cyclic_hierarchy_terminates():
    model, lines = _parse("class A extends B {}\nclass B extends A {}\n")
    assert find_member_in_hierarchy(model, model.classes[0], "missing", lines) is None


def test_superclass_outside_the_document_ends_the_walk():
    model, lines = _parse("class A extends Script {}\n")
    assert find_member_in_hierarchy(model, model.classes[0], "run", lines) is None


# --- Overloads ---


@pytest.fixture
def overloads():
    model, _ = _parse("def call(Map args) {}\ndef call(Map args, Closure cb) {}\n")
    return model.script_methods


def test_overload_selection_by_argument_kinds(overloads):
    assert select_overload(overloads, ["Map", "Closure"]) is overloads[1]
    assert select_overload(overloads, ["Map"]) is overloads[0]


def test_without_argument_kinds_the_first_overload_wins(overloads):
    assert select_overload(overloads, None) is overloads[0]
    assert select_overload(overloads, []) is overloads[0]
    assert select_overload([], ["Map"]) is None


def test_arity_mismatch_outweighs_kind_matches(overloads):
    score, arity_match = score_overload(overloads[0], ["Map", "Closure"])
    assert not arity_match
    assert score == 2 - 10

    score, arity_match = score_overload(overloads[1], ["Map", "Closure"])
    assert arity_match
    assert score == 4

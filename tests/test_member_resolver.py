import pytest

from jlsp.member_resolver import (
    DYNAMIC_STRATEGIES,
    DynamicContext,
    constructed_type,
    find_key_in_map_literal,
    find_qualified_access,
    infer_qualifier_type,
    resolve_qualified_member,
    resolve_relaxed_map_key,
)
from jlsp.parser import parse_groovy

from conftest import FakeLibrary, load_fixture


def _resolve(source: str, line: int, column: int, library=None):
    result = parse_groovy(source)
    return resolve_qualified_member(result.model, result.lines, line, column, library=library)


def _at(source: str, line: int, text: str):
    """Resolves with the cursor on the first occurrence of `text` on `line`."""
    column = source.split("\n")[line].index(text)
    return _resolve(source, line, column)


# --- Finding the access ---


@pytest.mark.parametrize(
    "column, expected",
    [
        pytest.param(10, ("f", "foo"), id="on_member"),
        pytest.param(12, ("f", "foo"), id="member_end"),
        pytest.param(9, ("f", "foo"), id="on_dot"),
        pytest.param(8, None, id="on_qualifier"),
        pytest.param(13, None, id="after_member"),
    ],
)
def test_find_qualified_access(column, expected):
    access = find_qualified_access("    log(f.foo)", column)
    if expected is None:
        assert access is None
    else:
        assert (access.qualifier, access.member) == expected
        assert not access.is_method_call


def test_find_qualified_access_after_the_dot_and_calls():
    access = find_qualified_access("obj. name()", 4)
    assert (access.qualifier, access.member) == ("obj", "name")
    assert access.is_method_call


def test_constructed_type():
    lines = ["def f = new Foo()", "def g = make()"]
    assert constructed_type(lines, 0, "f") == "Foo"
    assert constructed_type(lines, 1, "g") is None
    assert constructed_type(lines, 5, "f") is None


def test_infer_qualifier_type_refines_def_with_new():
    result = parse_groovy(load_fixture("basics.groovy"))
    assert infer_qualifier_type(result.model, result.lines, 32, "f") == ("Foo", True)
    assert infer_qualifier_type(result.model, result.lines, 32, "nothing") == (None, False)


# --- Typed qualifiers ---


def test_member_of_an_inferred_class_type():
    source = """class Foo {
    String foo = "x"
}
class Bar extends Foo {}
def b = new Bar()
println(b.foo)
"""
    resolution = _at(source, 5, "foo")
    assert resolution.matched
    location = resolution.location
    assert (location.line, location.column, location.kind) == (1, 11, "property")


def test_method_call_on_a_fixture_variable():
    source = load_fixture("basics.groovy")
    # the cursor sits on the dot of `p.bar()`
    resolution = _resolve(source, 41, 36)
    assert (resolution.location.line, resolution.location.column) == (20, 11)


def test_this_inside_a_class():
    source = load_fixture("basics.groovy")
    resolution = _resolve(source, 15, 17)
    assert (resolution.location.line, resolution.location.column, resolution.location.kind) == (12, 11, "property")


def test_this_at_script_level_is_the_script():
    source = "def helper() {\n    return 1\n}\nthis.helper()\n"
    resolution = _at(source, 3, "helper")
    assert (resolution.location.line, resolution.location.column, resolution.location.kind) == (0, 4, "method")


def test_static_access_through_a_class_name():
    source = 'class Defaults {\n    static String NAME = "n"\n}\nprintln(Defaults.NAME)\n'
    resolution = _at(source, 3, "NAME")
    assert (resolution.location.line, resolution.location.column) == (1, 18)


# --- Dynamic qualifiers ---


def test_map_literal_key():
    resolution = _at("def ctx = [a: 1, b: 2]\nctx.a\n", 1, "a")
    assert (resolution.location.line, resolution.location.column, resolution.location.kind) == (0, 11, "map-key")


def test_quoted_map_literal_key():
    resolution = _at("def cfg = [\"name\": 1, 'other': 2]\ncfg.other\n", 1, "other")
    assert (resolution.location.line, resolution.location.column) == (0, 23)


def test_multiline_map_literal_key():
    source = "def config = [\n    stage: 'build',\n    nested: [stage: 'inner'],\n]\nprintln(config.stage)\n"
    resolution = _at(source, 4, "stage")
    assert (resolution.location.line, resolution.location.column) == (1, 4)


def test_property_assignment():
    source = "def cfg = [:]\ncfg.timeout = 30\nprintln(cfg.timeout)\n"
    resolution = _at(source, 2, "timeout")
    location = resolution.location
    assert (location.line, location.column, location.kind) == (1, 4, "property-assignment")


def test_relaxed_map_key():
    source = "def opts = build([\n    retries: 3,\n])\n"
    result = parse_groovy(source)
    ctx = DynamicContext(lines=result.lines, model=result.model, qualifier="opts", member="retries")
    location = resolve_relaxed_map_key(ctx)
    assert (location.line, location.column) == (1, 4)


def test_relaxed_scan_stops_at_the_end_of_the_qualifier_literal():
    source = "def ctx = [:]\ndef other = [\n  b: 1\n]\nctx.b\n"
    result = parse_groovy(source)
    ctx = DynamicContext(lines=result.lines, model=result.model, qualifier="ctx", member="b")
    assert resolve_relaxed_map_key(ctx) is None

    resolution = _resolve(source, 4, 4)
    assert resolution.matched
    assert resolution.location is None


def test_relaxed_scan_sees_a_literal_closed_after_a_key():
    source = "def ctx = [\n  a: 1]\ndef other = [\n  b: 1\n]\nctx.b\n"
    result = parse_groovy(source)
    ctx = DynamicContext(lines=result.lines, model=result.model, qualifier="ctx", member="b")
    assert resolve_relaxed_map_key(ctx) is None
    ctx = DynamicContext(lines=result.lines, model=result.model, qualifier="ctx", member="a")
    location = resolve_relaxed_map_key(ctx)
    assert (location.line, location.column) == (1, 2)


def test_unresolved_member_still_counts_as_matched():
    resolution = _at("def x = something()\nx.nothing\n", 1, "nothing")
    assert resolution.matched
    assert resolution.location is None
    assert not resolution.found


def test_no_member_access_at_the_cursor():
    assert _resolve("def x = 1\nprintln(x)\n", 1, 2) is None


def test_key_lookup_stays_at_the_literal_top_level():
    lines = ["def m = [outer: [inner: 1]]"]
    assert find_key_in_map_literal(lines, 0, "m", "outer") == (0, 9)
    assert find_key_in_map_literal(lines, 0, "m", "inner") is None


def test_strategies_run_in_a_fixed_order():
    assert [name for name, _ in DYNAMIC_STRATEGIES] == ["map-literal key", "property assignment", "relaxed map key"]


# --- Library scripts ---


def test_library_script_qualifier():
    resolution = _resolve('foo.helper("x")\n', 0, 5, library=FakeLibrary())
    assert resolution.location.uri == FakeLibrary.uri
    assert (resolution.location.line, resolution.location.column) == (3, 4)


def test_known_variable_shadows_a_library_script():
    resolution = _resolve('def foo = [:]\nfoo.helper("x")\n', 1, 5, library=FakeLibrary())
    assert resolution.matched
    assert resolution.location is None

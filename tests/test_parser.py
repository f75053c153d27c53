import pytest

from jlsp.exceptions import ErrorCode, GroovyLspError
from jlsp.parser import parse_groovy, parse_groovy_strict
from jlsp.parser.classes import DeclarationStatement, ExpressionStatement, FieldNode, PropertyNode

from conftest import load_fixture


# --- 1. High-level checks against the fixture scripts ---


def test_parses_basics_fixture():
    result = parse_groovy(load_fixture("basics.groovy"))

    assert not result.has_syntax_errors
    assert result.diagnostics == []

    model = result.model
    assert [c.name for c in model.classes] == ["Foo", "Bar"]
    assert [m.name for m in model.script_methods] == ["log", "topLevelMethod", "secondTopLevelMethod"]
    assert [f.name for f in model.root.fields] == ["topLevelVar"]

    foo, bar = model.classes
    assert [p.name for p in foo.properties] == ["foo"]
    assert foo.properties[0].type_name == "String"
    assert [m.name for m in foo.methods] == ["heh"]
    assert bar.superclass == "Foo"
    assert bar.methods[0].return_type == "String"


def test_declaration_lines_point_at_the_name():
    model = parse_groovy(load_fixture("basics.groovy")).model
    foo = model.find_class("Foo")
    assert foo.line == 12
    assert foo.properties[0].line == 13
    assert model.script_methods[1].line == 26


def test_parses_global_variable_fixture_overloads():
    model = parse_groovy(load_fixture("global-variable.groovy")).model
    calls = [m for m in model.script_methods if m.name == "call"]
    assert [[p.type_name for p in m.parameters] for m in calls] == [
        ["Map", "Closure"],
        ["Map"],
        ["Map", "String", "Closure"],
    ]
    assert calls[0].parameters[0].has_default
    assert calls[0].required_arg_count == 1


# --- 2. Class members ---


def test_access_modifier_decides_field_or_property():
    source = """
class Config {
    private int retries = 3
    String name
    static final String MODE = "fast"
}
"""
    cls = parse_groovy(source).model.classes[0]
    assert [f.name for f in cls.fields] == ["retries"]
    assert isinstance(cls.fields[0], FieldNode)
    assert [p.name for p in cls.properties] == ["name", "MODE"]
    assert all(isinstance(p, PropertyNode) for p in cls.properties)
    assert cls.fields[0].type_name == "int"


def test_constructors_are_kept_apart_from_methods():
    source = """
class Job {
    Job(String name) {
    }

    void run() {}
}
"""
    cls = parse_groovy(source).model.classes[0]
    assert [c.name for c in cls.constructors] == ["Job"]
    assert cls.constructors[0].is_constructor
    assert [m.name for m in cls.methods] == ["run"]


def test_enum_constants_become_static_fields():
    cls = parse_groovy("enum Color { RED, GREEN }").model.classes[0]
    assert cls.kind == "enum"
    assert [f.name for f in cls.fields] == ["RED", "GREEN"]
    assert all(f.type_name == "Color" for f in cls.fields)


def test_package_qualifies_class_names():
    model = parse_groovy("package com.acme\n\nclass Foo {}\n").model
    assert model.root.package == "com.acme"
    assert model.classes[0].qualified_name == "com.acme.Foo"
    assert model.find_class("com.acme.Foo") is model.classes[0]
    assert model.find_class("Foo") is model.classes[0]


def test_parameter_defaults_and_varargs():
    method = parse_groovy("def f(String a, int b = 2, Object... rest) {\n    return a\n}\n").model.script_methods[0]
    assert [p.name for p in method.parameters] == ["a", "b", "rest"]
    assert method.parameters[1].has_default
    assert method.parameters[2].varargs
    assert method.required_arg_count == 1
    assert method.max_arg_count is None


# --- 3. Statements and call sites ---


def test_trailing_closure_counts_as_an_argument():
    statement = parse_groovy("run(a, b) { x }").model.root.statements[0]
    assert isinstance(statement, ExpressionStatement)
    call = statement.expression.calls[0]
    assert call.name == "run"
    assert call.has_trailing_closure
    assert call.arg_count == 3
    assert len(statement.expression.closures) == 1


def test_named_arguments_count_once():
    call = parse_groovy('call(stageName: "x", other: 1)').model.root.statements[0].expression.calls[0]
    assert call.has_named_args
    assert call.arg_count == 1


def test_qualified_call_records_its_receiver():
    call = parse_groovy('foo.helper("x")').model.root.statements[0].expression.calls[0]
    assert call.is_qualified
    assert call.receiver == "foo"
    assert call.receiver_col == 1
    assert call.arg_count == 1


def test_constructor_call_is_flagged():
    statement = parse_groovy("def f = new Foo()").model.root.statements[0]
    assert isinstance(statement, DeclarationStatement)
    call = statement.variables[0].initializer.calls[0]
    assert call.is_constructor
    assert call.name == "Foo"


def test_tuple_declaration_declares_every_name():
    statement = parse_groovy("def (a, b) = [1, 2]").model.root.statements[0]
    assert isinstance(statement, DeclarationStatement)
    assert [v.name for v in statement.variables] == ["a", "b"]


# --- 4. Error tolerance ---


def test_empty_input_gives_an_empty_model():
    for text in ("", "   \n\n"):
        result = parse_groovy(text)
        assert result.model.is_empty
        assert result.diagnostics == []
        assert not result.has_syntax_errors


def test_trailing_dot_is_not_reported():
    source = "class Foo {\n    String bar\n}\ndef f = new Foo()\nf."
    result = parse_groovy(source)
    assert result.diagnostics == []
    assert [c.name for c in result.model.classes] == ["Foo"]
    # the tree was built from a patched copy, the text stays what the editor sent
    assert result.source_text == source
    assert result.lines[-1] == "f."


def test_broken_line_is_skipped_and_reported():
    source = """class Foo {
    void a() {}
}
def x = )
def y = 2
"""
    result = parse_groovy(source)
    assert result.has_syntax_errors
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].line == 3
    assert result.diagnostics[0].message.startswith("unexpected token: )")
    assert [c.name for c in result.model.classes] == ["Foo"]


def test_every_independent_syntax_error_is_reported():
    source = "def a = )\ndef b = 1\ndef c = )\ndef d = 2\ndef e = )\n"
    result = parse_groovy(source)
    assert [d.line for d in result.diagnostics] == [0, 2, 4]
    assert all(d.message.startswith("unexpected token: )") for d in result.diagnostics)


def test_errors_caused_by_a_skipped_brace_are_not_reported():
    source = "def x = 1\ndef f = { )\n    println(x)\n}\ndef y = 2\n"
    result = parse_groovy(source)
    assert result.has_syntax_errors
    assert [d.line for d in result.diagnostics] == [1]


def test_missing_closing_brace_is_recovered():
    result = parse_groovy("void build() {\n    def x = 1\n")
    assert result.has_syntax_errors
    assert result.diagnostics[0].message == "unexpected end of input"
    assert result.diagnostics[0].line == 1
    assert [m.name for m in result.model.script_methods] == ["build"]


def test_semantic_checks_are_skipped_when_syntax_is_broken():
    source = "String f() {\n}\ndef x = )\n"
    result = parse_groovy(source)
    assert [d.line for d in result.diagnostics] == [2]


def test_strict_parse_raises_with_location():
    with pytest.raises(GroovyLspError) as exc_info:
        parse_groovy_strict("def x = 1\ndef y = )\n", file_path="Jenkinsfile")

    error = exc_info.value
    assert error.code == ErrorCode.SYNTAX_UNEXPECTED_TOKEN
    assert error.line == 2
    assert str(error).startswith("Jenkinsfile:2:")


def test_strict_parse_returns_the_tree():
    root = parse_groovy_strict("class A {}\nvoid go() {}\n")
    assert [c.name for c in root.classes] == ["A"]
    assert [m.name for m in root.methods] == ["go"]

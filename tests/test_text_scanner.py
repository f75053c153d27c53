import pytest

from jlsp.text_scanner import (
    brace_depths,
    extract_call_arg_kinds,
    final_brace_depth,
    index_to_utf16,
    interpolated_var_at,
    is_groovy_keyword,
    is_identifier,
    is_in_line_comment,
    is_inside_double_quoted_string,
    is_inside_interpolation_placeholder,
    is_inside_string,
    mask_for_parser,
    scan_multiline_var,
    smart_var_column,
    split_lines,
    utf16_to_index,
)


# --- Brace depth ---


def test_brace_depth_tracks_nesting_per_line_start():
    lines = ["def a = 1", "void f() {", "  if (x) {", "  }", "}", "def b = 2"]
    assert brace_depths(lines) == [0, 0, 1, 2, 1, 0]


@pytest.mark.parametrize(
    "lines, expected",
    [
        pytest.param(['def s = "{"', "x"], [0, 0], id="double_quoted"),
        pytest.param(["def s = '}{'", "x"], [0, 0], id="single_quoted"),
        pytest.param(["// {", "x"], [0, 0], id="line_comment"),
        pytest.param(["/* {", "{ */", "x"], [0, 0, 0], id="block_comment"),
        pytest.param(['def s = """', "{", '"""', "x"], [0, 0, 0, 0], id="triple_quoted"),
        pytest.param(["def r = /a{2}/", "x"], [0, 0], id="slashy"),
        pytest.param(["def r = $/ { /$", "x"], [0, 0], id="dollar_slashy"),
        pytest.param(['def s = "\\"{"', "x"], [0, 0], id="escaped_quote"),
    ],
)
def test_brace_depth_ignores_literals_and_comments(lines, expected):
    assert brace_depths(lines) == expected


def test_brace_depth_is_never_negative():
    assert brace_depths(["}", "}", "x"]) == [0, 0, 0]


def test_brace_depth_division_is_not_a_slashy_string():
    assert brace_depths(["def x = a / b {", "y"]) == [0, 1]


def test_final_depth_matches_single_concatenated_string():
    text = 'void f() {\n  def s = """\n}\n"""\n  if (a) {\n'
    assert final_brace_depth(text.split("\n")) == final_brace_depth([text]) == 2


def test_brace_depths_of_no_lines_is_empty():
    assert brace_depths([]) == []
    assert brace_depths(None) == []


# --- Strings and interpolation ---


@pytest.mark.parametrize(
    "line, pos, expected",
    [
        ('log("hello")', 6, True),
        ('log("hello")', 2, False),
        ('log("a") + b', 10, False),
        ('log("say \\"hi\\"")', 12, True),
    ],
)
def test_is_inside_double_quoted_string(line, pos, expected):
    assert is_inside_double_quoted_string(line, pos) is expected


def test_is_inside_string_sees_single_quotes():
    assert is_inside_string("sh 'make all'", 6)
    assert not is_inside_string("sh 'make all'", 1)


@pytest.mark.parametrize(
    "pos, expected",
    [(3, False), (9, True), (12, True), (20, False)],
)
def test_interpolation_placeholder(pos, expected):
    line = 'log("${name.size()} x")'
    assert is_inside_interpolation_placeholder(line, pos) is expected


def test_interpolated_var_at_covers_sigil_and_name():
    line = 'echo "hi $user!"'
    sigil = line.index("$")
    assert interpolated_var_at(line, sigil) == "user"
    assert interpolated_var_at(line, sigil + 3) == "user"


def test_interpolated_var_at_excludes_position_after_name():
    line = 'echo "hi $user!"'
    assert interpolated_var_at(line, line.index("!")) is None


def test_interpolated_var_at_tolerates_bad_input():
    assert interpolated_var_at(None, 3) is None
    assert interpolated_var_at('"no vars"', 50) is None


# --- Comments ---


def test_line_comment_outside_quotes():
    assert is_in_line_comment("def x = 1 // x", 13)
    assert not is_in_line_comment("def x = 1 // x", 4)


def test_line_comment_marker_inside_string_is_not_a_comment():
    line = 'def url = "http://example.com" + x'
    assert not is_in_line_comment(line, len(line) - 1)


# --- Keywords and identifiers ---


def test_keyword_table():
    assert is_groovy_keyword("assert")
    assert is_groovy_keyword("def")
    assert not is_groovy_keyword("println")
    assert not is_groovy_keyword(None)


def test_identifier_check():
    assert is_identifier("_private1")
    assert not is_identifier("1abc")
    assert not is_identifier("")


# --- Columns ---


@pytest.mark.parametrize(
    "line, name, expected",
    [
        ("    def rabauke = 1", "rabauke", 8),
        ("    String foo = 'a'", "foo", 11),
        ("    Map<String, Integer> counts = [:]", "counts", 25),
        ("    log(foo)", "foo", 8),
        ("    nothing here", "foo", -1),
    ],
)
def test_smart_var_column(line, name, expected):
    assert smart_var_column([line], 0, name) == expected


def test_smart_var_column_out_of_range_line():
    assert smart_var_column(["x"], 5, "x") == -1


def test_scan_multiline_var_finds_split_declaration():
    lines = ["    Float \\", "    what = 90"]
    assert scan_multiline_var(lines, 0, "what") == (1, 4)


def test_scan_multiline_var_is_bounded():
    lines = ["Float \\", "", "", "", "", "what = 1"]
    assert scan_multiline_var(lines, 0, "what") is None


# --- Call argument kinds ---


@pytest.mark.parametrize(
    "line, name, expected",
    [
        pytest.param('call(stageName: "x") { log("x") }', "call", ["Map", "Closure"], id="named_then_trailing_closure"),
        pytest.param('call(droppedArg: null, "test-2", {  log("x") })', "call", ["Map", "String", "Closure"], id="map_first"),
        pytest.param("run(a, b)", "run", ["Object", "Object"], id="positional"),
        pytest.param("run()", "run", [], id="empty"),
        pytest.param("run", "run", [], id="no_parentheses"),
    ],
)
def test_extract_call_arg_kinds(line, name, expected):
    assert extract_call_arg_kinds(line, line.index(name) + len(name) - 1) == expected


def test_extract_call_arg_kinds_handles_none():
    assert extract_call_arg_kinds(None, 0) == []


# --- Misc ---


def test_split_lines_handles_all_terminators():
    assert split_lines("a\r\nb\rc\nd") == ["a", "b", "c", "d"]
    assert split_lines("") == [""]


def test_mask_for_parser_keeps_length_and_positions():
    text = "#!/usr/bin/env groovy\ndef r = /ab+c/\nx"
    masked = mask_for_parser(text)
    assert len(masked) == len(text)
    assert masked.split("\n")[0].strip() == ""
    assert masked.split("\n")[1] == 'def r = "____"'


def test_utf16_conversion_round_trip():
    line = "def s = '\U0001F600' + name"
    index = line.index("name")
    units = index_to_utf16(line, index)
    assert units == index + 1
    assert utf16_to_index(line, units) == index

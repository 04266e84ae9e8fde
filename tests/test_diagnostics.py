from fluxlang import collect_diagnostics, format_diagnostic


def test_format_diagnostic():
    assert format_diagnostic("a.flux", 3, 7, "Check error", "boom") == "a.flux:3:7: Check error: boom"
    assert format_diagnostic("a.flux", None, None, "Parse error", "boom") == "a.flux:0:0: Parse error: boom"


def test_lexer_errors_are_reported():
    assert collect_diagnostics('document { meta { title = "open } }', file="x.flux") == [
        "x.flux:1:27: Lexer error: Unterminated string literal"
    ]


def test_parse_errors_include_the_offending_lexeme():
    diagnostics = collect_diagnostics("document {\n  mystery { }\n}", file="x.flux")
    assert diagnostics == ["x.flux:2:3: Parse error: Unexpected top-level construct 'mystery' near 'mystery'"]


def test_check_errors_are_collected():
    source = "document {\n  rule r(grid = nowhere) { when true then { x = 1; } }\n}"
    assert collect_diagnostics(source, file="x.flux") == [
        "x.flux:2:3: Check error: Rule 'r' references unknown grid 'nowhere'"
    ]


def test_clean_source_has_no_diagnostics():
    assert collect_diagnostics('document { meta { title = "ok"; } }') == []

import pytest

from fluxlang import ast_nodes
from fluxlang.errors import ParseError
from fluxlang.parser import Parser, parse_document
from fluxlang.version import DEFAULT_LANGUAGE_VERSION


def _expr(source: str):
    return Parser.from_source(source).parse_expression()


def test_parses_state_grid_and_rule(grid_doc):
    assert grid_doc.meta == {"version": DEFAULT_LANGUAGE_VERSION, "title": "Noise"}

    (tempo,) = grid_doc.state.params
    assert (tempo.name, tempo.type, tempo.min, tempo.max, tempo.initial) == ("tempo", "float", 40, 200, 96)

    grid = grid_doc.find_grid("main")
    assert grid.topology == "grid"
    assert (grid.size.rows, grid.size.cols) == (1, 3)
    assert [cell.id for cell in grid.cells] == ["a", "b", "c"]
    assert grid.cells[0].tags == ["left"]
    assert grid.cells[2].dynamic == 0.4

    (rule,) = grid_doc.rules
    assert rule.name == "spread"
    assert rule.mode == "docstep"
    assert rule.scope.grid == "main"
    assert rule.condition.op == "and"
    aggregate = rule.condition.right.left
    assert isinstance(aggregate, ast_nodes.MemberExpr)
    assert isinstance(aggregate.object, ast_nodes.NeighborsCallExpr)
    assert aggregate.object.method == "all"
    (stmt,) = rule.then_branch
    assert isinstance(stmt, ast_nodes.AssignmentStatement)
    assert stmt.target == ast_nodes.MemberExpr(object=ast_nodes.Identifier("cell"), property="content")


def test_param_range_with_inf_upper_bound():
    doc = parse_document("document { state { param count : int [0, inf] @ 3; param on : bool @ true; } }")
    count, flag = doc.state.params
    assert count.max == "inf"
    assert count.initial == 3
    assert flag.initial is True
    assert flag.min is None

    doc = parse_document("document { state { param count : int [0, INF] @ 3; } }")
    assert doc.state.params[0].max == "inf"


def test_expression_precedence():
    expr = _expr("a + b * c")
    assert expr.op == "+"
    assert expr.right.op == "*"

    expr = _expr("not a or b and c == 1")
    assert expr.op == "or"
    assert isinstance(expr.left, ast_nodes.UnaryExpr)
    assert expr.right.op == "and"
    assert expr.right.right.op == "=="


def test_call_with_named_arguments_and_lists():
    expr = _expr('chooseStep(["a", "b"], offset = 1)')
    assert isinstance(expr, ast_nodes.CallExpr)
    assert expr.callee == ast_nodes.Identifier("chooseStep")
    first, second = expr.args
    assert isinstance(first, ast_nodes.ListExpr)
    assert [item.value for item in first.items] == ["a", "b"]
    assert second == ast_nodes.NamedArg(name="offset", value=ast_nodes.LiteralExpr(1))


def test_rule_else_when_and_else_branches():
    doc = parse_document(
        """
        document {
          state { param level : int @ 0; }
          rule climb(mode = docstep) {
            when level < 2 then { level = level + 1; }
            else when level < 4 then level = level + 2;
            else { level = 0; }
          }
        }
        """
    )
    (rule,) = doc.rules
    assert len(rule.branches) == 2
    assert rule.branches[1].condition.op == "<"
    assert len(rule.branches[1].then_branch) == 1
    assert rule.else_branch[0].target == ast_nodes.Identifier("level")


def test_event_rule_requires_event_type():
    with pytest.raises(ParseError) as excinfo:
        parse_document("document { rule tap(mode = event) { when true then { x = 1; } } }")
    assert "on=" in excinfo.value.message

    doc = parse_document('document { rule tap(mode = event, on = "click") { when true then { x = 1; } } }')
    assert doc.rules[0].on_event_type == "click"


def test_invalid_rule_mode_reports_lexeme():
    with pytest.raises(ParseError) as excinfo:
        parse_document("document { rule r(mode = sometimes) { when true then { x = 1; } } }")
    assert excinfo.value.message == "Invalid rule mode 'sometimes'"
    assert excinfo.value.lexeme == "sometimes"


def test_runtime_block_docstep_advance():
    doc = parse_document(
        'document { runtime { eventsApply = "deferred"; docstepAdvance = [timer(2 s)]; } }'
    )
    assert doc.runtime.events_apply == "deferred"
    (timer,) = doc.runtime.docstep_advance
    assert (timer.kind, timer.amount, timer.unit) == ("timer", 2, "s")


def test_body_nodes_refresh_and_transition():
    doc = parse_document(
        """
        document {
          body {
            page p1 {
              slot hero {
                refresh = every("5s");
                transition = fade(duration = 300, ease = inOut);
                reserve = "fixed(200, 100, px)";
                text caption { content = @choose(["x", "y"]); }
              }
              inline_slot tick {
                refresh = every(500ms);
                transition = wipe(duration = "250ms", direction = left);
              }
              slot held { refresh = never; transition = appear(); }
            }
          }
        }
        """
    )
    (page,) = doc.body.nodes
    hero, tick, held = page.children
    assert hero.refresh == ast_nodes.EveryRefresh(amount=5, unit="s")
    assert hero.transition == ast_nodes.TransitionSpec(kind="fade", duration_ms=300, ease="inOut")
    assert hero.props["reserve"] == ast_nodes.LiteralValue("fixed(200, 100, px)")
    caption = hero.children[0]
    assert isinstance(caption.props["content"], ast_nodes.DynamicValue)

    assert tick.refresh == ast_nodes.EveryRefresh(amount=500, unit="ms")
    assert tick.transition == ast_nodes.TransitionSpec(kind="wipe", duration_ms=250, direction="left")
    assert isinstance(held.refresh, ast_nodes.NeverRefresh)
    assert held.transition.kind == "appear"


def test_unknown_transition_argument_is_rejected():
    with pytest.raises(ParseError) as excinfo:
        parse_document("document { body { page p { slot s { transition = flash(ease = in); } } } }")
    assert excinfo.value.message == "Unknown transition argument 'ease'"


def test_body_top_level_must_be_pages():
    with pytest.raises(ParseError) as excinfo:
        parse_document('document { body { text t { content = "x"; } } }')
    assert "page nodes" in excinfo.value.message


def test_assets_and_materials_blocks():
    doc = parse_document(
        """
        document {
          assets {
            asset hero { kind = image; path = "img/hero.png"; tags = [cover, warm]; weight = 2;
              meta { credit = "studio"; } }
            bank textures { kind = image; root = "tex"; include = "**/*.png"; tags = [bg]; strategy = weighted; }
          }
          materials {
            material hum { tags = [drone]; label = "Hum"; color = "#223344";
              midi { channel = 1; pitch = 48; velocity = 90; durationSeconds = 2.5; } }
          }
        }
        """
    )
    (hero,) = doc.assets.assets
    assert (hero.kind, hero.path, hero.tags, hero.weight) == ("image", "img/hero.png", ["cover", "warm"], 2)
    assert hero.meta == {"credit": "studio"}
    (bank,) = doc.assets.banks
    assert (bank.root, bank.include, bank.strategy) == ("tex", "**/*.png", "weighted")
    (hum,) = doc.materials.materials
    assert hum.label == "Hum"
    assert hum.midi == ast_nodes.MaterialMidi(channel=1, pitch=48, velocity=90, duration_seconds=2.5)


def test_unknown_bank_strategy_is_rejected():
    with pytest.raises(ParseError) as excinfo:
        parse_document("document { assets { bank b { strategy = random; } } }")
    assert excinfo.value.message == "Unknown asset strategy 'random'"


def test_unknown_fields_are_skipped_with_nested_braces():
    doc = parse_document(
        """
        document {
          grid g {
            topology = grid;
            style { border = "thin"; inner { x = 1; } }
            size { rows = 1; cols = 1; }
            cell only { future = [1, 2]; content = "kept"; }
          }
        }
        """
    )
    grid = doc.grids[0]
    assert (grid.size.rows, grid.size.cols) == (1, 1)
    assert grid.cells[0].content == "kept"


def test_grid_requires_topology():
    with pytest.raises(ParseError) as excinfo:
        parse_document("document { grid g { size { rows = 1; cols = 1; } } }")
    assert excinfo.value.message == "Grid must declare a topology"


def test_parse_error_at_end_of_input_uses_eof_lexeme():
    with pytest.raises(ParseError) as excinfo:
        parse_document("document { meta { title = ")
    assert excinfo.value.lexeme == "<eof>"


def test_document_keyword_is_required():
    with pytest.raises(ParseError) as excinfo:
        parse_document("doc { }")
    assert excinfo.value.message == "Expected 'document' at start of file"
    assert (excinfo.value.line, excinfo.value.column) == (1, 1)


def test_tokens_styles_and_themes():
    doc = parse_document(
        """
        document {
          tokens { color.text = "#111"; space.m = 10; }
          styles {
            Lead : Body { font.size = 14; color = @tokens.color.text; }
            Plain { text.align = "left"; }
          }
          theme print {
            tokens { color.text = "#000"; }
            styles { Lead { font.size = 12; } }
          }
          theme "screen" { tokens { space.m = 6; } }
        }
        """
    )
    assert doc.tokens.tokens == {"color.text": "#111", "space.m": 10}
    lead, plain = doc.styles.styles
    assert (lead.name, lead.extends) == ("Lead", "Body")
    assert lead.props["font.size"] == ast_nodes.LiteralValue(value=14)
    assert isinstance(lead.props["color"], ast_nodes.DynamicValue)
    assert plain.extends is None
    assert [theme.name for theme in doc.themes] == ["print", "screen"]
    print_theme = doc.find_theme("print")
    assert print_theme.tokens.tokens == {"color.text": "#000"}
    assert print_theme.styles.styles[0].props == {"font.size": ast_nodes.LiteralValue(value=12)}
    assert doc.find_theme("screen").styles is None
    assert doc.find_theme("web") is None


def test_unexpected_theme_field_is_rejected():
    with pytest.raises(ParseError) as excinfo:
        parse_document("document { theme print { colors { a = 1; } } }")
    assert excinfo.value.message == "Unexpected theme field 'colors'"

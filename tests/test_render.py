import json

import pytest

from fluxlang import (
    IR_VERSION,
    create_document_runtime,
    parse_document,
    render_document,
    render_document_ir,
)
from fluxlang.errors import EvaluationError
from fluxlang.render import RenderDocumentIR
from fluxlang.render.hashing import stable_hash


def _page(body: str, extra: str = "") -> str:
    return "document {\n%s\n  body { page p {\n%s\n  } }\n}" % (extra, body)


def _find(nodes, node_id):
    for node in nodes:
        if node.id == node_id:
            return node
        found = _find(node.children, node_id)
        if found is not None:
            return found
    return None


def _prop(rendered, node_id, key="content"):
    return _find(rendered.body, node_id).props[key]


SHUFFLE_DOC = _page('text t { content = @shuffle([1, 2, 3, 4, 5, 6, 7, 8, 9, 10]); }')


def test_same_seed_renders_identically():
    doc = parse_document(SHUFFLE_DOC)
    first = render_document(doc, seed=42)
    second = render_document(doc, seed=42)
    assert first.model_dump() == second.model_dump()
    assert sorted(_prop(first, "t")) == list(range(1, 11))


def test_different_seeds_render_differently():
    doc = parse_document(SHUFFLE_DOC)
    assert _prop(render_document(doc, seed=1), "t") != _prop(render_document(doc, seed=2), "t")


def test_seed_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("FLUX_SEED", "7")
    runtime = create_document_runtime(parse_document(SHUFFLE_DOC))
    assert runtime.seed == 7
    assert runtime.render().seed == 7


def test_document_header_fields():
    doc = parse_document(
        _page(
            'text t { content = "x"; }',
            extra='  meta { title = "Poster"; }\n  pageConfig { size { width = 210; height = 297; units = "mm"; } }',
        )
    )
    rendered = render_document(doc, seed=3, time=1.5, docstep=2)
    assert rendered.meta["title"] == "Poster"
    assert (rendered.seed, rendered.time, rendered.docstep) == (3, 1.5, 2)
    assert rendered.page_config == {"size": {"width": 210, "height": 297, "units": "mm"}}
    assert rendered.assets == []


def test_choose_step_follows_docstep():
    doc = parse_document(
        _page('slot s { refresh = docstep; text t { content = @chooseStep(["a", "b", "c"]); } }')
    )
    runtime = create_document_runtime(doc)
    assert _prop(runtime.render(), "t") == "a"
    assert _prop(runtime.step(), "t") == "b"
    assert _prop(runtime.step(2), "t") == "a"


def test_every_refresh_buckets_time():
    doc = parse_document(_page('slot s { refresh = every("5s"); text t { content = @"t=" + time; } }'))
    runtime = create_document_runtime(doc)
    assert _prop(runtime.render(), "t") == "t=0"
    assert _prop(runtime.tick(3), "t") == "t=0"
    assert _prop(runtime.tick(2), "t") == "t=5"
    assert _prop(runtime.tick(12), "t") == "t=15"


def test_never_and_docstep_siblings():
    doc = parse_document(
        _page(
            """
            slot frozen { refresh = never; text a { content = @docstep; } }
            slot live { refresh = docstep; text b { content = @docstep; } }
            text c { content = @docstep; }
            """
        )
    )
    rendered = create_document_runtime(doc).step(2)
    assert _prop(rendered, "a") == 0
    assert _prop(rendered, "b") == 2
    assert _prop(rendered, "c") == 0


def test_values_are_stable_within_a_refresh_window():
    doc = parse_document(_page('slot s { refresh = docstep; text t { content = @choose(["x", "y", "z", "w"]); } }'))
    runtime = create_document_runtime(doc, seed=11)
    first = _prop(runtime.render(), "t")
    assert _prop(runtime.tick(30), "t") == first
    assert _prop(create_document_runtime(doc, seed=11, time=99).render(), "t") == first


def test_params_and_string_concatenation():
    doc = parse_document(
        _page(
            'text t { content = @title + " @ " + tempo + " bpm"; ratio = @tempo / 4; }',
            extra='  state { param tempo : int [40, 200] @ 120; param title : string @ "Drift"; }',
        )
    )
    rendered = render_document(doc)
    assert _prop(rendered, "t") == "Drift @ 120 bpm"
    assert _prop(rendered, "t", "ratio") == 30


def test_visible_if_filters_nodes_once():
    doc = parse_document(
        _page(
            """
            text a { visibleIf = @showNotes; content = "hidden"; }
            text b { visibleIf = true; content = "shown"; }
            text c { visibleIf = false; content = "gone"; }
            """,
            extra="  state { param showNotes : bool @ false; }",
        )
    )
    page = render_document(doc).body[0]
    assert [child.id for child in page.children] == ["b"]


def test_counters_and_refs():
    doc = parse_document(
        _page(
            """
            text intro { style = "H1"; content = "Intro"; label = "sec:intro"; }
            text detail { style = "H2"; content = "Detail"; }
            figure chart { label = "fig:chart"; }
            text next { level = 1; content = "Next"; }
            text see { content = @"See " + ref("fig:chart") + " in " + ref("sec:intro"); }
            """
        )
    )
    ir = render_document_ir(doc)
    assert _prop(ir, "see") == "See Figure 1 in §1"
    assert _find(ir.body, "intro").counters.ref == "§1"
    assert _find(ir.body, "detail").counters.section == "1.1"
    assert _find(ir.body, "chart").counters.figure == 1
    assert _find(ir.body, "next").counters.section == "2"
    assert _find(ir.body, "see").counters is None


def test_missing_ref_target_raises_with_node_context():
    doc = parse_document(_page('text t { content = @ref("nope"); }'))
    with pytest.raises(EvaluationError) as excinfo:
        render_document(doc)
    assert excinfo.value.message == "ref('nope') target not found (node 't', kind 'text', prop 'content')"


def test_unsupported_function_call():
    doc = parse_document(_page("text t { content = @mystery(1); }"))
    with pytest.raises(EvaluationError, match="Unsupported function call 'mystery' in document expressions"):
        render_document(doc)


def test_builtins():
    doc = parse_document(
        _page(
            """
            slot s {
              refresh = docstep;
              text t {
                cyc = @cycle(["a", "b", "c"]);
                cycAt = @cycle(["a", "b", "c"], 5);
                ph = @phase(2.25);
                mix = @lerp(10, 20, 0.5);
                few = @sample([1, 2, 3], n = 2);
                none = @sample([1, 2, 3], 0);
                hp = @hashpick(["x", "y", "z"], "key");
                hp2 = @hashpick(["x", "y", "z"], key = "key");
                clock = @now();
              }
            }
            """
        )
    )
    props = _find(create_document_runtime(doc, time=4).step(1).body, "t").props
    assert props["cyc"] == "b"
    assert props["cycAt"] == "c"
    assert props["ph"] == 0.25
    assert props["mix"] == 15
    assert len(props["few"]) == 2
    assert set(props["few"]) <= {1, 2, 3}
    assert props["none"] == []
    assert props["hp"] == props["hp2"]
    assert props["clock"] == 4


def test_builtin_argument_errors():
    doc = parse_document(_page('text t { content = @lerp(1, "b", 0.5); }'))
    with pytest.raises(EvaluationError, match=r"lerp\(a, b, t\) expects numeric arguments"):
        render_document(doc)

    doc = parse_document(_page("text t { content = @chooseStep([]); }"))
    with pytest.raises(EvaluationError, match="expects a non-empty list"):
        render_document(doc)


def test_tick_and_step_reject_non_finite_values():
    runtime = create_document_runtime(parse_document(SHUFFLE_DOC))
    with pytest.raises(ValueError):
        runtime.tick(float("nan"))
    with pytest.raises(ValueError):
        runtime.step(float("inf"))
    assert (runtime.time, runtime.docstep) == (0, 0)


def test_grid_only_document_gets_synthesized_pages(grid_doc):
    rendered = render_document(grid_doc, docstep=1)
    (page,) = rendered.body
    assert (page.id, page.kind) == ("page1", "page")
    (grid_node,) = page.children
    assert grid_node.kind == "grid"
    assert grid_node.props == {"ref": "main"}
    assert (grid_node.grid.name, grid_node.grid.rows, grid_node.grid.cols) == ("main", 1, 3)
    assert [cell.content for cell in grid_node.grid.cells] == ["noise", "", "noise"]


def test_grid_node_follows_docsteps(grid_doc):
    runtime = create_document_runtime(grid_doc)
    before = runtime.render().body[0].children[0].grid
    assert [cell.content for cell in before.cells] == ["", "", ""]
    after = runtime.step().body[0].children[0].grid
    assert [cell.content for cell in after.cells] == ["noise", "", "noise"]


def test_ir_json_contract():
    doc = parse_document(
        _page(
            """
            slot hero {
              refresh = every("2s");
              transition = fade(duration = 300);
              reserve = "fixed(200, 100, px)";
              fit = "shrink";
            }
            inline_slot note { reserve = ["12", "em"]; fit = "bogus"; }
            """
        )
    )
    data = json.loads(render_document_ir(doc).to_json())
    assert data["irVersion"] == IR_VERSION
    (page,) = data["body"]
    assert page["nodeId"] == "root/page:p:0"
    assert page["refresh"] == {"kind": "onLoad"}
    assert "slot" not in page

    hero, note = page["children"]
    assert hero["nodeId"] == "root/page:p:0/slot:hero:0"
    assert hero["refresh"] == {"kind": "every", "amount": 2, "unit": "s"}
    assert hero["transition"] == {"kind": "fade", "durationMs": 300}
    assert hero["slot"] == {"reserve": {"kind": "fixed", "width": 200, "height": 100, "units": "px"}, "fit": "shrink"}

    assert note["refresh"] == {"kind": "onLoad"}
    assert note["slot"] == {"reserve": {"kind": "fixedWidth", "width": 12, "units": "em"}}


def test_ir_json_schema_uses_camel_case():
    schema = RenderDocumentIR.model_json_schema(by_alias=True)
    assert {"irVersion", "pageConfig", "body"} <= set(schema["properties"])
    assert "nodeId" in schema["$defs"]["RenderNodeIR"]["properties"]


def test_time_seconds_and_stable_hash_builtins():
    doc = parse_document(
        _page('slot s { refresh = every("1s"); text t { secs = @timeSeconds(); h = @stableHash("a", 1); } }')
    )
    props = _find(create_document_runtime(doc, time=2.5).render().body, "t").props
    assert props["secs"] == 2
    assert props["h"] == stable_hash("a", 1, {})


def test_tokens_are_visible_to_expressions():
    doc = parse_document(
        _page(
            "text t { content = @tokens.color.text; gap = @tokens.space.m * 2; }",
            extra='  tokens { color.text = "#202020"; }',
        )
    )
    rendered = render_document(doc)
    assert _prop(rendered, "t") == "#202020"
    assert _prop(rendered, "t", "gap") == 16


def test_nodes_get_a_style_from_style_role_variant_or_kind():
    doc = parse_document(
        _page(
            """
            text body { content = "b"; }
            text head { style = "H1"; content = "h"; }
            text cap { role = "caption"; content = "c"; }
            text sub { variant = "heading"; content = "s"; }
            text own { role = "aside"; content = "a"; }
            figure fig { }
            """
        )
    )
    body = render_document_ir(doc).body

    def style(node_id):
        found = _find(body, node_id).style
        return None if found is None else (found.name, found.role, found.class_name)

    assert style("body") == ("Body", None, "flux-style-Body")
    assert style("head") == ("H1", None, "flux-style-H1")
    assert style("cap") == ("Caption", "caption", "flux-style-Caption")
    assert style("sub") == ("H2", None, "flux-style-H2")
    assert style("own") == ("aside", "aside", "flux-style-aside")
    assert style("fig") is None
    assert style("p") is None


def test_ir_carries_theme_and_static_style_definitions():
    doc = parse_document(
        _page(
            'text t { style = "Lead"; content = "x"; }',
            extra='  styles { Lead : Body { font.size = 14; color = @tokens.color.muted; } }',
        )
    )
    ir = render_document_ir(doc)
    assert ir.theme == "screen"
    definitions = {definition.name: definition for definition in ir.styles}
    assert definitions["Body"].class_name == "flux-style-Body"
    assert definitions["Body"].props["color"] == "#1d1b17"
    lead = definitions["Lead"]
    assert lead.props["font.size"] == 14
    assert lead.props["font.family"] == definitions["Body"].props["font.family"]
    assert lead.props["color"] == "#6b645a"
    assert _find(ir.body, "t").style.inline is None

    data = json.loads(ir.to_json())
    assert data["theme"] == "screen"
    assert data["styles"][0]["name"] == "Body"
    assert data["styles"][0]["className"] == "flux-style-Body"


def test_meta_target_selects_the_theme():
    doc = parse_document(
        _page(
            'text t { content = @tokens.color.text; }',
            extra="""
  meta { target = "print"; }
  tokens { color.text = "#333"; }
  styles { H1 { font.size = 20; } }
  theme print {
    tokens { color.text = "#000"; }
    styles { H1 { font.size = 18; } }
  }
""",
        )
    )
    ir = render_document_ir(doc)
    definitions = {definition.name: definition for definition in ir.styles}
    assert ir.theme == "print"
    assert _prop(ir, "t") == "#000"
    assert definitions["Body"].props["color"] == "#000"
    assert definitions["H1"].props["font.size"] == 18
    assert definitions["H1"].props["font.weight"] == 600


def test_dynamic_style_props_resolve_inline_inside_slots():
    doc = parse_document(
        _page(
            'slot s { text t { style = "Pulse"; content = "x"; } }',
            extra="""
  state { param big : int @ 18; }
  styles { Pulse : Body { font.size = @big; color = @tokens.color.link; } }
""",
        )
    )
    style = _find(render_document_ir(doc).body, "t").style
    assert style.name == "Pulse"
    assert style.inline == {"font.size": 18}


def test_layout_sensitive_dynamic_style_outside_a_slot_raises():
    doc = parse_document(
        _page(
            'text t { style = "Pulse"; content = "x"; }',
            extra="""
  state { param big : int @ 18; }
  styles { Pulse : Body { font.size = @big; } }
""",
        )
    )
    with pytest.raises(EvaluationError) as excinfo:
        render_document(doc)
    assert excinfo.value.message == "Dynamic style 'Pulse.font.size' must be inside a slot or marked axes-safe for screen"


def test_axes_safe_styles_allow_dynamic_axes_on_screen():
    doc = parse_document(
        _page(
            'text t { style = "Breathe"; content = "x"; }',
            extra="""
  state { param weight : int @ 300; }
  styles { Breathe : Body { font.axes.safe = true; font.axes.wght = @weight; color = @weight; } }
""",
        )
    )
    style = _find(render_document_ir(doc).body, "t").style
    assert style.inline == {"font.axes.wght": 300, "color": 300}


def test_style_inheritance_cycle_raises():
    doc = parse_document(_page('text t { content = "x"; }', extra="  styles { A : B { } B : A { } }"))
    with pytest.raises(EvaluationError, match="Style inheritance cycle detected"):
        render_document(doc)

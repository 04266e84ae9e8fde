import json

from fluxlang import parse_document
from fluxlang.serialize import document_to_dict, dumps, loads

FULL_DOC = """
document {
  meta { title = "Everything"; }
  state { param tempo : float [40, inf] @ 96.5; param mode : enum @ calm; }
  pageConfig { size { width = 8.5; height = 11; units = "in"; } }
  grid main {
    topology = grid;
    page = 2;
    size { rows = 1; cols = 2; }
    cell a { tags = [x, y]; content = "hi"; dynamic = 0.5; }
    cell b { mediaId = "clip"; }
  }
  rule r(mode = docstep, grid = main) {
    when neighbors.orth().dynamic >= 0.5 then { let n = 1; cell.content = "on"; advanceDocstep(); }
    else when not (tempo < 50) then { tempo = -tempo; }
    else { mode = "calm"; }
  }
  runtime { eventsApply = "immediate"; docstepAdvance = [timer(4 beats)]; }
  assets {
    asset hero { kind = image; path = "hero.png"; tags = [cover]; weight = 2; meta { credit = "me"; } }
    bank b { kind = audio; root = "snd"; include = "*.wav"; strategy = uniform; }
  }
  materials {
    material m { label = "M"; score { text = "c d e"; clef = "treble"; } video { clip = "v.mp4"; inSeconds = 1; } }
  }
  body {
    page p {
      slot s {
        refresh = every(3 m);
        transition = wipe(duration = 0.5 s, direction = up);
        text t { content = @cycle(["a", "b"], index = docstep); style = "H1"; }
      }
    }
  }
  tokens { color.text = "#222"; }
  styles { Lead : Body { font.size = 14; color = @tokens.color.text; } }
  theme print { tokens { color.text = "#000"; } styles { Lead { font.size = 12; } } }
}
"""


def test_round_trip_preserves_the_document():
    doc = parse_document(FULL_DOC)
    assert loads(dumps(doc)) == doc


def test_round_trip_of_grid_document(grid_doc):
    assert loads(dumps(grid_doc)) == grid_doc


def test_dump_shape_uses_camel_case_and_kinds():
    data = document_to_dict(parse_document(FULL_DOC))
    assert data["pageConfig"] == {"size": {"width": 8.5, "height": 11, "units": "in"}}
    assert data["runtime"] == {
        "eventsApply": "immediate",
        "docstepAdvance": [{"kind": "timer", "amount": 4, "unit": "beats"}],
    }
    rule = data["rules"][0]
    assert rule["condition"] == rule["branches"][0]["condition"]
    assert rule["condition"]["kind"] == "BinaryExpression"
    assert rule["condition"]["left"]["object"]["kind"] == "NeighborsCallExpression"
    assert [stmt["kind"] for stmt in rule["thenBranch"]] == [
        "LetStatement",
        "AssignmentStatement",
        "AdvanceDocstepStatement",
    ]
    slot = data["body"]["nodes"][0]["children"][0]
    assert slot["refresh"] == {"kind": "every", "amount": 3, "unit": "m"}
    assert slot["transition"] == {"kind": "wipe", "durationMs": 500, "direction": "up"}
    assert slot["children"][0]["props"]["style"] == {"kind": "LiteralValue", "value": "H1"}
    assert "loc" not in slot


def test_locations_are_optional():
    doc = parse_document(FULL_DOC)
    data = json.loads(dumps(doc, include_locations=True))
    assert data["grids"][0]["loc"] == {"line": 6, "column": 3}
    assert loads(json.dumps(data)).grids[0].span.line == 6


def test_dump_shape_of_tokens_styles_and_themes():
    data = document_to_dict(parse_document(FULL_DOC))
    assert data["tokens"] == {"tokens": {"color.text": "#222"}}
    (lead,) = data["styles"]["styles"]
    assert (lead["name"], lead["extends"]) == ("Lead", "Body")
    assert lead["props"]["font.size"] == {"kind": "LiteralValue", "value": 14}
    assert lead["props"]["color"]["kind"] == "DynamicValue"
    (theme,) = data["themes"]
    assert theme["name"] == "print"
    assert theme["tokens"] == {"tokens": {"color.text": "#000"}}
    assert theme["styles"]["styles"][0]["props"] == {"font.size": {"kind": "LiteralValue", "value": 12}}

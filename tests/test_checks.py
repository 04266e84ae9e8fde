from fluxlang import check_document, parse_document

BROKEN_DOC = "\n".join(
    [
        "document {",
        "  grid main { topology = grid; size { rows = 1; cols = 1; } }",
        "  rule lost(mode = docstep, grid = missing) { when true then { x = 1; } }",
        "  body {",
        "    page p1 {",
        '      figure f1 { label = "fig:one"; }',
        '      figure f2 { label = "fig:one"; }',
        '      text t1 { content = @ref("fig:nowhere"); }',
        "    }",
        "  }",
        "}",
    ]
)


def _check(source: str):
    return check_document("doc.flux", parse_document(source))


def test_reports_exactly_the_three_problems():
    errors = _check(BROKEN_DOC)
    assert errors == [
        "doc.flux:3:3: Check error: Rule 'lost' references unknown grid 'missing'",
        "doc.flux:7:7: Check error: duplicate label 'fig:one'",
        "doc.flux:8:7: Check error: ref('fig:nowhere') target not found",
    ]


def test_clean_document_has_no_diagnostics(grid_doc):
    assert check_document("grid.flux", grid_doc) == []


def test_refresh_and_transition_only_on_slots():
    errors = _check(
        """
        document { body { page p {
          text t { refresh = docstep; transition = appear; content = "x"; }
          slot s { refresh = docstep; transition = appear; }
        } } }
        """
    )
    assert len(errors) == 2
    assert "refresh is only allowed on slot or inline_slot nodes (found 'text')" in errors[0]
    assert "transition is only allowed on slot or inline_slot nodes (found 'text')" in errors[1]


def test_visible_if_must_be_static_and_boolean():
    errors = _check(
        """
        document { body { page p {
          text a { visibleIf = "yes"; }
          text b { visibleIf = @docstep > 2; }
          text c { visibleIf = @choose([true, false]); }
          text d { visibleIf = @showNotes and not draft; }
        } } }
        """
    )
    messages = [error.split("Check error: ", 1)[1] for error in errors]
    assert messages == [
        "visibleIf expects a boolean",
        "visibleIf cannot depend on time/docstep or random helpers",
        "visibleIf cannot depend on time/docstep or random helpers",
    ]


def test_grid_node_must_reference_declared_grid():
    errors = _check(
        """
        document {
          grid main { topology = grid; size { rows = 1; cols = 1; } }
          body { page p {
            grid main { }
            grid other { ref = "main"; }
            grid board { }
          } }
        }
        """
    )
    assert len(errors) == 1
    assert "grid node 'board' references unknown grid 'board'" in errors[0]


def test_unsupported_neighbors_method():
    errors = _check(
        """
        document {
          grid g { topology = grid; size { rows = 1; cols = 1; } }
          rule r(grid = g) { when neighbors.diag().dynamic > 0 then { cell.content = "x"; } }
        }
        """
    )
    assert len(errors) == 1
    assert "Unsupported neighbors method 'diag'" in errors[0]


def test_ref_requires_literal_label():
    errors = _check('document { body { page p { text t { content = @ref(name); } } } }')
    assert len(errors) == 1
    assert errors[0].endswith("Check error: ref() expects a literal string label")

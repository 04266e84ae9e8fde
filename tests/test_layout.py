from fluxlang import compute_grid_layout, create_runtime, parse_document
from fluxlang.runtime import RuntimeGridSnapshot, RuntimeSnapshot
from fluxlang.runtime.engine import RuntimeCellSnapshot


def test_cells_are_placed_row_major():
    doc = parse_document(
        """
        document {
          grid board {
            topology = grid;
            size { rows = 2; cols = 2; }
            cell a { content = "A"; }
            cell b { }
            cell c { }
            cell d { content = "D"; }
          }
        }
        """
    )
    layout = compute_grid_layout(doc, create_runtime(doc).snapshot())
    assert layout.docstep == 0
    view = layout.view("board")
    assert (view.rows, view.cols) == (2, 2)
    assert [(cell.id, cell.row, cell.col) for cell in view.cells] == [
        ("a", 0, 0),
        ("b", 0, 1),
        ("c", 1, 0),
        ("d", 1, 1),
    ]
    assert view.find(1, 1).content == "D"
    assert view.find(2, 0) is None


def test_non_grid_topologies_are_skipped():
    doc = parse_document(
        """
        document {
          grid strip { topology = linear; cell a { } }
          grid board { topology = grid; size { rows = 1; cols = 1; } }
        }
        """
    )
    layout = compute_grid_layout(doc, create_runtime(doc).snapshot())
    assert [view.name for view in layout.grids] == ["board"]
    assert layout.view("strip") is None


def test_missing_dimensions_fall_back_to_a_single_row():
    doc = parse_document("document { grid loose { topology = grid; } }")
    snapshot = RuntimeSnapshot(
        docstep=4,
        grids=[
            RuntimeGridSnapshot(
                name="loose",
                topology="grid",
                cells=[RuntimeCellSnapshot(id="x"), RuntimeCellSnapshot(id="y"), RuntimeCellSnapshot(id="z")],
            )
        ],
    )
    view = compute_grid_layout(doc, snapshot).view("loose")
    assert (view.rows, view.cols) == (1, 3)
    assert [(cell.row, cell.col) for cell in view.cells] == [(0, 0), (0, 1), (0, 2)]


def test_layout_follows_the_runtime(grid_doc):
    runtime = create_runtime(grid_doc)
    runtime.step()
    view = compute_grid_layout(grid_doc, runtime.snapshot()).view("main")
    assert [cell.content for cell in view.cells] == ["noise", "", "noise"]

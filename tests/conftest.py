import pytest

from fluxlang import parse_document


@pytest.fixture(autouse=True)
def _clean_flux_env(monkeypatch):
    """Keep FLUX_* settings from the developer's shell out of every test."""
    for name in ("FLUX_SEED", "FLUX_ASSET_CWD", "FLUX_DOCSTEP_INTERVAL_MS", "FLUX_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield


GRID_DOC = """
document {
  meta { title = "Noise"; }
  state {
    param tempo : float [40, 200] @ 96;
  }
  grid main {
    topology = grid;
    size { rows = 1; cols = 3; }
    cell a { tags = [left]; dynamic = 0.6; }
    cell b { tags = [middle]; dynamic = 0.6; }
    cell c { tags = [right]; dynamic = 0.4; }
  }
  rule spread(mode = docstep, grid = main) {
    when cell.content == "" and neighbors.all().dynamic > 0.5 then {
      cell.content = "noise";
    }
  }
}
"""


@pytest.fixture
def grid_doc():
    return parse_document(GRID_DOC)

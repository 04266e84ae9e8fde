"""
Row/column layout of grid snapshots for grid-like viewers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from . import ast_nodes
from .runtime.engine import RuntimeSnapshot


@dataclass
class GridCellView:
    id: str
    row: int
    col: int
    tags: List[str] = field(default_factory=list)
    content: Optional[Any] = None
    media_id: Optional[str] = None
    dynamic: Optional[Any] = None
    density: Optional[Any] = None
    salience: Optional[Any] = None


@dataclass
class GridView:
    name: str
    rows: int
    cols: int
    cells: List[GridCellView] = field(default_factory=list)

    def find(self, row: int, col: int) -> Optional[GridCellView]:
        for cell in self.cells:
            if cell.row == row and cell.col == col:
                return cell
        return None


@dataclass
class GridLayoutModel:
    docstep: int
    grids: List[GridView] = field(default_factory=list)

    def view(self, name: str) -> Optional[GridView]:
        for grid in self.grids:
            if grid.name == name:
                return grid
        return None


def compute_grid_layout(doc: ast_nodes.FluxDocument, snapshot: RuntimeSnapshot) -> GridLayoutModel:
    """
    Place every snapshot cell of each ``topology = grid`` grid at (row, col).

    Rows and columns come from the declaration, then the snapshot; a grid
    without both is laid out as a single row.
    """

    views: List[GridView] = []
    for grid_def in doc.grids:
        if grid_def.topology != "grid":
            continue
        snap = next((grid for grid in snapshot.grids if grid.name == grid_def.name), None)
        if snap is None:
            continue
        rows = _first_set(grid_def.size.rows, snap.rows)
        cols = _first_set(grid_def.size.cols, snap.cols)
        if not rows or not cols:
            rows = 1
            cols = len(snap.cells) or 1
        cells = [
            GridCellView(
                id=cell.id,
                row=idx // cols,
                col=idx % cols,
                tags=list(cell.tags or []),
                content=cell.content,
                media_id=cell.media_id,
                dynamic=cell.dynamic,
                density=cell.density,
                salience=cell.salience,
            )
            for idx, cell in enumerate(snap.cells)
        ]
        views.append(GridView(name=grid_def.name, rows=rows, cols=cols, cells=cells))
    return GridLayoutModel(docstep=snapshot.docstep, grids=views)


def _first_set(*values: Optional[int]) -> int:
    for value in values:
        if value is not None:
            return value
    return 0

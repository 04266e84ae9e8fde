"""
Runtime state values produced and consumed by the grid kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

ParamValue = Union[int, float, str, bool]

# cell.<name> in rule expressions -> RuntimeCellState attribute
CELL_FIELDS = {
    "id": "id",
    "tags": "tags",
    "content": "content",
    "mediaId": "media_id",
    "dynamic": "dynamic",
    "density": "density",
    "salience": "salience",
}


@dataclass(frozen=True)
class RuntimeCellState:
    id: str
    tags: List[str] = field(default_factory=list)
    content: Any = ""
    dynamic: Any = 0
    density: Any = None
    salience: Any = None
    media_id: Any = None


@dataclass
class GridRuntimeState:
    name: str
    rows: int
    cols: int
    cells: List[RuntimeCellState] = field(default_factory=list)

    def cell_at(self, row: int, col: int) -> Optional[RuntimeCellState]:
        idx = row * self.cols + col
        if 0 <= idx < len(self.cells):
            return self.cells[idx]
        return None


@dataclass
class RuntimeState:
    docstep_index: int = 0
    params: Dict[str, Any] = field(default_factory=dict)
    grids: Dict[str, GridRuntimeState] = field(default_factory=dict)


@dataclass(frozen=True)
class NeighborRef:
    row: int
    col: int
    cell: RuntimeCellState


@dataclass
class NeighborsNamespace:
    """Neighbourhood accessors for the cell currently being evaluated."""

    all: Callable[[], List[NeighborRef]]
    orth: Callable[[], List[NeighborRef]]


@dataclass
class FluxEvent:
    type: str
    location: Any = None
    payload: Any = None
    source: Optional[str] = None
    timestamp: Optional[float] = None

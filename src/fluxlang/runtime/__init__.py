"""
Grid runtime: kernel, state model and the embedder-facing wrapper.
"""

from .engine import (
    DocstepIntervalHint,
    Runtime,
    RuntimeCellSnapshot,
    RuntimeGridSnapshot,
    RuntimeSnapshot,
    build_snapshot,
    create_runtime,
    get_docstep_interval_hint,
)
from .kernel import handle_event, init_runtime_state, run_docstep_once
from .model import (
    FluxEvent,
    GridRuntimeState,
    NeighborRef,
    NeighborsNamespace,
    RuntimeCellState,
    RuntimeState,
)

__all__ = [
    "DocstepIntervalHint",
    "FluxEvent",
    "GridRuntimeState",
    "NeighborRef",
    "NeighborsNamespace",
    "Runtime",
    "RuntimeCellSnapshot",
    "RuntimeCellState",
    "RuntimeGridSnapshot",
    "RuntimeSnapshot",
    "RuntimeState",
    "build_snapshot",
    "create_runtime",
    "get_docstep_interval_hint",
    "handle_event",
    "init_runtime_state",
    "run_docstep_once",
]

"""
Embedder-facing runtime wrapper around the grid kernel.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .. import ast_nodes
from ..config import load_config
from ..errors import FluxError
from ..units import MUSICAL_UNITS, normalize_unit
from .kernel import handle_event, init_runtime_state, run_docstep_once
from .model import FluxEvent, RuntimeState

logger = logging.getLogger(__name__)

CLOCK_MODES = ("manual", "timer")

_MS_PER_UNIT = {"ms": 1, "s": 1000, "m": 60_000, "h": 3_600_000}


@dataclass
class RuntimeCellSnapshot:
    id: str
    tags: List[str] = field(default_factory=list)
    content: Optional[Any] = None
    media_id: Optional[str] = None
    dynamic: Optional[Any] = None
    density: Optional[Any] = None
    salience: Optional[Any] = None


@dataclass
class RuntimeGridSnapshot:
    name: str
    topology: str
    rows: Optional[int] = None
    cols: Optional[int] = None
    cells: List[RuntimeCellSnapshot] = field(default_factory=list)


@dataclass
class RuntimeSnapshot:
    """A viewer-friendly copy of the runtime state."""

    docstep: int
    params: Dict[str, Any] = field(default_factory=dict)
    grids: List[RuntimeGridSnapshot] = field(default_factory=list)


@dataclass
class DocstepIntervalHint:
    ms: Optional[float]
    reason: str


def get_docstep_interval_hint(doc: ast_nodes.FluxDocument, state: Optional[RuntimeState] = None) -> DocstepIntervalHint:
    specs = doc.runtime.docstep_advance if doc.runtime and doc.runtime.docstep_advance else []
    spec = next((item for item in specs if item.kind == "timer"), None)
    if spec is None:
        return DocstepIntervalHint(ms=None, reason="No timer-based docstepAdvance in runtime config.")
    unit = normalize_unit(spec.unit)
    if unit is None or unit in MUSICAL_UNITS:
        return DocstepIntervalHint(ms=None, reason=f"Timer unit '{spec.unit}' is not supported for interval hinting.")
    return DocstepIntervalHint(
        ms=spec.amount * _MS_PER_UNIT[unit],
        reason=f"Derived from runtime.docstepAdvance timer({spec.amount} {spec.unit})",
    )


def build_snapshot(doc: ast_nodes.FluxDocument, state: RuntimeState, docstep: int) -> RuntimeSnapshot:
    grids: List[RuntimeGridSnapshot] = []
    for grid_def in doc.grids:
        runtime_grid = state.grids.get(grid_def.name)
        rows = runtime_grid.rows if runtime_grid is not None else grid_def.size.rows
        cols = runtime_grid.cols if runtime_grid is not None else grid_def.size.cols
        runtime_cells = runtime_grid.cells if runtime_grid is not None else []
        count = max(len(runtime_cells), len(grid_def.cells))
        cells: List[RuntimeCellSnapshot] = []
        for idx in range(count):
            definition = grid_def.cells[idx] if idx < len(grid_def.cells) else None
            cell = runtime_cells[idx] if idx < len(runtime_cells) else None
            cells.append(
                RuntimeCellSnapshot(
                    id=_first(_attr(cell, "id"), _attr(definition, "id"), f"cell{idx}"),
                    tags=list(_first(_attr(cell, "tags"), _attr(definition, "tags"), [])),
                    content=_first(_attr(cell, "content"), _attr(definition, "content")),
                    media_id=_first(_attr(definition, "media_id"), _attr(cell, "media_id")),
                    dynamic=_first(_attr(cell, "dynamic"), _attr(definition, "dynamic")),
                    density=_first(_attr(definition, "density"), _attr(cell, "density")),
                    salience=_first(_attr(definition, "salience"), _attr(cell, "salience")),
                )
            )
        grids.append(
            RuntimeGridSnapshot(name=grid_def.name, topology=grid_def.topology, rows=rows, cols=cols, cells=cells)
        )
    return RuntimeSnapshot(docstep=docstep, params=dict(state.params), grids=grids)


def _attr(obj: Any, name: str) -> Any:
    return getattr(obj, name) if obj is not None else None


def _first(*candidates: Any) -> Any:
    """First candidate that is not None (empty strings and zeros count as values)."""
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


class Runtime:
    """
    Holds the current RuntimeState of one document and advances it.

    In ``timer`` clock mode `start()` schedules a daemon timer that steps the
    document and hands every new snapshot to ``on_docstep``. A rule error
    stops the timer, is kept in ``last_error`` and is passed to ``on_error``.
    A Runtime has a single driver; it is not meant to be stepped from several
    threads.
    """

    def __init__(
        self,
        doc: ast_nodes.FluxDocument,
        clock: str = "manual",
        docstep_interval_ms: Optional[float] = None,
        on_docstep: Optional[Callable[[RuntimeSnapshot], None]] = None,
        on_error: Optional[Callable[[FluxError], None]] = None,
    ) -> None:
        if clock not in CLOCK_MODES:
            raise ValueError(f"Unknown clock mode '{clock}'")
        self._doc = doc
        self.clock = clock
        self.docstep_interval_ms = docstep_interval_ms
        self.on_docstep = on_docstep
        self.on_error = on_error
        self.last_error: Optional[FluxError] = None
        self._state = init_runtime_state(doc)
        self._docstep = self._state.docstep_index
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def doc(self) -> ast_nodes.FluxDocument:
        return self._doc

    @property
    def state(self) -> RuntimeState:
        return self._state

    @property
    def docstep(self) -> int:
        return self._docstep

    @property
    def running(self) -> bool:
        return self._timer is not None

    def snapshot(self) -> RuntimeSnapshot:
        return build_snapshot(self._doc, self._state, self._docstep)

    def step(self) -> RuntimeSnapshot:
        self._state = run_docstep_once(self._doc, self._state)
        self._docstep = self._state.docstep_index
        return self.snapshot()

    def reset(self) -> RuntimeSnapshot:
        self._state = init_runtime_state(self._doc)
        self._docstep = 0
        return self.snapshot()

    def apply_event(self, event: FluxEvent) -> None:
        self._state = handle_event(self._doc, self._state, event)
        self._docstep = self._state.docstep_index

    def interval_ms(self) -> float:
        if self.docstep_interval_ms is not None:
            return self.docstep_interval_ms
        hint = get_docstep_interval_hint(self._doc, self._state)
        if hint.ms is not None:
            return hint.ms
        return load_config().docstep_interval_ms

    def start(self) -> None:
        if self.clock != "timer":
            return
        with self._lock:
            if self._timer is not None:
                return
            self.last_error = None
            interval = self.interval_ms()
            logger.info("Starting docstep timer every %s ms", interval)
            self._schedule(interval)

    def stop(self) -> None:
        with self._lock:
            if self._timer is None:
                return
            self._timer.cancel()
            self._timer = None
        logger.info("Stopped docstep timer at docstep %s", self._docstep)

    def _schedule(self, interval: float) -> None:
        timer = threading.Timer(interval / 1000, self._on_timer, args=(interval,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self, interval: float) -> None:
        with self._lock:
            if self._timer is None:
                return
        try:
            snapshot = self.step()
        except FluxError as exc:
            with self._lock:
                self._timer = None
            self.last_error = exc
            logger.exception("Docstep timer stopped at docstep %s", self._docstep)
            if self.on_error is not None:
                self.on_error(exc)
            return
        if self.on_docstep is not None:
            self.on_docstep(snapshot)
        with self._lock:
            if self._timer is not None:
                self._schedule(interval)


def create_runtime(
    doc: ast_nodes.FluxDocument,
    clock: str = "manual",
    docstep_interval_ms: Optional[float] = None,
    on_docstep: Optional[Callable[[RuntimeSnapshot], None]] = None,
    on_error: Optional[Callable[[FluxError], None]] = None,
) -> Runtime:
    return Runtime(
        doc, clock=clock, docstep_interval_ms=docstep_interval_ms, on_docstep=on_docstep, on_error=on_error
    )

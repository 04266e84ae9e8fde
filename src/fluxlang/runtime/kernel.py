"""
Grid runtime kernel.

`run_docstep_once` evaluates every ``mode = docstep`` rule against the same
previous state and records writes in two write-ahead maps; the writes are
committed in one pass afterwards (last writer wins per key), which gives
cellular-automaton style simultaneous updates.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional, Tuple

from .. import ast_nodes
from ..errors import KernelError
from ..values import binary_arith, is_finite_number, js_typeof, negate, strict_equals, truthy
from .model import (
    CELL_FIELDS,
    FluxEvent,
    GridRuntimeState,
    NeighborRef,
    NeighborsNamespace,
    RuntimeCellState,
    RuntimeState,
)

logger = logging.getLogger(__name__)

CellKey = Tuple[str, int, int]

MOORE_OFFSETS = [(dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1) if (dr, dc) != (0, 0)]
ORTH_OFFSETS = [(-1, 0), (0, -1), (0, 1), (1, 0)]


def init_runtime_state(doc: ast_nodes.FluxDocument) -> RuntimeState:
    """Seed params from their initial values and materialise every grid row-major."""
    params = {param.name: param.initial for param in doc.state.params}
    grids: Dict[str, GridRuntimeState] = {}
    for grid in doc.grids:
        rows = grid.size.rows or 0
        cols = grid.size.cols or 0
        cells: List[RuntimeCellState] = []
        for row in range(rows):
            for col in range(cols):
                idx = row * cols + col
                if idx < len(grid.cells):
                    cells.append(_cell_from_definition(grid.cells[idx]))
                else:
                    cells.append(RuntimeCellState(id=f"r{row}c{col}"))
        grids[grid.name] = GridRuntimeState(name=grid.name, rows=rows, cols=cols, cells=cells)
    return RuntimeState(docstep_index=0, params=params, grids=grids)


def _cell_from_definition(cell: ast_nodes.FluxCell) -> RuntimeCellState:
    return RuntimeCellState(
        id=cell.id,
        tags=list(cell.tags),
        content=cell.content if cell.content is not None else "",
        dynamic=cell.dynamic if isinstance(cell.dynamic, (int, float)) else 0,
        density=cell.density,
        salience=cell.salience,
        media_id=cell.media_id,
    )


def run_docstep_once(doc: ast_nodes.FluxDocument, prev: RuntimeState) -> RuntimeState:
    param_writes: Dict[str, Any] = {}
    cell_writes: Dict[CellKey, Dict[str, Any]] = {}

    for rule in doc.rules:
        if rule.mode != "docstep":
            continue
        grid_name = rule.scope.grid if rule.scope else None
        if not grid_name:
            evaluator = RuleEvaluator(prev.params)
            _run_rule(rule, evaluator, None, param_writes, cell_writes)
            continue
        grid = prev.grids.get(grid_name)
        if grid is None:
            logger.debug("Skipping rule %s: grid %s is not declared", rule.name, grid_name)
            continue
        for row in range(grid.rows):
            for col in range(grid.cols):
                cell = grid.cell_at(row, col)
                if cell is None:
                    continue
                evaluator = RuleEvaluator(prev.params, cell=cell, neighbors=_neighbors(grid, row, col))
                _run_rule(rule, evaluator, (grid_name, row, col), param_writes, cell_writes)

    next_state = _commit(prev, param_writes, cell_writes)
    logger.debug(
        "Docstep %s -> %s: %s param writes, %s cell writes",
        prev.docstep_index,
        next_state.docstep_index,
        len(param_writes),
        len(cell_writes),
    )
    return next_state


def handle_event(doc: ast_nodes.FluxDocument, state: RuntimeState, event: FluxEvent) -> RuntimeState:
    """Event rules are not executed yet; the state is returned unchanged."""
    return state


def _run_rule(
    rule: ast_nodes.FluxRule,
    evaluator: "RuleEvaluator",
    cell_key: Optional[CellKey],
    param_writes: Dict[str, Any],
    cell_writes: Dict[CellKey, Dict[str, Any]],
) -> None:
    # else-when and else branches are parsed but not executed by docsteps
    condition = evaluator.evaluate(rule.condition)
    if not isinstance(condition, bool):
        raise KernelError(
            f"Docstep rule '{rule.name}' condition did not evaluate to a boolean (got {js_typeof(condition)})"
        )
    if condition:
        _apply_statements(rule.then_branch, evaluator, cell_key, param_writes, cell_writes)


def _apply_statements(
    statements: List[ast_nodes.Statement],
    evaluator: "RuleEvaluator",
    cell_key: Optional[CellKey],
    param_writes: Dict[str, Any],
    cell_writes: Dict[CellKey, Dict[str, Any]],
) -> None:
    for stmt in statements:
        # let and advanceDocstep() have no kernel-level effect
        if not isinstance(stmt, ast_nodes.AssignmentStatement):
            continue
        target = stmt.target
        value = evaluator.evaluate(stmt.value)
        if isinstance(target, ast_nodes.Identifier):
            param_writes[target.name] = value
            continue
        if (
            isinstance(target, ast_nodes.MemberExpr)
            and isinstance(target.object, ast_nodes.Identifier)
            and target.object.name == "cell"
        ):
            if cell_key is None:
                raise KernelError("cell.* assignment is only allowed in grid-scoped docstep rules")
            attr = CELL_FIELDS.get(target.property)
            if attr is None:
                raise KernelError(f"Unsupported cell field '{target.property}'")
            cell_writes.setdefault(cell_key, {})[attr] = value
            continue
        raise KernelError("Unsupported assignment target")


def _commit(
    prev: RuntimeState,
    param_writes: Dict[str, Any],
    cell_writes: Dict[CellKey, Dict[str, Any]],
) -> RuntimeState:
    params = dict(prev.params)
    params.update(param_writes)
    grids = {
        name: GridRuntimeState(name=grid.name, rows=grid.rows, cols=grid.cols, cells=list(grid.cells))
        for name, grid in prev.grids.items()
    }
    for (grid_name, row, col), patch in cell_writes.items():
        grid = grids.get(grid_name)
        if grid is None:
            continue
        idx = row * grid.cols + col
        if idx >= len(grid.cells):
            continue
        grid.cells[idx] = dataclasses.replace(grid.cells[idx], **patch)
    return RuntimeState(docstep_index=prev.docstep_index + 1, params=params, grids=grids)


def _neighbors(grid: GridRuntimeState, row: int, col: int) -> NeighborsNamespace:
    def collect(offsets: List[Tuple[int, int]]) -> List[NeighborRef]:
        refs: List[NeighborRef] = []
        for dr, dc in offsets:
            rr, cc = row + dr, col + dc
            if 0 <= rr < grid.rows and 0 <= cc < grid.cols:
                cell = grid.cell_at(rr, cc)
                if cell is not None:
                    refs.append(NeighborRef(row=rr, col=cc, cell=cell))
        return refs

    return NeighborsNamespace(all=lambda: collect(MOORE_OFFSETS), orth=lambda: collect(ORTH_OFFSETS))


class RuleEvaluator:
    """Evaluates rule expressions against one cell (or none, for document rules)."""

    def __init__(
        self,
        params: Dict[str, Any],
        cell: Optional[RuntimeCellState] = None,
        neighbors: Optional[NeighborsNamespace] = None,
    ) -> None:
        self.params = params
        self.cell = cell
        self.neighbors = neighbors

    def evaluate(self, expr: ast_nodes.Expr) -> Any:
        if isinstance(expr, ast_nodes.LiteralExpr):
            return expr.value
        if isinstance(expr, ast_nodes.ListExpr):
            return [self.evaluate(item) for item in expr.items]
        if isinstance(expr, ast_nodes.Identifier):
            return self._identifier(expr.name)
        if isinstance(expr, ast_nodes.UnaryExpr):
            value = self.evaluate(expr.argument)
            if expr.op == "not":
                return not truthy(value)
            try:
                return negate(value)
            except TypeError as exc:
                raise KernelError(str(exc)) from exc
        if isinstance(expr, ast_nodes.BinaryExpr):
            return self._binary(expr)
        if isinstance(expr, ast_nodes.MemberExpr):
            return self._member(expr)
        if isinstance(expr, ast_nodes.NeighborsCallExpr):
            return self._neighbors_call(expr)
        if isinstance(expr, ast_nodes.CallExpr):
            raise KernelError("Call expressions are not supported in the runtime kernel")
        raise KernelError(f"Unsupported expression {type(expr).__name__}")

    def _identifier(self, name: str) -> Any:
        if name == "cell":
            if self.cell is None:
                raise KernelError("'cell' is not defined in this context")
            return self.cell
        if name == "neighbors":
            if self.neighbors is None:
                raise KernelError("'neighbors' is not defined in this context")
            return self.neighbors
        return self.params.get(name)

    def _binary(self, expr: ast_nodes.BinaryExpr) -> Any:
        if expr.op == "and":
            return truthy(self.evaluate(expr.left)) and truthy(self.evaluate(expr.right))
        if expr.op == "or":
            return truthy(self.evaluate(expr.left)) or truthy(self.evaluate(expr.right))
        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        if expr.op in {"==", "==="}:
            return strict_equals(left, right)
        if expr.op in {"!=", "!=="}:
            return not strict_equals(left, right)
        try:
            return binary_arith(expr.op, left, right)
        except TypeError as exc:
            raise KernelError(str(exc)) from exc

    def _member(self, expr: ast_nodes.MemberExpr) -> Any:
        if isinstance(expr.object, ast_nodes.NeighborsCallExpr):
            refs = self._neighbors_call(expr.object)
            if expr.property != "dynamic":
                raise KernelError(f"Unsupported neighbors aggregate property '{expr.property}'")
            values = [ref.cell.dynamic for ref in refs if is_finite_number(ref.cell.dynamic)]
            if not values:
                return 0
            return sum(values) / len(values)

        obj = self.evaluate(expr.object)
        if obj is None:
            raise KernelError(f"Cannot read property '{expr.property}' of null/undefined")
        if isinstance(obj, RuntimeCellState):
            attr = CELL_FIELDS.get(expr.property)
            if attr is None:
                raise KernelError(f"Unsupported cell field '{expr.property}'")
            return getattr(obj, attr)
        if isinstance(obj, dict):
            return obj.get(expr.property)
        raise KernelError(f"Cannot read property '{expr.property}' of a {js_typeof(obj)} value")

    def _neighbors_call(self, expr: ast_nodes.NeighborsCallExpr) -> List[NeighborRef]:
        if self.neighbors is None:
            raise KernelError("neighbors.*() used outside of a grid-scoped context")
        if expr.method == "all":
            return self.neighbors.all()
        if expr.method == "orth":
            return self.neighbors.orth()
        raise KernelError(f"Unsupported neighbors method '{expr.method}'")

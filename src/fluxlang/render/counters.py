"""
Construction-time passes over the body: synthesized legacy body, visibleIf
filtering and section/figure/table/footnote numbering.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .. import ast_nodes
from ..values import is_finite_number, truthy
from .evaluator import EvalContext, evaluate_expr
from .hashing import mulberry32, stable_hash
from .models import RenderNodeCounters

ROOT_PATH = "root"


def node_path(parent_path: str, node: ast_nodes.DocumentNode, index: int) -> str:
    return f"{parent_path}/{node.kind}:{node.id}:{index}"


def ensure_body(doc: ast_nodes.FluxDocument) -> List[ast_nodes.DocumentNode]:
    """The document body, or one synthesized page per distinct grid page for grid-only documents."""
    if doc.body is not None and doc.body.nodes:
        return doc.body.nodes
    if not doc.grids:
        return []
    pages: Dict[int, List[ast_nodes.DocumentNode]] = {}
    for grid in doc.grids:
        page = grid.page if grid.page is not None else 1
        pages.setdefault(page, []).append(
            ast_nodes.DocumentNode(
                id=grid.name,
                kind="grid",
                props={"ref": ast_nodes.LiteralValue(grid.name)},
            )
        )
    return [
        ast_nodes.DocumentNode(
            id=f"page{page}",
            kind="page",
            children=pages[page],
            refresh=ast_nodes.DocstepRefresh(),
        )
        for page in sorted(pages)
    ]


def apply_visibility(
    nodes: List[ast_nodes.DocumentNode],
    params: Dict[str, Any],
    meta: Dict[str, Any],
    seed: int,
    parent_path: str = ROOT_PATH,
    tokens: Optional[Dict[str, Any]] = None,
) -> List[ast_nodes.DocumentNode]:
    """Drop nodes whose visibleIf is falsy, evaluated once at time 0, docstep 0."""
    visible: List[ast_nodes.DocumentNode] = []
    for index, node in enumerate(nodes):
        path = node_path(parent_path, node, index)
        if not _is_visible(node, params, meta, tokens or {}, seed, path):
            continue
        children = apply_visibility(node.children, params, meta, seed, path, tokens) if node.children else []
        visible.append(dataclasses.replace(node, children=children))
    return visible


def _is_visible(
    node: ast_nodes.DocumentNode,
    params: Dict[str, Any],
    meta: Dict[str, Any],
    tokens: Dict[str, Any],
    seed: int,
    path: str,
) -> bool:
    prop = node.props.get("visibleIf")
    if prop is None:
        return True
    if isinstance(prop, ast_nodes.LiteralValue):
        return truthy(prop.value)
    prop_seed = stable_hash(seed, path, "visibleIf")
    ctx = EvalContext(
        params=params,
        time=0,
        docstep=0,
        rng=mulberry32(prop_seed),
        prop_seed=prop_seed,
        meta=meta,
        tokens=tokens,
    )
    return truthy(evaluate_expr(prop.expr, ctx))


@dataclass
class CounterRegistry:
    refs: Dict[str, str] = field(default_factory=dict)
    by_path: Dict[str, RenderNodeCounters] = field(default_factory=dict)


def build_counter_registry(nodes: List[ast_nodes.DocumentNode]) -> CounterRegistry:
    registry = CounterRegistry()
    sections: List[int] = []
    totals = {"figure": 0, "table": 0, "footnote": 0}

    def visit(node: ast_nodes.DocumentNode, parent_path: str, index: int) -> None:
        path = node_path(parent_path, node, index)
        counters = RenderNodeCounters()

        level = heading_level(node)
        if level is not None:
            while len(sections) < level:
                sections.append(0)
            del sections[level:]
            sections[level - 1] += 1
            counters.section = ".".join(str(n) for n in sections)

        if node.kind in totals:
            totals[node.kind] += 1
            setattr(counters, node.kind, totals[node.kind])

        label = _literal_string(node.props.get("label"))
        if label:
            counters.label = label
            counters.ref = format_ref_text(counters)
            registry.refs[label] = counters.ref

        if not counters.is_empty():
            registry.by_path[path] = counters
        for child_index, child in enumerate(node.children):
            visit(child, path, child_index)

    for index, node in enumerate(nodes):
        visit(node, ROOT_PATH, index)
    return registry


def heading_level(node: ast_nodes.DocumentNode) -> Optional[int]:
    if node.kind != "text":
        return None
    level = node.props.get("level")
    if isinstance(level, ast_nodes.LiteralValue) and is_finite_number(level.value) and level.value >= 1:
        return int(level.value)
    style = _literal_string(node.props.get("style"))
    if style == "H1":
        return 1
    if style == "H2":
        return 2
    if _literal_string(node.props.get("variant")) == "heading":
        return 1
    return None


def format_ref_text(counters: RenderNodeCounters) -> str:
    if counters.section:
        return f"§{counters.section}"
    if counters.figure is not None:
        return f"Figure {counters.figure}"
    if counters.table is not None:
        return f"Table {counters.table}"
    if counters.footnote is not None:
        return f"Footnote {counters.footnote}"
    return counters.label or ""


def _literal_string(prop: Optional[ast_nodes.NodePropValue]) -> Optional[str]:
    if isinstance(prop, ast_nodes.LiteralValue) and isinstance(prop.value, str):
        return prop.value
    return None

"""
Document render pipeline.

A `DocumentRuntime` owns an advancing (time, docstep) clock over one parsed
document. Each node is keyed by its path ``parent/kind:id:index``; dynamic
props are re-evaluated only when the node's refresh key changes, so renders
inside one refresh window return identical values.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .. import ast_nodes
from ..config import load_config
from ..errors import EvaluationError
from ..layout import compute_grid_layout
from ..runtime.engine import RuntimeSnapshot, create_runtime
from ..serialize import refresh_to_dict, transition_to_dict
from ..values import is_finite_number
from .assets import AssetResolver, ResolvedAsset, assets_to_render, build_asset_catalog
from .counters import ROOT_PATH, CounterRegistry, apply_visibility, build_counter_registry, ensure_body, node_path
from .evaluator import EvalContext, evaluate_expr, to_render_value
from .hashing import mulberry32, stable_hash
from .models import (
    RenderDocument,
    RenderDocumentIR,
    RenderGridCell,
    RenderGridData,
    RenderNode,
    RenderNodeIR,
    RenderNodeStyle,
    SlotInfo,
    SlotReserve,
)
from .refresh import compute_eval_window, compute_refresh_key, effective_policy
from .styles import StyleRegistry, build_style_registry, check_dynamic_key, make_style_class_name, style_name_for

logger = logging.getLogger(__name__)

Number = Union[int, float]

SLOT_FITS = ("clip", "ellipsis", "shrink", "scaleDown")
GRID_REF_PROPS = ("ref", "name", "grid")

_FIXED_RE = re.compile(r"^fixed\(\s*([0-9.+-]+)\s*,\s*([0-9.+-]+)\s*,\s*([^)]+)\s*\)$", re.IGNORECASE)
_FIXED_WIDTH_RE = re.compile(r"^fixedWidth\(\s*([0-9.+-]+)\s*,\s*([^)]+)\s*\)$", re.IGNORECASE)


@dataclass
class NodeCacheEntry:
    refresh_key: Number
    time: Number
    docstep: Number
    props: Dict[str, Any]


def build_params(params: List[ast_nodes.FluxParam]) -> Dict[str, Any]:
    return {param.name: param.initial for param in params}


def page_config_to_dict(config: Optional[ast_nodes.PageConfig]) -> Optional[Dict[str, Any]]:
    if config is None:
        return None
    size = config.size
    return {"size": {"width": size.width, "height": size.height, "units": size.units}}


class DocumentRuntime:
    """Renders one document at an advancing (time, docstep)."""

    def __init__(
        self,
        doc: ast_nodes.FluxDocument,
        seed: Optional[int] = None,
        time: Number = 0,
        docstep: Number = 0,
        asset_cwd: Optional[str] = None,
        asset_resolver: Optional[AssetResolver] = None,
    ) -> None:
        config = load_config()
        self._doc = doc
        self._seed = config.seed if seed is None else seed
        self._time = time
        self._docstep = docstep
        self.assets: List[ResolvedAsset] = build_asset_catalog(
            doc, cwd=asset_cwd or config.asset_cwd, resolver=asset_resolver
        )
        self.base_params = build_params(doc.state.params)
        self.styles: StyleRegistry = build_style_registry(doc)
        self.body = apply_visibility(
            ensure_body(doc), self.base_params, doc.meta, self._seed, tokens=self.styles.tokens
        )
        self.counters: CounterRegistry = build_counter_registry(self.body)
        self._cache: Dict[str, NodeCacheEntry] = {}
        self._snapshot: Optional[RuntimeSnapshot] = None
        self._snapshot_docstep: Optional[Number] = None

    @property
    def doc(self) -> ast_nodes.FluxDocument:
        return self._doc

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def time(self) -> Number:
        return self._time

    @property
    def docstep(self) -> Number:
        return self._docstep

    def tick(self, seconds: Number) -> Any:
        if not is_finite_number(seconds):
            raise ValueError("tick(seconds) requires a finite number")
        self._time += seconds
        return self.render()

    def step(self, n: Number = 1) -> Any:
        if not is_finite_number(n):
            raise ValueError("step(n) requires a finite number")
        self._docstep += n
        return self.render()

    def render(self) -> Any:
        return self.render_document()

    def render_document(self) -> RenderDocument:
        snapshot = self._legacy_snapshot()
        params = snapshot.params if snapshot is not None else self.base_params
        body = [
            self._render_node(node, ROOT_PATH, None, index, params, snapshot, False)
            for index, node in enumerate(self.body)
        ]
        logger.debug(
            "Rendered %s root nodes at time=%s docstep=%s (%s cached paths)",
            len(body),
            self._time,
            self._docstep,
            len(self._cache),
        )
        return RenderDocument(
            meta=dict(self._doc.meta),
            seed=self._seed,
            time=self._time,
            docstep=self._docstep,
            page_config=page_config_to_dict(self._doc.page_config),
            assets=assets_to_render(self.assets),
            body=body,
        )

    def _legacy_snapshot(self) -> Optional[RuntimeSnapshot]:
        """Grid kernel snapshot driven ``docstep`` times, memoised per docstep."""
        if not self._doc.grids:
            return None
        if self._snapshot is not None and self._snapshot_docstep == self._docstep:
            return self._snapshot
        runtime = create_runtime(self._doc, clock="manual")
        snapshot = runtime.snapshot()
        for _ in range(max(0, math.ceil(self._docstep))):
            snapshot = runtime.step()
        self._snapshot = snapshot
        self._snapshot_docstep = self._docstep
        return snapshot

    def _render_node(
        self,
        node: ast_nodes.DocumentNode,
        parent_path: str,
        parent_policy: Optional[ast_nodes.RefreshPolicy],
        index: int,
        params: Dict[str, Any],
        snapshot: Optional[RuntimeSnapshot],
        inside_slot: bool,
    ) -> RenderNode:
        path = node_path(parent_path, node, index)
        policy = effective_policy(node, parent_policy)
        refresh_key = compute_refresh_key(policy, self._time, self._docstep)
        cached = self._cache.get(path)
        if cached is None or cached.refresh_key != refresh_key:
            window = compute_eval_window(policy, self._time, self._docstep)
            props = self._resolve_props(node, path, refresh_key, window.time, window.docstep, params)
            cached = NodeCacheEntry(refresh_key, window.time, window.docstep, props)
            self._cache[path] = cached
        else:
            props = cached.props

        child_inside_slot = inside_slot or node.kind in ast_nodes.SLOT_KINDS
        children = [
            self._render_node(child, path, policy, child_index, params, snapshot, child_inside_slot)
            for child_index, child in enumerate(node.children)
        ]
        style = self._resolve_style(node, props, path, cached, params, inside_slot)
        rendered = RenderNode(id=node.id, kind=node.kind, props=props, children=children, style=style)
        if node.kind == "grid" and snapshot is not None:
            rendered.grid = self._grid_data(node, props, snapshot)
        return rendered

    def _resolve_props(
        self,
        node: ast_nodes.DocumentNode,
        path: str,
        refresh_key: Number,
        time: Number,
        docstep: Number,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        resolved: Dict[str, Any] = {}
        for key, value in node.props.items():
            if isinstance(value, ast_nodes.LiteralValue):
                resolved[key] = to_render_value(value.value)
                continue
            ctx = self._eval_context(stable_hash(self._seed, path, key, refresh_key), time, docstep, params)
            try:
                resolved[key] = to_render_value(evaluate_expr(value.expr, ctx))
            except EvaluationError as exc:
                raise EvaluationError(f"{exc} (node '{node.id}', kind '{node.kind}', prop '{key}')") from exc
        return resolved

    def _eval_context(self, prop_seed: int, time: Number, docstep: Number, params: Dict[str, Any]) -> EvalContext:
        return EvalContext(
            params=params,
            time=time,
            docstep=docstep,
            rng=mulberry32(prop_seed),
            prop_seed=prop_seed,
            assets=self.assets,
            meta=self._doc.meta,
            tokens=self.styles.tokens,
            refs=self.counters.refs,
        )

    def _resolve_style(
        self,
        node: ast_nodes.DocumentNode,
        props: Dict[str, Any],
        path: str,
        window: NodeCacheEntry,
        params: Dict[str, Any],
        inside_slot: bool,
    ) -> Optional[RenderNodeStyle]:
        name, role = style_name_for(node.kind, props)
        if not name:
            return None
        spec = self.styles.styles.get(name)
        if spec is None:
            return RenderNodeStyle(name=name, role=role, class_name=make_style_class_name(name))
        inline: Dict[str, Any] = {}
        for key, expr in spec.dynamic_props.items():
            check_dynamic_key(spec, key, self.styles.theme, inside_slot)
            prop_seed = stable_hash(self._seed, path, "style", spec.name, key, window.refresh_key)
            ctx = self._eval_context(prop_seed, window.time, window.docstep, params)
            inline[key] = to_render_value(evaluate_expr(expr, ctx))
        return RenderNodeStyle(name=name, role=role, class_name=spec.class_name, inline=inline or None)

    def _grid_data(
        self, node: ast_nodes.DocumentNode, props: Dict[str, Any], snapshot: RuntimeSnapshot
    ) -> Optional[RenderGridData]:
        ref = next((props[key] for key in GRID_REF_PROPS if props.get(key) is not None), node.id)
        if not isinstance(ref, str):
            ref = node.id
        view = compute_grid_layout(self._doc, snapshot).view(ref)
        if view is None:
            return None
        return RenderGridData(
            name=view.name,
            rows=view.rows,
            cols=view.cols,
            cells=[
                RenderGridCell(
                    id=cell.id,
                    row=cell.row,
                    col=cell.col,
                    tags=list(cell.tags),
                    content=cell.content,
                    media_id=cell.media_id,
                    dynamic=cell.dynamic,
                    density=cell.density,
                    salience=cell.salience,
                )
                for cell in view.cells
            ],
        )


class DocumentRuntimeIR(DocumentRuntime):
    """Same clock as DocumentRuntime; every render returns the IR flavour."""

    def render(self) -> RenderDocumentIR:
        rendered = self.render_document()
        return RenderDocumentIR(
            meta=rendered.meta,
            seed=rendered.seed,
            time=rendered.time,
            docstep=rendered.docstep,
            page_config=rendered.page_config,
            assets=rendered.assets,
            body=self._build_ir(self.body, rendered.body, ROOT_PATH, None),
            theme=self.styles.theme,
            styles=self.styles.definitions(),
        )

    def _build_ir(
        self,
        nodes: List[ast_nodes.DocumentNode],
        rendered: List[RenderNode],
        parent_path: str,
        parent_policy: Optional[ast_nodes.RefreshPolicy],
    ) -> List[RenderNodeIR]:
        result: List[RenderNodeIR] = []
        for index, (node, out) in enumerate(zip(nodes, rendered)):
            path = node_path(parent_path, node, index)
            policy = effective_policy(node, parent_policy)
            result.append(
                RenderNodeIR(
                    node_id=path,
                    id=out.id,
                    kind=out.kind,
                    props=out.props,
                    children=self._build_ir(node.children, out.children, path, policy),
                    refresh=refresh_to_dict(policy),
                    transition=transition_to_dict(node.transition),
                    slot=build_slot_info(node.kind, out.props),
                    grid=out.grid,
                    style=out.style,
                    counters=self.counters.by_path.get(path),
                )
            )
        return result


def build_slot_info(kind: str, props: Dict[str, Any]) -> Optional[SlotInfo]:
    if kind not in ast_nodes.SLOT_KINDS:
        return None
    reserve = parse_slot_reserve(props.get("reserve"))
    fit = props.get("fit") if props.get("fit") in SLOT_FITS else None
    if reserve is None and fit is None:
        return None
    return SlotInfo(reserve=reserve, fit=fit)


def parse_slot_reserve(value: Any) -> Optional[SlotReserve]:
    """Accepts ``"fixed(w, h, units)"``, ``"fixedWidth(w, units)"``, a dict or a list."""
    if value is None:
        return None
    if isinstance(value, list):
        return _reserve_from_list(value)
    if isinstance(value, dict):
        if value.get("kind") == "asset":
            return None
        return _reserve_from_dict(value)
    if isinstance(value, str):
        match = _FIXED_RE.match(value)
        if match:
            width, height = _to_number(match.group(1)), _to_number(match.group(2))
            units = match.group(3).strip()
            if width is not None and height is not None and units:
                return SlotReserve(kind="fixed", width=width, height=height, units=units)
        match = _FIXED_WIDTH_RE.match(value)
        if match:
            width = _to_number(match.group(1))
            units = match.group(2).strip()
            if width is not None and units:
                return SlotReserve(kind="fixedWidth", width=width, units=units)
    return None


def _reserve_from_dict(value: Dict[str, Any]) -> Optional[SlotReserve]:
    kind = value.get("kind")
    units = value.get("units") if isinstance(value.get("units"), str) else None
    width = _to_number(value.get("width"))
    if kind == "fixed":
        height = _to_number(value.get("height"))
        if width is not None and height is not None and units:
            return SlotReserve(kind="fixed", width=width, height=height, units=units)
    if kind == "fixedWidth" and width is not None and units:
        return SlotReserve(kind="fixedWidth", width=width, units=units)
    return None


def _reserve_from_list(value: List[Any]) -> Optional[SlotReserve]:
    if len(value) >= 3:
        width, height = _to_number(value[0]), _to_number(value[1])
        units = value[2] if isinstance(value[2], str) else None
        if width is not None and height is not None and units:
            return SlotReserve(kind="fixed", width=width, height=height, units=units)
    if len(value) >= 2:
        width = _to_number(value[0])
        units = value[1] if isinstance(value[1], str) else None
        if width is not None and units:
            return SlotReserve(kind="fixedWidth", width=width, units=units)
    return None


def _to_number(value: Any) -> Optional[Number]:
    if is_finite_number(value):
        return value
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        if not math.isfinite(parsed):
            return None
        return int(parsed) if parsed.is_integer() else parsed
    return None


def create_document_runtime(
    doc: ast_nodes.FluxDocument,
    seed: Optional[int] = None,
    time: Number = 0,
    docstep: Number = 0,
    asset_cwd: Optional[str] = None,
    asset_resolver: Optional[AssetResolver] = None,
) -> DocumentRuntime:
    return DocumentRuntime(
        doc, seed=seed, time=time, docstep=docstep, asset_cwd=asset_cwd, asset_resolver=asset_resolver
    )


def create_document_runtime_ir(
    doc: ast_nodes.FluxDocument,
    seed: Optional[int] = None,
    time: Number = 0,
    docstep: Number = 0,
    asset_cwd: Optional[str] = None,
    asset_resolver: Optional[AssetResolver] = None,
) -> DocumentRuntimeIR:
    return DocumentRuntimeIR(
        doc, seed=seed, time=time, docstep=docstep, asset_cwd=asset_cwd, asset_resolver=asset_resolver
    )


def render_document(doc: ast_nodes.FluxDocument, **options: Any) -> RenderDocument:
    return create_document_runtime(doc, **options).render()


def render_document_ir(doc: ast_nodes.FluxDocument, **options: Any) -> RenderDocumentIR:
    return create_document_runtime_ir(doc, **options).render()

"""
JSON-friendly dumps of the Flux AST.

The dictionary shape follows the external AST contract (camelCase keys,
``kind`` tags on union members) so editor and CLI tooling can consume it.
Source spans are emitted as ``loc`` only when ``include_locations`` is set.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

from . import ast_nodes

_EXPR_TYPES = {
    cls.KIND: cls
    for cls in (
        ast_nodes.LiteralExpr,
        ast_nodes.ListExpr,
        ast_nodes.Identifier,
        ast_nodes.MemberExpr,
        ast_nodes.CallExpr,
        ast_nodes.NeighborsCallExpr,
        ast_nodes.UnaryExpr,
        ast_nodes.BinaryExpr,
        ast_nodes.NamedArg,
    )
}

_SIMPLE_REFRESH = {
    ast_nodes.OnLoadRefresh.KIND: ast_nodes.OnLoadRefresh,
    ast_nodes.NeverRefresh.KIND: ast_nodes.NeverRefresh,
    ast_nodes.DocstepRefresh.KIND: ast_nodes.DocstepRefresh,
    "docstep": ast_nodes.DocstepRefresh,
}


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


class _Dumper:
    def __init__(self, include_locations: bool) -> None:
        self.include_locations = include_locations

    def _loc(self, data: Dict[str, Any], span: Optional[ast_nodes.Span]) -> Dict[str, Any]:
        if self.include_locations and span is not None:
            data["loc"] = {"line": span.line, "column": span.column}
        return data

    def expr(self, node: Any) -> Dict[str, Any]:
        if isinstance(node, ast_nodes.LiteralExpr):
            data: Dict[str, Any] = {"kind": node.KIND, "value": node.value}
        elif isinstance(node, ast_nodes.ListExpr):
            data = {"kind": node.KIND, "items": [self.expr(item) for item in node.items]}
        elif isinstance(node, ast_nodes.Identifier):
            data = {"kind": node.KIND, "name": node.name}
        elif isinstance(node, ast_nodes.MemberExpr):
            data = {"kind": node.KIND, "object": self.expr(node.object), "property": node.property}
        elif isinstance(node, ast_nodes.CallExpr):
            data = {"kind": node.KIND, "callee": self.expr(node.callee), "args": [self.expr(a) for a in node.args]}
        elif isinstance(node, ast_nodes.NeighborsCallExpr):
            data = {
                "kind": node.KIND,
                "namespace": node.namespace,
                "method": node.method,
                "args": [self.expr(a) for a in node.args],
            }
        elif isinstance(node, ast_nodes.UnaryExpr):
            data = {"kind": node.KIND, "op": node.op, "argument": self.expr(node.argument)}
        elif isinstance(node, ast_nodes.BinaryExpr):
            data = {"kind": node.KIND, "op": node.op, "left": self.expr(node.left), "right": self.expr(node.right)}
        elif isinstance(node, ast_nodes.NamedArg):
            data = {"kind": node.KIND, "name": node.name, "value": self.expr(node.value)}
        else:
            raise TypeError(f"Cannot serialize expression {type(node).__name__}")
        return self._loc(data, node.span)

    def stmt(self, node: Any) -> Dict[str, Any]:
        if isinstance(node, ast_nodes.AssignmentStatement):
            data: Dict[str, Any] = {"kind": node.KIND, "target": self.expr(node.target), "value": self.expr(node.value)}
        elif isinstance(node, ast_nodes.LetStatement):
            data = {"kind": node.KIND, "name": node.name, "value": self.expr(node.value)}
        elif isinstance(node, ast_nodes.AdvanceDocstepStatement):
            data = {"kind": node.KIND}
        else:
            raise TypeError(f"Cannot serialize statement {type(node).__name__}")
        return self._loc(data, node.span)

    def rule(self, rule: ast_nodes.FluxRule) -> Dict[str, Any]:
        branches = [
            {"condition": self.expr(b.condition), "thenBranch": [self.stmt(s) for s in b.then_branch]}
            for b in rule.branches
        ]
        data = _compact(
            {
                "name": rule.name,
                "mode": rule.mode,
                "scope": {"grid": rule.scope.grid} if rule.scope else None,
                "onEventType": rule.on_event_type,
                "branches": branches,
                "condition": branches[0]["condition"] if branches else None,
                "thenBranch": branches[0]["thenBranch"] if branches else None,
                "elseBranch": [self.stmt(s) for s in rule.else_branch] if rule.else_branch is not None else None,
            }
        )
        return self._loc(data, rule.span)

    def grid(self, grid: ast_nodes.FluxGrid) -> Dict[str, Any]:
        cells = [
            self._loc(
                _compact(
                    {
                        "id": cell.id,
                        "tags": list(cell.tags),
                        "content": cell.content,
                        "mediaId": cell.media_id,
                        "dynamic": cell.dynamic,
                        "density": cell.density,
                        "salience": cell.salience,
                    }
                ),
                cell.span,
            )
            for cell in grid.cells
        ]
        data = _compact(
            {
                "name": grid.name,
                "topology": grid.topology,
                "page": grid.page,
                "size": _compact({"rows": grid.size.rows, "cols": grid.size.cols}),
                "cells": cells,
            }
        )
        return self._loc(data, grid.span)

    def props(self, props: Dict[str, ast_nodes.NodePropValue]) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key, value in props.items():
            if isinstance(value, ast_nodes.DynamicValue):
                data[key] = {"kind": value.KIND, "expr": self.expr(value.expr)}
            else:
                data[key] = {"kind": value.KIND, "value": value.value}
        return data

    def node(self, node: ast_nodes.DocumentNode) -> Dict[str, Any]:
        data = _compact(
            {
                "id": node.id,
                "kind": node.kind,
                "props": self.props(node.props),
                "children": [self.node(child) for child in node.children],
                "refresh": refresh_to_dict(node.refresh),
                "transition": transition_to_dict(node.transition),
            }
        )
        return self._loc(data, node.span)

    def document(self, doc: ast_nodes.FluxDocument) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "meta": dict(doc.meta),
            "state": {
                "params": [
                    self._loc(
                        _compact(
                            {"name": p.name, "type": p.type, "min": p.min, "max": p.max, "initial": p.initial}
                        ),
                        p.span,
                    )
                    for p in doc.state.params
                ]
            },
            "grids": [self.grid(grid) for grid in doc.grids],
            "rules": [self.rule(rule) for rule in doc.rules],
        }
        if doc.page_config is not None:
            size = doc.page_config.size
            data["pageConfig"] = {"size": {"width": size.width, "height": size.height, "units": size.units}}
        if doc.runtime is not None:
            data["runtime"] = _compact(
                {
                    "eventsApply": doc.runtime.events_apply,
                    "docstepAdvance": [
                        {"kind": t.kind, "amount": t.amount, "unit": t.unit} for t in doc.runtime.docstep_advance
                    ]
                    if doc.runtime.docstep_advance is not None
                    else None,
                }
            )
        if doc.assets is not None:
            data["assets"] = {
                "assets": [self._asset(a) for a in doc.assets.assets],
                "banks": [self._bank(b) for b in doc.assets.banks],
            }
        if doc.materials is not None:
            data["materials"] = {"materials": [self._material(m) for m in doc.materials.materials]}
        if doc.tokens is not None:
            data["tokens"] = {"tokens": dict(doc.tokens.tokens)}
        if doc.styles is not None:
            data["styles"] = self.styles(doc.styles)
        if doc.themes:
            data["themes"] = [self.theme(theme) for theme in doc.themes]
        if doc.body is not None:
            data["body"] = {"nodes": [self.node(n) for n in doc.body.nodes]}
        return data

    def styles(self, block: ast_nodes.StylesBlock) -> Dict[str, Any]:
        return {
            "styles": [
                self._loc(_compact({"name": s.name, "extends": s.extends, "props": self.props(s.props)}), s.span)
                for s in block.styles
            ]
        }

    def theme(self, theme: ast_nodes.ThemeBlock) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": theme.name}
        if theme.tokens is not None:
            data["tokens"] = {"tokens": dict(theme.tokens.tokens)}
        if theme.styles is not None:
            data["styles"] = self.styles(theme.styles)
        return self._loc(data, theme.span)

    def _asset(self, asset: ast_nodes.AssetDefinition) -> Dict[str, Any]:
        data = _compact(
            {
                "name": asset.name,
                "kind": asset.kind,
                "path": asset.path,
                "tags": list(asset.tags),
                "weight": asset.weight,
                "meta": dict(asset.meta) if asset.meta is not None else None,
            }
        )
        return self._loc(data, asset.span)

    def _bank(self, bank: ast_nodes.AssetBank) -> Dict[str, Any]:
        data = _compact(
            {
                "name": bank.name,
                "kind": bank.kind,
                "root": bank.root,
                "include": bank.include,
                "tags": list(bank.tags),
                "strategy": bank.strategy,
            }
        )
        return self._loc(data, bank.span)

    def _material(self, material: ast_nodes.Material) -> Dict[str, Any]:
        data = _compact(
            {
                "name": material.name,
                "tags": list(material.tags),
                "label": material.label,
                "description": material.description,
                "color": material.color,
                "score": material_score_to_dict(material.score),
                "midi": material_midi_to_dict(material.midi),
                "video": material_video_to_dict(material.video),
            }
        )
        return self._loc(data, material.span)


def refresh_to_dict(policy: Optional[ast_nodes.RefreshPolicy]) -> Optional[Dict[str, Any]]:
    if policy is None:
        return None
    if isinstance(policy, ast_nodes.EveryRefresh):
        return {"kind": policy.KIND, "amount": policy.amount, "unit": policy.unit}
    return {"kind": policy.KIND}


def transition_to_dict(spec: Optional[ast_nodes.TransitionSpec]) -> Optional[Dict[str, Any]]:
    if spec is None:
        return None
    return _compact(
        {"kind": spec.kind, "durationMs": spec.duration_ms, "ease": spec.ease, "direction": spec.direction}
    )


def material_score_to_dict(score: Optional[ast_nodes.MaterialScore]) -> Optional[Dict[str, Any]]:
    if score is None:
        return None
    return _compact({"text": score.text, "staff": score.staff, "clef": score.clef})


def material_midi_to_dict(midi: Optional[ast_nodes.MaterialMidi]) -> Optional[Dict[str, Any]]:
    if midi is None:
        return None
    return _compact(
        {
            "channel": midi.channel,
            "pitch": midi.pitch,
            "velocity": midi.velocity,
            "durationSeconds": midi.duration_seconds,
        }
    )


def material_video_to_dict(video: Optional[ast_nodes.MaterialVideo]) -> Optional[Dict[str, Any]]:
    if video is None:
        return None
    return _compact(
        {"clip": video.clip, "inSeconds": video.in_seconds, "outSeconds": video.out_seconds, "layer": video.layer}
    )


def document_to_dict(doc: ast_nodes.FluxDocument, include_locations: bool = False) -> Dict[str, Any]:
    """Convert a parsed document into plain JSON-compatible data."""
    return _Dumper(include_locations).document(doc)


def dumps(doc: ast_nodes.FluxDocument, include_locations: bool = False, indent: Optional[int] = 2) -> str:
    return json.dumps(document_to_dict(doc, include_locations=include_locations), indent=indent)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _span_of(data: Dict[str, Any]) -> Optional[ast_nodes.Span]:
    loc = data.get("loc")
    if not loc:
        return None
    return ast_nodes.Span(line=loc["line"], column=loc["column"])


def expr_from_dict(data: Dict[str, Any]) -> Any:
    kind = data.get("kind")
    if kind not in _EXPR_TYPES:
        raise ValueError(f"Unknown expression kind '{kind}'")
    span = _span_of(data)
    if kind == "Literal":
        return ast_nodes.LiteralExpr(value=data["value"], span=span)
    if kind == "ListExpression":
        return ast_nodes.ListExpr(items=[expr_from_dict(i) for i in data.get("items", [])], span=span)
    if kind == "Identifier":
        return ast_nodes.Identifier(name=data["name"], span=span)
    if kind == "MemberExpression":
        return ast_nodes.MemberExpr(object=expr_from_dict(data["object"]), property=data["property"], span=span)
    if kind == "CallExpression":
        return ast_nodes.CallExpr(
            callee=expr_from_dict(data["callee"]),
            args=[expr_from_dict(a) for a in data.get("args", [])],
            span=span,
        )
    if kind == "NeighborsCallExpression":
        return ast_nodes.NeighborsCallExpr(
            method=data["method"],
            args=[expr_from_dict(a) for a in data.get("args", [])],
            namespace=data.get("namespace", "neighbors"),
            span=span,
        )
    if kind == "UnaryExpression":
        return ast_nodes.UnaryExpr(op=data["op"], argument=expr_from_dict(data["argument"]), span=span)
    if kind == "BinaryExpression":
        return ast_nodes.BinaryExpr(
            op=data["op"], left=expr_from_dict(data["left"]), right=expr_from_dict(data["right"]), span=span
        )
    return ast_nodes.NamedArg(name=data["name"], value=expr_from_dict(data["value"]), span=span)


def stmt_from_dict(data: Dict[str, Any]) -> ast_nodes.Statement:
    kind = data.get("kind")
    span = _span_of(data)
    if kind == "AssignmentStatement":
        return ast_nodes.AssignmentStatement(
            target=expr_from_dict(data["target"]), value=expr_from_dict(data["value"]), span=span
        )
    if kind == "LetStatement":
        return ast_nodes.LetStatement(name=data["name"], value=expr_from_dict(data["value"]), span=span)
    if kind == "AdvanceDocstepStatement":
        return ast_nodes.AdvanceDocstepStatement(span=span)
    raise ValueError(f"Unknown statement kind '{kind}'")


def _stmts(items: Optional[List[Dict[str, Any]]]) -> List[ast_nodes.Statement]:
    return [stmt_from_dict(item) for item in items or []]


def _rule_from_dict(data: Dict[str, Any]) -> ast_nodes.FluxRule:
    branches = data.get("branches")
    if not branches and "condition" in data:
        branches = [{"condition": data["condition"], "thenBranch": data.get("thenBranch", [])}]
    scope = data.get("scope")
    return ast_nodes.FluxRule(
        name=data["name"],
        mode=data.get("mode", "docstep"),
        scope=ast_nodes.RuleScope(grid=scope.get("grid")) if scope else None,
        on_event_type=data.get("onEventType"),
        branches=[
            ast_nodes.RuleBranch(condition=expr_from_dict(b["condition"]), then_branch=_stmts(b.get("thenBranch")))
            for b in branches or []
        ],
        else_branch=_stmts(data["elseBranch"]) if data.get("elseBranch") is not None else None,
        span=_span_of(data),
    )


def _grid_from_dict(data: Dict[str, Any]) -> ast_nodes.FluxGrid:
    size = data.get("size") or {}
    return ast_nodes.FluxGrid(
        name=data["name"],
        topology=data["topology"],
        page=data.get("page"),
        size=ast_nodes.GridSize(rows=size.get("rows"), cols=size.get("cols")),
        cells=[
            ast_nodes.FluxCell(
                id=cell["id"],
                tags=list(cell.get("tags", [])),
                content=cell.get("content"),
                media_id=cell.get("mediaId"),
                dynamic=cell.get("dynamic"),
                density=cell.get("density"),
                salience=cell.get("salience"),
                span=_span_of(cell),
            )
            for cell in data.get("cells", [])
        ],
        span=_span_of(data),
    )


def refresh_from_dict(data: Optional[Dict[str, Any]]) -> Optional[ast_nodes.RefreshPolicy]:
    if data is None:
        return None
    kind = data.get("kind")
    if kind == "every":
        return ast_nodes.EveryRefresh(amount=data["amount"], unit=data.get("unit", "s"))
    if kind in _SIMPLE_REFRESH:
        return _SIMPLE_REFRESH[kind]()
    raise ValueError(f"Unknown refresh policy '{kind}'")


def _props_from_dict(data: Optional[Dict[str, Any]]) -> Dict[str, ast_nodes.NodePropValue]:
    props: Dict[str, ast_nodes.NodePropValue] = {}
    for key, value in (data or {}).items():
        if value.get("kind") == "DynamicValue":
            props[key] = ast_nodes.DynamicValue(expr=expr_from_dict(value["expr"]))
        else:
            props[key] = ast_nodes.LiteralValue(value=value.get("value"))
    return props


def _node_from_dict(data: Dict[str, Any]) -> ast_nodes.DocumentNode:
    transition = data.get("transition")
    return ast_nodes.DocumentNode(
        id=data["id"],
        kind=data["kind"],
        props=_props_from_dict(data.get("props")),
        children=[_node_from_dict(child) for child in data.get("children", [])],
        refresh=refresh_from_dict(data.get("refresh")),
        transition=ast_nodes.TransitionSpec(
            kind=transition["kind"],
            duration_ms=transition.get("durationMs"),
            ease=transition.get("ease"),
            direction=transition.get("direction"),
        )
        if transition
        else None,
        span=_span_of(data),
    )


def _styles_from_dict(data: Dict[str, Any]) -> ast_nodes.StylesBlock:
    return ast_nodes.StylesBlock(
        styles=[
            ast_nodes.StyleDef(
                name=s["name"],
                extends=s.get("extends"),
                props=_props_from_dict(s.get("props")),
                span=_span_of(s),
            )
            for s in data.get("styles", [])
        ]
    )


def _theme_from_dict(data: Dict[str, Any]) -> ast_nodes.ThemeBlock:
    return ast_nodes.ThemeBlock(
        name=data["name"],
        tokens=_optional(data.get("tokens"), lambda d: ast_nodes.TokensBlock(tokens=dict(d.get("tokens", {})))),
        styles=_optional(data.get("styles"), _styles_from_dict),
        span=_span_of(data),
    )


def _optional(data: Optional[Dict[str, Any]], build: Callable[[Dict[str, Any]], Any]) -> Any:
    return build(data) if data is not None else None


def _material_from_dict(data: Dict[str, Any]) -> ast_nodes.Material:
    return ast_nodes.Material(
        name=data["name"],
        tags=list(data.get("tags", [])),
        label=data.get("label"),
        description=data.get("description"),
        color=data.get("color"),
        score=_optional(data.get("score"), lambda d: ast_nodes.MaterialScore(**d)),
        midi=_optional(
            data.get("midi"),
            lambda d: ast_nodes.MaterialMidi(
                channel=d.get("channel"),
                pitch=d.get("pitch"),
                velocity=d.get("velocity"),
                duration_seconds=d.get("durationSeconds"),
            ),
        ),
        video=_optional(
            data.get("video"),
            lambda d: ast_nodes.MaterialVideo(
                clip=d.get("clip", ""),
                in_seconds=d.get("inSeconds"),
                out_seconds=d.get("outSeconds"),
                layer=d.get("layer"),
            ),
        ),
        span=_span_of(data),
    )


def document_from_dict(data: Dict[str, Any]) -> ast_nodes.FluxDocument:
    """Rebuild a FluxDocument from `document_to_dict` output."""
    doc = ast_nodes.FluxDocument(meta=dict(data.get("meta") or {}))
    doc.meta.setdefault("version", ast_nodes.DEFAULT_LANGUAGE_VERSION)
    doc.state.params = [
        ast_nodes.FluxParam(
            name=p["name"],
            type=p["type"],
            initial=p["initial"],
            min=p.get("min"),
            max=p.get("max"),
            span=_span_of(p),
        )
        for p in (data.get("state") or {}).get("params", [])
    ]
    page_config = data.get("pageConfig")
    if page_config:
        size = page_config["size"]
        doc.page_config = ast_nodes.PageConfig(
            size=ast_nodes.PageSize(width=size["width"], height=size["height"], units=size["units"])
        )
    doc.grids = [_grid_from_dict(g) for g in data.get("grids", [])]
    doc.rules = [_rule_from_dict(r) for r in data.get("rules", [])]
    runtime = data.get("runtime")
    if runtime is not None:
        timers = runtime.get("docstepAdvance")
        doc.runtime = ast_nodes.FluxRuntimeConfig(
            events_apply=runtime.get("eventsApply"),
            docstep_advance=[
                ast_nodes.DocstepAdvanceTimer(amount=t["amount"], unit=t.get("unit", "s")) for t in timers
            ]
            if timers is not None
            else None,
        )
    assets = data.get("assets")
    if assets is not None:
        doc.assets = ast_nodes.AssetsBlock(
            assets=[
                ast_nodes.AssetDefinition(
                    name=a["name"],
                    kind=a.get("kind", ""),
                    path=a.get("path", ""),
                    tags=list(a.get("tags", [])),
                    weight=a.get("weight"),
                    meta=a.get("meta"),
                    span=_span_of(a),
                )
                for a in assets.get("assets", [])
            ],
            banks=[
                ast_nodes.AssetBank(
                    name=b["name"],
                    kind=b.get("kind", ""),
                    root=b.get("root", ""),
                    include=b.get("include", ""),
                    tags=list(b.get("tags", [])),
                    strategy=b.get("strategy"),
                    span=_span_of(b),
                )
                for b in assets.get("banks", [])
            ],
        )
    materials = data.get("materials")
    if materials is not None:
        doc.materials = ast_nodes.MaterialsBlock(
            materials=[_material_from_dict(m) for m in materials.get("materials", [])]
        )
    doc.tokens = _optional(data.get("tokens"), lambda d: ast_nodes.TokensBlock(tokens=dict(d.get("tokens", {}))))
    doc.styles = _optional(data.get("styles"), _styles_from_dict)
    doc.themes = [_theme_from_dict(t) for t in data.get("themes", [])]
    body = data.get("body")
    if body is not None:
        doc.body = ast_nodes.BodyBlock(nodes=[_node_from_dict(n) for n in body.get("nodes", [])])
    return doc


def loads(text: str) -> ast_nodes.FluxDocument:
    return document_from_dict(json.loads(text))

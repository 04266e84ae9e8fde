"""
Style registry: design tokens, built-in and declared styles, and the theme
selected by ``meta.target``.

Style props that are literals, or expressions over ``tokens`` only, are
resolved once into static props. Any other expression stays dynamic and is
evaluated per node at render time.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .. import ast_nodes
from ..errors import EvaluationError
from ..values import to_js_string
from .evaluator import EvalContext, evaluate_expr, to_render_value
from .hashing import mulberry32, stable_hash
from .models import RenderStyleDefinition

logger = logging.getLogger(__name__)

DEFAULT_THEME = "screen"
AXES_SAFE_KEY = "font.axes.safe"

DEFAULT_TOKENS: Dict[str, Any] = {
    "font.serif": '"Iowan Old Style", "Palatino Linotype", Palatino, "Times New Roman", serif',
    "font.sans": '"Inter", "Helvetica Neue", Arial, sans-serif',
    "font.mono": '"Source Code Pro", "Courier New", monospace',
    "space.xs": 2,
    "space.s": 4,
    "space.m": 8,
    "space.l": 12,
    "space.xl": 18,
    "color.text": "#1d1b17",
    "color.muted": "#6b645a",
    "color.link": "#2b4c7e",
    "color.rule": "#d1c8bb",
    "color.calloutBg": "#f6f1e8",
    "color.calloutBorder": "#d9d0c4",
    "rule.thin": 1,
}

ROLE_STYLES = {
    "title": "Title",
    "subtitle": "Subtitle",
    "caption": "Caption",
    "credit": "Credit",
    "abstract": "Abstract",
    "keywords": "Keywords",
    "byline": "Byline",
}

VARIANT_STYLES = {
    "title": "Title",
    "subtitle": "Subtitle",
    "heading": "H2",
    "caption": "Caption",
    "credit": "Credit",
    "label": "Label",
    "edition": "Edition",
    "note": "Note",
    "sample": "Sample",
    "list": "List",
    "end": "End",
}

KIND_STYLES = {
    "text": "Body",
    "blockquote": "Quote",
    "codeblock": "Code",
    "callout": "Callout",
}

LAYOUT_SENSITIVE_KEYS = {
    "font.family",
    "font.size",
    "font.weight",
    "font.style",
    "line.height",
    "letter.spacing",
    "space.before",
    "space.after",
    "space.indent",
}

_CLASS_NAME_RE = re.compile(r"[^a-zA-Z0-9_-]")


@dataclass
class StyleSpec:
    name: str
    class_name: str
    props: Dict[str, ast_nodes.NodePropValue] = field(default_factory=dict)
    static_props: Dict[str, Any] = field(default_factory=dict)
    dynamic_props: Dict[str, ast_nodes.Expr] = field(default_factory=dict)
    axes_safe: bool = False


@dataclass
class StyleRegistry:
    theme: str
    tokens: Dict[str, Any]
    token_flat: Dict[str, Any]
    styles: Dict[str, StyleSpec]

    def definitions(self) -> List[RenderStyleDefinition]:
        return [
            RenderStyleDefinition(name=spec.name, class_name=spec.class_name, props=dict(spec.static_props))
            for spec in self.styles.values()
        ]


def resolve_theme_name(doc: ast_nodes.FluxDocument) -> str:
    target = doc.meta.get("target")
    if isinstance(target, str) and target:
        return target
    return DEFAULT_THEME


def build_token_tree(flat: Dict[str, Any]) -> Dict[str, Any]:
    """``{"color.text": v}`` becomes ``{"color": {"text": v}}``."""
    root: Dict[str, Any] = {}
    for key, value in flat.items():
        parts = key.split(".")
        cursor = root
        for part in parts[:-1]:
            if not isinstance(cursor.get(part), dict):
                cursor[part] = {}
            cursor = cursor[part]
        cursor[parts[-1]] = value
    return root


def make_style_class_name(name: str) -> str:
    return "flux-style-" + _CLASS_NAME_RE.sub("-", name)


def build_style_registry(doc: ast_nodes.FluxDocument) -> StyleRegistry:
    theme = resolve_theme_name(doc)
    theme_block = doc.find_theme(theme)

    token_flat: Dict[str, Any] = dict(DEFAULT_TOKENS)
    if doc.tokens is not None:
        token_flat.update(doc.tokens.tokens)
    if theme_block is not None and theme_block.tokens is not None:
        token_flat.update(theme_block.tokens.tokens)
    tokens = build_token_tree(token_flat)

    merged = merge_styles(
        default_styles(token_flat),
        doc.styles.styles if doc.styles is not None else [],
        theme_block.styles.styles if theme_block is not None and theme_block.styles is not None else [],
    )
    styles = resolve_style_specs(merged, tokens)
    logger.debug("Built style registry for theme %r with %s styles", theme, len(styles))
    return StyleRegistry(theme=theme, tokens=tokens, token_flat=token_flat, styles=styles)


def _style(name: str, extends: Optional[str], **props: Any) -> ast_nodes.StyleDef:
    # keyword names use "_" where the prop path has "."
    return ast_nodes.StyleDef(
        name=name,
        extends=extends,
        props={key.replace("_", "."): ast_nodes.LiteralValue(value=value) for key, value in props.items()},
    )


def default_styles(token_flat: Dict[str, Any]) -> List[ast_nodes.StyleDef]:
    def t(key: str) -> Any:
        return token_flat.get(key, DEFAULT_TOKENS.get(key, ""))

    muted = t("color.muted")
    return [
        _style(
            "Body",
            None,
            font_family=t("font.serif"),
            font_size=10.8,
            line_height=1.45,
            color=t("color.text"),
            space_after=t("space.m"),
        ),
        _style("H1", "Body", font_size=16.5, font_weight=600, space_before=t("space.l"), space_after=t("space.s")),
        _style("H2", "Body", font_size=13, font_weight=600, space_before=t("space.m"), space_after=t("space.s")),
        _style("Title", "H1", font_size=26, letter_spacing="0.02em", space_after=t("space.s")),
        _style("Subtitle", "Body", font_size=12.5, color=muted, space_after=t("space.m")),
        _style("Byline", "Body", font_size=9.5, letter_spacing="0.08em", text_transform="uppercase", color=muted),
        _style("Abstract", "Body", color=muted),
        _style("Keywords", "Body", font_size=9, letter_spacing="0.06em", text_transform="uppercase", color=muted),
        _style(
            "Caption", "Body", font_size=9.5, color=muted, space_before=t("space.s"), space_after=t("space.xs")
        ),
        _style("Credit", "Body", font_size=8.5, color=muted),
        _style(
            "Code",
            "Body",
            font_family=t("font.mono"),
            font_size=9.5,
            background="#f4f0e9",
            padding=t("space.s"),
            border_radius=4,
        ),
        _style(
            "Quote", "Body", font_style="italic", color=muted, space_before=t("space.s"), space_after=t("space.s")
        ),
        _style(
            "Callout",
            "Body",
            background=t("color.calloutBg"),
            border=f"1pt solid {t('color.calloutBorder')}",
            padding=t("space.m"),
            border_radius=6,
            space_before=t("space.m"),
            space_after=t("space.m"),
        ),
        # legacy variant aliases
        _style("Label", "Body", font_size=8.5, text_transform="uppercase", letter_spacing="0.14em", color=muted),
        _style("Edition", "Body", font_size=9.5, letter_spacing="0.08em", text_transform="uppercase", color=muted),
        _style("Note", "Body", font_size=8.5, color=muted),
        _style("Sample", "Body", font_size=10, letter_spacing="0.08em"),
        _style("List", "Body", space_after=t("space.s")),
        _style("End", "Body", font_size=10, text_align="right", space_before=t("space.m")),
    ]


def merge_styles(*style_lists: List[ast_nodes.StyleDef]) -> Dict[str, ast_nodes.StyleDef]:
    """Later lists override earlier ones prop by prop; insertion order is kept."""
    merged: Dict[str, ast_nodes.StyleDef] = {}
    for styles in style_lists:
        for style in styles:
            existing = merged.get(style.name)
            if existing is None:
                merged[style.name] = ast_nodes.StyleDef(name=style.name, extends=style.extends, props=dict(style.props))
                continue
            merged[style.name] = ast_nodes.StyleDef(
                name=style.name,
                extends=style.extends if style.extends is not None else existing.extends,
                props={**existing.props, **style.props},
            )
    return merged


def resolve_style_specs(styles: Dict[str, ast_nodes.StyleDef], tokens: Dict[str, Any]) -> Dict[str, StyleSpec]:
    resolved: Dict[str, StyleSpec] = {}
    visiting: set = set()

    def resolve(name: str) -> StyleSpec:
        if name in resolved:
            return resolved[name]
        if name in visiting:
            raise EvaluationError(f"Style inheritance cycle detected at '{name}'")
        visiting.add(name)
        style = styles.get(name)
        base = style.extends if style is not None else None
        props = dict(resolve(base).props) if base else {}
        if style is not None:
            props.update(style.props)
        spec = StyleSpec(name=name, class_name=make_style_class_name(name), props=props)
        for key, value in props.items():
            if key == AXES_SAFE_KEY:
                spec.axes_safe = isinstance(value, ast_nodes.LiteralValue) and value.value is True
                continue
            if isinstance(value, ast_nodes.LiteralValue):
                spec.static_props[key] = to_render_value(value.value)
            elif uses_only_tokens(value.expr):
                spec.static_props[key] = resolve_token_expr(value.expr, tokens)
            else:
                spec.dynamic_props[key] = value.expr
        visiting.discard(name)
        resolved[name] = spec
        return spec

    for name in styles:
        resolve(name)
    return resolved


def uses_only_tokens(expr: ast_nodes.Expr) -> bool:
    if isinstance(expr, ast_nodes.LiteralExpr):
        return True
    if isinstance(expr, ast_nodes.Identifier):
        return expr.name == "tokens"
    if isinstance(expr, ast_nodes.ListExpr):
        return all(uses_only_tokens(item) for item in expr.items)
    if isinstance(expr, ast_nodes.UnaryExpr):
        return uses_only_tokens(expr.argument)
    if isinstance(expr, ast_nodes.BinaryExpr):
        return uses_only_tokens(expr.left) and uses_only_tokens(expr.right)
    if isinstance(expr, ast_nodes.MemberExpr):
        return uses_only_tokens(expr.object)
    return False


def resolve_token_expr(expr: ast_nodes.Expr, tokens: Dict[str, Any]) -> Any:
    prop_seed = stable_hash("style.tokens")
    ctx = EvalContext(
        params={},
        time=0,
        docstep=0,
        rng=mulberry32(prop_seed),
        prop_seed=prop_seed,
        meta={"version": "0.0.0"},
        tokens=tokens,
    )
    return to_render_value(evaluate_expr(expr, ctx))


def render_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return to_js_string(value)
    if isinstance(value, list):
        return " ".join(render_string(item) for item in value)
    if isinstance(value, dict) and value.get("kind") == "asset":
        return value.get("name") or ""
    return ""


def style_name_for(kind: str, props: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """(style name, role) from the resolved ``style``, ``role`` or ``variant`` props, else the node kind."""
    style = render_string(props.get("style"))
    if style:
        return style, None
    role = render_string(props.get("role"))
    if role:
        return ROLE_STYLES.get(role, role), role
    variant = render_string(props.get("variant"))
    if variant:
        return VARIANT_STYLES.get(variant, variant), None
    return KIND_STYLES.get(kind), None


def is_layout_sensitive(key: str) -> bool:
    return key.startswith("font.axes.") or key in LAYOUT_SENSITIVE_KEYS


def check_dynamic_key(spec: StyleSpec, key: str, theme: str, inside_slot: bool) -> None:
    if not is_layout_sensitive(key) or inside_slot:
        return
    if key.startswith("font.axes.") and theme == DEFAULT_THEME and spec.axes_safe:
        return
    raise EvaluationError(f"Dynamic style '{spec.name}.{key}' must be inside a slot or marked axes-safe for screen")

"""
Evaluation of dynamic document props (``@expr``).

All randomness flows from the per-prop generator in `EvalContext.rng`, so the
same (seed, node path, prop, refresh key) always yields the same value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .. import ast_nodes
from ..errors import EvaluationError
from ..values import (
    binary_arith,
    is_finite_number,
    negate,
    strict_equals,
    to_js_string,
    truthy,
)
from .assets import ResolvedAsset, filter_assets, pick_by_strategy
from .hashing import mulberry32, stable_hash

Args = Tuple[List[Any], Dict[str, Any]]

ASSET_FIELDS = {"id", "name", "kind", "path", "tags", "weight", "meta"}


@dataclass
class EvalContext:
    params: Dict[str, Any]
    time: Any
    docstep: Any
    rng: Callable[[], float]
    prop_seed: int
    assets: List[ResolvedAsset] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)
    tokens: Dict[str, Any] = field(default_factory=dict)
    refs: Dict[str, str] = field(default_factory=dict)


def to_render_value(value: Any) -> Any:
    """Plain JSON-compatible value; resolved assets become asset references."""
    if value is None:
        return None
    if isinstance(value, ResolvedAsset):
        return value.to_ref()
    if isinstance(value, (list, tuple)):
        return [to_render_value(item) for item in value]
    if isinstance(value, dict):
        return {key: to_render_value(item) for key, item in value.items()}
    return value


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _at(items: List[Any], idx: int) -> Any:
    return items[idx] if idx < len(items) else None


def _tag_list(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [to_js_string(tag) for tag in raw]
    if truthy(raw):
        return [to_js_string(raw)]
    return []


def shuffle_list(items: List[Any], rng: Callable[[], float]) -> List[Any]:
    """Fisher-Yates from the end of the list."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = math.floor(rng() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


class DocumentEvaluator:
    def __init__(self, ctx: EvalContext) -> None:
        self.ctx = ctx

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
                raise EvaluationError(str(exc)) from exc
        if isinstance(expr, ast_nodes.BinaryExpr):
            return self._binary(expr)
        if isinstance(expr, ast_nodes.MemberExpr):
            return self._member(expr)
        if isinstance(expr, ast_nodes.NeighborsCallExpr):
            raise EvaluationError("neighbors.*() is not supported in document expressions")
        if isinstance(expr, ast_nodes.CallExpr):
            return self._call(expr)
        raise EvaluationError(f"Unsupported expression kind '{type(expr).__name__}'")

    def _identifier(self, name: str) -> Any:
        if name == "params":
            return self.ctx.params
        if name in {"time", "timeSeconds"}:
            return self.ctx.time
        if name == "docstep":
            return self.ctx.docstep
        if name == "meta":
            return self.ctx.meta
        if name == "tokens":
            return self.ctx.tokens
        return self.ctx.params.get(name)

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
            raise EvaluationError(str(exc)) from exc

    def _member(self, expr: ast_nodes.MemberExpr) -> Any:
        obj = self.evaluate(expr.object)
        if obj is None:
            raise EvaluationError(f"Cannot read property '{expr.property}' of null/undefined")
        if isinstance(obj, dict):
            return obj.get(expr.property)
        if isinstance(obj, ResolvedAsset):
            return getattr(obj, expr.property, None) if expr.property in ASSET_FIELDS else None
        if isinstance(obj, (list, str)) and expr.property == "length":
            return len(obj)
        return None

    def _args(self, args: List[ast_nodes.CallArg]) -> Args:
        positional: List[Any] = []
        named: Dict[str, Any] = {}
        for arg in args:
            if isinstance(arg, ast_nodes.NamedArg):
                named[arg.name] = self.evaluate(arg.value)
            else:
                positional.append(self.evaluate(arg))
        return positional, named

    def _call(self, expr: ast_nodes.CallExpr) -> Any:
        callee = expr.callee
        if isinstance(callee, ast_nodes.Identifier):
            handler = _BUILTINS.get(callee.name)
            if handler is not None:
                return handler(self, *self._args(expr.args))
        if (
            isinstance(callee, ast_nodes.MemberExpr)
            and isinstance(callee.object, ast_nodes.Identifier)
            and callee.object.name == "assets"
            and callee.property in {"pick", "shuffle"}
        ):
            positional, named = self._args(expr.args)
            if callee.property == "shuffle":
                return self._assets_shuffle(positional, named)
            return self._assets_pick(positional, named)
        location = f" at {expr.span.line}:{expr.span.column}" if expr.span is not None else ""
        raise EvaluationError(
            f"Unsupported function call '{_describe_callee(callee)}' in document expressions{location}"
        )

    # -- builtins -----------------------------------------------------------

    def _list_arg(self, positional: List[Any], named: Dict[str, Any], message: str) -> List[Any]:
        items = _first_present(named.get("list"), _at(positional, 0))
        if not isinstance(items, list):
            raise EvaluationError(message)
        return items

    def choose(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        items = self._list_arg(positional, named, "choose(list) expects a list")
        if not items:
            return None
        return items[math.floor(self.ctx.rng() * len(items))]

    def choose_step(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        items = self._list_arg(positional, named, "chooseStep(list) expects a list")
        if not items:
            raise EvaluationError("chooseStep(list) expects a non-empty list")
        offset = named.get("offset", 0)
        if not is_finite_number(offset):
            offset = 0
        return items[abs(math.floor(self.ctx.docstep + offset)) % len(items)]

    def cycle(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        items = self._list_arg(positional, named, "cycle(list, index) expects a list")
        if not items:
            return None
        index = _first_present(named.get("index"), _at(positional, 1), self.ctx.docstep)
        if not is_finite_number(index):
            index = 0
        return items[math.floor(index) % len(items)]

    def hashpick(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        items = self._list_arg(positional, named, "hashpick(list, key) expects a list")
        if not items:
            return None
        key = _first_present(named.get("key"), _at(positional, 1))
        if key is None:
            raise EvaluationError("hashpick(list, key) expects a key")
        return items[stable_hash(to_js_string(key)) % len(items)]

    def phase(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        value = _first_present(named.get("value"), _at(positional, 0), self.ctx.docstep)
        if not is_finite_number(value):
            value = 0
        return value - math.floor(value)

    def lerp(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        a = _first_present(named.get("a"), _at(positional, 0))
        b = _first_present(named.get("b"), _at(positional, 1))
        t = _first_present(named.get("t"), _at(positional, 2))
        if not all(is_finite_number(v) for v in (a, b, t)):
            raise EvaluationError("lerp(a, b, t) expects numeric arguments")
        return a + (b - a) * t

    def shuffle(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        items = self._list_arg(positional, named, "shuffle(list) expects a list")
        return shuffle_list(items, self.ctx.rng)

    def sample(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        items = self._list_arg(positional, named, "sample(list, n) expects a list")
        raw = _first_present(named.get("n"), _at(positional, 1), 1)
        n = math.floor(raw) if is_finite_number(raw) else 1
        if n <= 0:
            return []
        return shuffle_list(items, self.ctx.rng)[:n]

    def ref(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        label = _first_present(named.get("label"), _at(positional, 0))
        if not isinstance(label, str):
            raise EvaluationError("ref(label) expects a string label")
        resolved = self.ctx.refs.get(label)
        if not resolved:
            raise EvaluationError(f"ref('{label}') target not found")
        return resolved

    def now(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        return self.ctx.time

    def stable_hash(self, positional: List[Any], named: Dict[str, Any]) -> Any:
        return stable_hash(*positional, named)

    def _assets_pick(self, positional: List[Any], named: Dict[str, Any]) -> Optional[ResolvedAsset]:
        tags = _tag_list(_first_present(named.get("tags"), _at(positional, 0)))
        exclude = _tag_list(named.get("excludeTags"))
        strategy = _first_present(named.get("strategy"), _at(positional, 1))
        seed = _first_present(named.get("seed"), _at(positional, 2))
        no_repeat = _first_present(named.get("noRepeatSteps"), named.get("noRepeat"), _at(positional, 3))

        if not isinstance(strategy, str):
            strategy = None
        if strategy and strategy not in ast_nodes.ASSET_STRATEGIES:
            raise EvaluationError(f"Unknown asset pick strategy '{strategy}'")

        candidates = filter_assets(self.ctx.assets, tags, exclude)
        if not candidates:
            return None
        if strategy is None:
            shared = {asset.strategy for asset in candidates}
            strategy = shared.pop() if len(shared) == 1 else None
        strategy = strategy or "uniform"

        steps = max(0, math.floor(no_repeat)) if is_finite_number(no_repeat) else 0
        if steps > 0:
            recent = set()
            for back in range(1, steps + 1):
                recent.add(self._pick_at_step(candidates, strategy, self.ctx.docstep - back, 0).id)
            for salt in range(len(candidates)):
                candidate = self._pick_at_step(candidates, strategy, self.ctx.docstep, salt)
                if candidate.id not in recent:
                    return candidate
            return self._pick_at_step(candidates, strategy, self.ctx.docstep, 0)

        rng = self.ctx.rng
        if seed is not None:
            rng = mulberry32(stable_hash(self.ctx.prop_seed, seed, "assets.pick"))
        return pick_by_strategy(candidates, strategy, rng)

    def _pick_at_step(self, candidates: List[ResolvedAsset], strategy: str, step: Any, salt: int) -> ResolvedAsset:
        rng = mulberry32(stable_hash(self.ctx.prop_seed, step, salt, "assets.pick.step"))
        return pick_by_strategy(candidates, strategy, rng)

    def _assets_shuffle(self, positional: List[Any], named: Dict[str, Any]) -> List[ResolvedAsset]:
        tags = _tag_list(_first_present(named.get("tags"), _at(positional, 0)))
        exclude = _tag_list(named.get("excludeTags"))
        seed = _first_present(named.get("seed"), _at(positional, 1))
        candidates = filter_assets(self.ctx.assets, tags, exclude)
        if not candidates:
            return []
        if seed is not None:
            rng = mulberry32(stable_hash(self.ctx.prop_seed, seed, "assets.shuffle"))
        else:
            rng = mulberry32(stable_hash(self.ctx.prop_seed, "assets.shuffle"))
        return shuffle_list(candidates, rng)


_BUILTINS: Dict[str, Callable[..., Any]] = {
    "choose": DocumentEvaluator.choose,
    "chooseStep": DocumentEvaluator.choose_step,
    "cycle": DocumentEvaluator.cycle,
    "hashpick": DocumentEvaluator.hashpick,
    "phase": DocumentEvaluator.phase,
    "lerp": DocumentEvaluator.lerp,
    "shuffle": DocumentEvaluator.shuffle,
    "sample": DocumentEvaluator.sample,
    "ref": DocumentEvaluator.ref,
    "now": DocumentEvaluator.now,
    "timeSeconds": DocumentEvaluator.now,
    "stableHash": DocumentEvaluator.stable_hash,
}


def _describe_callee(callee: ast_nodes.Expr) -> str:
    if isinstance(callee, ast_nodes.Identifier):
        return callee.name
    if isinstance(callee, ast_nodes.MemberExpr) and isinstance(callee.object, ast_nodes.Identifier):
        return f"{callee.object.name}.{callee.property}"
    return "unknown"


def evaluate_expr(expr: ast_nodes.Expr, ctx: EvalContext) -> Any:
    return DocumentEvaluator(ctx).evaluate(expr)

"""
Value semantics shared by the rule kernel and the document evaluator.

Flux documents are exchanged with JavaScript tooling, so equality, string
concatenation and number formatting follow JavaScript rules: booleans never
equal numbers, ``1.0`` prints as ``1`` and infinities print as ``Infinity``.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

_JS_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)(e[+-]?\d+)?$", re.IGNORECASE)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_number(value: Any) -> bool:
    return is_number(value) and math.isfinite(value)


def js_typeof(value: Any) -> str:
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def format_number(value: Any) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        text = repr(value)
        if "e" not in text:
            return text
        mantissa, exponent = text.split("e")
        power = int(exponent)
        if -7 < power < 21:
            return format(Decimal(text), "f")
        return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"
    return str(value)


def to_js_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else to_js_string(item) for item in value)
    return "[object Object]"


def truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if left is None or right is None:
        return left is None and right is None
    return left is right


def negate(value: Any) -> Any:
    if is_number(value) or isinstance(value, bool):
        return -value
    raise TypeError(f"Cannot negate a {js_typeof(value)} value")


def binary_arith(op: str, left: Any, right: Any) -> Any:
    """Apply a non-logical, non-equality binary operator."""
    if op == "+":
        if isinstance(left, str) or isinstance(right, str):
            return to_js_string(left) + to_js_string(right)
        if isinstance(left, list) and isinstance(right, list):
            return left + right
    if op in {"<", "<=", ">", ">="}:
        return compare(op, left, right)
    if not (_numeric(left) and _numeric(right)):
        raise TypeError(f"Operator '{op}' expects numbers (got {js_typeof(left)} and {js_typeof(right)})")
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        return divide(left, right)
    raise TypeError(f"Unsupported binary operator '{op}'")


def divide(left: Any, right: Any) -> Any:
    """IEEE division: ``x / 0`` is a signed infinity and ``0 / 0`` is NaN."""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        sign = math.copysign(1.0, left) * math.copysign(1.0, right)
        return math.inf * sign
    return left / right


def compare(op: str, left: Any, right: Any) -> bool:
    """
    Relational comparison with JavaScript coercion: two strings compare as
    strings, anything else as numbers, and NaN compares false.
    """
    left, right = _to_primitive(left), _to_primitive(right)
    if not (isinstance(left, str) and isinstance(right, str)):
        left, right = to_js_number(left), to_js_number(right)
        if math.isnan(left) or math.isnan(right):
            return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def to_js_number(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if _JS_NUMBER_RE.match(text):
            return float(text)
        if text in {"Infinity", "+Infinity"}:
            return math.inf
        if text == "-Infinity":
            return -math.inf
    return math.nan


def _to_primitive(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return to_js_string(value)
    if isinstance(value, dict):
        return "[object Object]"
    return value


def _numeric(value: Any) -> bool:
    return is_number(value) or isinstance(value, bool)

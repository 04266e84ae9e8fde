"""
Refresh policies: when a node's dynamic props are re-evaluated, and at which
(time, docstep) they are evaluated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Union

from .. import ast_nodes
from ..errors import EvaluationError
from ..units import to_seconds

DEFAULT_POLICY = ast_nodes.OnLoadRefresh()

Number = Union[int, float]


@dataclass(frozen=True)
class EvalWindow:
    time: Number
    docstep: Number


def effective_policy(
    node: ast_nodes.DocumentNode, parent: Optional[ast_nodes.RefreshPolicy]
) -> ast_nodes.RefreshPolicy:
    """A node's own policy wins, then the inherited one, then onLoad."""
    if node.refresh is not None:
        return node.refresh
    if parent is not None:
        return parent
    return DEFAULT_POLICY


def _interval_seconds(policy: ast_nodes.EveryRefresh) -> float:
    seconds = to_seconds(policy.amount, policy.unit)
    if seconds is None or seconds <= 0:
        raise EvaluationError(f"Unsupported refresh duration unit '{policy.unit}'")
    return seconds


def compute_refresh_key(policy: ast_nodes.RefreshPolicy, time: Number, docstep: Number) -> Number:
    if isinstance(policy, ast_nodes.DocstepRefresh):
        return docstep
    if isinstance(policy, ast_nodes.EveryRefresh):
        return math.floor(time / _interval_seconds(policy))
    return 0


def compute_eval_window(policy: ast_nodes.RefreshPolicy, time: Number, docstep: Number) -> EvalWindow:
    if isinstance(policy, ast_nodes.DocstepRefresh):
        return EvalWindow(time=time, docstep=docstep)
    if isinstance(policy, ast_nodes.EveryRefresh):
        seconds = _interval_seconds(policy)
        bucket = math.floor(time / seconds)
        return EvalWindow(time=bucket * seconds, docstep=docstep)
    # onLoad and never are pinned to the initial window
    return EvalWindow(time=0, docstep=0)

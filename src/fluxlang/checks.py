"""
Static checks over a parsed FluxDocument.

`check_document` never raises: every problem becomes a diagnostic string of
the form ``{file}:{line}:{col}: Check error: {message}``.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from . import ast_nodes

RANDOM_HELPERS = {"choose", "chooseStep", "cycle", "shuffle", "sample", "phase", "hashpick"}
TIME_IDENTIFIERS = {"time", "timeSeconds", "docstep"}
COMPARISON_OPS = {"==", "!=", "===", "!==", "<", "<=", ">", ">="}
NEIGHBOR_METHODS = {"all", "orth"}
GRID_REF_PROPS = ("ref", "name", "grid")


def check_document(file: str, doc: ast_nodes.FluxDocument) -> List[str]:
    errors: List[str] = []
    grid_names = {grid.name for grid in doc.grids}

    for rule in doc.rules:
        if rule.scope and rule.scope.grid and rule.scope.grid not in grid_names:
            errors.append(
                _format(file, rule.span, f"Rule '{rule.name}' references unknown grid '{rule.scope.grid}'")
            )
        for expr in _rule_expressions(rule):
            for node in iter_expr(expr):
                if isinstance(node, ast_nodes.NeighborsCallExpr) and node.method not in NEIGHBOR_METHODS:
                    errors.append(_format(file, node.span, f"Unsupported neighbors method '{node.method}'"))

    if doc.runtime and doc.runtime.docstep_advance:
        for spec in doc.runtime.docstep_advance:
            if spec.kind == "timer" and spec.amount <= 0:
                errors.append(_format(file, None, f"timer(...) amount must be positive (found {spec.amount})"))

    if doc.body and doc.body.nodes:
        errors.extend(_check_body(file, doc.body.nodes, grid_names))
    return errors


def _check_body(file: str, roots: List[ast_nodes.DocumentNode], grid_names: set) -> List[str]:
    diagnostics: List[str] = []
    labels: Dict[str, ast_nodes.DocumentNode] = {}
    refs: List[Tuple[str, ast_nodes.DocumentNode]] = []

    def report(node: ast_nodes.DocumentNode, message: str) -> None:
        diagnostics.append(_format(file, node.span, message))

    def visit(node: ast_nodes.DocumentNode) -> None:
        if node.kind not in ast_nodes.SLOT_KINDS:
            if node.refresh is not None:
                report(node, f"refresh is only allowed on slot or inline_slot nodes (found '{node.kind}')")
            if node.transition is not None:
                report(node, f"transition is only allowed on slot or inline_slot nodes (found '{node.kind}')")

        label = node.props.get("label")
        if label is not None:
            if not isinstance(label, ast_nodes.LiteralValue) or not isinstance(label.value, str):
                report(node, "label must be a literal string")
            elif label.value in labels:
                report(node, f"duplicate label '{label.value}'")
            else:
                labels[label.value] = node

        visible = node.props.get("visibleIf")
        if isinstance(visible, ast_nodes.LiteralValue):
            if not isinstance(visible.value, bool):
                report(node, "visibleIf expects a boolean")
        elif isinstance(visible, ast_nodes.DynamicValue):
            if not is_booleanish(visible.expr):
                report(node, "visibleIf expects a boolean-ish expression")
            if uses_dynamic_time(visible.expr):
                report(node, "visibleIf cannot depend on time/docstep or random helpers")

        if node.kind == "grid":
            target = _grid_target(node)
            if target is not None and target not in grid_names:
                report(node, f"grid node '{node.id}' references unknown grid '{target}'")

        for prop in node.props.values():
            if not isinstance(prop, ast_nodes.DynamicValue):
                continue
            for expr in iter_expr(prop.expr):
                if not _is_call_to(expr, "ref"):
                    continue
                first = expr.args[0] if expr.args else None
                if isinstance(first, ast_nodes.LiteralExpr) and isinstance(first.value, str):
                    refs.append((first.value, node))
                else:
                    report(node, "ref() expects a literal string label")

        for child in node.children:
            visit(child)

    for root in roots:
        visit(root)
    for label, node in refs:
        if label not in labels:
            report(node, f"ref('{label}') target not found")
    return diagnostics


def _grid_target(node: ast_nodes.DocumentNode) -> Optional[str]:
    """Grid name a body `grid` node points at; its id when no literal reference is given."""
    for key in GRID_REF_PROPS:
        prop = node.props.get(key)
        if isinstance(prop, ast_nodes.LiteralValue) and isinstance(prop.value, str):
            return prop.value
        if prop is not None:
            return None
    return node.id


def _rule_expressions(rule: ast_nodes.FluxRule) -> Iterator[ast_nodes.Expr]:
    for branch in rule.branches:
        yield branch.condition
        yield from _statement_expressions(branch.then_branch)
    yield from _statement_expressions(rule.else_branch or [])


def _statement_expressions(statements: List[ast_nodes.Statement]) -> Iterator[ast_nodes.Expr]:
    for stmt in statements:
        if isinstance(stmt, (ast_nodes.AssignmentStatement, ast_nodes.LetStatement)):
            yield stmt.value


def iter_expr(expr: ast_nodes.Expr) -> Iterator[ast_nodes.Expr]:
    """Pre-order walk over an expression tree, descending into call arguments."""
    yield expr
    if isinstance(expr, ast_nodes.BinaryExpr):
        yield from iter_expr(expr.left)
        yield from iter_expr(expr.right)
    elif isinstance(expr, ast_nodes.UnaryExpr):
        yield from iter_expr(expr.argument)
    elif isinstance(expr, ast_nodes.MemberExpr):
        yield from iter_expr(expr.object)
    elif isinstance(expr, (ast_nodes.CallExpr, ast_nodes.NeighborsCallExpr)):
        if isinstance(expr, ast_nodes.CallExpr):
            yield from iter_expr(expr.callee)
        for arg in expr.args:
            yield from iter_expr(arg.value if isinstance(arg, ast_nodes.NamedArg) else arg)
    elif isinstance(expr, ast_nodes.ListExpr):
        for item in expr.items:
            yield from iter_expr(item)


def is_booleanish(expr: ast_nodes.Expr) -> bool:
    if isinstance(expr, ast_nodes.LiteralExpr):
        return isinstance(expr.value, bool)
    if isinstance(expr, ast_nodes.UnaryExpr):
        return expr.op == "not" and is_booleanish(expr.argument)
    if isinstance(expr, ast_nodes.BinaryExpr):
        return expr.op in {"and", "or"} or expr.op in COMPARISON_OPS
    return isinstance(expr, (ast_nodes.Identifier, ast_nodes.MemberExpr, ast_nodes.CallExpr))


def uses_dynamic_time(expr: ast_nodes.Expr) -> bool:
    for node in iter_expr(expr):
        if isinstance(node, ast_nodes.Identifier) and node.name in TIME_IDENTIFIERS:
            return True
        if isinstance(node, ast_nodes.CallExpr):
            callee = node.callee
            if isinstance(callee, ast_nodes.Identifier) and callee.name in RANDOM_HELPERS:
                return True
            if (
                isinstance(callee, ast_nodes.MemberExpr)
                and isinstance(callee.object, ast_nodes.Identifier)
                and callee.object.name == "assets"
            ):
                return True
    return False


def _is_call_to(expr: ast_nodes.Expr, name: str) -> bool:
    return (
        isinstance(expr, ast_nodes.CallExpr)
        and isinstance(expr.callee, ast_nodes.Identifier)
        and expr.callee.name == name
    )


def _format(file: str, span: Optional[ast_nodes.Span], message: str) -> str:
    line, column = (span.line, span.column) if span is not None else (0, 0)
    return f"{file}:{line}:{column}: Check error: {message}"

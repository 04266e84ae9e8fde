"""Expression parsing helpers.

These functions are attached to `Parser` as methods. Precedence, loosest
first: or, and, equality, comparison, term, factor, unary, postfix, primary.
"""

from __future__ import annotations

from typing import List

from ... import ast_nodes
from ..literals import bool_value, number_value

__all__ = [
    "parse_expression",
    "parse_or",
    "parse_and",
    "parse_equality",
    "parse_comparison",
    "parse_term",
    "parse_factor",
    "parse_unary",
    "parse_postfix",
    "parse_primary",
    "parse_argument_list",
    "parse_call_arg",
]

EQUALITY_OPS = {"==", "!=", "===", "!=="}
COMPARISON_OPS = {"<", "<=", ">", ">="}


def parse_expression(self) -> ast_nodes.Expr:
    return self.parse_or()


def _binary(left: ast_nodes.Expr, op: str, right: ast_nodes.Expr) -> ast_nodes.BinaryExpr:
    return ast_nodes.BinaryExpr(op=op, left=left, right=right, span=getattr(left, "span", None))


def parse_or(self) -> ast_nodes.Expr:
    expr = self.parse_and()
    while self.match_value("IDENT", "or") or self.match_value("OP", "||"):
        expr = _binary(expr, "or", self.parse_and())
    return expr


def parse_and(self) -> ast_nodes.Expr:
    expr = self.parse_equality()
    while self.match_value("IDENT", "and") or self.match_value("OP", "&&"):
        expr = _binary(expr, "and", self.parse_equality())
    return expr


def parse_equality(self) -> ast_nodes.Expr:
    expr = self.parse_comparison()
    while self.check("OP") and self.peek().value in EQUALITY_OPS:
        op = self.advance().value
        expr = _binary(expr, op, self.parse_comparison())
    return expr


def parse_comparison(self) -> ast_nodes.Expr:
    expr = self.parse_term()
    while self.check("OP") and self.peek().value in COMPARISON_OPS:
        op = self.advance().value
        expr = _binary(expr, op, self.parse_term())
    return expr


def parse_term(self) -> ast_nodes.Expr:
    expr = self.parse_factor()
    while self.check("OP") and self.peek().value in {"+", "-"}:
        op = self.advance().value
        expr = _binary(expr, op, self.parse_factor())
    return expr


def parse_factor(self) -> ast_nodes.Expr:
    expr = self.parse_unary()
    while self.check("OP") and self.peek().value in {"*", "/"}:
        op = self.advance().value
        expr = _binary(expr, op, self.parse_unary())
    return expr


def parse_unary(self) -> ast_nodes.Expr:
    token = self.peek()
    if self.match_value("IDENT", "not") or self.match_value("OP", "!"):
        return ast_nodes.UnaryExpr(op="not", argument=self.parse_unary(), span=self._span(token))
    if self.match_value("OP", "-"):
        return ast_nodes.UnaryExpr(op="-", argument=self.parse_unary(), span=self._span(token))
    return self.parse_postfix()


def parse_postfix(self) -> ast_nodes.Expr:
    expr = self.parse_primary()
    while True:
        if self.match("DOT"):
            name_tok = self.consume("IDENT", message="Expected property name after '.'")
            expr = ast_nodes.MemberExpr(object=expr, property=name_tok.value, span=expr.span)
            continue
        if self.match("LPAREN"):
            args = self.parse_argument_list()
            if (
                isinstance(expr, ast_nodes.MemberExpr)
                and isinstance(expr.object, ast_nodes.Identifier)
                and expr.object.name == "neighbors"
            ):
                expr = ast_nodes.NeighborsCallExpr(method=expr.property, args=args, span=expr.span)
            else:
                expr = ast_nodes.CallExpr(callee=expr, args=args, span=expr.span)
            continue
        return expr


def parse_primary(self) -> ast_nodes.Expr:
    token = self.peek()
    span = self._span(token)
    if token.type in {"INT", "FLOAT"}:
        self.advance()
        return ast_nodes.LiteralExpr(value=number_value(token), span=span)
    if token.type == "STRING":
        self.advance()
        return ast_nodes.LiteralExpr(value=token.value or "", span=span)
    if token.type == "BOOL":
        self.advance()
        return ast_nodes.LiteralExpr(value=bool_value(token), span=span)
    if token.type == "LBRACKET":
        self.advance()
        items: List[ast_nodes.Expr] = []
        if not self.check("RBRACKET"):
            items.append(self.parse_expression())
            while self.match("COMMA"):
                items.append(self.parse_expression())
        self.consume("RBRACKET", message="Expected ']' after list literal")
        return ast_nodes.ListExpr(items=items, span=span)
    if token.type == "IDENT":
        self.advance()
        return ast_nodes.Identifier(name=token.value, span=span)
    if token.type == "LBRACE":
        # when { a && b } then { ... }
        self.advance()
        expr = self.parse_expression()
        self.consume("RBRACE", message="Expected '}' after expression group")
        return expr
    if token.type == "LPAREN":
        self.advance()
        expr = self.parse_expression()
        self.consume("RPAREN", message="Expected ')' after expression")
        return expr
    raise self.error("Expected expression", token)


def parse_argument_list(self) -> List[ast_nodes.CallArg]:
    args: List[ast_nodes.CallArg] = []
    if self.match("RPAREN"):
        return args
    args.append(self.parse_call_arg())
    while self.match("COMMA"):
        args.append(self.parse_call_arg())
    self.consume("RPAREN", message="Expected ')' after argument list")
    return args


def parse_call_arg(self) -> ast_nodes.CallArg:
    if self.check("IDENT") and self.peek_offset(1).type == "EQUALS":
        name_tok = self.advance()
        self.consume("EQUALS")
        value = self.parse_expression()
        return ast_nodes.NamedArg(name=name_tok.value, value=value, span=self._span(name_tok))
    return self.parse_expression()

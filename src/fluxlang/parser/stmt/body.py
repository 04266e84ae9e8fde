"""Body content tree: nodes, properties, refresh policies and transitions."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from ... import ast_nodes
from ...units import parse_time_string, to_milliseconds
from ..literals import number_value

__all__ = [
    "parse_body_block",
    "parse_document_node",
    "parse_refresh_policy",
    "parse_transition_spec",
    "parse_property_value",
    "looks_like_node_decl",
]

TRANSITION_ARGS = {
    "fade": ("duration", "ease"),
    "wipe": ("duration", "ease", "direction"),
    "flash": ("duration",),
}


def parse_body_block(self) -> ast_nodes.BodyBlock:
    self.expect_ident("body", "Expected 'body'")
    self.consume("LBRACE", message="Expected '{' after 'body'")
    nodes: List[ast_nodes.DocumentNode] = []
    while not self.at_block_end():
        start = self.peek()
        node = self.parse_document_node()
        if node.kind != "page":
            raise self.error("Body block must contain page nodes at the top level", start)
        nodes.append(node)
    self.consume("RBRACE", message="Expected '}' after body block")
    return ast_nodes.BodyBlock(nodes=nodes)


def parse_document_node(self) -> ast_nodes.DocumentNode:
    kind_tok = self.consume("IDENT", message="Expected node kind")
    id_tok = self.consume("IDENT", message="Expected node id")
    self.consume("LBRACE", message="Expected '{' after node id")

    props: Dict[str, ast_nodes.NodePropValue] = {}
    children: List[ast_nodes.DocumentNode] = []
    refresh: Optional[ast_nodes.RefreshPolicy] = None
    transition: Optional[ast_nodes.TransitionSpec] = None
    while not self.at_block_end():
        if self.check_ident("refresh") and self.peek_offset(1).type == "EQUALS":
            refresh = self.parse_refresh_policy()
        elif self.check_ident("transition") and self.peek_offset(1).type == "EQUALS":
            transition = self.parse_transition_spec()
        elif self.looks_like_node_decl():
            children.append(self.parse_document_node())
        elif self.check("IDENT"):
            key = self.parse_key_path("Expected property name")
            self.consume("EQUALS", message="Expected '=' after property name")
            props[key] = self.parse_property_value()
            self.end_field()
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after node block")
    return ast_nodes.DocumentNode(
        id=id_tok.value,
        kind=kind_tok.value,
        props=props,
        children=children,
        refresh=refresh,
        transition=transition,
        span=self._span(kind_tok),
    )


def parse_property_value(self) -> ast_nodes.NodePropValue:
    """`@expr` or a literal value, after the `=`."""
    if self.match("AT"):
        return ast_nodes.DynamicValue(expr=self.parse_expression())
    return ast_nodes.LiteralValue(value=self.parse_value_literal())


def looks_like_node_decl(self) -> bool:
    return (
        self.check("IDENT")
        and self.peek_offset(1).type == "IDENT"
        and self.peek_offset(2).type == "LBRACE"
    )


def parse_refresh_policy(self) -> ast_nodes.RefreshPolicy:
    self.expect_ident("refresh", "Expected 'refresh'")
    self.consume("EQUALS", message="Expected '=' after 'refresh'")
    token = self.peek()
    policy: ast_nodes.RefreshPolicy
    if self.match_value("IDENT", "never"):
        policy = ast_nodes.NeverRefresh()
    elif self.match_value("IDENT", "onLoad"):
        policy = ast_nodes.OnLoadRefresh()
    elif self.match_value("IDENT", "docstep") or self.match_value("IDENT", "onDocstep"):
        policy = ast_nodes.DocstepRefresh()
    elif self.match_value("IDENT", "every"):
        self.consume("LPAREN", message="Expected '(' after 'every'")
        amount, unit = _parse_interval(self)
        self.consume("RPAREN", message="Expected ')' after every(...)")
        policy = ast_nodes.EveryRefresh(amount=amount, unit=unit)
    else:
        raise self.error("Invalid refresh policy", token)
    self.end_field()
    return policy


def _parse_interval(self):
    token = self.peek()
    if token.type == "STRING":
        self.advance()
        parsed = parse_time_string(token.value or "")
        if parsed is None:
            raise self.error(f"Invalid duration '{token.value}'", token)
        amount, unit = parsed
    elif token.type in {"INT", "FLOAT"}:
        amount, unit = self.parse_duration_spec()
    else:
        raise self.error("Expected refresh interval", token)
    if amount <= 0:
        raise self.error("Duration must be positive", token)
    return amount, unit


def parse_transition_spec(self) -> ast_nodes.TransitionSpec:
    self.expect_ident("transition", "Expected 'transition'")
    self.consume("EQUALS", message="Expected '=' after 'transition'")
    token = self.peek()
    if self.match_value("IDENT", "none"):
        spec = ast_nodes.TransitionSpec(kind="none")
    elif self.match_value("IDENT", "appear"):
        if self.match("LPAREN"):
            self.consume("RPAREN", message="Expected ')' after appear(")
        spec = ast_nodes.TransitionSpec(kind="appear")
    elif token.type == "IDENT" and token.value in TRANSITION_ARGS:
        self.advance()
        spec = _parse_transition_args(self, token.value, TRANSITION_ARGS[token.value])
    else:
        raise self.error("Invalid transition spec", token)
    self.end_field()
    return spec


def _parse_transition_args(self, kind: str, allowed: tuple) -> ast_nodes.TransitionSpec:
    spec = ast_nodes.TransitionSpec(kind=kind)
    self.consume("LPAREN", message="Expected '(' after transition")
    while not self.check("RPAREN") and not self.at_end():
        if not (self.check("IDENT") and self.peek_offset(1).type == "EQUALS"):
            raise self.error("Expected named transition argument", self.peek())
        name_tok = self.advance()
        self.consume("EQUALS", message="Expected '=' after argument name")
        name = name_tok.value
        if name not in allowed:
            raise self.error(f"Unknown transition argument '{name}'", name_tok)
        if name == "duration":
            spec.duration_ms = _parse_duration_ms(self)
        elif name == "ease":
            ease = _parse_word(self, "Expected transition ease")
            if ease not in ast_nodes.TRANSITION_EASES:
                raise self.error(f"Unknown transition ease '{ease}'", name_tok)
            spec.ease = ease
        else:
            direction = _parse_word(self, "Expected wipe direction")
            if direction not in ast_nodes.TRANSITION_DIRECTIONS:
                raise self.error(f"Unknown wipe direction '{direction}'", name_tok)
            spec.direction = direction
        if not self.match("COMMA"):
            break
    self.consume("RPAREN", message="Expected ')' after transition arguments")
    return spec


def _parse_word(self, message: str) -> str:
    token = self.peek()
    if token.type not in {"IDENT", "STRING"}:
        raise self.error(message, token)
    self.advance()
    return token.value or ""


def _parse_duration_ms(self) -> Union[int, float]:
    """`"300ms"`, `0.3 s` or a bare number of milliseconds."""
    token = self.peek()
    if token.type == "STRING":
        self.advance()
        parsed = parse_time_string(token.value or "")
        if parsed is None:
            raise self.error(f"Invalid duration '{token.value}'", token)
        return to_milliseconds(*parsed)
    if token.type not in {"INT", "FLOAT"}:
        raise self.error("Expected transition duration", token)
    if self.peek_offset(1).type == "IDENT":
        amount, unit = self.parse_duration_spec()
        millis = to_milliseconds(amount, unit)
        if millis is None:
            raise self.error(f"Unsupported duration unit '{unit}'", token)
    else:
        millis = number_value(self.advance())
    if millis < 0:
        raise self.error("Duration must be non-negative", token)
    return millis

"""Design tokens, named styles and per-target themes."""

from __future__ import annotations

from typing import Dict, Optional

from ... import ast_nodes

__all__ = [
    "parse_tokens_block",
    "parse_styles_block",
    "parse_style_def",
    "parse_theme_block",
    "parse_property_map",
]


def parse_tokens_block(self) -> ast_nodes.TokensBlock:
    self.expect_ident("tokens", "Expected 'tokens'")
    self.consume("LBRACE", message="Expected '{' after 'tokens'")
    tokens: Dict[str, object] = {}
    while not self.at_block_end():
        key = self.parse_key_path("Expected token name")
        self.consume("EQUALS", message="Expected '=' after token name")
        tokens[key] = self.parse_value_literal()
        self.end_field()
    self.consume("RBRACE", message="Expected '}' after tokens block")
    return ast_nodes.TokensBlock(tokens=tokens)


def parse_styles_block(self) -> ast_nodes.StylesBlock:
    self.expect_ident("styles", "Expected 'styles'")
    self.consume("LBRACE", message="Expected '{' after 'styles'")
    block = ast_nodes.StylesBlock()
    while not self.at_block_end():
        block.styles.append(self.parse_style_def())
    self.consume("RBRACE", message="Expected '}' after styles block")
    return block


def parse_style_def(self) -> ast_nodes.StyleDef:
    name_tok = self.consume("IDENT", message="Expected style name")
    extends: Optional[str] = None
    if self.match("COLON"):
        extends = self.consume("IDENT", message="Expected base style name").value
    self.consume("LBRACE", message="Expected '{' after style name")
    props = self.parse_property_map()
    self.consume("RBRACE", message="Expected '}' after style block")
    return ast_nodes.StyleDef(name=name_tok.value, extends=extends, props=props, span=self._span(name_tok))


def parse_theme_block(self) -> ast_nodes.ThemeBlock:
    start = self.expect_ident("theme", "Expected 'theme'")
    token = self.peek()
    if token.type not in {"IDENT", "STRING"}:
        raise self.error("Expected theme name", token)
    self.advance()
    self.consume("LBRACE", message="Expected '{' after theme name")
    theme = ast_nodes.ThemeBlock(name=token.value or "", span=self._span(start))
    while not self.at_block_end():
        if self.check_ident("tokens"):
            theme.tokens = self.parse_tokens_block()
        elif self.check_ident("styles"):
            theme.styles = self.parse_styles_block()
        else:
            field_tok = self.peek()
            raise self.error(f"Unexpected theme field '{field_tok.value}'", field_tok)
    self.consume("RBRACE", message="Expected '}' after theme block")
    return theme


def parse_property_map(self) -> Dict[str, ast_nodes.NodePropValue]:
    props: Dict[str, ast_nodes.NodePropValue] = {}
    while not self.at_block_end():
        key = self.parse_key_path("Expected property name")
        self.consume("EQUALS", message="Expected '=' after property name")
        props[key] = self.parse_property_value()
        self.end_field()
    return props

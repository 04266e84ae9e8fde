"""
Recursive-descent parser for Flux documents.

Block and expression parsers live in `parser.stmt` and `parser.expr` as plain
functions and are attached to `Parser` as methods; they rely on the token
helpers defined here.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .. import ast_nodes
from ..errors import ParseError
from ..lexer import Lexer, Token
from ..version import DEFAULT_LANGUAGE_VERSION
from . import expr
from .stmt import assets as stmt_assets
from .stmt import blocks as stmt_blocks
from .stmt import body as stmt_body
from .stmt import rules as stmt_rules
from .stmt import styles as stmt_styles

logger = logging.getLogger(__name__)

NUMBER_TYPES = {"INT", "FLOAT"}


class Parser:
    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens
        self.position = 0

    @classmethod
    def from_source(cls, source: str, filename: str = "<string>") -> "Parser":
        return cls(Lexer(source, filename=filename).tokenize())

    def parse_document(self) -> ast_nodes.FluxDocument:
        self.expect_ident("document", "Expected 'document' at start of file")
        self.consume("LBRACE", message="Expected '{' after 'document'")

        doc = ast_nodes.FluxDocument(meta={"version": DEFAULT_LANGUAGE_VERSION})
        while not self.check("RBRACE") and not self.check("EOF"):
            token = self.peek()
            if self.check_ident("meta"):
                doc.meta.update(self.parse_meta_block())
            elif self.check_ident("state"):
                doc.state.params.extend(self.parse_state_block().params)
            elif self.check_ident("pageConfig"):
                doc.page_config = self.parse_page_config_block()
            elif self.check_ident("grid"):
                doc.grids.append(self.parse_grid_block())
            elif self.check_ident("rule"):
                doc.rules.append(self.parse_rule_decl())
            elif self.check_ident("runtime"):
                doc.runtime = self.parse_runtime_block()
            elif self.check_ident("assets"):
                doc.assets = self.parse_assets_block()
            elif self.check_ident("materials"):
                doc.materials = self.parse_materials_block()
            elif self.check_ident("tokens"):
                doc.tokens = self.parse_tokens_block()
            elif self.check_ident("styles"):
                doc.styles = self.parse_styles_block()
            elif self.check_ident("theme"):
                doc.themes.append(self.parse_theme_block())
            elif self.check_ident("body"):
                doc.body = self.parse_body_block()
            else:
                raise self.error(f"Unexpected top-level construct '{token.value}'", token)

        self.consume("RBRACE", message="Expected '}' at end of document")
        if not self.check("EOF"):
            raise self.error("Unexpected content after document block", self.peek())
        logger.debug(
            "Parsed document with %s grids, %s rules, %s body nodes",
            len(doc.grids),
            len(doc.rules),
            len(doc.body.nodes) if doc.body else 0,
        )
        return doc

    # Expression parsing (delegated)
    parse_expression = expr.parse_expression
    parse_or = expr.parse_or
    parse_and = expr.parse_and
    parse_equality = expr.parse_equality
    parse_comparison = expr.parse_comparison
    parse_term = expr.parse_term
    parse_factor = expr.parse_factor
    parse_unary = expr.parse_unary
    parse_postfix = expr.parse_postfix
    parse_primary = expr.parse_primary
    parse_argument_list = expr.parse_argument_list
    parse_call_arg = expr.parse_call_arg

    # Document blocks (delegated)
    parse_meta_block = stmt_blocks.parse_meta_block
    parse_state_block = stmt_blocks.parse_state_block
    parse_param_decl = stmt_blocks.parse_param_decl
    parse_page_config_block = stmt_blocks.parse_page_config_block
    parse_page_size_block = stmt_blocks.parse_page_size_block
    parse_grid_block = stmt_blocks.parse_grid_block
    parse_grid_size_block = stmt_blocks.parse_grid_size_block
    parse_cell_block = stmt_blocks.parse_cell_block
    parse_literal = stmt_blocks.parse_literal
    parse_value_literal = stmt_blocks.parse_value_literal
    parse_identifier_list = stmt_blocks.parse_identifier_list
    parse_key_path = stmt_blocks.parse_key_path
    parse_number = stmt_blocks.parse_number
    parse_string_field = stmt_blocks.parse_string_field
    parse_number_field = stmt_blocks.parse_number_field
    skip_statement = stmt_blocks.skip_statement

    parse_rule_decl = stmt_rules.parse_rule_decl
    parse_rule_header = stmt_rules.parse_rule_header
    parse_rule_block = stmt_rules.parse_rule_block
    parse_statement = stmt_rules.parse_statement
    parse_let_statement = stmt_rules.parse_let_statement
    parse_advance_docstep_statement = stmt_rules.parse_advance_docstep_statement
    parse_runtime_block = stmt_rules.parse_runtime_block
    parse_docstep_advance_spec = stmt_rules.parse_docstep_advance_spec
    parse_duration_spec = stmt_rules.parse_duration_spec

    parse_assets_block = stmt_assets.parse_assets_block
    parse_asset_decl = stmt_assets.parse_asset_decl
    parse_asset_bank_decl = stmt_assets.parse_asset_bank_decl
    parse_meta_map_block = stmt_assets.parse_meta_map_block
    parse_materials_block = stmt_assets.parse_materials_block
    parse_material_decl = stmt_assets.parse_material_decl

    parse_body_block = stmt_body.parse_body_block
    parse_document_node = stmt_body.parse_document_node
    parse_refresh_policy = stmt_body.parse_refresh_policy
    parse_transition_spec = stmt_body.parse_transition_spec
    parse_property_value = stmt_body.parse_property_value
    looks_like_node_decl = stmt_body.looks_like_node_decl

    parse_tokens_block = stmt_styles.parse_tokens_block
    parse_styles_block = stmt_styles.parse_styles_block
    parse_style_def = stmt_styles.parse_style_def
    parse_theme_block = stmt_styles.parse_theme_block
    parse_property_map = stmt_styles.parse_property_map

    # Token helpers
    def consume(self, token_type: str, value: str | None = None, message: str | None = None) -> Token:
        token = self.peek()
        if token.type != token_type:
            raise self.error(message or f"Expected {token_type}", token)
        if value is not None and token.value != value:
            raise self.error(message or f"Expected '{value}'", token)
        self.advance()
        return token

    def expect_ident(self, value: str, message: str | None = None) -> Token:
        return self.consume("IDENT", value, message or f"Expected '{value}'")

    def match(self, token_type: str) -> bool:
        if self.check(token_type):
            self.advance()
            return True
        return False

    def match_value(self, token_type: str, value: str) -> bool:
        if self.check(token_type) and self.peek().value == value:
            self.advance()
            return True
        return False

    def check(self, token_type: str) -> bool:
        return self.peek().type == token_type

    def check_ident(self, value: str) -> bool:
        token = self.peek()
        return token.type == "IDENT" and token.value == value

    def check_number(self) -> bool:
        return self.peek().type in NUMBER_TYPES

    def peek(self) -> Token:
        return self.tokens[self.position]

    def peek_offset(self, offset: int) -> Token:
        idx = min(self.position + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        token = self.tokens[self.position]
        self.position = min(self.position + 1, len(self.tokens) - 1)
        return token

    def at_end(self) -> bool:
        return self.check("EOF")

    def at_block_end(self) -> bool:
        return self.check("RBRACE") or self.check("EOF")

    def end_field(self) -> None:
        self.match("SEMICOLON")

    def error(self, message: str, token: Token) -> ParseError:
        lexeme = "<eof>" if token.type == "EOF" else token.value
        return ParseError(message, token.line, token.column, lexeme=lexeme)

    def _span(self, token: Token) -> ast_nodes.Span:
        return ast_nodes.Span(line=token.line, column=token.column)


def parse_document(source: str, filename: str = "<string>") -> ast_nodes.FluxDocument:
    """Parse Flux source text into a FluxDocument."""
    return Parser.from_source(source, filename=filename).parse_document()


def parse_source(source: str) -> ast_nodes.FluxDocument:
    """Parse helper for tests and tooling."""
    return parse_document(source)

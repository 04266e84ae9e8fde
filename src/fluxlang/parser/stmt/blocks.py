"""Parsers for the declarative document blocks: meta, state, pageConfig and grid."""

from __future__ import annotations

from typing import Any, Dict, List, Union

from ... import ast_nodes
from ..literals import bool_value, number_value

__all__ = [
    "parse_meta_block",
    "parse_state_block",
    "parse_param_decl",
    "parse_page_config_block",
    "parse_page_size_block",
    "parse_grid_block",
    "parse_grid_size_block",
    "parse_cell_block",
    "parse_literal",
    "parse_value_literal",
    "parse_identifier_list",
    "parse_key_path",
    "parse_number",
    "parse_string_field",
    "parse_number_field",
    "skip_statement",
]


def parse_meta_block(self) -> Dict[str, Any]:
    self.expect_ident("meta", "Expected 'meta'")
    self.consume("LBRACE", message="Expected '{' after 'meta'")
    meta: Dict[str, Any] = {}
    while not self.at_block_end():
        key = self.parse_key_path("Expected meta field name")
        self.consume("EQUALS", message="Expected '=' after meta field name")
        meta[key] = self.parse_value_literal()
        self.end_field()
    self.consume("RBRACE", message="Expected '}' after meta block")
    return meta


def parse_state_block(self) -> ast_nodes.FluxState:
    self.expect_ident("state", "Expected 'state'")
    self.consume("LBRACE", message="Expected '{' after 'state'")
    params: List[ast_nodes.FluxParam] = []
    while not self.at_block_end():
        if self.check_ident("param"):
            params.append(self.parse_param_decl())
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after state block")
    return ast_nodes.FluxState(params=params)


def parse_param_decl(self) -> ast_nodes.FluxParam:
    start = self.expect_ident("param", "Expected 'param'")
    name_tok = self.consume("IDENT", message="Expected parameter name")
    self.consume("COLON", message="Expected ':' after parameter name")
    type_tok = self.consume("IDENT", message="Expected parameter type")
    if type_tok.value not in ast_nodes.PARAM_TYPES:
        raise self.error(f"Unknown parameter type '{type_tok.value}'", type_tok)

    minimum = maximum = None
    if self.match("LBRACKET"):
        minimum = self.parse_literal()
        self.consume("COMMA", message="Expected ',' in range")
        if self.match("INF"):
            maximum = "inf"
        else:
            maximum = self.parse_literal()
        self.consume("RBRACKET", message="Expected ']' to close range")

    self.consume("AT", message="Expected '@' before initial value")
    initial = self.parse_literal()
    self.end_field()
    return ast_nodes.FluxParam(
        name=name_tok.value,
        type=type_tok.value,
        initial=initial,
        min=minimum,
        max=maximum,
        span=self._span(start),
    )


def parse_page_config_block(self) -> ast_nodes.PageConfig:
    self.expect_ident("pageConfig", "Expected 'pageConfig'")
    self.consume("LBRACE", message="Expected '{' after 'pageConfig'")
    size = None
    while not self.at_block_end():
        if self.check_ident("size"):
            size = self.parse_page_size_block()
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after pageConfig block")
    if size is None:
        raise self.error("pageConfig must contain a size block", self.peek())
    return ast_nodes.PageConfig(size=size)


def parse_page_size_block(self) -> ast_nodes.PageSize:
    self.expect_ident("size", "Expected 'size'")
    self.consume("LBRACE", message="Expected '{' after 'size'")
    width = height = units = None
    while not self.at_block_end():
        if self.check_ident("width"):
            width = self.parse_number_field("width")
        elif self.check_ident("height"):
            height = self.parse_number_field("height")
        elif self.check_ident("units"):
            units = self.parse_string_field("units")
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after size block")
    if width is None or height is None or units is None:
        raise self.error("Incomplete page size (width/height/units required)", self.peek())
    return ast_nodes.PageSize(width=width, height=height, units=units)


def parse_grid_block(self) -> ast_nodes.FluxGrid:
    start = self.expect_ident("grid", "Expected 'grid'")
    name_tok = self.consume("IDENT", message="Expected grid name")
    self.consume("LBRACE", message="Expected '{' after grid name")

    topology = None
    page = None
    size = ast_nodes.GridSize()
    cells: List[ast_nodes.FluxCell] = []
    while not self.at_block_end():
        if self.check_ident("topology"):
            self.advance()
            self.consume("EQUALS", message="Expected '=' after 'topology'")
            topology = self.consume("IDENT", message="Expected topology kind").value
            self.end_field()
        elif self.check_ident("page"):
            page = self.parse_number_field("page")
        elif self.check_ident("size"):
            size = self.parse_grid_size_block()
        elif self.check_ident("cell"):
            cells.append(self.parse_cell_block())
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after grid block")

    if not topology:
        raise self.error("Grid must declare a topology", self.peek())
    return ast_nodes.FluxGrid(
        name=name_tok.value,
        topology=topology,
        page=page,
        size=size,
        cells=cells,
        span=self._span(start),
    )


def parse_grid_size_block(self) -> ast_nodes.GridSize:
    self.expect_ident("size", "Expected 'size'")
    self.consume("LBRACE", message="Expected '{' after 'size'")
    size = ast_nodes.GridSize()
    while not self.at_block_end():
        if self.check_ident("rows"):
            size.rows = self.parse_number_field("rows")
        elif self.check_ident("cols"):
            size.cols = self.parse_number_field("cols")
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after size block")
    return size


def parse_cell_block(self) -> ast_nodes.FluxCell:
    start = self.expect_ident("cell", "Expected 'cell'")
    id_tok = self.consume("IDENT", message="Expected cell id")
    self.consume("LBRACE", message="Expected '{' after cell id")
    cell = ast_nodes.FluxCell(id=id_tok.value, span=self._span(start))
    while not self.at_block_end():
        if self.check_ident("tags"):
            cell.tags = self.parse_identifier_list()
        elif self.check_ident("content"):
            cell.content = self.parse_string_field("content")
        elif self.check_ident("mediaId"):
            cell.media_id = self.parse_string_field("mediaId")
        elif self.check_ident("dynamic"):
            cell.dynamic = self.parse_number_field("dynamic")
        elif self.check_ident("density"):
            cell.density = self.parse_number_field("density")
        elif self.check_ident("salience"):
            cell.salience = self.parse_number_field("salience")
        else:
            self.skip_statement()
    self.consume("RBRACE", message="Expected '}' after cell block")
    return cell


# ---------------------------------------------------------------------------
# Literal & field helpers
# ---------------------------------------------------------------------------


def parse_literal(self) -> Union[int, float, str, bool]:
    """Scalar literal; a bare identifier is read as an enum-like string."""
    token = self.peek()
    if token.type in {"INT", "FLOAT"}:
        self.advance()
        return number_value(token)
    if token.type in {"STRING", "IDENT"}:
        self.advance()
        return token.value or ""
    if token.type == "BOOL":
        self.advance()
        return bool_value(token)
    raise self.error("Expected literal", token)


def parse_value_literal(self) -> Any:
    token = self.peek()
    if token.type == "LBRACKET":
        self.advance()
        items: List[Any] = []
        if not self.check("RBRACKET"):
            items.append(self.parse_value_literal())
            while self.match("COMMA"):
                items.append(self.parse_value_literal())
        self.consume("RBRACKET", message="Expected ']' after list literal")
        return items
    if token.type in {"INT", "FLOAT", "STRING", "IDENT", "BOOL"}:
        return self.parse_literal()
    raise self.error("Expected literal value", token)


def parse_identifier_list(self) -> List[str]:
    """`key = [a, b, c]` where the key token has already been checked."""
    self.advance()
    self.consume("EQUALS", message="Expected '=' after identifier list key")
    self.consume("LBRACKET", message="Expected '[' to start identifier list")
    values: List[str] = []
    if not self.check("RBRACKET"):
        values.append(self.consume("IDENT", message="Expected identifier").value)
        while self.match("COMMA"):
            values.append(self.consume("IDENT", message="Expected identifier").value)
    self.consume("RBRACKET", message="Expected ']' after identifier list")
    self.end_field()
    return values


def parse_key_path(self, message: str) -> str:
    parts = [self.consume("IDENT", message=message).value]
    while self.match("DOT"):
        parts.append(self.consume("IDENT", message="Expected identifier after '.'").value)
    return ".".join(parts)


def parse_number(self, message: str = "Expected number") -> Union[int, float]:
    if not self.check_number():
        raise self.error(message, self.peek())
    return number_value(self.advance())


def parse_string_field(self, name: str) -> str:
    self.advance()
    self.consume("EQUALS", message=f"Expected '=' after '{name}'")
    token = self.consume("STRING", message=f"Expected string for {name}")
    self.end_field()
    return token.value or ""


def parse_number_field(self, name: str) -> Union[int, float]:
    self.advance()
    self.consume("EQUALS", message=f"Expected '=' after '{name}'")
    value = self.parse_number(f"Expected numeric {name}")
    self.end_field()
    return value


def skip_statement(self) -> None:
    """
    Skip an unknown field up to the next ';' (consumed) or the enclosing '}'
    (left for the caller). Nested braces are skipped as a unit.
    """
    depth = 0
    while not self.at_end():
        if depth == 0 and self.check("SEMICOLON"):
            self.advance()
            return
        if self.check("RBRACE"):
            if depth == 0:
                return
            depth -= 1
            self.advance()
            if depth == 0:
                return
            continue
        if self.check("LBRACE"):
            depth += 1
        self.advance()

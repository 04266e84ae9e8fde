"""Rule declarations, rule statements and the runtime block."""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

from ... import ast_nodes
from ...units import normalize_unit

__all__ = [
    "parse_rule_decl",
    "parse_rule_header",
    "parse_rule_block",
    "parse_statement",
    "parse_let_statement",
    "parse_advance_docstep_statement",
    "parse_runtime_block",
    "parse_docstep_advance_spec",
    "parse_duration_spec",
]


def parse_rule_decl(self) -> ast_nodes.FluxRule:
    start = self.expect_ident("rule", "Expected 'rule'")
    name_tok = self.consume("IDENT", message="Expected rule name")
    mode, scope, on_event_type = self.parse_rule_header()
    if mode == "event" and not on_event_type:
        raise self.error("Event rules must specify an 'on=\"...\"' event type", self.peek())

    self.consume("LBRACE", message="Expected '{' to start rule body")
    self.expect_ident("when", "Expected 'when' in rule body")
    condition = self.parse_expression()
    self.expect_ident("then", "Expected 'then' after rule condition")
    branches = [ast_nodes.RuleBranch(condition=condition, then_branch=self.parse_rule_block())]

    else_branch: Optional[List[ast_nodes.Statement]] = None
    while self.match_value("IDENT", "else"):
        if self.match_value("IDENT", "when"):
            cond = self.parse_expression()
            self.expect_ident("then", "Expected 'then' after 'else when' condition")
            branches.append(ast_nodes.RuleBranch(condition=cond, then_branch=self.parse_rule_block()))
            continue
        else_branch = self.parse_rule_block()
        break

    self.consume("RBRACE", message="Expected '}' after rule body")
    return ast_nodes.FluxRule(
        name=name_tok.value,
        mode=mode,
        scope=scope,
        on_event_type=on_event_type,
        branches=branches,
        else_branch=else_branch,
        span=self._span(start),
    )


def parse_rule_header(self) -> Tuple[str, Optional[ast_nodes.RuleScope], Optional[str]]:
    mode = "docstep"
    scope: Optional[ast_nodes.RuleScope] = None
    on_event_type: Optional[str] = None
    if not self.match("LPAREN"):
        return mode, scope, on_event_type

    while not self.check("RPAREN"):
        key_tok = self.consume("IDENT", message="Expected header key")
        self.consume("EQUALS", message="Expected '=' after header key")
        if key_tok.value == "mode":
            value_tok = self.consume("IDENT", message="Expected mode value")
            if value_tok.value not in ast_nodes.RULE_MODES:
                raise self.error(f"Invalid rule mode '{value_tok.value}'", value_tok)
            mode = value_tok.value
        elif key_tok.value == "grid":
            scope = ast_nodes.RuleScope(grid=self.consume("IDENT", message="Expected grid name").value)
        elif key_tok.value == "on":
            on_event_type = self.consume("STRING", message="Expected string for 'on'").value
        else:
            raise self.error(f"Unknown rule header key '{key_tok.value}'", key_tok)
        if not self.match("COMMA"):
            break
    self.consume("RPAREN", message="Expected ')' after rule header")
    return mode, scope, on_event_type


def parse_rule_block(self) -> List[ast_nodes.Statement]:
    """`{ stmt* }`, or a single statement without braces."""
    if not self.match("LBRACE"):
        return [self.parse_statement()]
    statements: List[ast_nodes.Statement] = []
    while not self.at_block_end():
        statements.append(self.parse_statement())
    self.consume("RBRACE", message="Expected '}' to close block")
    return statements


def parse_statement(self) -> ast_nodes.Statement:
    if self.check_ident("let"):
        return self.parse_let_statement()
    if self.check_ident("advanceDocstep"):
        return self.parse_advance_docstep_statement()

    start = self.peek()
    target = self.parse_expression()
    if not self.match("EQUALS"):
        raise self.error(
            "Only assignment, 'let', and 'advanceDocstep()' statements are allowed in rule bodies",
            self.peek(),
        )
    if not isinstance(target, (ast_nodes.Identifier, ast_nodes.MemberExpr)):
        raise self.error("Invalid assignment target", start)
    value = self.parse_expression()
    self.end_field()
    return ast_nodes.AssignmentStatement(target=target, value=value, span=self._span(start))


def parse_let_statement(self) -> ast_nodes.LetStatement:
    start = self.expect_ident("let", "Expected 'let'")
    name_tok = self.consume("IDENT", message="Expected identifier after 'let'")
    self.consume("EQUALS", message="Expected '=' after let name")
    value = self.parse_expression()
    self.end_field()
    return ast_nodes.LetStatement(name=name_tok.value, value=value, span=self._span(start))


def parse_advance_docstep_statement(self) -> ast_nodes.AdvanceDocstepStatement:
    start = self.expect_ident("advanceDocstep", "Expected 'advanceDocstep'")
    self.consume("LPAREN", message="Expected '(' after 'advanceDocstep'")
    self.consume("RPAREN", message="Expected ')' after 'advanceDocstep('")
    self.end_field()
    return ast_nodes.AdvanceDocstepStatement(span=self._span(start))


def parse_runtime_block(self) -> ast_nodes.FluxRuntimeConfig:
    self.expect_ident("runtime", "Expected 'runtime'")
    self.consume("LBRACE", message="Expected '{' after 'runtime'")
    config = ast_nodes.FluxRuntimeConfig()
    while not self.at_block_end():
        if self.check_ident("eventsApply"):
            self.advance()
            self.consume("EQUALS", message="Expected '=' after 'eventsApply'")
            value_tok = self.consume("STRING", message="Expected string value for eventsApply")
            if value_tok.value not in ast_nodes.EVENTS_APPLY_POLICIES:
                raise self.error(f"Invalid eventsApply policy '{value_tok.value}'", value_tok)
            config.events_apply = value_tok.value
            self.end_field()
        elif self.check_ident("docstepAdvance"):
            self.advance()
            self.consume("EQUALS", message="Expected '=' after 'docstepAdvance'")
            self.consume("LBRACKET", message="Expected '[' after 'docstepAdvance ='")
            specs: List[ast_nodes.DocstepAdvanceTimer] = []
            if not self.check("RBRACKET"):
                specs.append(self.parse_docstep_advance_spec())
                while self.match("COMMA"):
                    specs.append(self.parse_docstep_advance_spec())
            self.consume("RBRACKET", message="Expected ']' after docstepAdvance list")
            self.end_field()
            config.docstep_advance = specs
        else:
            token = self.peek()
            raise self.error(f"Unknown field '{token.value}' in runtime block", token)
    self.consume("RBRACE", message="Expected '}' after runtime block")
    return config


def parse_docstep_advance_spec(self) -> ast_nodes.DocstepAdvanceTimer:
    self.expect_ident("timer", "Expected 'timer' in docstepAdvance spec")
    self.consume("LPAREN", message="Expected '(' after 'timer'")
    amount, unit = self.parse_duration_spec()
    self.consume("RPAREN", message="Expected ')' after timer(...)")
    return ast_nodes.DocstepAdvanceTimer(amount=amount, unit=unit)


def parse_duration_spec(self) -> Tuple[Union[int, float], str]:
    """A number followed by an optional unit identifier; seconds when omitted."""
    amount = self.parse_number("Expected numeric duration")
    if not self.check("IDENT"):
        return amount, "s"
    unit_tok = self.advance()
    unit = normalize_unit(unit_tok.value or "")
    if unit is None:
        raise self.error(f"Unknown duration unit '{unit_tok.value}'", unit_tok)
    return amount, unit

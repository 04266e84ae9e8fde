"""
Single-pass lexer for Flux source text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .errors import LexError

WHITESPACE = {" ", "\t", "\r", "\n"}

PUNCTUATION = {
    "{": "LBRACE",
    "}": "RBRACE",
    "[": "LBRACKET",
    "]": "RBRACKET",
    "(": "LPAREN",
    ")": "RPAREN",
    ",": "COMMA",
    ";": "SEMICOLON",
    ":": "COLON",
    "@": "AT",
    ".": "DOT",
}

# Longest operators first so that '===' wins over '=='.
MULTI_CHAR_OPERATORS = ("===", "!==", "==", "!=", "<=", ">=", "&&", "||")
SINGLE_CHAR_OPERATORS = {"<", ">", "!", "+", "-", "*", "/", "%"}

# Tokens after which a '-' is a binary operator rather than a sign.
VALUE_END_TYPES = {"IDENT", "INT", "FLOAT", "STRING", "BOOL", "INF", "RPAREN", "RBRACKET"}


@dataclass
class Token:
    type: str
    value: Optional[str]
    line: int
    column: int

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Token({self.type}, {self.value}, {self.line}:{self.column})"


class Lexer:
    """
    Turns Flux source into a flat token list terminated by an EOF token.
    """

    def __init__(self, source: str, filename: str = "<string>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        while not self._at_end():
            char = self._peek()
            if char in WHITESPACE:
                self._advance()
                continue
            if char == "/" and self._peek(1) == "/":
                self._skip_line_comment()
                continue
            if char == "/" and self._peek(1) == "*":
                self._skip_block_comment()
                continue
            if char.isalpha() or char == "_":
                self._identifier()
                continue
            if char.isdigit() or (char == "-" and self._peek(1).isdigit() and not self._follows_value()):
                self._number()
                continue
            if char in {'"', "'"}:
                self._string(char)
                continue
            if self._operator():
                continue
            if char in PUNCTUATION:
                self._emit(PUNCTUATION[char], char, self.line, self.column)
                self._advance()
                continue
            if char == "=":
                self._emit("EQUALS", "=", self.line, self.column)
                self._advance()
                continue
            if char in {"&", "|"}:
                raise LexError(
                    f"Unexpected character '{char}' (did you mean '{char * 2}'?)",
                    self.line,
                    self.column,
                )
            raise LexError(f"Unexpected character '{char}'", self.line, self.column)

        self.tokens.append(Token("EOF", None, self.line, self.column))
        return self.tokens

    def _identifier(self) -> None:
        line, column = self.line, self.column
        start = self.pos
        while not self._at_end() and (self._peek().isalnum() or self._peek() == "_"):
            self._advance()
        text = self.source[start : self.pos]
        lowered = text.lower()
        if lowered in {"true", "false"}:
            self._emit("BOOL", lowered, line, column)
        elif lowered == "inf":
            self._emit("INF", lowered, line, column)
        else:
            self._emit("IDENT", text, line, column)

    def _number(self) -> None:
        line, column = self.line, self.column
        start = self.pos
        if self._peek() == "-":
            self._advance()
        while self._peek().isdigit():
            self._advance()
        token_type = "INT"
        if self._peek() == "." and self._peek(1).isdigit():
            token_type = "FLOAT"
            self._advance()
            while self._peek().isdigit():
                self._advance()
        self._emit(token_type, self.source[start : self.pos], line, column)

    def _string(self, quote: str) -> None:
        line, column = self.line, self.column
        self._advance()
        chars: List[str] = []
        while not self._at_end():
            char = self._peek()
            if char == quote:
                self._advance()
                self._emit("STRING", "".join(chars), line, column)
                return
            if char == "\\":
                following = self._peek(1)
                if following in {quote, "\\"}:
                    chars.append(following)
                    self._advance()
                    self._advance()
                    continue
                chars.append(char)
                self._advance()
                continue
            chars.append(char)
            self._advance()
        raise LexError("Unterminated string literal", line, column)

    def _operator(self) -> bool:
        for op in MULTI_CHAR_OPERATORS:
            if self.source.startswith(op, self.pos):
                self._emit("OP", op, self.line, self.column)
                for _ in op:
                    self._advance()
                return True
        char = self._peek()
        if char in SINGLE_CHAR_OPERATORS:
            self._emit("OP", char, self.line, self.column)
            self._advance()
            return True
        return False

    def _skip_line_comment(self) -> None:
        while not self._at_end() and self._peek() != "\n":
            self._advance()

    def _skip_block_comment(self) -> None:
        self._advance()
        self._advance()
        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

    def _follows_value(self) -> bool:
        return bool(self.tokens) and self.tokens[-1].type in VALUE_END_TYPES

    def _emit(self, token_type: str, value: Optional[str], line: int, column: int) -> None:
        self.tokens.append(Token(token_type, value, line, column))

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx >= len(self.source):
            return ""
        return self.source[idx]

    def _advance(self) -> str:
        char = self.source[self.pos]
        self.pos += 1
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return char

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

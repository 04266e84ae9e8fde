"""
Error types raised by the Flux toolchain.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class FluxError(Exception):
    """Base error with optional location metadata."""

    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    def __str__(self) -> str:
        location = ""
        if self.line is not None:
            location = f" (line {self.line}"
            if self.column is not None:
                location += f", column {self.column}"
            location += ")"
        return f"{self.message}{location}"


class LexError(FluxError):
    """Lexical analysis error."""


@dataclass
class ParseError(FluxError):
    """Parsing error, carrying the lexeme of the offending token."""

    lexeme: Optional[str] = None

    def __str__(self) -> str:
        near = f" near '{self.lexeme}'" if self.lexeme is not None else ""
        location = ""
        if self.line is not None:
            location = f" (line {self.line}, column {self.column})"
        return f"{self.message}{near}{location}"


class KernelError(FluxError):
    """Raised by the grid runtime kernel while running rules."""


class EvaluationError(FluxError):
    """Raised when a document expression cannot be evaluated."""

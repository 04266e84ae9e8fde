"""
Newline-delimited diagnostic strings: ``{file}:{line}:{col}: {category}: {message}``.
"""

from __future__ import annotations

from typing import List, Optional

from .checks import check_document
from .errors import FluxError, LexError, ParseError
from .parser import parse_document

LEXER_ERROR = "Lexer error"
PARSE_ERROR = "Parse error"
CHECK_ERROR = "Check error"
CATEGORIES = (LEXER_ERROR, PARSE_ERROR, CHECK_ERROR)


def format_diagnostic(file: str, line: Optional[int], column: Optional[int], category: str, message: str) -> str:
    return f"{file}:{line or 0}:{column or 0}: {category}: {message}"


def _from_error(file: str, exc: FluxError) -> str:
    category = LEXER_ERROR if isinstance(exc, LexError) else PARSE_ERROR
    message = exc.message
    if isinstance(exc, ParseError) and exc.lexeme is not None:
        message = f"{message} near '{exc.lexeme}'"
    return format_diagnostic(file, exc.line, exc.column, category, message)


def collect_diagnostics(source: str, file: str = "<string>") -> List[str]:
    """Parse and check `source`; a lexer or parse failure is the only diagnostic reported."""
    try:
        doc = parse_document(source, filename=file)
    except (LexError, ParseError) as exc:
        return [_from_error(file, exc)]
    return check_document(file, doc)

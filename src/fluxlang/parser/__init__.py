"""
Flux parser package.

Public API: `parse_document`, `parse_source`, `Parser` and `ParseError`.
"""

from __future__ import annotations

from ..errors import ParseError
from .core import Parser, parse_document, parse_source

__all__ = ["parse_document", "parse_source", "ParseError", "Parser"]

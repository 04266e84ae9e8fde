"""Token-to-value conversions shared by the block and expression parsers."""

from __future__ import annotations

from typing import Union

from ..lexer import Token


def number_value(token: Token) -> Union[int, float]:
    text = token.value or "0"
    if token.type == "FLOAT":
        return float(text)
    return int(text)


def bool_value(token: Token) -> bool:
    return token.value == "true"

"""Expression parsing helpers attached to `Parser`."""

from .core import (  # noqa: F401
    parse_and,
    parse_argument_list,
    parse_call_arg,
    parse_comparison,
    parse_equality,
    parse_expression,
    parse_factor,
    parse_or,
    parse_postfix,
    parse_primary,
    parse_term,
    parse_unary,
)

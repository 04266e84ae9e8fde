import math

import pytest

from fluxlang.values import binary_arith, format_number, strict_equals, to_js_string, truthy


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.0, "1"),
        (-0.5, "-0.5"),
        (0.1, "0.1"),
        (1.5e-05, "0.000015"),
        (1e21, "1e+21"),
        (1e-7, "1e-7"),
        (float("inf"), "Infinity"),
        (float("-inf"), "-Infinity"),
        (math.nan, "NaN"),
        (42, "42"),
    ],
)
def test_format_number_follows_javascript(value, expected):
    assert format_number(value) == expected


def test_to_js_string():
    assert to_js_string(None) == "null"
    assert to_js_string(True) == "true"
    assert to_js_string([1, None, "a", 2.0]) == "1,,a,2"
    assert to_js_string({"a": 1}) == "[object Object]"


def test_strict_equality_never_mixes_types():
    assert strict_equals(1, 1.0)
    assert not strict_equals(1, True)
    assert not strict_equals("1", 1)
    assert strict_equals(None, None)
    assert not strict_equals(None, 0)


def test_truthiness():
    assert not truthy(0)
    assert not truthy("")
    assert not truthy(None)
    assert not truthy(math.nan)
    assert truthy([])
    assert truthy("0")


def test_plus_concatenates_when_either_side_is_a_string():
    assert binary_arith("+", "a", 1) == "a1"
    assert binary_arith("+", 2.5, "x") == "2.5x"
    assert binary_arith("+", 1, True) == 2


def test_mixed_comparisons_coerce_like_javascript():
    assert binary_arith("<", "apple", "banana") is True
    assert binary_arith("<", "5", 10) is True
    assert binary_arith(">=", True, 1) is True
    assert binary_arith("<", 1, "a") is False
    assert binary_arith(">", 1, "a") is False
    assert binary_arith("<", " ", 1) is True


def test_division_by_zero_follows_ieee():
    assert binary_arith("/", 1, 0) == math.inf
    assert binary_arith("/", -2, 0) == -math.inf
    assert math.isnan(binary_arith("/", 0, 0))
    assert binary_arith("/", 3, 2) == 1.5


def test_arithmetic_on_non_numbers_raises():
    with pytest.raises(TypeError):
        binary_arith("-", "a", 1)

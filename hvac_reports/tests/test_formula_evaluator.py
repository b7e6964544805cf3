"""
Calculated field formula tests
"""
from datetime import datetime

import pytest

from hvac_reports.services.formula_evaluator import evaluate_formula, substitute_fields


def test_plain_arithmetic():
    assert evaluate_formula("2 + 2", {}) == 4
    assert evaluate_formula("(1 + 2) * 3", {}) == 9
    assert evaluate_formula("10 / 4", {}) == 2.5


def test_field_substitution():
    row = {"price": 100, "quantity": 3}

    assert evaluate_formula("price * quantity", row) == 300


def test_substitution_matches_whole_words_only():
    row = {"price": 10, "price_net": 8}

    assert substitute_fields("price_net + price", row) == "8 + 10"


def test_unknown_field_yields_zero():
    assert evaluate_formula("price + unknownVar", {"price": 100}) == 0


def test_null_and_empty_values_count_as_zero():
    row = {"price": 100, "discount": None, "fee": ""}

    assert evaluate_formula("price - discount + fee", row) == 100


def test_non_numeric_values_yield_zero():
    assert evaluate_formula("name + 1", {"name": "Kowalski"}) == 0
    assert evaluate_formula("active + 1", {"active": True}) == 0
    assert evaluate_formula("scheduled + 1", {"scheduled": datetime(2024, 1, 1)}) == 0


def test_division_by_zero_yields_zero():
    assert evaluate_formula("value / 0", {"value": 10}) == 0


@pytest.mark.parametrize("formula", [
    "__import__('os')",
    "1 +",
    "abs(-1)",
    "1; 2",
    "",
])
def test_non_arithmetic_formulas_yield_zero(formula):
    assert evaluate_formula(formula, {}) == 0


def test_float_values_substitute_without_trailing_zero():
    assert substitute_fields("a + b", {"a": 2.0, "b": 0.5}) == "2 + 0.5"


@pytest.mark.parametrize("formula", [
    "2**3",
    "7//2",
    "2+2\n",
    "\u0662 + 1",
    "7 % 2",
    "1 < 2",
])
def test_operators_outside_basic_arithmetic_yield_zero(formula):
    assert evaluate_formula(formula, {}) == 0


def test_unary_signs():
    assert evaluate_formula("price - discount", {"price": 100, "discount": -5}) == 105
    assert evaluate_formula("+3 * 2", {}) == 6


def test_tiny_and_huge_floats_substitute_as_plain_digits():
    assert substitute_fields("a * 2", {"a": 1e-05}) == "0.00001 * 2"
    assert substitute_fields("a + 1", {"a": 1e16}) == "10000000000000000 + 1"
    assert evaluate_formula("a * 2", {"a": 1e-05}) == pytest.approx(2e-05)
    assert evaluate_formula("a + 1", {"a": 1e16}) == 10000000000000001

"""
Calculated field formulas
Restricted arithmetic over row fields: numbers, + - * /, parentheses.
"""
import ast
import operator as op
import re
from typing import Any, Dict, Union

from simpleeval import SimpleEval

from .report_utils import is_number, to_text
from ..utils.logger import get_logger

logger = get_logger(__name__)

ARITHMETIC_ONLY = re.compile(r"[0-9 \t+\-*/().]+")

# simpleeval's defaults also allow ** // % and comparisons
OPERATORS = {
    ast.Add: op.add,
    ast.Sub: op.sub,
    ast.Mult: op.mul,
    ast.Div: op.truediv,
    ast.USub: op.neg,
    ast.UAdd: op.pos,
}

Number = Union[int, float]


def substitute_fields(formula: str, row: Dict[str, Any]) -> str:
    """
    Replace whole-word field names with the row's values

    None and empty strings become 0; other values are stringified, so
    text, booleans and dates end up failing the arithmetic whitelist.
    """
    processed = formula
    for key, value in row.items():
        if value is None or value == "":
            replacement = "0"
        else:
            replacement = to_text(value)
        pattern = re.compile(r"\b" + re.escape(key) + r"\b")
        processed = pattern.sub(lambda _match: replacement, processed)
    return processed


def evaluate_formula(formula: str, row: Dict[str, Any]) -> Number:
    """
    Evaluate a calculated field formula against a row

    Args:
        formula: arithmetic formula referencing row field names
        row: field name -> value mapping

    Returns:
        the numeric result, or 0 when the formula is not plain arithmetic
        after substitution or fails to evaluate
    """
    try:
        expression = substitute_fields(formula, row)

        if not ARITHMETIC_ONLY.fullmatch(expression):
            return 0

        evaluator = SimpleEval(operators=OPERATORS, functions={}, names={})
        value = evaluator.eval(expression)

        if not is_number(value):
            return 0
        return value

    except Exception as e:
        logger.debug(f"Formula evaluation failed: formula={formula!r}, error={e}")
        return 0

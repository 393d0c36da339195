# app/services/quantity_formula.py
"""
Sandboxed evaluator for expense template quantity formulas.

Accepted grammar: numeric literals, the names itemsCount / totalWeight /
totalVolume, parentheses, unary +/-, and binary + - * /. Anything else
(calls, attributes, subscripts, other names, **, //, %) raises
FormulaError before evaluation.
"""
from __future__ import annotations

import ast
import logging
import math
from decimal import Decimal
from typing import Mapping

logger = logging.getLogger(__name__)

ALLOWED_NAMES = ("itemsCount", "totalWeight", "totalVolume")
MAX_FORMULA_LENGTH = 255
# largest value a Numeric(14, 3) quantity column holds
MAX_QUANTITY = Decimal("99999999999")

_BINOPS = {
    ast.Add: lambda a, b: a + b,
    ast.Sub: lambda a, b: a - b,
    ast.Mult: lambda a, b: a * b,
    ast.Div: lambda a, b: a / b,
}


class FormulaError(ValueError):
    pass


def _eval(node: ast.AST, env: Mapping[str, Decimal]) -> Decimal:
    if isinstance(node, ast.Expression):
        return _eval(node.body, env)

    if isinstance(node, ast.Constant):
        # bool is an int subclass; reject it explicitly
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaError(f"unsupported literal {node.value!r}")
        return Decimal(str(node.value))

    if isinstance(node, ast.Name):
        if node.id not in env:
            raise FormulaError(f"unknown variable {node.id!r}")
        return env[node.id]

    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.UAdd, ast.USub)):
        v = _eval(node.operand, env)
        return v if isinstance(node.op, ast.UAdd) else -v

    if isinstance(node, ast.BinOp) and type(node.op) in _BINOPS:
        left = _eval(node.left, env)
        right = _eval(node.right, env)
        if isinstance(node.op, ast.Div) and right == 0:
            raise FormulaError("division by zero")
        return _BINOPS[type(node.op)](left, right)

    raise FormulaError(f"unsupported expression: {type(node).__name__}")


def evaluate(formula: str, variables: Mapping[str, object]) -> Decimal:
    """
    Evaluate 'formula' with the given variables. Raises FormulaError on
    anything outside the grammar.
    """
    if not formula or not formula.strip():
        raise FormulaError("empty formula")
    if len(formula) > MAX_FORMULA_LENGTH:
        raise FormulaError("formula too long")

    env = {k: Decimal(str(variables.get(k, 0) or 0)) for k in ALLOWED_NAMES}
    try:
        tree = ast.parse(formula.strip(), mode="eval")
    except SyntaxError as e:
        raise FormulaError(f"syntax error: {e.msg}") from e
    return _eval(tree, env)


def resolve_quantity(formula: str | None, variables: Mapping[str, object], default) -> Decimal:
    """
    ceil(formula) when it evaluates to a finite number in
    [0, MAX_QUANTITY], else the default quantity.
    """
    default_qty = Decimal(str(default if default is not None else 1))
    if not formula:
        return default_qty
    try:
        value = evaluate(formula, variables)
    except (FormulaError, ArithmeticError) as e:
        logger.debug("Quantity formula %r rejected (%s); using default %s", formula, e, default_qty)
        return default_qty
    if not value.is_finite() or value < 0 or value > MAX_QUANTITY:
        logger.debug("Quantity formula %r gave %s; using default %s", formula, value, default_qty)
        return default_qty
    return Decimal(math.ceil(value))

"""Sandboxed quantity formula evaluation."""
from decimal import Decimal

import pytest

from app.services.quantity_formula import MAX_QUANTITY, FormulaError, evaluate, resolve_quantity

VARS = {"itemsCount": 3, "totalWeight": Decimal("12.5"), "totalVolume": Decimal("0.2")}


class TestEvaluate:
    @pytest.mark.parametrize("formula,expected", [
        ("itemsCount * 2", Decimal("6")),
        ("totalWeight / 5", Decimal("2.5")),
        ("(itemsCount + 1) * 2 - 3", Decimal("5")),
        ("-itemsCount + 10", Decimal("7")),
        ("+totalVolume * 10", Decimal("2.0")),
        ("1.5", Decimal("1.5")),
    ])
    def test_allowed_grammar(self, formula, expected):
        assert evaluate(formula, VARS) == expected

    @pytest.mark.parametrize("formula", [
        "__import__('os').system('echo hi')",
        "itemsCount ** 2",
        "itemsCount // 2",
        "itemsCount % 2",
        "open('x')",
        "itemsCount.real",
        "[1, 2][0]",
        "unknownVar + 1",
        "'abc'",
        "True + 1",
        "lambda: 1",
        "itemsCount if 1 else 2",
        "itemsCount; 1",
    ])
    def test_rejects_everything_else(self, formula):
        with pytest.raises(FormulaError):
            evaluate(formula, VARS)

    def test_division_by_zero_is_rejected(self):
        with pytest.raises(FormulaError):
            evaluate("itemsCount / 0", VARS)


class TestResolveQuantity:
    def test_result_is_rounded_up(self):
        assert resolve_quantity("totalWeight / 10", VARS, Decimal("1")) == Decimal("2")

    def test_no_formula_uses_default(self):
        assert resolve_quantity(None, VARS, Decimal("4")) == Decimal("4")
        assert resolve_quantity("", VARS, Decimal("4")) == Decimal("4")

    def test_invalid_formula_falls_back_silently(self):
        assert resolve_quantity("import os", VARS, Decimal("2")) == Decimal("2")
        assert resolve_quantity("__import__('os')", VARS, Decimal("2")) == Decimal("2")
        assert resolve_quantity("itemsCount / 0", VARS, Decimal("2")) == Decimal("2")

    def test_negative_result_falls_back(self):
        assert resolve_quantity("0 - itemsCount", VARS, Decimal("1")) == Decimal("1")

    def test_oversized_result_falls_back(self):
        assert resolve_quantity("1e30", VARS, Decimal("2")) == Decimal("2")
        assert resolve_quantity("itemsCount * 1e12", VARS, Decimal("2")) == Decimal("2")

    def test_largest_storable_quantity_is_kept(self):
        assert resolve_quantity("99999999999", VARS, Decimal("2")) == MAX_QUANTITY

# app/services/money.py
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def D(x) -> Decimal:
    try:
        return Decimal(str(x or 0))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def money2(x) -> Decimal:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def round1(x) -> Decimal:
    return D(x).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def round3(x) -> Decimal:
    return D(x).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)


def line_total(qty, unit_price) -> Decimal:
    """
    qty x unit price; a missing quantity counts as 1, a missing price as 0.
    """
    q = D(qty) if qty is not None else Decimal("1")
    return money2(q * D(unit_price))


def margin_percent(profit, income) -> Decimal:
    income = D(income)
    if income <= 0:
        return Decimal("0.00")
    return money2(D(profit) / income * HUNDRED)

"""Money as two-place Decimals, matching the NUMERIC(12, 2) columns.

Amounts are summed in different groupings (per month, per course, per
student, overall), and the totals have to agree to the cent.
"""

from __future__ import annotations

from decimal import Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Quantize to cents.  Floats are read through str(), so 0.1 is 0.10."""
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"amount must be a finite number, got {value!r}")
    return amount.quantize(CENT)

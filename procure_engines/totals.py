"""
Totals Engine - discount, tax, additional charges and grand total.

Pure functions with no I/O.  Adjustments are always applied to the
document's own subtotal:

    discount_amount = round2(subtotal * discount% / 100)
    after_discount  = subtotal - discount_amount
    tax_amount      = round2(after_discount * tax% / 100)
    total_amount    = round2(after_discount + additional_charges + tax_amount)

Rounding is half-to-even at two places, once per intermediate and once for
the total.

Usage:
    from procure_engines.totals import compute

    totals = compute("1000", "10", "50", "5")
    print(totals.total_amount)  # Decimal('995.00')
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from procure_engines.line_items import LineItemSet
from procure_engines.tracer import traced_engine
from procure_kernel.domain.documents import FinancialAdjustments, LineItem, Totals
from procure_kernel.domain.values import (
    HUNDRED,
    ZERO,
    require_non_negative,
    require_percentage,
    round2,
    to_decimal,
)
from procure_kernel.logging_config import get_logger

logger = get_logger("engines.totals")


@traced_engine(
    "totals",
    "1.0",
    fingerprint_fields=(
        "subtotal",
        "discount_percentage",
        "additional_charges",
        "tax_percentage",
    ),
)
def compute(
    subtotal: Any,
    discount_percentage: Any = ZERO,
    additional_charges: Any = ZERO,
    tax_percentage: Any = ZERO,
) -> Totals:
    """
    Compute totals from a subtotal and adjustment parameters.

    Raises:
        ValidationError: naming the first out-of-range input; nothing is
            computed in that case.
    """
    base = require_non_negative(to_decimal(subtotal, "subtotal"), "subtotal")
    discount_pct = require_percentage(
        to_decimal(discount_percentage, "discount_percentage"), "discount_percentage"
    )
    charges = require_non_negative(
        to_decimal(additional_charges, "additional_charges"), "additional_charges"
    )
    tax_pct = require_percentage(
        to_decimal(tax_percentage, "tax_percentage"), "tax_percentage"
    )

    base = round2(base)
    discount_amount = round2(base * discount_pct / HUNDRED)
    after_discount = base - discount_amount
    tax_amount = round2(after_discount * tax_pct / HUNDRED)
    total_amount = round2(after_discount + charges + tax_amount)

    totals = Totals(
        subtotal=base,
        discount_amount=discount_amount,
        after_discount=after_discount,
        tax_amount=tax_amount,
        additional_charges=round2(charges),
        total_amount=total_amount,
    )
    logger.debug(
        "totals_computed",
        extra={
            "subtotal": str(base),
            "discount_amount": str(discount_amount),
            "tax_amount": str(tax_amount),
            "total_amount": str(total_amount),
        },
    )
    return totals


def compute_totals(
    lines: LineItemSet | Iterable[LineItem],
    adjustments: FinancialAdjustments | None = None,
) -> Totals:
    """Totals for a set of priced lines; unpriced lines contribute nothing."""
    adjustments = adjustments or FinancialAdjustments()
    if isinstance(lines, LineItemSet):
        subtotal = lines.subtotal()
    else:
        subtotal = round2(
            sum((line.subtotal for line in lines if line.subtotal is not None), ZERO)
        )
    return compute(
        subtotal,
        adjustments.discount_percentage,
        adjustments.additional_charges,
        adjustments.tax_percentage,
    )

"""
Module: procure_engines
Responsibility:
    Pure calculation layer for procurement documents: line items, totals,
    payment arithmetic and document derivation.

Architecture position:
    Engines -- zero I/O.  May only import procure_kernel (and sibling engine
    modules).  MUST NOT import procure_services or procure_modules.

Invariants enforced:
    - Engines never read the clock; timestamps are stamped by services.
    - Decimal-only arithmetic; floats are converted through ``str`` on entry.
    - Identical inputs always produce identical outputs.

Usage:
    from procure_engines.totals import compute, compute_totals
    from procure_engines.line_items import LineItemSet, policy_for
    from procure_engines.payment import PaymentType, plan_payment
    from procure_engines.derivation import derive_from
"""

from procure_engines.derivation import DERIVATION_MAPS, DerivationMap, derive_from
from procure_engines.line_items import LINE_POLICIES, LineItemSet, LinePolicy, policy_for
from procure_engines.payment import PaymentPlan, PaymentType, plan_payment
from procure_engines.totals import compute, compute_totals

__all__ = [
    "DERIVATION_MAPS",
    "DerivationMap",
    "derive_from",
    "LINE_POLICIES",
    "LineItemSet",
    "LinePolicy",
    "policy_for",
    "PaymentPlan",
    "PaymentType",
    "plan_payment",
    "compute",
    "compute_totals",
]

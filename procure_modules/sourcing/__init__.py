"""
Sourcing Module (``procure_modules.sourcing``).

Responsibility
--------------
Requests for quotation (buyer-issued, unpriced) and quotations (seller-issued,
priced, with their own discount/charges/tax adjustments).

Architecture position
---------------------
**Modules layer** -- frozen models and declarative workflows.  All lifecycle
behaviour runs through ``procure_services.status_machine``.
"""

from procure_modules.sourcing.models import Quotation, QuotationStatus, RFQ, RFQStatus
from procure_modules.sourcing.workflows import QUOTATION_WORKFLOW, RFQ_WORKFLOW

__all__ = [
    "RFQ",
    "RFQStatus",
    "Quotation",
    "QuotationStatus",
    "RFQ_WORKFLOW",
    "QUOTATION_WORKFLOW",
]

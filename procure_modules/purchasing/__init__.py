"""
Purchasing Module (``procure_modules.purchasing``).

Contracts offered by the seller and purchase orders raised by the buyer
against a contract or a quotation (never both).
"""

from procure_modules.purchasing.models import (
    Contract,
    ContractStatus,
    POStatus,
    PurchaseOrder,
)
from procure_modules.purchasing.workflows import (
    CONTRACT_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
)

__all__ = [
    "Contract",
    "ContractStatus",
    "PurchaseOrder",
    "POStatus",
    "CONTRACT_WORKFLOW",
    "PURCHASE_ORDER_WORKFLOW",
]

"""
Procure Modules.

One package per stage of the procurement chain.  Each contains:
- Domain models (the documents)
- Workflows (state machines)

Modules:
- Sourcing: RFQs, quotations
- Purchasing: contracts, purchase orders
- Fulfillment: delivery notes, packing lists
- Billing: invoices

``registry`` binds each document type to its model, workflow and line
policy.
"""

from procure_modules import billing, fulfillment, purchasing, sourcing
from procure_modules.registry import DOCUMENT_KINDS, DocumentKind, kind_for, kind_of

__all__ = [
    "sourcing",
    "purchasing",
    "fulfillment",
    "billing",
    "DOCUMENT_KINDS",
    "DocumentKind",
    "kind_for",
    "kind_of",
]

"""Billing Module: invoices and their settlement state."""

from procure_modules.billing.models import Invoice, InvoiceStatus
from procure_modules.billing.workflows import BALANCE_SETTLED, INVOICE_WORKFLOW

__all__ = [
    "Invoice",
    "InvoiceStatus",
    "BALANCE_SETTLED",
    "INVOICE_WORKFLOW",
]

"""
Billing Domain Models.

The seller's invoice and its settlement position.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import ClassVar
from uuid import UUID

from procure_kernel.domain.documents import (
    DocumentType,
    PartySide,
    PartySnapshot,
    PaymentState,
    PricedDocumentBase,
)
from procure_kernel.exceptions import ValidationError
from procure_kernel.logging_config import get_logger

logger = get_logger("modules.billing.models")


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    OVERDUE = "OVERDUE"
    PAID = "PAID"


@dataclass(frozen=True, kw_only=True)
class Invoice(PricedDocumentBase):
    """
    A seller's invoice, usually derived from a purchase order.

    ``payment`` tracks what the buyer has paid.  Once totals are frozen,
    ``payment.paid_amount + payment.remaining_amount == totals.total_amount``.
    """

    document_type: ClassVar[DocumentType] = DocumentType.INVOICE
    issuer_side: ClassVar[PartySide] = PartySide.SELLER
    link_fields: ClassVar[tuple[str, ...]] = ("purchase_order_id",)

    status: InvoiceStatus = InvoiceStatus.DRAFT
    purchase_order_id: UUID | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    ship_to: PartySnapshot | None = None
    payment_terms: str | None = None
    terms_and_conditions: str | None = None
    payment: PaymentState = field(default_factory=PaymentState)

    def __post_init__(self):
        super().__post_init__()
        if self.invoice_date and self.due_date and self.due_date < self.invoice_date:
            raise ValidationError(
                "due_date", "cannot be before the invoice date", self.due_date, str(self.id)
            )
        if self.totals is not None and self.payment.remaining_amount is not None:
            settled = self.payment.paid_amount + self.payment.remaining_amount
            if settled != self.totals.total_amount:
                logger.warning(
                    "invoice_payment_out_of_balance",
                    extra={
                        "invoice_id": str(self.id),
                        "paid_amount": str(self.payment.paid_amount),
                        "remaining_amount": str(self.payment.remaining_amount),
                        "total_amount": str(self.totals.total_amount),
                    },
                )
                raise ValidationError(
                    "payment",
                    "paid plus remaining must equal the invoice total",
                    settled,
                    str(self.id),
                )

    @property
    def remaining_amount(self):
        return self.payment.remaining_amount

    @property
    def paid_amount(self):
        return self.payment.paid_amount

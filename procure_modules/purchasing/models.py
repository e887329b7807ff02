"""
Purchasing Domain Models.

Contracts agreed from quotations and the purchase orders raised against
either of them.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID

from procure_kernel.domain.documents import (
    DocumentBase,
    DocumentType,
    PartySide,
    PartySnapshot,
    PricedDocumentBase,
    Totals,
)
from procure_kernel.domain.values import require_non_negative, to_decimal
from procure_kernel.exceptions import AmbiguousSourceError, ValidationError
from procure_kernel.logging_config import get_logger

logger = get_logger("modules.purchasing.models")


class ContractStatus(str, Enum):
    """Contract lifecycle states."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    SIGNED = "SIGNED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PENDING_CHANGES = "PENDING_CHANGES"


class POStatus(str, Enum):
    """Purchase order lifecycle states."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"  # fulfilled


@dataclass(frozen=True, kw_only=True)
class Contract(DocumentBase):
    """
    A seller-issued contract, usually derived from an accepted quotation.

    Contracts carry no adjustment percentages of their own; ``totals`` is
    the line subtotal snapshot frozen when the contract is sent.
    """

    document_type: ClassVar[DocumentType] = DocumentType.CONTRACT
    issuer_side: ClassVar[PartySide] = PartySide.SELLER
    link_fields: ClassVar[tuple[str, ...]] = ("quotation_id", "rfq_id")

    status: ContractStatus = ContractStatus.DRAFT
    quotation_id: UUID | None = None
    rfq_id: UUID | None = None
    totals: Totals | None = None
    effective_date: date | None = None
    end_date: date | None = None
    agreed_total_value: Decimal | None = None
    pricing_terms: str | None = None
    payment_terms: str | None = None
    delivery_terms: str | None = None
    confidentiality: str | None = None
    indemnity: str | None = None
    termination_conditions: str | None = None
    dispute_resolution: str | None = None
    governing_law: str | None = None

    def __post_init__(self):
        super().__post_init__()
        if self.agreed_total_value is not None:
            value = require_non_negative(
                to_decimal(self.agreed_total_value, "agreed_total_value", document_id=str(self.id)),
                "agreed_total_value",
                document_id=str(self.id),
            )
            object.__setattr__(self, "agreed_total_value", value)
        if self.effective_date and self.end_date and self.end_date < self.effective_date:
            logger.warning(
                "contract_end_before_effective",
                extra={
                    "contract_id": str(self.id),
                    "effective_date": self.effective_date.isoformat(),
                    "end_date": self.end_date.isoformat(),
                },
            )
            raise ValidationError(
                "end_date", "cannot be before the effective date", self.end_date, str(self.id)
            )


@dataclass(frozen=True, kw_only=True)
class PurchaseOrder(PricedDocumentBase):
    """
    A buyer's purchase order.

    Raised against a contract or a quotation, never both.
    """

    document_type: ClassVar[DocumentType] = DocumentType.PURCHASE_ORDER
    issuer_side: ClassVar[PartySide] = PartySide.BUYER
    link_fields: ClassVar[tuple[str, ...]] = ("contract_id", "quotation_id")

    status: POStatus = POStatus.DRAFT
    contract_id: UUID | None = None
    quotation_id: UUID | None = None
    po_issued_date: date | None = None
    expected_delivery_date: date | None = None
    delivery_party: PartySnapshot | None = None
    payment_terms: str | None = None
    delivery_terms: str | None = None
    terms_and_conditions: str | None = None

    def __post_init__(self):
        super().__post_init__()
        if self.contract_id is not None and self.quotation_id is not None:
            logger.warning(
                "purchase_order_two_sources",
                extra={
                    "purchase_order_id": str(self.id),
                    "contract_id": str(self.contract_id),
                    "quotation_id": str(self.quotation_id),
                },
            )
            raise AmbiguousSourceError(
                DocumentType.PURCHASE_ORDER.value,
                (str(self.contract_id), str(self.quotation_id)),
            )

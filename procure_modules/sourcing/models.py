"""
Sourcing Domain Models.

The nouns of sourcing: requests for quotation and the quotations that
answer them.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import ClassVar
from uuid import UUID

from procure_kernel.domain.documents import (
    DocumentBase,
    DocumentType,
    PartySide,
    PricedDocumentBase,
)
from procure_kernel.exceptions import ValidationError
from procure_kernel.logging_config import get_logger

logger = get_logger("modules.sourcing.models")


class RFQStatus(str, Enum):
    """RFQ lifecycle states."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"  # a purchase order was raised against it


class QuotationStatus(str, Enum):
    """Quotation lifecycle states."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True, kw_only=True)
class RFQ(DocumentBase):
    """A buyer's request for quotation.  Lines carry no prices."""

    document_type: ClassVar[DocumentType] = DocumentType.RFQ
    issuer_side: ClassVar[PartySide] = PartySide.BUYER

    status: RFQStatus = RFQStatus.DRAFT
    project_name: str | None = None
    project_description: str | None = None
    date_issued: date | None = None
    due_date: date | None = None
    technical_requirements: str | None = None
    delivery_requirements: str | None = None

    def __post_init__(self):
        super().__post_init__()
        if self.date_issued and self.due_date and self.due_date < self.date_issued:
            logger.warning(
                "rfq_due_before_issue",
                extra={
                    "rfq_id": str(self.id),
                    "date_issued": self.date_issued.isoformat(),
                    "due_date": self.due_date.isoformat(),
                },
            )
            raise ValidationError(
                "due_date", "cannot be before the issue date", self.due_date, str(self.id)
            )


@dataclass(frozen=True, kw_only=True)
class Quotation(PricedDocumentBase):
    """A seller's priced offer, optionally answering an RFQ."""

    document_type: ClassVar[DocumentType] = DocumentType.QUOTATION
    issuer_side: ClassVar[PartySide] = PartySide.SELLER
    link_fields: ClassVar[tuple[str, ...]] = ("rfq_id",)

    status: QuotationStatus = QuotationStatus.DRAFT
    rfq_id: UUID | None = None
    quote_date_issued: date | None = None
    quote_validity_date: date | None = None
    payment_terms: str | None = None
    delivery_terms: str | None = None
    terms_and_conditions: str | None = None

    def __post_init__(self):
        super().__post_init__()
        if (
            self.quote_date_issued
            and self.quote_validity_date
            and self.quote_validity_date < self.quote_date_issued
        ):
            raise ValidationError(
                "quote_validity_date",
                "cannot be before the issue date",
                self.quote_validity_date,
                str(self.id),
            )

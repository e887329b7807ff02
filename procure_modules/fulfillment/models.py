"""
Fulfillment Domain Models.

Delivery notes and packing lists issued by the seller against a purchase
order.  Neither carries prices.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID

from procure_kernel.domain.documents import DocumentBase, DocumentType, PartySide
from procure_kernel.logging_config import get_logger

logger = get_logger("modules.fulfillment.models")


class DeliveryNoteStatus(str, Enum):
    """Delivery note lifecycle states."""
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    DISPUTED = "DISPUTED"


class PackingListStatus(str, Enum):
    """Packing list lifecycle states."""
    PENDING = "PENDING"
    RECEIVED = "RECEIVED"
    APPROVED = "APPROVED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    REJECTED = "REJECTED"


@dataclass(frozen=True, kw_only=True)
class DeliveryNote(DocumentBase):
    """Seller's notice of goods dispatched against a purchase order."""

    document_type: ClassVar[DocumentType] = DocumentType.DELIVERY_NOTE
    issuer_side: ClassVar[PartySide] = PartySide.SELLER
    link_fields: ClassVar[tuple[str, ...]] = ("purchase_order_id",)

    status: DeliveryNoteStatus = DeliveryNoteStatus.PENDING
    purchase_order_id: UUID | None = None
    delivery_date: date | None = None
    shipping_method: str | None = None
    shipping_date: date | None = None
    carrier_name: str | None = None


@dataclass(frozen=True, kw_only=True)
class PackingList(DocumentBase):
    """Per-package breakdown of a shipment."""

    document_type: ClassVar[DocumentType] = DocumentType.PACKING_LIST
    issuer_side: ClassVar[PartySide] = PartySide.SELLER
    link_fields: ClassVar[tuple[str, ...]] = ("purchase_order_id", "delivery_note_id")

    status: PackingListStatus = PackingListStatus.PENDING
    purchase_order_id: UUID | None = None
    delivery_note_id: UUID | None = None
    sales_order_id: str | None = None
    packing_date: date | None = None
    shipment_tracking_id: str | None = None
    carrier_name: str | None = None

    def _sum_packaging(self, name: str) -> Decimal:
        total = Decimal("0")
        for line in self.lines:
            if line.packaging is not None:
                value = getattr(line.packaging, name)
                if value is not None:
                    total += value
        return total

    @property
    def total_gross_weight(self) -> Decimal:
        return self._sum_packaging("gross_weight")

    @property
    def total_net_weight(self) -> Decimal:
        return self._sum_packaging("net_weight")

    @property
    def total_packages(self) -> int:
        return int(self._sum_packaging("no_of_packages"))

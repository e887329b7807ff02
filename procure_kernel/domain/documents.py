"""
Document value objects shared by every procurement document type.

Responsibility:
    Defines the shape common to RFQs, quotations, contracts, purchase orders,
    delivery notes, packing lists and invoices: identity, the two parties
    (org ids plus value snapshots), currency, ordered line items, timestamps
    and the optimistic-concurrency version.  Concrete document types live in
    ``procure_modules`` and extend ``DocumentBase`` with their own status
    enumeration and header fields.

Architecture position:
    Kernel > Domain.  Pure frozen dataclasses; no I/O, no imports from
    engines, services or modules.

Invariants enforced:
    - Quantities, unit prices, weights, charges are never negative.
    - Adjustment percentages lie in [0, 100].
    - A line's subtotal is derived from quantity and unit price on every
      read; it has no stored field.
    - Party data is held by value (``PartySnapshot``), never by reference to
      a company profile.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Self
from uuid import UUID, uuid4

from procure_kernel.domain.values import (
    ZERO,
    require_non_negative,
    require_percentage,
    round_line,
    to_decimal,
)
from procure_kernel.exceptions import ValidationError
from procure_kernel.logging_config import get_logger

logger = get_logger("domain.documents")


class DocumentType(str, Enum):
    """The closed set of document types the engine manages."""

    RFQ = "rfq"
    QUOTATION = "quotation"
    CONTRACT = "contract"
    PURCHASE_ORDER = "purchase_order"
    DELIVERY_NOTE = "delivery_note"
    PACKING_LIST = "packing_list"
    INVOICE = "invoice"


class PartySide(str, Enum):
    """Commercial side of a document."""

    BUYER = "buyer"
    SELLER = "seller"

    @property
    def other(self) -> "PartySide":
        return PartySide.SELLER if self is PartySide.BUYER else PartySide.BUYER


# -----------------------------------------------------------------------------
# Party and line values
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class PartySnapshot:
    """Counterparty details copied by value at document creation."""
    company_name: str = ""
    contact_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def is_identified(self) -> bool:
        return bool(self.company_name and self.company_name.strip())


@dataclass(frozen=True)
class PackagingDetails:
    """Per-line packing information (packing lists only)."""
    package_type: str | None = None
    gross_weight: Decimal | None = None
    net_weight: Decimal | None = None
    no_of_packages: int | None = None
    dimensions: str | None = None

    def __post_init__(self):
        for name in ("gross_weight", "net_weight"):
            raw = getattr(self, name)
            if raw is not None:
                value = require_non_negative(to_decimal(raw, name), name)
                object.__setattr__(self, name, value)
        if self.no_of_packages is not None and self.no_of_packages < 0:
            raise ValidationError(
                "no_of_packages", "must not be negative", self.no_of_packages
            )


@dataclass(frozen=True)
class LineItem:
    """
    One product or service line.

    ``unit_price`` is None on documents that carry no pricing (RFQ, delivery
    note, packing list); ``subtotal`` is then None too.
    """
    product_name: str
    quantity: Decimal = Decimal("0")
    unit_price: Decimal | None = None
    serial_number: int = 0
    description: str | None = None
    sku: str | None = None
    hsn_code: str | None = None
    uom: str | None = None
    packaging: PackagingDetails | None = None

    def __post_init__(self):
        quantity = to_decimal(self.quantity, "quantity")
        if quantity < ZERO:
            logger.warning(
                "line_item_negative_quantity",
                extra={"product_name": self.product_name, "quantity": str(quantity)},
            )
            raise ValidationError("quantity", "must not be negative", quantity)
        object.__setattr__(self, "quantity", quantity)

        if self.unit_price is not None:
            unit_price = to_decimal(self.unit_price, "unit_price")
            if unit_price < ZERO:
                logger.warning(
                    "line_item_negative_unit_price",
                    extra={
                        "product_name": self.product_name,
                        "unit_price": str(unit_price),
                    },
                )
                raise ValidationError("unit_price", "must not be negative", unit_price)
            object.__setattr__(self, "unit_price", unit_price)
            round_line(quantity * unit_price)

    @property
    def subtotal(self) -> Decimal | None:
        if self.unit_price is None:
            return None
        return round_line(self.quantity * self.unit_price)

    def numbered(self, serial_number: int) -> "LineItem":
        if serial_number == self.serial_number:
            return self
        return replace(self, serial_number=serial_number)


# -----------------------------------------------------------------------------
# Financial values
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FinancialAdjustments:
    """Discount, flat charges and tax applied to a document's own subtotal."""
    discount_percentage: Decimal = Decimal("0")
    additional_charges: Decimal = Decimal("0")
    tax_percentage: Decimal = Decimal("0")

    def __post_init__(self):
        discount = require_percentage(
            to_decimal(self.discount_percentage, "discount_percentage"),
            "discount_percentage",
        )
        charges = require_non_negative(
            to_decimal(self.additional_charges, "additional_charges"),
            "additional_charges",
        )
        tax = require_percentage(
            to_decimal(self.tax_percentage, "tax_percentage"),
            "tax_percentage",
        )
        object.__setattr__(self, "discount_percentage", discount)
        object.__setattr__(self, "additional_charges", charges)
        object.__setattr__(self, "tax_percentage", tax)


@dataclass(frozen=True)
class Totals:
    """Result of a totals computation, also the frozen snapshot on a document."""
    subtotal: Decimal
    discount_amount: Decimal
    after_discount: Decimal
    tax_amount: Decimal
    additional_charges: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class PaymentState:
    """
    Settlement position of an invoice.

    ``remaining_amount`` is None until the invoice's totals are frozen.
    """
    paid_amount: Decimal = Decimal("0")
    remaining_amount: Decimal | None = None
    payment_receipt_reference: str | None = None

    def __post_init__(self):
        paid = require_non_negative(to_decimal(self.paid_amount, "paid_amount"), "paid_amount")
        object.__setattr__(self, "paid_amount", paid)
        if self.remaining_amount is not None:
            remaining = require_non_negative(
                to_decimal(self.remaining_amount, "remaining_amount"),
                "remaining_amount",
            )
            object.__setattr__(self, "remaining_amount", remaining)


# -----------------------------------------------------------------------------
# Document base
# -----------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class DocumentBase:
    """
    Shared document shape.

    Contract:
        Subclasses set the ``document_type`` and ``issuer_side`` class
        attributes and declare a ``status`` field typed with their own
        status enum.  ``link_fields`` names the fields that point at
        predecessor documents.

    Guarantees:
        - Instances are immutable; every change produces a new value via
          ``evolve``.
        - ``lines`` is always a tuple.
    """

    document_type: ClassVar[DocumentType]
    issuer_side: ClassVar[PartySide]
    link_fields: ClassVar[tuple[str, ...]] = ()

    buyer_org_id: str
    seller_org_id: str
    id: UUID = field(default_factory=uuid4)
    reference_id: str | None = None
    buyer: PartySnapshot = field(default_factory=PartySnapshot)
    seller: PartySnapshot = field(default_factory=PartySnapshot)
    currency: str = "USD"
    lines: tuple[LineItem, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0
    signature_by_name: str | None = None
    signature_url: str | None = None
    notes: str | None = None

    def __post_init__(self):
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))
        if not self.currency or not self.currency.strip():
            raise ValidationError("currency", "must not be empty", self.currency, str(self.id))
        if not self.buyer_org_id or not self.seller_org_id:
            raise ValidationError(
                "buyer_org_id" if not self.buyer_org_id else "seller_org_id",
                "organisation id is required",
                document_id=str(self.id),
            )

    @property
    def issuer_org_id(self) -> str:
        return self.org_id_for(self.issuer_side)

    @property
    def counterparty_org_id(self) -> str:
        return self.org_id_for(self.issuer_side.other)

    @property
    def issuer(self) -> PartySnapshot:
        return self.buyer if self.issuer_side is PartySide.BUYER else self.seller

    def org_id_for(self, side: PartySide) -> str:
        return self.buyer_org_id if side is PartySide.BUYER else self.seller_org_id

    def side_of(self, org_id: str) -> PartySide | None:
        """Return which side ``org_id`` is on, or None for a stranger."""
        if org_id == self.buyer_org_id:
            return PartySide.BUYER
        if org_id == self.seller_org_id:
            return PartySide.SELLER
        return None

    def financial_adjustments(self) -> FinancialAdjustments:
        """Adjustments applied when totals are frozen; none by default."""
        return FinancialAdjustments()

    def evolve(self, **changes: Any) -> Self:
        """Return a copy with ``changes`` applied (validation re-runs)."""
        return replace(self, **changes)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))


@dataclass(frozen=True, kw_only=True)
class PricedDocumentBase(DocumentBase):
    """Document that carries its own adjustments and a frozen totals snapshot."""

    adjustments: FinancialAdjustments = field(default_factory=FinancialAdjustments)
    totals: Totals | None = None

    def financial_adjustments(self) -> FinancialAdjustments:
        return self.adjustments

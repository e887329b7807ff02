"""
Line Item Engine - ordered product lines and their aggregate subtotal.

Pure value logic, no I/O.  A ``LineItemSet`` is immutable: ``add_line`` and
``remove_line`` return new sets with serial numbers renumbered 1..N.

Usage:
    from procure_engines.line_items import LineItemSet, policy_for
    from procure_kernel.domain.documents import DocumentType, LineItem

    lines = LineItemSet.empty(policy_for(DocumentType.QUOTATION))
    lines = lines.add_line(LineItem("Widget", quantity="2", unit_price="10.005", uom="EA"))
    lines = lines.add_line(LineItem("Gadget", quantity="3", unit_price="9.995", uom="EA"))
    print(lines.subtotal())  # Decimal('50.00')
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from decimal import Decimal

from procure_kernel.domain.documents import DocumentType, LineItem
from procure_kernel.domain.values import ZERO, round2
from procure_kernel.exceptions import ValidationError
from procure_kernel.logging_config import get_logger

logger = get_logger("engines.line_items")


@dataclass(frozen=True)
class LinePolicy:
    """Which line fields a document type prices and requires at submission."""
    name: str
    priced: bool
    requires_uom: bool
    requires_positive_price: bool
    requires_positive_quantity: bool = True
    packaged: bool = False

    def conform(self, line: LineItem) -> LineItem:
        """``line`` as this policy stores it: unpriced types carry no unit price."""
        if not self.priced and line.unit_price is not None:
            return replace(line, unit_price=None)
        return line


# Pricing documents that also commit to a unit of measure.
COMMERCIAL_LINES = LinePolicy(
    name="commercial",
    priced=True,
    requires_uom=True,
    requires_positive_price=True,
)

RFQ_LINES = LinePolicy(
    name="rfq",
    priced=False,
    requires_uom=True,
    requires_positive_price=False,
)

INVOICE_LINES = LinePolicy(
    name="invoice",
    priced=True,
    requires_uom=False,
    requires_positive_price=True,
)

DELIVERY_LINES = LinePolicy(
    name="delivery",
    priced=False,
    requires_uom=False,
    requires_positive_price=False,
)

PACKING_LINES = LinePolicy(
    name="packing",
    priced=False,
    requires_uom=False,
    requires_positive_price=False,
    packaged=True,
)

LINE_POLICIES: dict[DocumentType, LinePolicy] = {
    DocumentType.RFQ: RFQ_LINES,
    DocumentType.QUOTATION: COMMERCIAL_LINES,
    DocumentType.CONTRACT: COMMERCIAL_LINES,
    DocumentType.PURCHASE_ORDER: COMMERCIAL_LINES,
    DocumentType.DELIVERY_NOTE: DELIVERY_LINES,
    DocumentType.PACKING_LIST: PACKING_LINES,
    DocumentType.INVOICE: INVOICE_LINES,
}


def policy_for(document_type: DocumentType) -> LinePolicy:
    return LINE_POLICIES[document_type]


@dataclass(frozen=True)
class LineItemSet:
    """
    Ordered, contiguous-numbered collection of line items.

    Contract:
        ``lines`` serial numbers are always 1..N; construction through
        ``of``/``empty`` renumbers whatever it is given.

    Guarantees:
        - ``subtotal()`` is the sum of per-line rounded subtotals, rounded
          half-even to two places; Decimal('0.00') when the policy is
          unpriced.
        - Mutators never modify the receiver.
    """

    lines: tuple[LineItem, ...]
    policy: LinePolicy

    @classmethod
    def empty(cls, policy: LinePolicy) -> LineItemSet:
        return cls(lines=(), policy=policy)

    @classmethod
    def of(cls, lines: Iterable[LineItem], policy: LinePolicy) -> LineItemSet:
        return cls(lines=tuple(policy.conform(line) for line in lines), policy=policy).renumber()

    def __iter__(self) -> Iterator[LineItem]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def add_line(self, line: LineItem) -> LineItemSet:
        numbered = self.policy.conform(line).numbered(len(self.lines) + 1)
        logger.debug(
            "line_added",
            extra={"serial_number": numbered.serial_number, "product_name": line.product_name},
        )
        return LineItemSet(lines=self.lines + (numbered,), policy=self.policy)

    def remove_line(self, index: int) -> LineItemSet:
        """Remove the line at zero-based ``index`` and renumber the rest."""
        if not 0 <= index < len(self.lines):
            raise ValidationError("lines", f"no line at index {index}", index)
        if len(self.lines) == 1:
            logger.warning("line_remove_last_rejected", extra={"index": index})
            raise ValidationError(
                "lines", "a document must keep at least one line item", index
            )
        remaining = self.lines[:index] + self.lines[index + 1:]
        return LineItemSet(lines=remaining, policy=self.policy).renumber()

    def renumber(self) -> LineItemSet:
        renumbered = tuple(
            line.numbered(position) for position, line in enumerate(self.lines, start=1)
        )
        if renumbered == self.lines:
            return self
        return LineItemSet(lines=renumbered, policy=self.policy)

    def subtotal(self) -> Decimal:
        if not self.policy.priced:
            return round2(ZERO)
        total = sum(
            (line.subtotal for line in self.lines if line.subtotal is not None),
            ZERO,
        )
        return round2(total)

    def validate_for_submission(self, document_id: str | None = None) -> None:
        """Raise ValidationError for the first line that cannot be submitted."""
        if not self.lines:
            raise ValidationError(
                "lines", "at least one line item is required", document_id=document_id
            )
        for line in self.lines:
            prefix = f"lines[{line.serial_number}]"
            if not line.product_name or not line.product_name.strip():
                raise ValidationError(
                    f"{prefix}.product_name", "is required", line.product_name, document_id
                )
            if self.policy.requires_uom and not (line.uom and line.uom.strip()):
                raise ValidationError(
                    f"{prefix}.uom", "unit of measure is required", line.uom, document_id
                )
            if self.policy.requires_positive_quantity and line.quantity <= ZERO:
                raise ValidationError(
                    f"{prefix}.quantity", "must be greater than 0", line.quantity, document_id
                )
            if self.policy.requires_positive_price and (
                line.unit_price is None or line.unit_price <= ZERO
            ):
                raise ValidationError(
                    f"{prefix}.unit_price", "must be greater than 0", line.unit_price, document_id
                )

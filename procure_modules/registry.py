"""
Document type registry.

One ``DocumentKind`` per document type binds its model class, workflow and
line policy.  Services resolve everything type-specific through here instead
of branching on the type.
"""

from dataclasses import dataclass

from procure_engines.line_items import LinePolicy, policy_for
from procure_kernel.domain.documents import DocumentBase, DocumentType, PartySide
from procure_kernel.domain.workflow import Workflow
from procure_kernel.exceptions import ValidationError
from procure_modules.billing import INVOICE_WORKFLOW, Invoice
from procure_modules.fulfillment import (
    DELIVERY_NOTE_WORKFLOW,
    PACKING_LIST_WORKFLOW,
    DeliveryNote,
    PackingList,
)
from procure_modules.purchasing import (
    CONTRACT_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
    Contract,
    PurchaseOrder,
)
from procure_modules.sourcing import QUOTATION_WORKFLOW, RFQ, RFQ_WORKFLOW, Quotation


@dataclass(frozen=True)
class DocumentKind:
    """Everything the services need to know about one document type."""
    document_type: DocumentType
    model: type[DocumentBase]
    workflow: Workflow
    line_policy: LinePolicy

    @property
    def issuer_side(self) -> PartySide:
        return self.model.issuer_side


DOCUMENT_KINDS: dict[DocumentType, DocumentKind] = {
    kind.document_type: kind
    for kind in (
        DocumentKind(DocumentType.RFQ, RFQ, RFQ_WORKFLOW, policy_for(DocumentType.RFQ)),
        DocumentKind(
            DocumentType.QUOTATION, Quotation, QUOTATION_WORKFLOW,
            policy_for(DocumentType.QUOTATION),
        ),
        DocumentKind(
            DocumentType.CONTRACT, Contract, CONTRACT_WORKFLOW,
            policy_for(DocumentType.CONTRACT),
        ),
        DocumentKind(
            DocumentType.PURCHASE_ORDER, PurchaseOrder, PURCHASE_ORDER_WORKFLOW,
            policy_for(DocumentType.PURCHASE_ORDER),
        ),
        DocumentKind(
            DocumentType.DELIVERY_NOTE, DeliveryNote, DELIVERY_NOTE_WORKFLOW,
            policy_for(DocumentType.DELIVERY_NOTE),
        ),
        DocumentKind(
            DocumentType.PACKING_LIST, PackingList, PACKING_LIST_WORKFLOW,
            policy_for(DocumentType.PACKING_LIST),
        ),
        DocumentKind(
            DocumentType.INVOICE, Invoice, INVOICE_WORKFLOW,
            policy_for(DocumentType.INVOICE),
        ),
    )
}


def parse_document_type(value: DocumentType | str | type[DocumentBase]) -> DocumentType:
    """Accept a DocumentType, its string value, or a model class."""
    if isinstance(value, DocumentType):
        return value
    if isinstance(value, type) and issubclass(value, DocumentBase):
        return value.document_type
    try:
        return DocumentType(str(value).lower())
    except ValueError:
        raise ValidationError("document_type", "unknown document type", value) from None


def kind_for(document_type: DocumentType | str | type[DocumentBase]) -> DocumentKind:
    return DOCUMENT_KINDS[parse_document_type(document_type)]


def kind_of(document: DocumentBase) -> DocumentKind:
    return DOCUMENT_KINDS[document.document_type]

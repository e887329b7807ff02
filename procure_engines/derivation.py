"""
Derivation Engine - build a draft document from a predecessor.

Pure functions, no I/O.  Each supported (source type, target type) pair has
a named ``DerivationMap`` that lists exactly which header fields are copied
and under which name.  There is no reflection over field names: a field that
is not in a map is not carried.

Rules common to every pair:
    - buyer/seller org ids and party snapshots are copied 1:1;
    - currency is copied by value;
    - lines keep their product fields; unit prices are dropped for unpriced
      targets, defaulted to 0 on priced targets whose source has none, and
      subtotals are always recomputed by the target line;
    - packing-list lines receive empty packaging details;
    - the target's link field is set to the source id and its status is its
      type's initial state;
    - the source is never modified.

Usage:
    from procure_engines.derivation import derive_from
    from procure_modules.purchasing.models import PurchaseOrder

    draft = derive_from(accepted_quotation, PurchaseOrder)
    assert draft.quotation_id == accepted_quotation.id
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from procure_engines.line_items import LinePolicy, policy_for
from procure_engines.totals import compute_totals
from procure_kernel.domain.documents import (
    DocumentBase,
    DocumentType,
    FinancialAdjustments,
    LineItem,
    PackagingDetails,
    PricedDocumentBase,
)
from procure_kernel.domain.values import ZERO
from procure_kernel.exceptions import (
    AmbiguousSourceError,
    MissingSourceDataError,
    UnsupportedDerivationError,
    ValidationError,
)
from procure_kernel.logging_config import get_logger

logger = get_logger("engines.derivation")


@dataclass(frozen=True)
class DerivationMap:
    """
    Field mapping for one (source, target) pair.

    ``header_fields`` are ``(source_field, target_field)`` pairs.
    ``carried_links`` copy the source's own linkage forward.
    ``total_field`` receives the source's issued (or recomputed) total.
    """
    name: str
    source_type: DocumentType
    target_type: DocumentType
    link_field: str
    header_fields: tuple[tuple[str, str], ...] = ()
    carried_links: tuple[tuple[str, str], ...] = ()
    copy_adjustments: bool = False
    total_field: str | None = None


RFQ_TO_QUOTATION = DerivationMap(
    name="rfq_to_quotation",
    source_type=DocumentType.RFQ,
    target_type=DocumentType.QUOTATION,
    link_field="rfq_id",
    header_fields=(("delivery_requirements", "delivery_terms"),),
)

QUOTATION_TO_CONTRACT = DerivationMap(
    name="quotation_to_contract",
    source_type=DocumentType.QUOTATION,
    target_type=DocumentType.CONTRACT,
    link_field="quotation_id",
    header_fields=(
        ("payment_terms", "payment_terms"),
        ("delivery_terms", "delivery_terms"),
    ),
    carried_links=(("rfq_id", "rfq_id"),),
    total_field="agreed_total_value",
)

QUOTATION_TO_PURCHASE_ORDER = DerivationMap(
    name="quotation_to_purchase_order",
    source_type=DocumentType.QUOTATION,
    target_type=DocumentType.PURCHASE_ORDER,
    link_field="quotation_id",
    header_fields=(
        ("payment_terms", "payment_terms"),
        ("delivery_terms", "delivery_terms"),
        ("terms_and_conditions", "terms_and_conditions"),
    ),
    copy_adjustments=True,
)

CONTRACT_TO_PURCHASE_ORDER = DerivationMap(
    name="contract_to_purchase_order",
    source_type=DocumentType.CONTRACT,
    target_type=DocumentType.PURCHASE_ORDER,
    link_field="contract_id",
    header_fields=(
        ("payment_terms", "payment_terms"),
        ("delivery_terms", "delivery_terms"),
    ),
)

PURCHASE_ORDER_TO_INVOICE = DerivationMap(
    name="purchase_order_to_invoice",
    source_type=DocumentType.PURCHASE_ORDER,
    target_type=DocumentType.INVOICE,
    link_field="purchase_order_id",
    header_fields=(
        ("payment_terms", "payment_terms"),
        ("terms_and_conditions", "terms_and_conditions"),
        ("delivery_party", "ship_to"),
        ("notes", "notes"),
    ),
    copy_adjustments=True,
)

PURCHASE_ORDER_TO_DELIVERY_NOTE = DerivationMap(
    name="purchase_order_to_delivery_note",
    source_type=DocumentType.PURCHASE_ORDER,
    target_type=DocumentType.DELIVERY_NOTE,
    link_field="purchase_order_id",
    header_fields=(("notes", "notes"),),
)

PURCHASE_ORDER_TO_PACKING_LIST = DerivationMap(
    name="purchase_order_to_packing_list",
    source_type=DocumentType.PURCHASE_ORDER,
    target_type=DocumentType.PACKING_LIST,
    link_field="purchase_order_id",
    header_fields=(("notes", "notes"),),
)

DELIVERY_NOTE_TO_PACKING_LIST = DerivationMap(
    name="delivery_note_to_packing_list",
    source_type=DocumentType.DELIVERY_NOTE,
    target_type=DocumentType.PACKING_LIST,
    link_field="delivery_note_id",
    header_fields=(("carrier_name", "carrier_name"),),
    carried_links=(("purchase_order_id", "purchase_order_id"),),
)

DERIVATION_MAPS: dict[tuple[DocumentType, DocumentType], DerivationMap] = {
    (m.source_type, m.target_type): m
    for m in (
        RFQ_TO_QUOTATION,
        QUOTATION_TO_CONTRACT,
        QUOTATION_TO_PURCHASE_ORDER,
        CONTRACT_TO_PURCHASE_ORDER,
        PURCHASE_ORDER_TO_INVOICE,
        PURCHASE_ORDER_TO_DELIVERY_NOTE,
        PURCHASE_ORDER_TO_PACKING_LIST,
        DELIVERY_NOTE_TO_PACKING_LIST,
    )
}


def mapping_for(source_type: DocumentType, target_type: DocumentType) -> DerivationMap:
    try:
        return DERIVATION_MAPS[(source_type, target_type)]
    except KeyError:
        raise UnsupportedDerivationError(source_type.value, target_type.value) from None


def supported_targets(source_type: DocumentType) -> tuple[DocumentType, ...]:
    return tuple(t for (s, t) in DERIVATION_MAPS if s is source_type)


def _single_source(
    source: DocumentBase | Sequence[DocumentBase],
    target_type: DocumentType,
) -> DocumentBase:
    if isinstance(source, DocumentBase):
        return source
    sources = tuple(source)
    if len(sources) > 1:
        logger.warning(
            "derivation_ambiguous_source",
            extra={
                "target_type": target_type.value,
                "source_ids": [str(s.id) for s in sources],
            },
        )
        raise AmbiguousSourceError(target_type.value, tuple(str(s.id) for s in sources))
    if not sources:
        raise ValidationError("source", "a source document is required")
    return sources[0]


def _missing_data(source: DocumentBase) -> tuple[str, ...]:
    missing: list[str] = []
    if not source.lines:
        missing.append("lines")
    if not source.buyer.is_identified:
        missing.append("buyer.company_name")
    if not source.seller.is_identified:
        missing.append("seller.company_name")
    return tuple(missing)


def _map_line(line: LineItem, target: LinePolicy) -> LineItem:
    if target.priced:
        unit_price = line.unit_price if line.unit_price is not None else ZERO
    else:
        unit_price = None
    return LineItem(
        product_name=line.product_name,
        quantity=line.quantity,
        unit_price=unit_price,
        serial_number=line.serial_number,
        description=line.description,
        sku=line.sku,
        hsn_code=line.hsn_code,
        uom=line.uom,
        packaging=PackagingDetails() if target.packaged else None,
    )


def _source_total(source: DocumentBase) -> Any:
    totals = getattr(source, "totals", None)
    if totals is not None:
        return totals.total_amount
    return compute_totals(source.lines, source.financial_adjustments()).total_amount


def derive_from(
    source: DocumentBase | Sequence[DocumentBase],
    target_cls: type[DocumentBase],
) -> DocumentBase:
    """
    Build an unsaved draft of ``target_cls`` from ``source``.

    Raises:
        AmbiguousSourceError: more than one source document supplied.
        UnsupportedDerivationError: no mapping for the pair.
        MissingSourceDataError: source has no lines or unidentified parties.
    """
    target_type = target_cls.document_type
    doc = _single_source(source, target_type)
    mapping = mapping_for(doc.document_type, target_type)

    missing = _missing_data(doc)
    if missing:
        logger.warning(
            "derivation_missing_source_data",
            extra={
                "mapping": mapping.name,
                "source_id": str(doc.id),
                "missing": list(missing),
            },
        )
        raise MissingSourceDataError(
            doc.document_type.value, str(doc.id), target_type.value, missing
        )

    target_policy = policy_for(target_type)
    values: dict[str, Any] = {
        "buyer_org_id": doc.buyer_org_id,
        "seller_org_id": doc.seller_org_id,
        "buyer": doc.buyer,
        "seller": doc.seller,
        "currency": doc.currency,
        "lines": tuple(_map_line(line, target_policy) for line in doc.lines),
        mapping.link_field: doc.id,
    }
    for source_field, target_field in mapping.header_fields + mapping.carried_links:
        value = getattr(doc, source_field)
        if value is not None:
            values[target_field] = value
    if mapping.copy_adjustments and isinstance(doc, PricedDocumentBase):
        values["adjustments"] = FinancialAdjustments(
            discount_percentage=doc.adjustments.discount_percentage,
            additional_charges=doc.adjustments.additional_charges,
            tax_percentage=doc.adjustments.tax_percentage,
        )
    if mapping.total_field is not None:
        values[mapping.total_field] = _source_total(doc)

    draft = target_cls(**values)
    logger.info(
        "document_derived",
        extra={
            "mapping": mapping.name,
            "source_type": doc.document_type.value,
            "source_id": str(doc.id),
            "target_type": target_type.value,
            "target_id": str(draft.id),
            "line_count": len(draft.lines),
        },
    )
    return draft

"""
Tests for document derivation (create X from Y).

Covers the mapping table per (source, target) pair, line carry-over rules,
and the refusal paths: unsupported pair, missing source data, ambiguous
source.
"""

from decimal import Decimal

import pytest

from procure_engines.derivation import (
    DERIVATION_MAPS,
    derive_from,
    mapping_for,
    supported_targets,
)
from procure_engines.totals import compute_totals
from procure_kernel.domain.documents import (
    DocumentType,
    FinancialAdjustments,
    PackagingDetails,
    PartySnapshot,
)
from procure_kernel.exceptions import (
    AmbiguousSourceError,
    MissingSourceDataError,
    UnsupportedDerivationError,
    ValidationError,
)
from procure_modules.billing.models import Invoice, InvoiceStatus
from procure_modules.fulfillment.models import (
    DeliveryNote,
    DeliveryNoteStatus,
    PackingList,
    PackingListStatus,
)
from procure_modules.purchasing.models import Contract, ContractStatus, POStatus, PurchaseOrder
from procure_modules.sourcing.models import RFQ, Quotation, QuotationStatus
from tests.support import SELLER_ORG


class TestMappingTable:

    def test_exactly_the_supported_pairs(self):
        assert set(DERIVATION_MAPS) == {
            (DocumentType.RFQ, DocumentType.QUOTATION),
            (DocumentType.QUOTATION, DocumentType.CONTRACT),
            (DocumentType.QUOTATION, DocumentType.PURCHASE_ORDER),
            (DocumentType.CONTRACT, DocumentType.PURCHASE_ORDER),
            (DocumentType.PURCHASE_ORDER, DocumentType.INVOICE),
            (DocumentType.PURCHASE_ORDER, DocumentType.DELIVERY_NOTE),
            (DocumentType.PURCHASE_ORDER, DocumentType.PACKING_LIST),
            (DocumentType.DELIVERY_NOTE, DocumentType.PACKING_LIST),
        }

    def test_supported_targets(self):
        assert set(supported_targets(DocumentType.PURCHASE_ORDER)) == {
            DocumentType.INVOICE,
            DocumentType.DELIVERY_NOTE,
            DocumentType.PACKING_LIST,
        }
        assert supported_targets(DocumentType.INVOICE) == ()

    @pytest.mark.parametrize(
        "source,target",
        [
            (DocumentType.RFQ, DocumentType.INVOICE),
            (DocumentType.INVOICE, DocumentType.PURCHASE_ORDER),
            (DocumentType.QUOTATION, DocumentType.RFQ),
        ],
    )
    def test_unsupported_pair(self, source, target):
        with pytest.raises(UnsupportedDerivationError) as exc_info:
            mapping_for(source, target)
        assert exc_info.value.source_type == source.value


class TestRfqToQuotation:

    def test_lines_copied_with_zero_price(self, make_document):
        rfq = make_document(RFQ, delivery_requirements="Deliver to site gate 3")
        draft = derive_from(rfq, Quotation)

        assert draft.status is QuotationStatus.DRAFT
        assert draft.rfq_id == rfq.id
        assert draft.delivery_terms == "Deliver to site gate 3"
        assert [line.product_name for line in draft.lines] == [line.product_name for line in rfq.lines]
        assert all(line.unit_price == Decimal("0") for line in draft.lines)
        assert [line.uom for line in draft.lines] == [line.uom for line in rfq.lines]

    def test_parties_copied_by_value(self, make_document):
        rfq = make_document(RFQ)
        draft = derive_from(rfq, Quotation)
        assert draft.buyer == rfq.buyer
        assert draft.seller == rfq.seller
        assert draft.buyer_org_id == rfq.buyer_org_id
        assert draft.seller_org_id == rfq.seller_org_id
        assert draft.id != rfq.id


class TestQuotationTargets:

    def test_purchase_order_from_quotation(self, quotation):
        draft = derive_from(quotation, PurchaseOrder)

        assert draft.status is POStatus.DRAFT
        assert draft.quotation_id == quotation.id
        assert draft.contract_id is None
        assert draft.payment_terms == "Net 30"
        assert draft.adjustments == quotation.adjustments
        assert draft.totals is None
        assert compute_totals(draft.lines, draft.adjustments).subtotal == Decimal("900.00")

    def test_contract_from_quotation(self, make_document):
        quotation = make_document(
            Quotation,
            rfq_id=None,
            adjustments=FinancialAdjustments(tax_percentage="5"),
            payment_terms="Net 45",
        )
        draft = derive_from(quotation, Contract)

        assert draft.status is ContractStatus.DRAFT
        assert draft.quotation_id == quotation.id
        assert draft.payment_terms == "Net 45"
        assert draft.agreed_total_value == Decimal("945.00")

    def test_contract_uses_frozen_total_when_present(self, quotation, machine):
        sent = machine.transition(quotation, "send", SELLER_ORG)
        draft = derive_from(sent, Contract)
        assert draft.agreed_total_value == sent.totals.total_amount

    def test_contract_carries_rfq_link(self, make_document, rfq):
        quotation = make_document(Quotation, rfq_id=rfq.id)
        assert derive_from(quotation, Contract).rfq_id == rfq.id


class TestContractToPurchaseOrder:

    def test_adjustments_not_carried(self, make_document):
        contract = make_document(Contract, payment_terms="Net 60")
        draft = derive_from(contract, PurchaseOrder)
        assert draft.contract_id == contract.id
        assert draft.quotation_id is None
        assert draft.payment_terms == "Net 60"
        assert draft.adjustments == FinancialAdjustments()


class TestPurchaseOrderTargets:

    @pytest.fixture
    def purchase_order(self, make_document):
        return make_document(
            PurchaseOrder,
            adjustments=FinancialAdjustments(discount_percentage="10", tax_percentage="5"),
            delivery_party=PartySnapshot(company_name="Acme Site Warehouse", city="Nashik"),
            terms_and_conditions="Standard T&C",
            notes="Deliver weekdays only",
        )

    def test_invoice(self, purchase_order):
        draft = derive_from(purchase_order, Invoice)
        assert draft.status is InvoiceStatus.DRAFT
        assert draft.purchase_order_id == purchase_order.id
        assert draft.ship_to == purchase_order.delivery_party
        assert draft.adjustments == purchase_order.adjustments
        assert draft.terms_and_conditions == "Standard T&C"
        assert draft.payment.remaining_amount is None
        assert [line.unit_price for line in draft.lines] == [line.unit_price for line in purchase_order.lines]

    def test_delivery_note_drops_prices(self, purchase_order):
        draft = derive_from(purchase_order, DeliveryNote)
        assert draft.status is DeliveryNoteStatus.PENDING
        assert draft.purchase_order_id == purchase_order.id
        assert draft.notes == "Deliver weekdays only"
        assert all(line.unit_price is None for line in draft.lines)
        assert all(line.subtotal is None for line in draft.lines)

    def test_packing_list_gets_empty_packaging(self, purchase_order):
        draft = derive_from(purchase_order, PackingList)
        assert draft.status is PackingListStatus.PENDING
        assert draft.purchase_order_id == purchase_order.id
        assert all(line.packaging == PackagingDetails() for line in draft.lines)
        assert all(line.unit_price is None for line in draft.lines)


class TestDeliveryNoteToPackingList:

    def test_links_both_predecessors(self, make_document, rfq):
        po_id = rfq.id  # any UUID will do as the carried link
        note = make_document(DeliveryNote, purchase_order_id=po_id, carrier_name="BlueDart")
        draft = derive_from(note, PackingList)
        assert draft.delivery_note_id == note.id
        assert draft.purchase_order_id == po_id
        assert draft.carrier_name == "BlueDart"


class TestRefusals:

    def test_missing_lines(self, make_document):
        rfq = make_document(RFQ, lines=())
        with pytest.raises(MissingSourceDataError) as exc_info:
            derive_from(rfq, Quotation)
        assert exc_info.value.missing == ("lines",)

    def test_missing_counterparty(self, make_document):
        rfq = make_document(RFQ, seller=PartySnapshot())
        with pytest.raises(MissingSourceDataError) as exc_info:
            derive_from(rfq, Quotation)
        assert "seller.company_name" in exc_info.value.missing

    def test_two_sources(self, make_document):
        first = make_document(Quotation)
        second = make_document(Quotation)
        with pytest.raises(AmbiguousSourceError) as exc_info:
            derive_from([first, second], PurchaseOrder)
        assert set(exc_info.value.source_ids) == {str(first.id), str(second.id)}

    def test_single_element_sequence_accepted(self, quotation):
        assert derive_from([quotation], PurchaseOrder).quotation_id == quotation.id

    def test_no_source(self):
        with pytest.raises(ValidationError):
            derive_from([], PurchaseOrder)

    def test_unsupported_target(self, make_document):
        with pytest.raises(UnsupportedDerivationError):
            derive_from(make_document(Invoice), PurchaseOrder)

    def test_source_unchanged(self, quotation):
        derive_from(quotation, PurchaseOrder)
        assert quotation.status is QuotationStatus.DRAFT
        assert quotation.lines[0].unit_price == Decimal("100")

    def test_derivation_logged(self, quotation, captured_logs):
        derive_from(quotation, PurchaseOrder)
        records = [r for r in captured_logs() if r["message"] == "document_derived"]
        assert records[-1]["mapping"] == "quotation_to_purchase_order"
        assert records[-1]["source_id"] == str(quotation.id)

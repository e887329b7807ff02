"""
Tests for DocumentService: creation, references, optimistic versioning,
derivation from stored sources, attachments and rendering.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from procure_kernel.domain.documents import DocumentType, FinancialAdjustments
from procure_kernel.exceptions import (
    AmbiguousSourceError,
    ConflictError,
    DocumentNotFoundError,
    InvalidTransitionError,
    UnauthorizedActionError,
    ValidationError,
)
from procure_modules.billing.models import InvoiceStatus
from procure_modules.purchasing.models import PurchaseOrder
from procure_modules.sourcing.models import RFQ, Quotation, QuotationStatus, RFQStatus
from procure_services.collaborators import DocumentRenderer
from procure_services.document_service import DocumentService, resolve_totals
from tests.support import BUYER_ORG, SELLER_ORG, STRANGER_ORG, make_line


class RecordingRenderer:
    """Renders a one-line text summary and remembers what it was given."""

    def __init__(self):
        self.rendered = []

    def render(self, document):
        self.rendered.append(document)
        return f"{document.reference_id} total={document.totals.total_amount}".encode()


@pytest.fixture
def create_rfq(service, buyer_party, seller_party, unpriced_lines):
    def _create(**overrides):
        fields = dict(
            buyer_org_id=BUYER_ORG,
            seller_org_id=SELLER_ORG,
            buyer=buyer_party,
            seller=seller_party,
            lines=unpriced_lines,
        )
        fields.update(overrides)
        return service.create(DocumentType.RFQ, **fields)

    return _create


@pytest.fixture
def create_quotation(service, buyer_party, seller_party, priced_lines):
    def _create(**overrides):
        fields = dict(
            buyer_org_id=BUYER_ORG,
            seller_org_id=SELLER_ORG,
            buyer=buyer_party,
            seller=seller_party,
            lines=priced_lines,
            adjustments=FinancialAdjustments(tax_percentage="5"),
        )
        fields.update(overrides)
        return service.create(Quotation, **fields)

    return _create


class TestCreate:

    def test_initial_state_and_version(self, create_rfq, deterministic_clock):
        rfq = create_rfq()
        assert rfq.status is RFQStatus.DRAFT
        assert rfq.version == 1
        assert rfq.created_at == deterministic_clock.now()
        assert rfq.updated_at == rfq.created_at

    def test_lines_renumbered(self, create_rfq):
        rfq = create_rfq(lines=[make_line("A", serial_number=7), make_line("B", serial_number=7)])
        assert [line.serial_number for line in rfq.lines] == [1, 2]

    def test_unpriced_type_drops_prices(self, create_rfq, service):
        rfq = create_rfq(lines=[make_line("Steel Rod", "5", "100")])
        assert rfq.lines[0].unit_price is None
        assert rfq.lines[0].subtotal is None

        edited = service.edit(
            DocumentType.RFQ, rfq.id, BUYER_ORG, lines=[make_line("Steel Plate", "4", "100")]
        )
        assert edited.lines[0].unit_price is None
        assert edited.lines[0].product_name == "Steel Plate"

    def test_default_currency(self, create_rfq, engine_config):
        assert create_rfq().currency == engine_config.default_currency
        assert create_rfq(currency="INR").currency == "INR"

    @pytest.mark.parametrize("field", ["status", "reference_id", "version", "totals", "id"])
    def test_engine_fields_refused(self, create_rfq, field):
        with pytest.raises(ValidationError) as exc_info:
            create_rfq(**{field: None})
        assert exc_info.value.field == field

    def test_accepts_type_name(self, service, buyer_party, seller_party):
        rfq = service.create(
            "rfq", buyer_org_id=BUYER_ORG, seller_org_id=SELLER_ORG,
            buyer=buyer_party, seller=seller_party,
        )
        assert isinstance(rfq, RFQ)

    def test_creation_logged(self, create_rfq, captured_logs):
        rfq = create_rfq()
        records = [r for r in captured_logs() if r["message"] == "document_created"]
        assert records[-1]["document_id"] == str(rfq.id)
        assert records[-1]["line_count"] == 2


class TestReferences:

    def test_rfq_format(self, create_rfq):
        assert create_rfq().reference_id == "RFQ-0001"
        assert create_rfq().reference_id == "RFQ-0002"

    def test_quotation_uses_seller_initials(self, create_quotation):
        assert create_quotation().reference_id == "GISQUO-001"

    def test_sequence_per_issuer(self, create_rfq):
        create_rfq()
        other = create_rfq(buyer_org_id="org-buyer-002")
        assert other.reference_id == "RFQ-0001"

    def test_sequence_per_type(self, create_rfq, create_quotation):
        create_rfq()
        create_rfq()
        assert create_quotation().reference_id == "GISQUO-001"

    def test_reference_kept_on_later_saves(self, create_rfq, service):
        rfq = create_rfq()
        submitted = service.transition(DocumentType.RFQ, rfq.id, "submit", BUYER_ORG)
        assert submitted.reference_id == rfq.reference_id

    def test_reference_cannot_change(self, create_rfq, repository):
        rfq = create_rfq()
        with pytest.raises(ValidationError) as exc_info:
            repository.save(rfq.evolve(reference_id="RFQ-9999"))
        assert exc_info.value.field == "reference_id"


class TestLoadAndQuery:

    def test_load_by_string_id(self, create_rfq, service):
        rfq = create_rfq()
        assert service.load("rfq", str(rfq.id)) == rfq

    def test_load_unknown(self, service):
        with pytest.raises(DocumentNotFoundError):
            service.load(DocumentType.RFQ, uuid4())

    def test_load_wrong_type(self, create_rfq, service):
        rfq = create_rfq()
        with pytest.raises(DocumentNotFoundError):
            service.load(DocumentType.QUOTATION, rfq.id)

    def test_query_by_status(self, create_rfq, service):
        first = create_rfq()
        second = create_rfq()
        service.transition(DocumentType.RFQ, second.id, "submit", BUYER_ORG)

        drafts = service.query(DocumentType.RFQ, status=RFQStatus.DRAFT)
        pending = service.query(DocumentType.RFQ, status="PENDING")
        assert [d.id for d in drafts] == [first.id]
        assert [d.id for d in pending] == [second.id]

    def test_query_by_link(self, create_rfq, service):
        rfq = create_rfq()
        quotation = service.save(service.derive_from(DocumentType.RFQ, rfq.id, DocumentType.QUOTATION))
        found = service.query(DocumentType.QUOTATION, rfq_id=rfq.id)
        assert [q.id for q in found] == [quotation.id]

    def test_query_unknown_filter(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.query(DocumentType.RFQ, project_name="Bridge")
        assert exc_info.value.field == "filters"


class TestTransitions:

    def test_transition_persists(self, create_rfq, service):
        rfq = create_rfq()
        submitted = service.transition(DocumentType.RFQ, rfq.id, "submit", BUYER_ORG)
        assert submitted.status is RFQStatus.PENDING
        assert submitted.version == 2
        assert service.load(DocumentType.RFQ, rfq.id).status is RFQStatus.PENDING

    def test_refused_transition_not_persisted(self, create_rfq, service):
        rfq = create_rfq()
        with pytest.raises(UnauthorizedActionError):
            service.transition(DocumentType.RFQ, rfq.id, "submit", SELLER_ORG)
        assert service.load(DocumentType.RFQ, rfq.id).version == 1

    def test_available_actions(self, create_quotation, service):
        quotation = create_quotation()
        assert service.available_actions(Quotation, quotation.id, SELLER_ORG) == ("send",)
        assert service.available_actions(Quotation, quotation.id, BUYER_ORG) == ()
        service.transition(Quotation, quotation.id, "send", SELLER_ORG)
        assert set(service.available_actions(Quotation, quotation.id, BUYER_ORG)) == {"accept", "reject"}

    def test_edit_persists(self, create_quotation, service):
        quotation = create_quotation()
        edited = service.edit(Quotation, quotation.id, SELLER_ORG, payment_terms="Net 15")
        assert edited.version == 2
        assert service.load(Quotation, quotation.id).payment_terms == "Net 15"

    def test_edit_after_send_refused(self, create_quotation, service):
        quotation = create_quotation()
        service.transition(Quotation, quotation.id, "send", SELLER_ORG)
        with pytest.raises(InvalidTransitionError):
            service.edit(Quotation, quotation.id, SELLER_ORG, payment_terms="Net 15")


class TestOptimisticConcurrency:

    def test_stale_save_conflicts(self, create_rfq, service):
        rfq = create_rfq()
        service.transition(DocumentType.RFQ, rfq.id, "submit", BUYER_ORG)
        stale = rfq.evolve(project_name="stale edit")
        with pytest.raises(ConflictError) as exc_info:
            service.save(stale)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert exc_info.value.retryable

    def test_two_writers_same_version(self, create_quotation, service):
        quotation = create_quotation()
        machine = service.status_machine
        sent = machine.transition(quotation, "send", SELLER_ORG)
        edited = machine.edit(quotation, SELLER_ORG, payment_terms="Net 10")

        service.save(sent)
        with pytest.raises(ConflictError):
            service.save(edited)
        assert service.load(Quotation, quotation.id).status is QuotationStatus.SENT


class TestDerivation:

    def test_draft_is_unsaved(self, create_rfq, service):
        rfq = create_rfq()
        draft = service.derive_from(DocumentType.RFQ, rfq.id, DocumentType.QUOTATION)
        assert draft.version == 0
        assert draft.reference_id is None
        with pytest.raises(DocumentNotFoundError):
            service.load(DocumentType.QUOTATION, draft.id)

    def test_saved_draft_gets_reference(self, create_rfq, service):
        rfq = create_rfq()
        draft = service.derive_from(DocumentType.RFQ, rfq.id, DocumentType.QUOTATION)
        saved = service.save(draft)
        assert saved.reference_id == "GISQUO-001"
        assert saved.rfq_id == rfq.id

    def test_several_sources_ambiguous(self, create_quotation, service):
        first = create_quotation()
        second = create_quotation()
        with pytest.raises(AmbiguousSourceError):
            service.derive_from_many(Quotation, [first.id, second.id], PurchaseOrder)

    def test_single_source_through_many(self, create_quotation, service):
        quotation = create_quotation()
        draft = service.derive_from_many(Quotation, [quotation.id], PurchaseOrder)
        assert draft.quotation_id == quotation.id

    def test_unknown_source(self, service):
        with pytest.raises(DocumentNotFoundError):
            service.derive_from(DocumentType.RFQ, uuid4(), DocumentType.QUOTATION)


class TestMoney:

    def test_compute_totals(self, priced_lines):
        totals = DocumentService.compute_totals(
            priced_lines, FinancialAdjustments(tax_percentage="5")
        )
        assert totals.total_amount == Decimal("945.00")

    def test_apply_payment(self, service, invoice):
        saved = service.save(invoice)
        service.transition(DocumentType.INVOICE, saved.id, "submit", SELLER_ORG)
        receipt = service.attach_payment_receipt(b"%PDF-1.4 receipt", "application/pdf")

        part = service.apply_payment(saved.id, "partial", "300", receipt)
        assert part.status is InvoiceStatus.PENDING
        assert part.remaining_amount == Decimal("645.00")
        assert part.payment.payment_receipt_reference == receipt

        paid = service.apply_payment(saved.id, "full")
        assert paid.status is InvoiceStatus.PAID
        assert service.load(DocumentType.INVOICE, saved.id).remaining_amount == Decimal("0.00")

    def test_resolve_totals_fills_live_totals(self, quotation):
        resolved = resolve_totals(quotation)
        assert resolved.totals.total_amount == Decimal("945.00")
        assert quotation.totals is None

    def test_resolve_totals_keeps_frozen(self, quotation, machine):
        sent = machine.transition(quotation, "send", SELLER_ORG)
        assert resolve_totals(sent) is sent

    def test_resolve_totals_unpriced(self, rfq):
        assert resolve_totals(rfq) is rfq


class TestRender:

    def test_render(self, repository, engine_config, deterministic_clock, quotation):
        renderer = RecordingRenderer()
        assert isinstance(renderer, DocumentRenderer)
        service = DocumentService(
            repository, config=engine_config, clock=deterministic_clock, renderer=renderer
        )
        saved = service.save(quotation)
        output = service.render(Quotation, saved.id)
        assert output == b"GISQUO-001 total=945.00"
        assert renderer.rendered[0].totals is not None

    def test_render_without_renderer(self, service, quotation):
        saved = service.save(quotation)
        with pytest.raises(RuntimeError):
            service.render(Quotation, saved.id)


class TestAttachments:

    def test_signature(self, service, quotation, file_store):
        saved = service.save(quotation)
        signed = service.attach_signature(
            Quotation, saved.id, SELLER_ORG, b"\x89PNG signature", "image/png", "Sam Seller"
        )
        assert signed.signature_url.startswith("memory://")
        assert signed.signature_by_name == "Sam Seller"
        assert file_store.get(signed.signature_url) == (b"\x89PNG signature", "image/png")

    @pytest.mark.parametrize("actor", [BUYER_ORG, STRANGER_ORG])
    def test_signature_by_issuer_only(self, service, quotation, actor):
        saved = service.save(quotation)
        with pytest.raises(UnauthorizedActionError):
            service.attach_signature(Quotation, saved.id, actor, b"img", "image/png")

    def test_signature_pdf_refused(self, service, quotation):
        saved = service.save(quotation)
        with pytest.raises(ValidationError) as exc_info:
            service.attach_signature(Quotation, saved.id, SELLER_ORG, b"%PDF", "application/pdf")
        assert exc_info.value.field == "content_type"

    def test_signature_refused_once_accepted(self, service, create_quotation):
        quotation = create_quotation()
        service.transition(Quotation, quotation.id, "send", SELLER_ORG)
        service.transition(Quotation, quotation.id, "accept", BUYER_ORG)
        with pytest.raises(InvalidTransitionError) as exc_info:
            service.attach_signature(
                Quotation, quotation.id, SELLER_ORG, b"\x89PNG late", "image/png"
            )
        assert exc_info.value.action == "attach_signature"
        assert exc_info.value.current_state == QuotationStatus.ACCEPTED.value
        assert service.load(Quotation, quotation.id).signature_url is None

    def test_receipt_types(self, service, file_store):
        for content_type in ("image/jpeg", "image/png", "application/pdf"):
            service.attach_payment_receipt(content_type.encode(), content_type)
        assert len(file_store) == 3

    def test_receipt_empty(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.attach_payment_receipt(b"", "image/png")
        assert exc_info.value.field == "data"

    def test_receipt_too_large(self, service, engine_config):
        limit = engine_config.attachment_rule("receipt").max_bytes
        with pytest.raises(ValidationError) as exc_info:
            service.attach_payment_receipt(b"x" * (limit + 1), "application/pdf")
        assert exc_info.value.field == "data"

    def test_no_file_store(self, repository, engine_config):
        service = DocumentService(repository, config=engine_config)
        with pytest.raises(RuntimeError):
            service.attach_payment_receipt(b"data", "image/png")

    def test_stored_logged(self, service, captured_logs):
        service.attach_payment_receipt(b"data", "image/png")
        records = [r for r in captured_logs() if r["message"] == "attachment_stored"]
        assert records[-1]["attachment_kind"] == "receipt"
        assert records[-1]["size_bytes"] == 4

"""
Document Service (``procure_services.document_service``).

Responsibility
--------------
The inbound facade callers use to work with procurement documents: create,
load, edit, transition, derive, pay, attach files and render.  Each method
loads what it needs through the ``DocumentRepository`` port, delegates the
decision to the status machine, derivation engine or payment ledger, and
saves the result.

Architecture position
---------------------
**Services layer** -- composition root for the engine.  Everything below
it is pure; this is the only class that talks to the repository, renderer
and file store.

Invariants enforced
-------------------
* Every save goes through the optimistic version check of the repository;
  a stale document raises ``ConflictError`` and nothing is retried.
* ``reference_id`` is assigned exactly once, on first save.
* Attachments are checked against the configured content types and size
  ceiling before they reach the file store.

Failure modes
-------------
* ``DocumentNotFoundError`` -- unknown id.
* ``InvalidTransitionError`` / ``UnauthorizedActionError`` -- rejected
  action.
* ``ValidationError`` -- bad input or attachment.
* ``DerivationError`` subclasses -- derivation rejected.
* ``ConflictError`` -- concurrent modification.

Usage::

    service = DocumentService(InMemoryDocumentRepository(), clock=clock)
    rfq = service.create(DocumentType.RFQ, buyer_org_id="b", seller_org_id="s",
                         buyer=buyer, seller=seller, lines=lines)
    rfq = service.transition(DocumentType.RFQ, rfq.id, "submit", "b")
    quotation = service.save(service.derive_from(DocumentType.RFQ, rfq.id,
                                                 DocumentType.QUOTATION))
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any
from uuid import UUID

from procure_config import get_active_config
from procure_config.schema import EngineConfig
from procure_engines import derivation
from procure_engines.line_items import LineItemSet
from procure_engines.payment import PaymentType
from procure_engines.totals import compute_totals
from procure_kernel.domain.clock import Clock, SystemClock
from procure_kernel.domain.documents import (
    DocumentBase,
    DocumentType,
    FinancialAdjustments,
    LineItem,
    Totals,
)
from procure_kernel.exceptions import (
    InvalidTransitionError,
    UnauthorizedActionError,
    ValidationError,
)
from procure_kernel.logging_config import LogContext, get_logger
from procure_modules.billing.models import Invoice
from procure_modules.registry import kind_for, parse_document_type
from procure_services.collaborators import DocumentRenderer, FileStore
from procure_services.payment_ledger import PaymentLedger
from procure_services.reference_service import ReferenceService
from procure_services.repository import DocumentRepository
from procure_services.status_machine import DocumentStatusMachine

logger = get_logger("services.document_service")

# Fields the service owns at creation time.
_SERVICE_FIELDS = frozenset({
    "id",
    "status",
    "reference_id",
    "created_at",
    "updated_at",
    "version",
    "totals",
    "payment",
    "signature_url",
})

DocumentTypeLike = DocumentType | str | type[DocumentBase]


class DocumentService:
    """
    Inbound facade over the procurement document engine.

    Contract
    --------
    * Methods that change a document return the saved document (with its
      new ``version``).  ``derive_from`` returns an unsaved draft.
    * The caller owns transactions when the repository is SQL-backed.

    Non-goals
    ---------
    * Does not authenticate; ``actor_org_id`` is trusted as given.
    * Does not retry on ``ConflictError``.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        *,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        status_machine: DocumentStatusMachine | None = None,
        renderer: DocumentRenderer | None = None,
        file_store: FileStore | None = None,
    ):
        self._repository = repository
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._machine = status_machine or DocumentStatusMachine(clock=self._clock)
        self._ledger = PaymentLedger(self._machine)
        self._references = ReferenceService(self._config, repository)
        self._renderer = renderer
        self._file_store = file_store

    @property
    def status_machine(self) -> DocumentStatusMachine:
        return self._machine

    # -- persistence --------------------------------------------------------

    def create(self, document_type: DocumentTypeLike, **fields: Any) -> DocumentBase:
        """Build a document in its type's initial state and save it.

        Lines are renumbered 1..N; currency defaults to the configured one.
        """
        kind = kind_for(document_type)
        for name in fields:
            if name in _SERVICE_FIELDS:
                raise ValidationError(name, "is assigned by the engine", fields[name])
        fields.setdefault("currency", self._config.default_currency)
        if "lines" in fields:
            fields["lines"] = LineItemSet.of(fields["lines"], kind.line_policy).lines
        document = kind.model(**fields)
        logger.info(
            "document_created",
            extra={
                "document_type": kind.document_type.value,
                "document_id": str(document.id),
                "line_count": len(document.lines),
            },
        )
        return self.save(document)

    def save(self, document: DocumentBase) -> DocumentBase:
        """Persist ``document``, stamping it and assigning its reference if new."""
        if document.created_at is None:
            now = self._clock.now()
            document = document.evolve(created_at=now, updated_at=document.updated_at or now)
        document = self._references.assign(document)
        with LogContext.bind(
            document_type=document.document_type,
            document_id=document.id,
            reference_id=document.reference_id,
        ):
            return self._repository.save(document)

    def load(self, document_type: DocumentTypeLike, document_id: UUID | str) -> DocumentBase:
        return self._repository.load(parse_document_type(document_type), document_id)

    def query(
        self,
        document_type: DocumentTypeLike,
        **filters: Any,
    ) -> list[DocumentBase]:
        return self._repository.query(parse_document_type(document_type), filters)

    # -- lifecycle ----------------------------------------------------------

    def transition(
        self,
        document_type: DocumentTypeLike,
        document_id: UUID | str,
        action: str,
        actor_org_id: str,
    ) -> DocumentBase:
        with LogContext.bind(
            actor_org_id=actor_org_id,
            document_type=parse_document_type(document_type),
            document_id=document_id,
        ):
            document = self.load(document_type, document_id)
            updated = self._machine.transition(document, action, actor_org_id)
            return self._repository.save(updated)

    def available_actions(
        self,
        document_type: DocumentTypeLike,
        document_id: UUID | str,
        actor_org_id: str,
    ) -> tuple[str, ...]:
        document = self.load(document_type, document_id)
        return self._machine.available_actions(document, actor_org_id)

    def edit(
        self,
        document_type: DocumentTypeLike,
        document_id: UUID | str,
        actor_org_id: str,
        **changes: Any,
    ) -> DocumentBase:
        with LogContext.bind(
            actor_org_id=actor_org_id,
            document_type=parse_document_type(document_type),
            document_id=document_id,
        ):
            document = self.load(document_type, document_id)
            updated = self._machine.edit(document, actor_org_id, **changes)
            return self._repository.save(updated)

    # -- derivation ---------------------------------------------------------

    def derive_from(
        self,
        source_type: DocumentTypeLike,
        source_id: UUID | str,
        target_type: DocumentTypeLike,
    ) -> DocumentBase:
        """Unsaved draft of ``target_type`` built from one stored source."""
        return self.derive_from_many(source_type, (source_id,), target_type)

    def derive_from_many(
        self,
        source_type: DocumentTypeLike,
        source_ids: Sequence[UUID | str],
        target_type: DocumentTypeLike,
    ) -> DocumentBase:
        """Derivation given several candidate sources.

        Exactly one source is accepted; more raise ``AmbiguousSourceError``.
        """
        sources = [self.load(source_type, source_id) for source_id in source_ids]
        return derivation.derive_from(sources, kind_for(target_type).model)

    # -- money --------------------------------------------------------------

    @staticmethod
    def compute_totals(
        lines: LineItemSet | Iterable[LineItem],
        adjustments: FinancialAdjustments | None = None,
    ) -> Totals:
        return compute_totals(lines, adjustments)

    def apply_payment(
        self,
        invoice_id: UUID | str,
        payment_type: PaymentType | str,
        amount: Any = None,
        receipt_ref: str | None = None,
        actor_org_id: str | None = None,
    ) -> Invoice:
        with LogContext.bind(
            actor_org_id=actor_org_id,
            document_type=DocumentType.INVOICE,
            document_id=invoice_id,
        ):
            invoice = self.load(DocumentType.INVOICE, invoice_id)
            updated = self._ledger.apply_payment(
                invoice, payment_type, amount, receipt_ref, actor_org_id
            )
            return self._repository.save(updated)

    # -- collaborators ------------------------------------------------------

    def render(self, document_type: DocumentTypeLike, document_id: UUID | str) -> bytes:
        """Render a stored document, with totals filled in if not yet frozen."""
        if self._renderer is None:
            raise RuntimeError("DocumentService has no renderer configured")
        document = self.load(document_type, document_id)
        return self._renderer.render(resolve_totals(document))

    def attach_signature(
        self,
        document_type: DocumentTypeLike,
        document_id: UUID | str,
        actor_org_id: str,
        data: bytes,
        content_type: str,
        signed_by_name: str | None = None,
    ) -> DocumentBase:
        """Store the issuer's signature image and record its url."""
        document = self.load(document_type, document_id)
        if actor_org_id != document.issuer_org_id:
            raise UnauthorizedActionError(
                document.document_type.value, str(document.id), "attach_signature",
                actor_org_id, document.issuer_side.value,
            )
        state = document.status.value
        if state not in kind_for(document.document_type).workflow.editable_states:
            raise InvalidTransitionError(
                document.document_type.value, str(document.id), "attach_signature", state,
                f"{document.document_type.value} cannot be signed in state {state}",
            )
        url = self._store_attachment("signature", data, content_type, str(document.id))
        updated = document.evolve(
            signature_url=url,
            signature_by_name=signed_by_name or document.signature_by_name,
            updated_at=self._clock.now(),
        )
        return self._repository.save(updated)

    def attach_payment_receipt(self, data: bytes, content_type: str) -> str:
        """Store a payment receipt; pass the returned url to ``apply_payment``."""
        return self._store_attachment("receipt", data, content_type)

    def _store_attachment(
        self,
        kind: str,
        data: bytes,
        content_type: str,
        document_id: str | None = None,
    ) -> str:
        if self._file_store is None:
            raise RuntimeError("DocumentService has no file store configured")
        rule = self._config.attachment_rule(kind)
        if content_type not in rule.content_types:
            raise ValidationError(
                "content_type",
                f"{kind} must be one of {', '.join(rule.content_types)}",
                content_type,
                document_id,
            )
        if not data:
            raise ValidationError("data", f"{kind} file is empty", document_id=document_id)
        if len(data) > rule.max_bytes:
            raise ValidationError(
                "data",
                f"{kind} file exceeds {rule.max_bytes} bytes",
                len(data),
                document_id,
            )
        url = self._file_store.store(data, content_type)
        logger.info(
            "attachment_stored",
            extra={
                "attachment_kind": kind,
                "content_type": content_type,
                "size_bytes": len(data),
                "url": url,
            },
        )
        return url


def resolve_totals(document: DocumentBase) -> DocumentBase:
    """``document`` with live totals when it carries a totals field but none is frozen."""
    if "totals" not in document.field_names() or getattr(document, "totals") is not None:
        return document
    return document.evolve(
        totals=compute_totals(document.lines, document.financial_adjustments())
    )

"""
procure_services.sql_repository -- SQLAlchemy-backed document repository.

Responsibility:
    Implements the ``DocumentRepository`` port over ``DocumentModel`` rows.
    The session is supplied by the caller; this class flushes but NEVER
    commits.  Transaction boundaries belong to ``session_scope()`` or the
    embedding application.

Invariants enforced:
    - Optimistic concurrency: the incoming document's ``version`` must
      match the stored row; the UPDATE is additionally guarded by the
      mapper's version column, so a concurrent writer surfaces as
      ``StaleDataError`` which is translated to ``ConflictError``.
    - Reference sequences come from locked counter rows, never from
      ``max() + 1`` over documents.

Failure modes:
    - ConflictError on version mismatch, stale UPDATE, or a concurrent
      insert of the same id / reference / counter.
    - DocumentNotFoundError on load of an unknown id.
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from procure_kernel.domain.documents import DocumentBase, DocumentType
from procure_kernel.exceptions import ConflictError, DocumentNotFoundError, ValidationError
from procure_kernel.logging_config import get_logger
from procure_services.orm import DocumentModel, SequenceCounter
from procure_services.repository import check_filters, check_reference_unchanged

logger = get_logger("services.sql_repository")


class SqlDocumentRepository:
    """
    Document repository over a caller-owned SQLAlchemy session.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT retry on conflict.
    """

    def __init__(self, session: Session):
        self._session = session

    def load(self, document_type: DocumentType, document_id: UUID) -> DocumentBase:
        doc_type = DocumentType(document_type)
        row = self._session.get(DocumentModel, _as_uuid(document_id))
        if row is None or row.document_type != doc_type.value:
            raise DocumentNotFoundError(doc_type.value, str(document_id))
        return row.to_dto()

    def save(self, document: DocumentBase) -> DocumentBase:
        doc_type = document.document_type.value
        doc_id = str(document.id)
        row = self._session.get(DocumentModel, document.id)

        if row is None:
            if document.version != 0:
                raise ConflictError(doc_type, doc_id, document.version, None)
            row = DocumentModel.from_dto(document)
            self._session.add(row)
        else:
            if row.document_type != doc_type:
                raise ValidationError(
                    "id", f"already used by a {row.document_type}", doc_id, doc_id
                )
            if row.version != document.version:
                logger.warning(
                    "document_save_conflict",
                    extra={
                        "document_type": doc_type,
                        "document_id": doc_id,
                        "expected_version": document.version,
                        "actual_version": row.version,
                    },
                )
                raise ConflictError(doc_type, doc_id, document.version, row.version)
            check_reference_unchanged(row.to_dto(), document)
            row.apply_dto(document)

        try:
            self._session.flush()
        except StaleDataError:
            self._session.rollback()
            raise ConflictError(doc_type, doc_id, document.version, None) from None
        except IntegrityError:
            self._session.rollback()
            raise ConflictError(doc_type, doc_id, document.version, None) from None

        logger.debug(
            "document_saved",
            extra={"document_type": doc_type, "document_id": doc_id, "version": row.version},
        )
        return document.evolve(version=row.version)

    def query(
        self,
        document_type: DocumentType,
        filters: Mapping[str, Any] | None = None,
    ) -> list[DocumentBase]:
        doc_type = DocumentType(document_type)
        stmt = select(DocumentModel).where(DocumentModel.document_type == doc_type.value)
        for name, value in check_filters(filters).items():
            column = getattr(DocumentModel, name)
            if name.endswith("_id") and name not in ("buyer_org_id", "seller_org_id", "reference_id"):
                value = _as_uuid(value)
            stmt = stmt.where(column == value)
        stmt = stmt.order_by(DocumentModel.created_at, DocumentModel.id)
        return [row.to_dto() for row in self._session.scalars(stmt)]

    def next_sequence(self, sequence_name: str) -> int:
        """Next value of a named counter, locked for the rest of the transaction."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)

        counter.current_value += 1
        try:
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            raise ConflictError("sequence", sequence_name) from None
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))

"""
procure_services.repository -- Document persistence contract.

Responsibility:
    ``DocumentRepository`` is the outbound port the document service
    depends on: load by type and id, save with an optimistic version check,
    query by equality filters, and allocate per-issuer reference sequences.
    ``InMemoryDocumentRepository`` is the dict-backed implementation used
    by tests and embedding callers.

Invariants enforced:
    - ``save`` accepts a document only if its ``version`` equals the stored
      version (0 for a new document); the stored copy gets version + 1.
    - A reference id, once stored, never changes.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Mapping, Protocol, runtime_checkable
from uuid import UUID

from procure_kernel.domain.documents import DocumentBase, DocumentType
from procure_kernel.exceptions import (
    ConflictError,
    DocumentNotFoundError,
    ValidationError,
)
from procure_kernel.logging_config import get_logger

logger = get_logger("services.repository")

# Filterable fields; the SQL adapter stores each as a column.
QUERYABLE_FIELDS = frozenset({
    "status",
    "reference_id",
    "buyer_org_id",
    "seller_org_id",
    "currency",
    "rfq_id",
    "quotation_id",
    "contract_id",
    "purchase_order_id",
    "delivery_note_id",
})


@runtime_checkable
class DocumentRepository(Protocol):
    """Outbound persistence port."""

    def load(self, document_type: DocumentType, document_id: UUID) -> DocumentBase:
        ...

    def save(self, document: DocumentBase) -> DocumentBase:
        ...

    def query(
        self,
        document_type: DocumentType,
        filters: Mapping[str, Any] | None = None,
    ) -> list[DocumentBase]:
        ...

    def next_sequence(self, sequence_name: str) -> int:
        ...


def normalize_filter_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


def check_filters(filters: Mapping[str, Any] | None) -> dict[str, Any]:
    """Validate filter names and normalize their values."""
    normalized: dict[str, Any] = {}
    for name, value in (filters or {}).items():
        if name not in QUERYABLE_FIELDS:
            raise ValidationError("filters", f"cannot filter on {name!r}", name)
        normalized[name] = normalize_filter_value(value)
    return normalized


def check_reference_unchanged(stored: DocumentBase, incoming: DocumentBase) -> None:
    if stored.reference_id is not None and incoming.reference_id != stored.reference_id:
        raise ValidationError(
            "reference_id",
            "is immutable once assigned",
            incoming.reference_id,
            str(incoming.id),
        )


class InMemoryDocumentRepository:
    """
    Dict-backed document repository.

    Guarantees:
        - Version check and write happen under one lock, so two writers
          holding the same version cannot both succeed.
    """

    def __init__(self) -> None:
        self._documents: dict[tuple[DocumentType, UUID], DocumentBase] = {}
        self._sequences: dict[str, int] = {}
        self._lock = threading.Lock()

    def load(self, document_type: DocumentType, document_id: UUID) -> DocumentBase:
        key = (DocumentType(document_type), _as_uuid(document_id))
        document = self._documents.get(key)
        if document is None:
            raise DocumentNotFoundError(key[0].value, str(document_id))
        return document

    def save(self, document: DocumentBase) -> DocumentBase:
        key = (document.document_type, document.id)
        with self._lock:
            stored = self._documents.get(key)
            stored_version = stored.version if stored is not None else 0
            if document.version != stored_version:
                logger.warning(
                    "document_save_conflict",
                    extra={
                        "document_type": key[0].value,
                        "document_id": str(document.id),
                        "expected_version": document.version,
                        "actual_version": stored_version,
                    },
                )
                raise ConflictError(
                    key[0].value, str(document.id), document.version, stored_version
                )
            if stored is not None:
                check_reference_unchanged(stored, document)
            saved = document.evolve(version=stored_version + 1)
            self._documents[key] = saved

        logger.debug(
            "document_saved",
            extra={
                "document_type": key[0].value,
                "document_id": str(document.id),
                "version": saved.version,
            },
        )
        return saved

    def query(
        self,
        document_type: DocumentType,
        filters: Mapping[str, Any] | None = None,
    ) -> list[DocumentBase]:
        doc_type = DocumentType(document_type)
        wanted = check_filters(filters)
        results = [
            doc
            for (t, _), doc in self._documents.items()
            if t is doc_type
            and all(
                normalize_filter_value(getattr(doc, name, None)) == value
                for name, value in wanted.items()
            )
        ]
        return sorted(results, key=lambda d: (d.created_at is None, d.created_at, str(d.id)))

    def next_sequence(self, sequence_name: str) -> int:
        with self._lock:
            value = self._sequences.get(sequence_name, 0) + 1
            self._sequences[sequence_name] = value
        return value


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))

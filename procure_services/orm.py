"""
Procurement ORM Models (``procure_services.orm``).

Responsibility
--------------
SQLAlchemy persistence for documents and reference sequences.  One
``procure_documents`` row per document: queryable header and linkage
columns, the optimistic ``version`` counter, and the full document as a
JSON payload.

Architecture position
---------------------
**Services layer** -- persistence.  Imports from ``procure_kernel.db.base``.
MUST NOT be imported by ``procure_kernel`` (except ``create_tables``).

Invariants enforced
-------------------
* ``version`` is the mapper's ``version_id_col``: every UPDATE is guarded by
  ``WHERE version = <loaded version>`` and bumps it.
* ``reference_id`` is unique per document type.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from procure_kernel.db.base import Base
from procure_kernel.domain.documents import DocumentBase
from procure_modules.registry import kind_for
from procure_services.codec import decode_dataclass, encode_document

_LINK_COLUMNS = (
    "rfq_id",
    "quotation_id",
    "contract_id",
    "purchase_order_id",
    "delivery_note_id",
)


class DocumentModel(Base):
    """
    ORM model for every procurement document type.

    Guarantees:
        - document_type + reference_id unique (uq_procure_documents_reference).
        - Header columns mirror the payload so they can be filtered in SQL.
    """

    __tablename__ = "procure_documents"

    __table_args__ = (
        UniqueConstraint(
            "document_type", "reference_id", name="uq_procure_documents_reference"
        ),
        Index("idx_procure_documents_type_status", "document_type", "status"),
        Index("idx_procure_documents_buyer", "buyer_org_id"),
        Index("idx_procure_documents_seller", "seller_org_id"),
    )

    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    buyer_org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    seller_org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    rfq_id: Mapped[UUID | None] = mapped_column(nullable=True)
    quotation_id: Mapped[UUID | None] = mapped_column(nullable=True)
    contract_id: Mapped[UUID | None] = mapped_column(nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(nullable=True)
    delivery_note_id: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self) -> DocumentBase:
        """Convert ORM row to the frozen document dataclass."""
        model = kind_for(self.document_type).model
        document = decode_dataclass(model, self.payload)
        return document.evolve(version=self.version)

    @classmethod
    def from_dto(cls, dto: DocumentBase) -> "DocumentModel":
        """Create ORM row from a frozen document (version assigned on flush)."""
        row = cls(id=dto.id, document_type=dto.document_type.value)
        row.apply_dto(dto)
        return row

    def apply_dto(self, dto: DocumentBase) -> None:
        """Copy a document's current values onto this row."""
        self.reference_id = dto.reference_id
        self.status = dto.status.value
        self.buyer_org_id = dto.buyer_org_id
        self.seller_org_id = dto.seller_org_id
        self.currency = dto.currency
        for name in _LINK_COLUMNS:
            setattr(self, name, getattr(dto, name, None))
        self.created_at = dto.created_at
        self.updated_at = dto.updated_at
        payload = encode_document(dto)
        payload.pop("version", None)
        self.payload = payload

    def __repr__(self) -> str:
        return f"<DocumentModel {self.document_type} {self.reference_id or self.id}>"


class SequenceCounter(Base):
    """
    Named counter rows backing reference numbers.

    Row-level locking (``SELECT ... FOR UPDATE`` on PostgreSQL) serializes
    concurrent allocations for the same name.
    """

    __tablename__ = "procure_sequence_counters"

    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

"""
procure_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the pure engines: the status machine, the
    payment ledger, reference numbering, repositories and the
    ``DocumentService`` facade.  This is the only layer that reads the
    clock, holds a repository or talks to the renderer and file store.

Architecture position:
    Services -- stateful orchestration over engines + modules + kernel.

    Dependency direction:
        procure_services/ -> procure_engines/, procure_modules/, procure_kernel/ (allowed)
        procure_engines/  -> procure_services/ (FORBIDDEN)
        procure_kernel/   -> procure_services/ (FORBIDDEN, except create_tables)

Audit relevance:
    - This package is the canonical import surface for external consumers.
"""

from procure_kernel.logging_config import get_logger

logger = get_logger("services")

from procure_services.collaborators import DocumentRenderer, FileStore, InMemoryFileStore
from procure_services.document_service import DocumentService, resolve_totals
from procure_services.payment_ledger import PaymentLedger
from procure_services.reference_service import ReferenceService, company_initials
from procure_services.repository import DocumentRepository, InMemoryDocumentRepository
from procure_services.sql_repository import SqlDocumentRepository
from procure_services.status_machine import (
    DocumentStatusMachine,
    GuardExecutor,
    default_guard_executor,
)

__all__ = [
    "DocumentRenderer",
    "DocumentRepository",
    "DocumentService",
    "DocumentStatusMachine",
    "FileStore",
    "GuardExecutor",
    "InMemoryDocumentRepository",
    "InMemoryFileStore",
    "PaymentLedger",
    "ReferenceService",
    "SqlDocumentRepository",
    "company_initials",
    "default_guard_executor",
    "resolve_totals",
]

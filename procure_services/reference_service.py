"""
procure_services.reference_service -- Human-readable reference numbers.

Responsibility:
    Assigns ``reference_id`` on a document's first save, from the per-type
    template in ``EngineConfig`` and a sequence allocated by the repository
    per (document type, issuing organisation).

Invariants enforced:
    - A document that already has a reference keeps it.
    - Sequences never come from counting stored documents.
"""

from __future__ import annotations

import re

from procure_config.schema import EngineConfig
from procure_kernel.domain.documents import DocumentBase
from procure_kernel.logging_config import get_logger
from procure_services.repository import DocumentRepository

logger = get_logger("services.reference")

_WORD = re.compile(r"[A-Za-z0-9]+")


def company_initials(company_name: str | None, width: int = 3) -> str:
    """First letters of up to ``width`` words, upper-cased, padded with X.

    >>> company_initials("Acme Steel Works Ltd")
    'ASW'
    >>> company_initials("Globex")
    'GXX'
    """
    words = _WORD.findall(company_name or "")
    letters = "".join(word[0] for word in words[:width]).upper()
    return letters.ljust(width, "X")


class ReferenceService:
    """Renders reference ids; sequence allocation belongs to the repository."""

    def __init__(self, config: EngineConfig, repository: DocumentRepository):
        self._config = config
        self._repository = repository

    @staticmethod
    def sequence_name(document: DocumentBase) -> str:
        return f"{document.document_type.value}:{document.issuer_org_id}"

    def next_reference(self, document: DocumentBase) -> str:
        fmt = self._config.reference_format(document.document_type)
        seq = self._repository.next_sequence(self.sequence_name(document))
        reference = fmt.render(company_initials(document.issuer.company_name), seq)
        logger.debug(
            "reference_allocated",
            extra={
                "document_type": document.document_type.value,
                "document_id": str(document.id),
                "reference_id": reference,
            },
        )
        return reference

    def assign(self, document: DocumentBase) -> DocumentBase:
        """Return ``document`` with a reference id, allocating one if absent."""
        if document.reference_id:
            return document
        return document.evolve(reference_id=self.next_reference(document))

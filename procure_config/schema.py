"""
Configuration Schema (``procure_config.schema``).

Frozen dataclasses describing the engine configuration.  Every object
validates itself on construction and raises ``ValueError`` on bad input;
nothing here reads files.
"""

from __future__ import annotations

import string
from dataclasses import dataclass

from procure_kernel.domain.documents import DocumentType

_TEMPLATE_FIELDS = frozenset({"initials", "seq"})


@dataclass(frozen=True)
class ReferenceFormat:
    """Template for one document type's human-readable reference id."""

    document_type: DocumentType
    template: str

    def __post_init__(self) -> None:
        names = {
            name for _, name, _, _ in string.Formatter().parse(self.template) if name
        }
        if "seq" not in names:
            raise ValueError(
                f"Reference format for {self.document_type.value} must contain {{seq}}: "
                f"{self.template!r}"
            )
        unknown = names - _TEMPLATE_FIELDS
        if unknown:
            raise ValueError(
                f"Reference format for {self.document_type.value} uses unknown "
                f"fields {sorted(unknown)}"
            )

    def render(self, initials: str, seq: int) -> str:
        return self.template.format(initials=initials, seq=seq)


@dataclass(frozen=True)
class AttachmentRule:
    """Accepted content types and size ceiling for one kind of upload."""

    kind: str
    content_types: tuple[str, ...]
    max_bytes: int

    def __post_init__(self) -> None:
        if not self.content_types:
            raise ValueError(f"Attachment rule {self.kind!r} accepts no content types")
        if self.max_bytes <= 0:
            raise ValueError(f"Attachment rule {self.kind!r}: max_bytes must be positive")


@dataclass(frozen=True)
class EngineConfig:
    """
    The complete runtime configuration.

    Guarantees:
        - Every document type has a reference format.
        - ``receipt`` and ``signature`` attachment rules are present.
    """

    config_id: str
    version: int
    default_currency: str
    reference_formats: tuple[ReferenceFormat, ...]
    attachments: tuple[AttachmentRule, ...]
    checksum: str = ""

    def __post_init__(self) -> None:
        covered = {f.document_type for f in self.reference_formats}
        missing = [t.value for t in DocumentType if t not in covered]
        if missing:
            raise ValueError(f"Missing reference formats for: {', '.join(missing)}")
        kinds = {a.kind for a in self.attachments}
        for required in ("receipt", "signature"):
            if required not in kinds:
                raise ValueError(f"Missing attachment rule: {required}")
        if not self.default_currency:
            raise ValueError("default_currency must not be empty")

    def reference_format(self, document_type: DocumentType) -> ReferenceFormat:
        for fmt in self.reference_formats:
            if fmt.document_type is document_type:
                return fmt
        raise KeyError(document_type)

    def attachment_rule(self, kind: str) -> AttachmentRule:
        for rule in self.attachments:
            if rule.kind == kind:
                return rule
        raise KeyError(kind)

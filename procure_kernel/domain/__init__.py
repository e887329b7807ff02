"""Pure domain layer: documents, money, workflow value objects and clocks."""

from procure_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from procure_kernel.domain.documents import (
    DocumentBase,
    DocumentType,
    FinancialAdjustments,
    LineItem,
    PackagingDetails,
    PartySide,
    PartySnapshot,
    PaymentState,
    PricedDocumentBase,
    Totals,
)
from procure_kernel.domain.values import round2, round_line, to_decimal
from procure_kernel.domain.workflow import Guard, Performer, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "DocumentBase",
    "DocumentType",
    "FinancialAdjustments",
    "LineItem",
    "PackagingDetails",
    "PartySide",
    "PartySnapshot",
    "PaymentState",
    "PricedDocumentBase",
    "Totals",
    "round2",
    "round_line",
    "to_decimal",
    "Guard",
    "Performer",
    "Transition",
    "Workflow",
]

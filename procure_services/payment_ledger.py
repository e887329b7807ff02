"""
procure_services.payment_ledger -- Invoice payment application.

Responsibility:
    Validates a payment event against an invoice (state, actor, amount,
    receipt) using the pure ``procure_engines.payment`` arithmetic, records
    the new balance on the invoice and, for a full payment, fires the
    guarded ``pay`` transition through the status machine.

Architecture position:
    Services layer.  Thin coordinator: no Decimal arithmetic here.

Invariants enforced:
    - Payments are accepted only on PENDING or OVERDUE invoices.
    - After every payment ``paid_amount + remaining_amount == total_amount``
      (re-checked by the Invoice model itself).
    - A partial payment never changes the invoice status.
"""

from __future__ import annotations

from typing import Any

from procure_engines.payment import PaymentType, plan_payment
from procure_kernel.domain.documents import DocumentBase
from procure_kernel.exceptions import (
    InvalidTransitionError,
    UnauthorizedActionError,
    ValidationError,
)
from procure_kernel.logging_config import get_logger
from procure_modules.billing.models import Invoice, InvoiceStatus
from procure_services.status_machine import DocumentStatusMachine

logger = get_logger("services.payment_ledger")

PAYABLE_STATES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.OVERDUE})


class PaymentLedger:
    """
    Applies full and partial payments to invoices.

    Contract:
        ``apply_payment`` returns the updated invoice or raises; the input
        invoice is never mutated.

    Non-goals:
        - Does not store receipt files; the caller passes the reference
          returned by its file store.
    """

    def __init__(self, status_machine: DocumentStatusMachine | None = None):
        self._machine = status_machine or DocumentStatusMachine()

    def apply_payment(
        self,
        invoice: DocumentBase,
        payment_type: PaymentType | str,
        amount: Any = None,
        receipt_ref: str | None = None,
        actor_org_id: str | None = None,
    ) -> Invoice:
        """
        Apply a payment event.

        Args:
            actor_org_id: Paying organisation; defaults to the invoice's
                buyer.

        Raises:
            InvalidTransitionError: invoice already PAID or not payable in
                its current state.
            UnauthorizedActionError: actor is not the invoice's buyer.
            ValidationError: bad payment type, amount or missing receipt.
        """
        if not isinstance(invoice, Invoice):
            raise ValidationError(
                "document_type",
                "payments can only be applied to invoices",
                invoice.document_type.value,
                str(invoice.id),
            )
        kind = PaymentType.parse(payment_type)
        actor = actor_org_id or invoice.buyer_org_id
        invoice_id = str(invoice.id)
        state = invoice.status

        if state is InvoiceStatus.PAID:
            raise InvalidTransitionError(
                invoice.document_type.value, invoice_id, f"{kind.value}_payment",
                state.value, "invoice is already paid",
            )
        if state not in PAYABLE_STATES:
            raise InvalidTransitionError(
                invoice.document_type.value, invoice_id, f"{kind.value}_payment",
                state.value, "payments are accepted only on PENDING or OVERDUE invoices",
            )
        if actor != invoice.buyer_org_id:
            raise UnauthorizedActionError(
                invoice.document_type.value, invoice_id, f"{kind.value}_payment",
                actor, "buyer (counterparty)",
            )

        plan = plan_payment(invoice.payment, kind, amount, receipt_ref, invoice_id)
        updated = invoice.evolve(
            payment=plan.to_state(invoice.payment),
            updated_at=self._machine.clock.now(),
        )
        if plan.settles:
            updated = self._machine.transition(updated, "pay", actor)

        logger.info(
            "payment_applied",
            extra={
                "invoice_id": invoice_id,
                "payment_type": kind.value,
                "amount": str(plan.amount),
                "paid_amount": str(plan.paid_amount),
                "remaining_amount": str(plan.remaining_amount),
                "status": updated.status.value,
            },
        )
        return updated

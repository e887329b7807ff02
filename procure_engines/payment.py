"""
Payment Engine - validate a payment event against an invoice balance.

Pure arithmetic, no I/O and no status changes: ``plan_payment`` answers
"what would the balance be after this payment, and does it settle the
invoice?".  Applying the plan (and firing the settle transition) is the job
of ``procure_services.payment_ledger``.

Rules:
    full     amount is the remaining balance; receipt optional; settles.
    partial  amount required, > 0 and strictly less than the remaining
             balance; receipt reference required; never settles.

All amounts are rounded half-to-even to two places before comparison.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from procure_engines.tracer import traced_engine
from procure_kernel.domain.documents import PaymentState
from procure_kernel.domain.values import ZERO, round2, to_decimal
from procure_kernel.exceptions import ValidationError
from procure_kernel.logging_config import get_logger

logger = get_logger("engines.payment")

RECEIPT_REQUIRED_MESSAGE = "receipt required for partial payment"


class PaymentType(str, Enum):
    """How much of the balance a payment event settles."""

    FULL = "full"
    PARTIAL = "partial"

    @classmethod
    def parse(cls, value: "PaymentType | str") -> "PaymentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(
                "payment_type", "must be 'full' or 'partial'", value
            ) from None


@dataclass(frozen=True)
class PaymentPlan:
    """Outcome of a validated payment event."""
    payment_type: PaymentType
    amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    receipt_reference: str | None
    settles: bool

    def to_state(self, previous: PaymentState) -> PaymentState:
        return PaymentState(
            paid_amount=self.paid_amount,
            remaining_amount=self.remaining_amount,
            payment_receipt_reference=(
                self.receipt_reference or previous.payment_receipt_reference
            ),
        )


@traced_engine(
    "payment",
    "1.0",
    fingerprint_fields=("state", "payment_type", "amount"),
)
def plan_payment(
    state: PaymentState,
    payment_type: PaymentType | str,
    amount: Any = None,
    receipt_ref: str | None = None,
    invoice_id: str | None = None,
) -> PaymentPlan:
    """
    Validate a payment against ``state`` and return the resulting balance.

    Raises:
        ValidationError: unknown payment type, missing or out-of-range
            amount, missing receipt on a partial payment, or an invoice
            whose balance has not been opened yet.
    """
    kind = PaymentType.parse(payment_type)
    if state.remaining_amount is None:
        raise ValidationError(
            "remaining_amount",
            "invoice totals have not been issued",
            document_id=invoice_id,
        )
    remaining = round2(state.remaining_amount)
    paid = round2(state.paid_amount)
    receipt = receipt_ref.strip() if receipt_ref and receipt_ref.strip() else None

    if kind is PaymentType.FULL:
        if amount is not None:
            stated = round2(to_decimal(amount, "amount", document_id=invoice_id))
            if stated != remaining:
                raise ValidationError(
                    "amount",
                    f"full payment must equal the remaining balance {remaining}",
                    stated,
                    invoice_id,
                )
        return PaymentPlan(
            payment_type=kind,
            amount=remaining,
            paid_amount=round2(paid + remaining),
            remaining_amount=round2(ZERO),
            receipt_reference=receipt,
            settles=True,
        )

    if amount is None:
        raise ValidationError(
            "amount", "is required for partial payment", document_id=invoice_id
        )
    value = round2(to_decimal(amount, "amount", document_id=invoice_id))
    if value <= ZERO:
        raise ValidationError("amount", "must be greater than 0", value, invoice_id)
    if value >= remaining:
        logger.warning(
            "partial_payment_not_below_balance",
            extra={"invoice_id": invoice_id, "amount": str(value), "remaining": str(remaining)},
        )
        raise ValidationError(
            "amount",
            f"partial payment must be less than the remaining balance {remaining}; "
            "use a full payment instead",
            value,
            invoice_id,
        )
    if receipt is None:
        raise ValidationError(
            "receipt_ref", RECEIPT_REQUIRED_MESSAGE, receipt_ref, invoice_id
        )

    return PaymentPlan(
        payment_type=kind,
        amount=value,
        paid_amount=round2(paid + value),
        remaining_amount=round2(remaining - value),
        receipt_reference=receipt,
        settles=False,
    )

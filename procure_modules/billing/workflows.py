"""
Billing Workflows.

State machine for invoices.  ``pay`` is guarded: it fires only when the
payment ledger has brought the remaining balance to zero.
"""

from procure_kernel.domain.workflow import Guard, Performer, Transition, Workflow
from procure_kernel.logging_config import get_logger
from procure_modules.billing.models import InvoiceStatus

logger = get_logger("modules.billing.workflows")

ISSUER = Performer.ISSUER
COUNTERPARTY = Performer.COUNTERPARTY


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

BALANCE_SETTLED = Guard(
    name="balance_settled",
    description="Remaining balance is zero after a full payment",
)

logger.info(
    "billing_workflow_guards_defined",
    extra={"guards": [BALANCE_SETTLED.name]},
)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

_I = InvoiceStatus

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Invoice issued by the seller and settled by the buyer",
    initial_state=_I.DRAFT.value,
    states=tuple(s.value for s in InvoiceStatus),
    transitions=(
        Transition(
            _I.DRAFT.value, _I.PENDING.value, action="submit",
            performed_by=ISSUER, freezes_totals=True,
        ),
        Transition(
            _I.DRAFT.value, _I.ACCEPTED.value, action="accept",
            performed_by=COUNTERPARTY, freezes_totals=True,
        ),
        Transition(
            _I.DRAFT.value, _I.REJECTED.value, action="reject",
            performed_by=COUNTERPARTY, freezes_totals=True,
        ),
        Transition(_I.PENDING.value, _I.ACCEPTED.value, action="accept", performed_by=COUNTERPARTY),
        Transition(_I.PENDING.value, _I.REJECTED.value, action="reject", performed_by=COUNTERPARTY),
        Transition(_I.PENDING.value, _I.OVERDUE.value, action="mark_overdue", performed_by=ISSUER),
        Transition(
            _I.PENDING.value, _I.PAID.value, action="pay",
            performed_by=COUNTERPARTY, guard=BALANCE_SETTLED,
        ),
        Transition(
            _I.OVERDUE.value, _I.PAID.value, action="pay",
            performed_by=COUNTERPARTY, guard=BALANCE_SETTLED,
        ),
    ),
    terminal_states=(_I.REJECTED.value, _I.PAID.value),
    editable_states=(_I.DRAFT.value,),
)

logger.info(
    "billing_invoice_workflow_registered",
    extra={
        "workflow_name": INVOICE_WORKFLOW.name,
        "state_count": len(INVOICE_WORKFLOW.states),
        "transition_count": len(INVOICE_WORKFLOW.transitions),
        "initial_state": INVOICE_WORKFLOW.initial_state,
    },
)

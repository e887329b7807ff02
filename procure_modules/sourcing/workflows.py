"""
Sourcing Workflows.

State machines for RFQs and quotations.  States are the status enum values.
"""

from procure_kernel.domain.workflow import Performer, Transition, Workflow
from procure_kernel.logging_config import get_logger
from procure_modules.sourcing.models import QuotationStatus, RFQStatus

logger = get_logger("modules.sourcing.workflows")

ISSUER = Performer.ISSUER
COUNTERPARTY = Performer.COUNTERPARTY


# -----------------------------------------------------------------------------
# RFQ Workflow
# -----------------------------------------------------------------------------

_R = RFQStatus

RFQ_WORKFLOW = Workflow(
    name="rfq",
    description="Request for quotation, issued by the buyer",
    initial_state=_R.DRAFT.value,
    states=tuple(s.value for s in RFQStatus),
    transitions=(
        Transition(_R.DRAFT.value, _R.PENDING.value, action="submit", performed_by=ISSUER),
        Transition(_R.PENDING.value, _R.APPROVED.value, action="approve", performed_by=COUNTERPARTY),
        Transition(_R.PENDING.value, _R.REJECTED.value, action="reject", performed_by=COUNTERPARTY),
        Transition(_R.APPROVED.value, _R.COMPLETED.value, action="complete", performed_by=ISSUER),
    ),
    terminal_states=(_R.REJECTED.value, _R.COMPLETED.value),
    editable_states=(_R.DRAFT.value,),
)

logger.info(
    "sourcing_rfq_workflow_registered",
    extra={
        "workflow_name": RFQ_WORKFLOW.name,
        "state_count": len(RFQ_WORKFLOW.states),
        "transition_count": len(RFQ_WORKFLOW.transitions),
        "initial_state": RFQ_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Quotation Workflow
# -----------------------------------------------------------------------------

_Q = QuotationStatus

# SENT and PENDING are both "awaiting the buyer"; they stay distinct states.
QUOTATION_WORKFLOW = Workflow(
    name="quotation",
    description="Priced offer, issued by the seller",
    initial_state=_Q.DRAFT.value,
    states=tuple(s.value for s in QuotationStatus),
    transitions=(
        Transition(
            _Q.DRAFT.value, _Q.SENT.value, action="send",
            performed_by=ISSUER, freezes_totals=True,
        ),
        Transition(_Q.SENT.value, _Q.ACCEPTED.value, action="accept", performed_by=COUNTERPARTY),
        Transition(_Q.SENT.value, _Q.REJECTED.value, action="reject", performed_by=COUNTERPARTY),
        Transition(_Q.PENDING.value, _Q.ACCEPTED.value, action="accept", performed_by=COUNTERPARTY),
        Transition(_Q.PENDING.value, _Q.REJECTED.value, action="reject", performed_by=COUNTERPARTY),
    ),
    terminal_states=(_Q.ACCEPTED.value, _Q.REJECTED.value),
    editable_states=(_Q.DRAFT.value,),
)

logger.info(
    "sourcing_quotation_workflow_registered",
    extra={
        "workflow_name": QUOTATION_WORKFLOW.name,
        "state_count": len(QUOTATION_WORKFLOW.states),
        "transition_count": len(QUOTATION_WORKFLOW.transitions),
        "initial_state": QUOTATION_WORKFLOW.initial_state,
    },
)

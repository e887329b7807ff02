"""
Purchasing Workflows.

State machines for contracts and purchase orders.
"""

from procure_kernel.domain.workflow import Performer, Transition, Workflow
from procure_kernel.logging_config import get_logger
from procure_modules.purchasing.models import ContractStatus, POStatus

logger = get_logger("modules.purchasing.workflows")

ISSUER = Performer.ISSUER
COUNTERPARTY = Performer.COUNTERPARTY


# -----------------------------------------------------------------------------
# Contract Workflow
# -----------------------------------------------------------------------------

_C = ContractStatus

# PENDING_CHANGES -> SENT is the only transition that returns to an earlier state.
CONTRACT_WORKFLOW = Workflow(
    name="contract",
    description="Contract offered by the seller for the buyer's signature",
    initial_state=_C.DRAFT.value,
    states=tuple(s.value for s in ContractStatus),
    transitions=(
        Transition(
            _C.DRAFT.value, _C.SENT.value, action="send",
            performed_by=ISSUER, freezes_totals=True,
        ),
        Transition(_C.SENT.value, _C.SIGNED.value, action="sign", performed_by=COUNTERPARTY),
        Transition(_C.SENT.value, _C.REJECTED.value, action="reject", performed_by=COUNTERPARTY),
        Transition(
            _C.SENT.value, _C.PENDING_CHANGES.value, action="request_changes",
            performed_by=COUNTERPARTY,
        ),
        Transition(
            _C.PENDING_CHANGES.value, _C.SENT.value, action="resubmit",
            performed_by=ISSUER, freezes_totals=True,
        ),
    ),
    terminal_states=(_C.SIGNED.value, _C.REJECTED.value),
    editable_states=(_C.DRAFT.value, _C.PENDING_CHANGES.value),
)

logger.info(
    "purchasing_contract_workflow_registered",
    extra={
        "workflow_name": CONTRACT_WORKFLOW.name,
        "state_count": len(CONTRACT_WORKFLOW.states),
        "transition_count": len(CONTRACT_WORKFLOW.transitions),
        "initial_state": CONTRACT_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

_P = POStatus

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order issued by the buyer",
    initial_state=_P.DRAFT.value,
    states=tuple(s.value for s in POStatus),
    transitions=(
        Transition(
            _P.DRAFT.value, _P.PENDING.value, action="submit",
            performed_by=ISSUER, freezes_totals=True,
        ),
        Transition(_P.PENDING.value, _P.APPROVED.value, action="approve", performed_by=COUNTERPARTY),
        Transition(_P.PENDING.value, _P.REJECTED.value, action="reject", performed_by=COUNTERPARTY),
        Transition(_P.APPROVED.value, _P.COMPLETED.value, action="complete", performed_by=ISSUER),
    ),
    terminal_states=(_P.REJECTED.value, _P.COMPLETED.value),
    editable_states=(_P.DRAFT.value,),
)

logger.info(
    "purchasing_purchase_order_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)

"""
Fulfillment Workflows.

Delivery notes and packing lists start out already issued (PENDING); the
buyer only responds to them.
"""

from procure_kernel.domain.workflow import Performer, Transition, Workflow
from procure_kernel.logging_config import get_logger
from procure_modules.fulfillment.models import DeliveryNoteStatus, PackingListStatus

logger = get_logger("modules.fulfillment.workflows")

COUNTERPARTY = Performer.COUNTERPARTY


# -----------------------------------------------------------------------------
# Delivery Note Workflow
# -----------------------------------------------------------------------------

_D = DeliveryNoteStatus

DELIVERY_NOTE_WORKFLOW = Workflow(
    name="delivery_note",
    description="Dispatch notice, issued by the seller",
    initial_state=_D.PENDING.value,
    states=tuple(s.value for s in DeliveryNoteStatus),
    transitions=(
        Transition(_D.PENDING.value, _D.ACKNOWLEDGED.value, action="acknowledge", performed_by=COUNTERPARTY),
        Transition(_D.IN_TRANSIT.value, _D.ACKNOWLEDGED.value, action="acknowledge", performed_by=COUNTERPARTY),
        Transition(_D.PENDING.value, _D.DISPUTED.value, action="dispute", performed_by=COUNTERPARTY),
        Transition(_D.IN_TRANSIT.value, _D.DISPUTED.value, action="dispute", performed_by=COUNTERPARTY),
    ),
    terminal_states=(_D.ACKNOWLEDGED.value, _D.DISPUTED.value),
    editable_states=(_D.PENDING.value,),
)

logger.info(
    "fulfillment_delivery_note_workflow_registered",
    extra={
        "workflow_name": DELIVERY_NOTE_WORKFLOW.name,
        "state_count": len(DELIVERY_NOTE_WORKFLOW.states),
        "transition_count": len(DELIVERY_NOTE_WORKFLOW.transitions),
        "initial_state": DELIVERY_NOTE_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Packing List Workflow
# -----------------------------------------------------------------------------

_L = PackingListStatus

PACKING_LIST_WORKFLOW = Workflow(
    name="packing_list",
    description="Shipment packing breakdown, issued by the seller",
    initial_state=_L.PENDING.value,
    states=tuple(s.value for s in PackingListStatus),
    transitions=(
        Transition(_L.PENDING.value, _L.ACKNOWLEDGED.value, action="acknowledge", performed_by=COUNTERPARTY),
        Transition(_L.RECEIVED.value, _L.ACKNOWLEDGED.value, action="acknowledge", performed_by=COUNTERPARTY),
        Transition(_L.APPROVED.value, _L.ACKNOWLEDGED.value, action="acknowledge", performed_by=COUNTERPARTY),
    ),
    terminal_states=(_L.ACKNOWLEDGED.value, _L.REJECTED.value),
    editable_states=(_L.PENDING.value,),
)

logger.info(
    "fulfillment_packing_list_workflow_registered",
    extra={
        "workflow_name": PACKING_LIST_WORKFLOW.name,
        "state_count": len(PACKING_LIST_WORKFLOW.states),
        "transition_count": len(PACKING_LIST_WORKFLOW.transitions),
        "initial_state": PACKING_LIST_WORKFLOW.initial_state,
    },
)

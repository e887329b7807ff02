"""
Workflow Transition Tests.

Every document workflow must have:
1. An initial state that exists in states
2. Transitions that reference declared states only
3. Terminal states with no outgoing transitions

And through the status machine:
4. Every declared transition succeeds for the entitled party
5. The other party is refused
6. Every (type, state, action) triple not in the table is refused
"""

import pytest

from procure_engines.totals import compute_totals
from procure_kernel.domain.documents import PaymentState
from procure_kernel.domain.workflow import Performer
from procure_kernel.exceptions import InvalidTransitionError, UnauthorizedActionError
from procure_modules.billing.models import Invoice
from procure_modules.billing.workflows import INVOICE_WORKFLOW
from procure_modules.fulfillment.workflows import DELIVERY_NOTE_WORKFLOW, PACKING_LIST_WORKFLOW
from procure_modules.purchasing.workflows import CONTRACT_WORKFLOW, PURCHASE_ORDER_WORKFLOW
from procure_modules.registry import DOCUMENT_KINDS
from procure_modules.sourcing.workflows import QUOTATION_WORKFLOW, RFQ_WORKFLOW

ALL_WORKFLOWS = [
    ("RFQ", RFQ_WORKFLOW),
    ("Quotation", QUOTATION_WORKFLOW),
    ("Contract", CONTRACT_WORKFLOW),
    ("Purchase Order", PURCHASE_ORDER_WORKFLOW),
    ("Delivery Note", DELIVERY_NOTE_WORKFLOW),
    ("Packing List", PACKING_LIST_WORKFLOW),
    ("Invoice", INVOICE_WORKFLOW),
]

ALL_ACTIONS = sorted(
    set().union(*(workflow.actions for _, workflow in ALL_WORKFLOWS)) | {"archive", "reopen"}
)

INVALID_TRIPLES = [
    (kind.document_type, state, action)
    for kind in DOCUMENT_KINDS.values()
    for state in kind.workflow.states
    for action in ALL_ACTIONS
    if kind.workflow.find_transition(state, action) is None
]

DECLARED_TRANSITIONS = [
    pytest.param(kind.document_type, t, id=f"{kind.document_type.value}:{t.from_state}:{t.action}")
    for kind in DOCUMENT_KINDS.values()
    for t in kind.workflow.transitions
]


def _document_in_state(make_document, document_type, state):
    kind = DOCUMENT_KINDS[document_type]
    status = type(kind.model.__dataclass_fields__["status"].default)(state)
    return make_document(kind.model, status=status)


def _settled(invoice: Invoice) -> Invoice:
    totals = compute_totals(invoice.lines, invoice.adjustments)
    return invoice.evolve(
        totals=totals,
        payment=PaymentState(paid_amount=totals.total_amount, remaining_amount="0"),
    )


class TestWorkflowShape:

    @pytest.mark.parametrize("name,workflow", ALL_WORKFLOWS)
    def test_initial_state_exists(self, name, workflow):
        assert workflow.initial_state in workflow.states

    @pytest.mark.parametrize("name,workflow", ALL_WORKFLOWS)
    def test_transition_states_exist(self, name, workflow):
        for transition in workflow.transitions:
            assert transition.from_state in workflow.states, name
            assert transition.to_state in workflow.states, name

    @pytest.mark.parametrize("name,workflow", ALL_WORKFLOWS)
    def test_terminal_states_have_no_exits(self, name, workflow):
        for state in workflow.terminal_states:
            assert workflow.transitions_from(state) == (), f"{name} {state}"

    @pytest.mark.parametrize("name,workflow", ALL_WORKFLOWS)
    def test_initial_state_is_editable(self, name, workflow):
        assert workflow.initial_state in workflow.editable_states

    def test_workflow_status_enum_matches_states(self):
        for kind in DOCUMENT_KINDS.values():
            enum_cls = type(kind.model.__dataclass_fields__["status"].default)
            assert tuple(s.value for s in enum_cls) == kind.workflow.states

    def test_rejected_states_are_terminal(self):
        for kind in DOCUMENT_KINDS.values():
            if "REJECTED" in kind.workflow.states:
                assert "REJECTED" in kind.workflow.terminal_states

    def test_quotation_sent_and_pending_are_distinct(self):
        assert {"SENT", "PENDING"} <= set(QUOTATION_WORKFLOW.states)

    def test_only_invoice_pay_is_guarded(self):
        guarded = [
            (kind.document_type.value, t.action)
            for kind in DOCUMENT_KINDS.values()
            for t in kind.workflow.transitions
            if t.guard is not None
        ]
        assert set(guarded) == {("invoice", "pay")}


class TestDeclaredTransitions:

    @pytest.mark.parametrize("document_type,transition", DECLARED_TRANSITIONS)
    def test_entitled_party_succeeds(self, make_document, machine, document_type, transition):
        document = _document_in_state(make_document, document_type, transition.from_state)
        if transition.guard is not None:
            document = _settled(document)
        actor = (
            document.issuer_org_id
            if transition.performed_by is Performer.ISSUER
            else document.counterparty_org_id
        )

        updated = machine.transition(document, transition.action, actor)

        assert updated.status.value == transition.to_state
        assert updated.id == document.id
        assert document.status.value == transition.from_state

    @pytest.mark.parametrize("document_type,transition", DECLARED_TRANSITIONS)
    def test_other_party_refused(self, make_document, machine, document_type, transition):
        document = _document_in_state(make_document, document_type, transition.from_state)
        wrong = (
            document.counterparty_org_id
            if transition.performed_by is Performer.ISSUER
            else document.issuer_org_id
        )
        with pytest.raises(UnauthorizedActionError) as exc_info:
            machine.transition(document, transition.action, wrong)
        assert exc_info.value.actor_org_id == wrong


class TestUndeclaredTransitions:

    @pytest.mark.parametrize("document_type,state,action", INVALID_TRIPLES)
    def test_refused(self, make_document, machine, document_type, state, action):
        document = _document_in_state(make_document, document_type, state)
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.transition(document, action, document.issuer_org_id)
        assert exc_info.value.current_state == state
        assert exc_info.value.action == action

"""
procure_services.status_machine -- Document status transitions.

Responsibility:
    Executes the per-type workflow tables declared in ``procure_modules``.
    For each requested action it finds the transition, checks that the
    acting organisation is the entitled party, evaluates the transition's
    guard, validates the document when it leaves its initial state, freezes
    totals on issuing transitions, and stamps ``updated_at``.

Architecture position:
    Services layer.  May import from procure_engines (pure engines),
    procure_modules (models, workflows, registry) and procure_kernel.
    Performs no I/O; persistence is the caller's concern.

Invariants enforced:
    - Only transitions present in the workflow table succeed; every other
      (state, action) pair raises InvalidTransitionError.
    - The issuer never performs a counterparty action and vice versa.
    - The caller's document is never mutated; a new value is returned.
    - Every attempt emits one ``workflow_transition`` trace record.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from procure_engines.line_items import LineItemSet
from procure_engines.totals import compute_totals
from procure_kernel.domain.clock import Clock, SystemClock
from procure_kernel.domain.documents import DocumentBase, PaymentState
from procure_kernel.domain.values import ZERO
from procure_kernel.domain.workflow import Guard, Performer, Transition
from procure_kernel.exceptions import (
    InvalidTransitionError,
    UnauthorizedActionError,
    ValidationError,
)
from procure_kernel.logging_config import LogContext, get_logger
from procure_modules.billing.models import Invoice
from procure_modules.registry import DocumentKind, kind_of

logger = get_logger("services.status_machine")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_UNAUTHORIZED = "unauthorized"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_VALIDATION_FAILED = "validation_failed"

# Fields an edit may never touch, whatever the document type.
PROTECTED_FIELDS = frozenset({
    "id",
    "reference_id",
    "status",
    "buyer_org_id",
    "seller_org_id",
    "created_at",
    "updated_at",
    "version",
    "totals",
    "payment",
})


# ---------------------------------------------------------------------------
# Guard evaluation
# ---------------------------------------------------------------------------


def _balance_settled(document: Any) -> bool:
    """Invoice pay: the ledger has brought the remaining balance to zero."""
    payment = getattr(document, "payment", None)
    if payment is None or payment.remaining_amount is None:
        return False
    return payment.remaining_amount == ZERO


class GuardExecutor:
    """Evaluates workflow guards against a context (normally the document).

    Guards are declared on transitions (name + description).  This executor
    holds the evaluation logic per guard name.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any], bool]) -> None:
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: Any = None) -> bool:
        """Returns True if the guard passes; unknown guards fail closed."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return False
        return bool(fn(context))


def default_guard_executor() -> GuardExecutor:
    """A GuardExecutor with the built-in evaluators registered."""
    ex = GuardExecutor()
    ex.register("balance_settled", _balance_settled)
    return ex


# ---------------------------------------------------------------------------
# Status machine
# ---------------------------------------------------------------------------


class DocumentStatusMachine:
    """
    Applies workflow transitions to documents.

    Contract:
        ``transition`` returns the document in its new state or raises.
        ``edit`` applies issuer field changes while the document is still
        editable.  ``available_actions`` lists what an organisation may do
        next.

    Non-goals:
        - Does not persist anything.
        - Does not apply payments; ``PaymentLedger`` drives the invoice
          ``pay`` transition.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        guards: GuardExecutor | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self.clock = clock or SystemClock()
        self._guards = guards or default_guard_executor()
        self._outcome_sink = outcome_sink

    # -- transitions --------------------------------------------------------

    def transition(
        self,
        document: DocumentBase,
        action: str,
        actor_org_id: str,
        *,
        context: Any = None,
    ) -> DocumentBase:
        """
        Fire ``action`` on ``document`` on behalf of ``actor_org_id``.

        Args:
            context: Guard context; defaults to the document itself.

        Raises:
            InvalidTransitionError: no such transition from the current
                state, or its guard is not satisfied.
            UnauthorizedActionError: the actor is not the entitled party.
            ValidationError: the document cannot leave its initial state.
        """
        t0 = time.monotonic()
        kind = kind_of(document)
        workflow = kind.workflow
        from_state = document.status.value
        doc_type = document.document_type.value
        doc_id = str(document.id)

        def trace(outcome: str, reason: str, to_state: str | None = None) -> None:
            self._emit_trace(
                kind, document, action, from_state, outcome, reason,
                (time.monotonic() - t0) * 1000, actor_org_id, to_state,
            )

        found = workflow.find_transition(from_state, action)
        if found is None:
            reason = f"No transition from '{from_state}' via action '{action}'"
            trace(OUTCOME_NO_TRANSITION, reason)
            raise InvalidTransitionError(doc_type, doc_id, action, from_state, reason)

        self._authorize(document, found, actor_org_id, trace)

        if found.guard is not None:
            guard_context = document if context is None else context
            if not self._guards.evaluate(found.guard, guard_context):
                reason = f"Guard '{found.guard.name}' not satisfied: {found.guard.description}"
                trace(OUTCOME_GUARD_FAILED, reason)
                raise InvalidTransitionError(doc_type, doc_id, action, from_state, reason)

        if from_state == workflow.initial_state:
            try:
                self._validate_for_submission(document, kind)
            except ValidationError as exc:
                trace(OUTCOME_VALIDATION_FAILED, str(exc))
                raise

        changes: dict[str, Any] = {
            "status": type(document.status)(found.to_state),
            "updated_at": self.clock.now(),
        }
        if found.freezes_totals:
            changes.update(self._freeze_totals(document))

        updated = document.evolve(**changes)
        trace(OUTCOME_SUCCESS, "ok", found.to_state)
        return updated

    def available_actions(
        self, document: DocumentBase, actor_org_id: str
    ) -> tuple[str, ...]:
        """Actions ``actor_org_id`` is entitled to request from the current state.

        Guarded actions are listed; their guard is evaluated on execution.
        """
        workflow = kind_of(document).workflow
        actions: list[str] = []
        for t in workflow.transitions_from(document.status.value):
            if self._entitled_org(document, t) == actor_org_id and t.action not in actions:
                actions.append(t.action)
        return tuple(actions)

    # -- edits --------------------------------------------------------------

    def edit(
        self,
        document: DocumentBase,
        actor_org_id: str,
        **changes: Any,
    ) -> DocumentBase:
        """
        Apply issuer edits while the document is in an editable state.

        Lines are renumbered 1..N.  Status, identity, linkage, frozen totals
        and payment state cannot be edited.

        Raises:
            UnauthorizedActionError: actor is not the issuer.
            InvalidTransitionError: document is no longer editable.
            ValidationError: protected or unknown field, or invalid value.
        """
        kind = kind_of(document)
        doc_type = document.document_type.value
        doc_id = str(document.id)
        state = document.status.value

        if actor_org_id != document.issuer_org_id:
            raise UnauthorizedActionError(
                doc_type, doc_id, "edit", actor_org_id, document.issuer_side.value
            )
        if state not in kind.workflow.editable_states:
            raise InvalidTransitionError(
                doc_type, doc_id, "edit", state,
                f"{doc_type} is not editable in state {state}",
            )

        allowed = document.field_names() - PROTECTED_FIELDS - set(document.link_fields)
        for name in changes:
            if name not in allowed:
                message = (
                    "cannot be edited"
                    if name in document.field_names()
                    else f"is not a field of {doc_type}"
                )
                raise ValidationError(name, message, changes[name], doc_id)

        if "lines" in changes:
            changes["lines"] = LineItemSet.of(changes["lines"], kind.line_policy).lines

        updated = document.evolve(**changes, updated_at=self.clock.now())
        logger.info(
            "document_edited",
            extra={
                "document_type": doc_type,
                "document_id": doc_id,
                "fields": sorted(changes),
            },
        )
        return updated

    # -- internals ----------------------------------------------------------

    @staticmethod
    def _entitled_org(document: DocumentBase, transition: Transition) -> str:
        if transition.performed_by is Performer.ISSUER:
            return document.issuer_org_id
        return document.counterparty_org_id

    def _authorize(
        self,
        document: DocumentBase,
        transition: Transition,
        actor_org_id: str,
        trace: Callable[..., None],
    ) -> None:
        if actor_org_id == self._entitled_org(document, transition):
            return
        side = document.issuer_side
        if transition.performed_by is Performer.COUNTERPARTY:
            side = side.other
        required = f"{side.value} ({transition.performed_by.value})"
        trace(OUTCOME_UNAUTHORIZED, f"only the {required} may {transition.action}")
        raise UnauthorizedActionError(
            document.document_type.value,
            str(document.id),
            transition.action,
            actor_org_id,
            required,
        )

    @staticmethod
    def _validate_for_submission(document: DocumentBase, kind: DocumentKind) -> None:
        doc_id = str(document.id)
        LineItemSet.of(document.lines, kind.line_policy).validate_for_submission(doc_id)
        if not document.buyer.is_identified:
            raise ValidationError("buyer.company_name", "is required", document_id=doc_id)
        if not document.seller.is_identified:
            raise ValidationError("seller.company_name", "is required", document_id=doc_id)

    @staticmethod
    def _freeze_totals(document: DocumentBase) -> dict[str, Any]:
        """Snapshot totals into the document; open the invoice balance."""
        totals = compute_totals(document.lines, document.financial_adjustments())
        frozen: dict[str, Any] = {"totals": totals}
        if isinstance(document, Invoice) and document.payment.paid_amount == ZERO:
            frozen["payment"] = PaymentState(
                paid_amount=ZERO,
                remaining_amount=totals.total_amount,
                payment_receipt_reference=document.payment.payment_receipt_reference,
            )
        logger.info(
            "totals_frozen",
            extra={
                "document_type": document.document_type.value,
                "document_id": str(document.id),
                "subtotal": str(totals.subtotal),
                "total_amount": str(totals.total_amount),
            },
        )
        return frozen

    def _emit_trace(
        self,
        kind: DocumentKind,
        document: DocumentBase,
        action: str,
        from_state: str,
        outcome: str,
        reason: str,
        duration_ms: float,
        actor_org_id: str,
        to_state: str | None = None,
    ) -> None:
        """Emit a structured workflow transition record."""
        record: dict[str, Any] = {
            "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
            "ts": self.clock.now().isoformat(),
            "workflow": kind.workflow.name,
            "action": action,
            "document_type": kind.document_type.value,
            "entity_id": str(document.id),
            "reference_id": document.reference_id,
            "actor": actor_org_id,
            "from_state": from_state,
            "outcome": outcome,
            "reason": reason,
            "duration_ms": round(duration_ms, 3),
        }
        if to_state is not None:
            record["to_state"] = to_state
        record.update(LogContext.get_all())
        if outcome == OUTCOME_SUCCESS:
            logger.info("workflow_transition", extra=record)
        else:
            logger.warning("workflow_transition", extra=record)
        if self._outcome_sink is not None:
            self._outcome_sink(record)

"""
Workflow value objects (``procure_kernel.domain.workflow``).

Each document module (sourcing, purchasing, fulfillment, billing) declares
its lifecycle as a ``Workflow`` table of ``Transition`` rows.  Nothing here
executes a transition; ``procure_services.status_machine`` does.

A workflow is checked when it is built:

* the initial state and every transition endpoint are declared states;
* no two transitions share a ``(from_state, action)`` pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Performer(str, Enum):
    """Which side of a document may fire a transition."""

    ISSUER = "issuer"
    COUNTERPARTY = "counterparty"


@dataclass(frozen=True)
class Guard:
    """Named precondition on a transition.

    Only a name here; ``GuardExecutor`` in the status machine evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """One legal move: ``action`` takes ``from_state`` to ``to_state``.

    ``performed_by`` names the side entitled to fire it.  ``freezes_totals``
    marks issuing transitions that snapshot the financial totals into the
    document.
    """
    from_state: str
    to_state: str
    action: str
    performed_by: Performer = Performer.ISSUER
    guard: Guard | None = None
    freezes_totals: bool = False


@dataclass(frozen=True)
class Workflow:
    """Lifecycle of one document type.

    ``editable_states`` are the states in which the issuer may still edit
    the document's own fields.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()
    editable_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} "
                "is not a declared state"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action!r} references "
                    f"undeclared state ({t.from_state} -> {t.to_state})"
                )
            key = (t.from_state, t.action)
            if key in seen:
                raise ValueError(
                    f"Workflow {self.name}: duplicate transition for {key}"
                )
            seen.add(key)

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``(from_state, action)`` or None."""
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def transitions_from(self, state: str) -> tuple[Transition, ...]:
        return tuple(t for t in self.transitions if t.from_state == state)

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(t.action for t in self.transitions)

"""
Canonical workflow types (``nexus_kernel.workflow``).

Responsibility
--------------
Pure value objects for status state machines. Used by every package that
has a lifecycle (SAR, disbursement, settlement batch, tenant) so that
Guard, Transition and Workflow are defined once and the legality check is
the same everywhere.

Architecture position
---------------------
**Kernel layer** -- pure value objects. ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from nexus_kernel.exceptions import InvalidTransitionError


def _state(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Descriptive only: the owning service evaluates the condition.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    requires_approval: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Guarantees: ``initial_state`` is a member of ``states`` and every
    transition references declared states.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} is not declared"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action!r} references an undeclared state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state!r} has an outgoing transition"
                )

    def allowed_targets(self, state: str | Enum) -> frozenset[str]:
        current = _state(state)
        return frozenset(t.to_state for t in self.transitions if t.from_state == current)

    def can_transition(self, from_state: str | Enum, to_state: str | Enum) -> bool:
        return _state(to_state) in self.allowed_targets(from_state)

    def transition_for(self, from_state: str | Enum, to_state: str | Enum) -> Transition | None:
        src, dst = _state(from_state), _state(to_state)
        for t in self.transitions:
            if t.from_state == src and t.to_state == dst:
                return t
        return None

    def is_terminal(self, state: str | Enum) -> bool:
        return _state(state) in self.terminal_states

    def assert_transition(
        self,
        from_state: str | Enum,
        to_state: str | Enum,
        *,
        entity: str | None = None,
    ) -> Transition:
        """Return the matching transition or raise ``InvalidTransitionError``."""
        transition = self.transition_for(from_state, to_state)
        if transition is None:
            raise InvalidTransitionError(
                entity or self.name, _state(from_state), _state(to_state)
            )
        return transition

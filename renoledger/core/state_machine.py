"""Invoice status transition rules."""

from __future__ import annotations

from renoledger.core.enums import InvoiceStatus
from renoledger.core.exceptions import ConflictError


class InvalidTransitionError(ConflictError):
    """Raised when a disallowed status transition is attempted."""


class StateMachine:
    """Table-driven state machine; staying in the same state is always allowed."""

    def __init__(self, transitions: dict[str, set[str]]) -> None:
        self._transitions = transitions

    def can_transition(self, current: str, target: str) -> bool:
        if current == target:
            return True
        return target in self._transitions.get(current, set())

    def assert_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(f"Transition not allowed: {current} -> {target}")


# Statuses an admin may set by hand. partially_paid/paid only come from payments.
MANUAL_INVOICE_TRANSITIONS: dict[str, set[str]] = {
    InvoiceStatus.DRAFT.value: {InvoiceStatus.SENT.value, InvoiceStatus.CANCELLED.value},
    InvoiceStatus.SENT.value: {
        InvoiceStatus.DRAFT.value,
        InvoiceStatus.OVERDUE.value,
        InvoiceStatus.CANCELLED.value,
    },
    InvoiceStatus.PARTIALLY_PAID.value: {InvoiceStatus.OVERDUE.value, InvoiceStatus.CANCELLED.value},
    InvoiceStatus.OVERDUE.value: {InvoiceStatus.SENT.value, InvoiceStatus.CANCELLED.value},
    InvoiceStatus.PAID.value: set(),
    InvoiceStatus.CANCELLED.value: set(),
}

invoice_state_machine = StateMachine(MANUAL_INVOICE_TRANSITIONS)

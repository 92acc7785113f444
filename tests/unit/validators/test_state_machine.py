from __future__ import annotations

import pytest

from renoledger.core.exceptions import ConflictError
from renoledger.core.state_machine import InvalidTransitionError, StateMachine, invoice_state_machine


def test_state_machine_allows_valid_transition():
    sm = StateMachine({"draft": {"sent"}, "sent": {"overdue"}})
    assert sm.can_transition("draft", "sent") is True
    sm.assert_transition("draft", "sent")


def test_state_machine_rejects_invalid_transition():
    sm = StateMachine({"draft": {"sent"}})
    with pytest.raises(InvalidTransitionError):
        sm.assert_transition("draft", "paid")


def test_same_state_is_always_allowed():
    assert invoice_state_machine.can_transition("paid", "paid") is True
    assert invoice_state_machine.can_transition("cancelled", "cancelled") is True


@pytest.mark.parametrize(
    ("current", "target"),
    [
        ("draft", "paid"),
        ("draft", "partially_paid"),
        ("paid", "cancelled"),
        ("paid", "sent"),
        ("cancelled", "draft"),
        ("partially_paid", "draft"),
    ],
)
def test_invoice_manual_transitions_rejected(current, target):
    with pytest.raises(ConflictError):
        invoice_state_machine.assert_transition(current, target)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        ("draft", "sent"),
        ("draft", "cancelled"),
        ("sent", "draft"),
        ("sent", "overdue"),
        ("partially_paid", "overdue"),
        ("overdue", "sent"),
        ("overdue", "cancelled"),
    ],
)
def test_invoice_manual_transitions_allowed(current, target):
    invoice_state_machine.assert_transition(current, target)

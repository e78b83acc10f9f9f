"""
Unit tests for the payment lifecycle policy.
"""
import pytest

from wifidesk.api.middleware.error_handler import InvalidTransitionException
from wifidesk.models.customers import PaymentStatus
from wifidesk.services.lifecycle import (
    COMPLETION_DAYS,
    can_transition,
    should_complete,
    validate_requested_status,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,requested,allowed",
    [
        (PaymentStatus.PENDING, PaymentStatus.PENDING, True),
        (PaymentStatus.PENDING, PaymentStatus.PAID, True),
        (PaymentStatus.PAID, PaymentStatus.COMPLETED, True),
        (PaymentStatus.PAID, PaymentStatus.PENDING, False),
        (PaymentStatus.COMPLETED, PaymentStatus.PAID, False),
        (PaymentStatus.COMPLETED, PaymentStatus.PENDING, False),
    ],
)
def test_can_transition_is_monotonic(current, requested, allowed):
    assert can_transition(current, requested) is allowed


@pytest.mark.unit
def test_can_transition_accepts_plain_strings():
    assert can_transition("PENDING", "PAID")
    assert not can_transition("PAID", "PENDING")


@pytest.mark.unit
def test_pending_to_paid_is_allowed():
    validate_requested_status(PaymentStatus.PENDING, PaymentStatus.PAID)


@pytest.mark.unit
def test_same_status_is_a_no_op():
    validate_requested_status(PaymentStatus.COMPLETED, PaymentStatus.COMPLETED)


@pytest.mark.unit
def test_backwards_move_rejected():
    with pytest.raises(InvalidTransitionException) as exc_info:
        validate_requested_status(PaymentStatus.PAID, PaymentStatus.PENDING)

    assert exc_info.value.status_code == 400
    assert exc_info.value.details == {"current": "PAID", "requested": "PENDING"}


@pytest.mark.unit
def test_explicit_completed_rejected():
    """COMPLETED is only reached through the automatic rule."""
    with pytest.raises(InvalidTransitionException) as exc_info:
        validate_requested_status(PaymentStatus.PAID, PaymentStatus.COMPLETED)

    assert "automatically" in exc_info.value.message


@pytest.mark.unit
def test_should_complete_requires_paid_and_thirty_days():
    assert COMPLETION_DAYS == 30
    assert should_complete(PaymentStatus.PAID, 30)
    assert should_complete(PaymentStatus.PAID, 45)
    assert not should_complete(PaymentStatus.PAID, 29)
    assert not should_complete(PaymentStatus.PENDING, 30)
    assert not should_complete(PaymentStatus.COMPLETED, 60)

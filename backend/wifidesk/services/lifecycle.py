"""
Payment lifecycle policy.

PENDING -> PAID is requested by the caller; PAID -> COMPLETED happens
automatically once a paid subscription has accrued COMPLETION_DAYS.
Statuses never move backwards and COMPLETED is terminal.
"""
from typing import Union

from wifidesk.api.middleware.error_handler import InvalidTransitionException
from wifidesk.models.customers import PaymentStatus


COMPLETION_DAYS = 30

_ORDER = {
    PaymentStatus.PENDING: 0,
    PaymentStatus.PAID: 1,
    PaymentStatus.COMPLETED: 2,
}


def _status(value: Union[PaymentStatus, str]) -> PaymentStatus:
    return value if isinstance(value, PaymentStatus) else PaymentStatus(value)


def can_transition(current: Union[PaymentStatus, str], requested: Union[PaymentStatus, str]) -> bool:
    """True when `requested` is not behind `current` in the lifecycle."""
    return _ORDER[_status(requested)] >= _ORDER[_status(current)]


def validate_requested_status(
    current: Union[PaymentStatus, str],
    requested: Union[PaymentStatus, str],
) -> None:
    """
    Check a caller-requested status change.

    Raises:
        InvalidTransitionException: for backwards moves, or an explicit
            COMPLETED on a record that is not already COMPLETED
    """
    current, requested = _status(current), _status(requested)
    if current == requested:
        return
    if not can_transition(current, requested):
        raise InvalidTransitionException(
            current.value, requested.value, "payment status cannot move backwards"
        )
    if requested == PaymentStatus.COMPLETED:
        raise InvalidTransitionException(
            current.value,
            requested.value,
            f"COMPLETED is set automatically once a PAID subscription reaches {COMPLETION_DAYS} days",
        )


def should_complete(status: Union[PaymentStatus, str], days: int) -> bool:
    """Auto-completion rule, evaluated on post-update values."""
    return _status(status) == PaymentStatus.PAID and days >= COMPLETION_DAYS

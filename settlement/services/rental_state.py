import logging
from typing import Dict, FrozenSet, Tuple

from django.db.models import Q

from settlement.models import PaymentStatus, Rental, RentalStatus

from .errors import InvalidStateTransition
from .fee_calculator import FeeBreakdown
from .outbox import record_event

logger = logging.getLogger(__name__)

# Status only ever moves forward; nothing leads back to ACTIVE.
ALLOWED_TRANSITIONS: Dict[RentalStatus, FrozenSet[RentalStatus]] = {
    RentalStatus.ACTIVE: frozenset(
        {RentalStatus.PENDING_DEPOSIT, RentalStatus.PENDING_PAYMENT, RentalStatus.COMPLETED}
    ),
    RentalStatus.PENDING_DEPOSIT: frozenset({RentalStatus.COMPLETED}),
    RentalStatus.PENDING_PAYMENT: frozenset({RentalStatus.COMPLETED}),
    RentalStatus.COMPLETED: frozenset(),
}

SETTLING_STATES = frozenset({RentalStatus.PENDING_DEPOSIT, RentalStatus.PENDING_PAYMENT})


def can_transition(current: str, target: str) -> bool:
    return RentalStatus(target) in ALLOWED_TRANSITIONS[RentalStatus(current)]


def transition(rental: Rental, target: str) -> Rental:
    """Move `rental` to `target`, or raise if the table forbids it. Does not save."""
    if not can_transition(rental.status, target):
        raise InvalidStateTransition(
            f"rental {rental.code} cannot move from {rental.status} to {target}", current_state=rental.status
        )
    logger.info(f"Rental {rental.code} status {rental.status} -> {target}")
    rental.status = target
    return rental


def ensure_active(rental: Rental) -> None:
    if rental.status != RentalStatus.ACTIVE:
        raise InvalidStateTransition(
            f"rental {rental.code} is not active and cannot be checked out", current_state=rental.status
        )


def outstanding_payments(rental: Rental):
    """Pending payments the rental still waits on: its own and those of its booking not tied to another rental."""
    return rental.booking.payments.filter(status=PaymentStatus.PENDING).filter(
        Q(rental=rental) | Q(rental__isnull=True)
    )


def checkout_target(fees: FeeBreakdown, has_outstanding: bool) -> Tuple[str, str]:
    """Pick the post-checkout status and a human-readable reason for it."""
    if fees.total_fees > 0:
        return RentalStatus.PENDING_PAYMENT, "Additional fees must be paid"
    if has_outstanding:
        return RentalStatus.PENDING_PAYMENT, "Outstanding payments must be settled"
    return RentalStatus.COMPLETED, "No fees and nothing outstanding"


def apply_fees(rental: Rental, fees: FeeBreakdown) -> None:
    rental.late_fee = fees.late_fee
    rental.damage_fee = fees.damage_fee
    rental.other_fees = fees.other_fees
    rental.total_fees = fees.total_fees


def settle_if_paid(rental: Rental) -> bool:
    """Complete a settling rental once none of its payments is still pending."""
    if rental.status not in SETTLING_STATES:
        return False
    if outstanding_payments(rental).exists():
        return False
    transition(rental, RentalStatus.COMPLETED)
    rental.save(update_fields=["status", "updated_at"])
    record_event("rental_completed", {"rental_id": rental.pk, "code": rental.code})
    return True

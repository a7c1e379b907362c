from dataclasses import dataclass

from settlement.models import Contract, Rental

from .errors import NotFound

NO_CONTRACT = "Rental has no contract"
AWAITING_SIGNATURE = "Contract is awaiting signature from staff and customer"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: str

    def to_dict(self):
        return {"allowed": self.allowed, "reason": self.reason}


def get_rental(rental_id) -> Rental:
    try:
        return Rental.objects.select_related("booking__customer", "booking__vehicle", "booking__station").get(
            pk=rental_id
        )
    except Rental.DoesNotExist:
        raise NotFound(f"rental {rental_id} not found")


def get_contract(rental: Rental):
    """Return the rental's contract or None when none was drawn up."""
    try:
        return rental.contract
    except Contract.DoesNotExist:
        return None


def evaluate(rental: Rental) -> GateDecision:
    contract = get_contract(rental)
    if contract is None:
        return GateDecision(False, NO_CONTRACT)
    if not contract.is_signed:
        return GateDecision(False, AWAITING_SIGNATURE)
    return GateDecision(True, "Contract signed by staff and customer")


def can_checkout(rental_id) -> GateDecision:
    return evaluate(get_rental(rental_id))

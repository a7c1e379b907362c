import logging
import math
from typing import Dict, List, Optional

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from settlement.models import (
    Payment,
    PaymentStatus,
    PaymentType,
    Rental,
    RentalStatus,
    VehicleStatus,
)

from . import contract_gate, rental_state
from .errors import Forbidden
from .fee_calculator import FeeBreakdown, calculate_fees, overdue_hours, rental_duration_hours
from .inspection_validator import validate_images, validate_inspection, validate_settlement_method
from .outbox import record_event
from .payment_orchestrator import PaymentOrchestrator

logger = logging.getLogger(__name__)


def _authorize(rental: Rental) -> None:
    decision = contract_gate.evaluate(rental)
    if not decision.allowed:
        raise Forbidden(decision.reason, allowed=False)


def _fee_reason(fees: FeeBreakdown, damage_description: str) -> str:
    parts = [f"{name.replace('_', ' ')} {amount}" for name, amount in fees.to_dict().items()
             if name != "total_fees" and amount]
    reason = "Checkout fees: " + ", ".join(parts)
    if damage_description:
        reason += f" ({damage_description})"
    return reason


def payment_summary(payment: Payment) -> Dict:
    return {
        "id": payment.pk,
        "code": payment.code,
        "type": payment.payment_type,
        "amount": payment.amount,
        "status": payment.status,
        "payment_method": payment.payment_method,
        "description": payment.reason,
    }


def total_paid(rental: Rental) -> int:
    return rental.booking.payments.filter(status=PaymentStatus.COMPLETED).exclude(
        payment_type=PaymentType.REFUND
    ).aggregate(total=Sum("amount"))["total"] or 0


def build_checkout_info(rental: Rental, now) -> Dict:
    booking = rental.booking
    contract = contract_gate.get_contract(rental)
    return {
        "rental": {
            "id": rental.pk,
            "code": rental.code,
            "status": rental.status,
            "actual_start_time": rental.actual_start_time,
            "scheduled_end_time": booking.end_date,
            "vehicle_condition_before": rental.vehicle_condition_before,
            "images_before": rental.images_before,
            "rental_duration_hours": rental_duration_hours(rental.actual_start_time, now),
            "overdue_hours": overdue_hours(booking.end_date, now),
        },
        "customer": {
            "id": booking.customer.pk,
            "fullname": booking.customer.fullname,
            "email": booking.customer.email,
            "phone": booking.customer.phone,
        },
        "vehicle": {
            "id": booking.vehicle.pk,
            "name": booking.vehicle.name,
            "license_plate": booking.vehicle.license_plate,
            "model": booking.vehicle.model,
            "battery_capacity": booking.vehicle.battery_capacity,
        },
        "station": {
            "id": booking.station.pk,
            "name": booking.station.name,
            "address": booking.station.address,
        },
        "pickup_staff": {"fullname": rental.pickup_staff},
        "contract": None if contract is None else {
            "code": contract.code,
            "status": contract.status,
            "is_signed": contract.is_signed,
            "staff_signed_at": contract.staff_signed_at,
            "customer_signed_at": contract.customer_signed_at,
        },
    }


class CheckoutService:
    """Drives one checkout: gate, inspection, fees, transition, settlement payment."""

    def __init__(self, orchestrator: PaymentOrchestrator):
        self.orchestrator = orchestrator

    def begin_checkout(self, rental_id) -> Dict:
        rental = contract_gate.get_rental(rental_id)
        _authorize(rental)
        return build_checkout_info(rental, timezone.now())

    def submit_checkout(self, rental_id, inspection: Dict, mode: str = "normal", fees: Optional[Dict] = None,
                        return_staff: str = "") -> Dict:
        rental = contract_gate.get_rental(rental_id)
        _authorize(rental)
        rental_state.ensure_active(rental)

        # everything is validated before the first write
        condition_after = validate_inspection(inspection, rental)
        images = validate_images(inspection)
        method = validate_settlement_method(inspection)
        breakdown = calculate_fees(mode, fees)
        damage_description = inspection.get("damage_description") or ""

        with transaction.atomic():
            rental = Rental.objects.select_for_update().get(pk=rental.pk)
            # status is the guard against a concurrent checkout of the same rental
            rental_state.ensure_active(rental)

            now = timezone.now()
            rental.vehicle_condition_after = condition_after
            rental.images_after = images
            rental.actual_end_time = now
            rental.return_staff = return_staff or ""
            if damage_description:
                rental.staff_notes = f"{rental.staff_notes}\nDamage: {damage_description}".strip()
            if inspection.get("customer_notes"):
                rental.customer_notes = inspection["customer_notes"]
            rental_state.apply_fees(rental, breakdown)

            created: List[Payment] = []
            payment_urls = {}
            if breakdown.total_fees > 0:
                payment, qr, _ = self.orchestrator.create_payment(
                    booking_id=rental.booking_id,
                    payment_type=PaymentType.ADDITIONAL_FEE,
                    payment_method=method,
                    amount=breakdown.total_fees,
                    rental_id=rental.pk,
                    reason=_fee_reason(breakdown, damage_description),
                    processed_by=return_staff,
                )
                created.append(payment)
                if qr is not None:
                    payment_urls[payment.code] = {
                        "payment_url": qr.payment_url,
                        "order_id": qr.order_id,
                        "amount": qr.amount,
                        "payment_type": payment.payment_type,
                        "expires_at": qr.expires_at,
                    }

            has_outstanding = rental_state.outstanding_payments(rental).exists()
            target, status_reason = rental_state.checkout_target(breakdown, has_outstanding)
            rental_state.transition(rental, target)
            rental.save()

            vehicle = rental.booking.vehicle
            vehicle.status = VehicleStatus.AVAILABLE
            vehicle.save(update_fields=["status"])

            record_event(
                "rental_checked_out",
                {"rental_id": rental.pk, "code": rental.code, "status": target, **breakdown.to_dict()},
            )
            if target == RentalStatus.COMPLETED:
                record_event("rental_completed", {"rental_id": rental.pk, "code": rental.code})

        logger.info(f"Rental {rental.code} checked out ({mode}): total fees {breakdown.total_fees}, status {target}")

        payments = list(rental.booking.payments.exclude(status=PaymentStatus.CANCELLED).order_by("created_at", "pk"))
        rental_days = max(1, math.ceil((rental.actual_end_time - rental.actual_start_time).total_seconds() / 86400))
        result = {
            "rental": {
                "id": rental.pk,
                "code": rental.code,
                "actual_end_time": rental.actual_end_time,
                "total_fees": rental.total_fees,
                "status": rental.status,
            },
            "fee_breakdown": breakdown.to_dict(),
            "payments": [payment_summary(p) for p in payments],
            "created_payments": [p.pk for p in created],
            "total_paid": total_paid(rental),
            "vehicle_status": vehicle.status,
            "images": {"uploaded": images} if images else None,
            "checkout_info": {
                "rental_days": rental_days,
                "payment_required": target != RentalStatus.COMPLETED,
                "status_reason": status_reason,
            },
        }
        if payment_urls:
            result["payment_urls"] = payment_urls
        return result

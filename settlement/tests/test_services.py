from datetime import datetime, timedelta

from django.test import SimpleTestCase, TestCase

from settlement.models import PaymentStatus, PaymentType, RentalStatus
from settlement.services import contract_gate, rental_state
from settlement.services.errors import InvalidStateTransition, NotFound, ValidationError
from settlement.services.fee_calculator import (
    FeeBreakdown,
    calculate_fees,
    overdue_hours,
    supported_checkout_modes,
)
from settlement.services.inspection_validator import validate_inspection

from .helpers import inspection, make_payment, make_rental


class FeeCalculatorTests(SimpleTestCase):
    def test_modes_registered(self):
        self.assertEqual(sorted(supported_checkout_modes()), ["fees", "normal"])

    def test_fees_mode_sums_components(self):
        breakdown = calculate_fees("fees", {"late_fee": 50000, "damage_fee": 150000, "other_fees": 0})
        self.assertEqual(breakdown.total_fees, 200000)

    def test_fees_mode_missing_fields_are_zero(self):
        self.assertEqual(calculate_fees("fees", {"damage_fee": 7000}), FeeBreakdown(damage_fee=7000))
        self.assertEqual(calculate_fees("fees").total_fees, 0)

    def test_fees_mode_rejects_negative_and_fractional_amounts(self):
        with self.assertRaises(ValidationError):
            calculate_fees("fees", {"late_fee": -1})
        with self.assertRaises(ValidationError):
            calculate_fees("fees", {"other_fees": 10.5})

    def test_normal_mode_rejects_fee_amounts(self):
        self.assertEqual(calculate_fees("normal", {"late_fee": None}).total_fees, 0)
        with self.assertRaises(ValidationError):
            calculate_fees("normal", {"late_fee": 1000})

    def test_unknown_mode(self):
        with self.assertRaises(ValidationError):
            calculate_fees("express", {})

    def test_overdue_hours(self):
        due = datetime(2024, 10, 18, 12, 0)
        self.assertEqual(overdue_hours(due, due - timedelta(minutes=30)), 0)
        self.assertEqual(overdue_hours(due, due + timedelta(hours=3, minutes=59)), 3)


class RentalStateTests(SimpleTestCase):
    def test_status_only_moves_forward(self):
        self.assertTrue(rental_state.can_transition(RentalStatus.ACTIVE, RentalStatus.PENDING_PAYMENT))
        self.assertTrue(rental_state.can_transition(RentalStatus.PENDING_DEPOSIT, RentalStatus.COMPLETED))
        self.assertFalse(rental_state.can_transition(RentalStatus.PENDING_PAYMENT, RentalStatus.ACTIVE))
        self.assertFalse(rental_state.can_transition(RentalStatus.COMPLETED, RentalStatus.PENDING_PAYMENT))
        self.assertFalse(rental_state.can_transition(RentalStatus.COMPLETED, RentalStatus.ACTIVE))

    def test_checkout_target(self):
        status, _ = rental_state.checkout_target(FeeBreakdown(late_fee=1), has_outstanding=False)
        self.assertEqual(status, RentalStatus.PENDING_PAYMENT)
        status, _ = rental_state.checkout_target(FeeBreakdown(), has_outstanding=True)
        self.assertEqual(status, RentalStatus.PENDING_PAYMENT)
        status, _ = rental_state.checkout_target(FeeBreakdown(), has_outstanding=False)
        self.assertEqual(status, RentalStatus.COMPLETED)


class SettlementTests(TestCase):
    def test_transition_out_of_completed_raises(self):
        rental = make_rental(status=RentalStatus.COMPLETED)
        with self.assertRaises(InvalidStateTransition) as ctx:
            rental_state.transition(rental, RentalStatus.PENDING_PAYMENT)
        self.assertEqual(ctx.exception.current_state, RentalStatus.COMPLETED)

    def test_pending_deposit_completes_once_deposit_paid(self):
        rental = make_rental(status=RentalStatus.PENDING_DEPOSIT)
        deposit = make_payment(rental, payment_type=PaymentType.DEPOSIT)
        self.assertFalse(rental_state.settle_if_paid(rental))

        deposit.status = PaymentStatus.COMPLETED
        deposit.save()
        self.assertTrue(rental_state.settle_if_paid(rental))
        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.COMPLETED)

    def test_active_rental_is_never_settled(self):
        rental = make_rental()
        self.assertFalse(rental_state.settle_if_paid(rental))

    def test_payments_of_other_rentals_do_not_block(self):
        rental = make_rental(status=RentalStatus.PENDING_PAYMENT)
        other = make_rental()
        payment = make_payment(other, attach_rental=True)
        payment.booking = rental.booking
        payment.save()
        self.assertTrue(rental_state.settle_if_paid(rental))

    def test_contract_gate_decisions(self):
        self.assertTrue(contract_gate.can_checkout(make_rental().pk).allowed)
        self.assertEqual(contract_gate.can_checkout(make_rental(contract=False).pk).reason, contract_gate.NO_CONTRACT)
        self.assertEqual(
            contract_gate.can_checkout(make_rental(signed=False).pk).reason, contract_gate.AWAITING_SIGNATURE
        )
        with self.assertRaises(NotFound):
            contract_gate.can_checkout(9999)

    def test_inspection_snapshot(self):
        rental = make_rental(mileage=1000)
        snapshot = validate_inspection(inspection(mileage=1000, inspection_notes="Clean"), rental)
        self.assertEqual(
            snapshot,
            {
                "mileage": 1000,
                "battery_level": 80,
                "exterior_condition": "good",
                "interior_condition": "good",
                "notes": "Clean",
            },
        )
        with self.assertRaises(ValidationError):
            validate_inspection(inspection(exterior_condition="scratched"), rental)

from rest_framework.test import APITestCase

from settlement.models import (
    OutboxEvent,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Rental,
    RentalStatus,
    VehicleStatus,
)

from .helpers import inspection, make_payment, make_rental


class CheckoutTests(APITestCase):
    def url(self, rental, action):
        return f"/api/v1/rentals/{rental.pk}/{action}"

    def test_normal_checkout_without_fees_completes_rental(self):
        rental = make_rental(mileage=1000)
        r = self.client.put(self.url(rental, "checkout-normal"), inspection(), format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["fee_breakdown"]["total_fees"], 0)
        self.assertEqual(r.data["rental"]["status"], "completed")
        self.assertFalse(r.data["checkout_info"]["payment_required"])
        self.assertEqual(r.data["vehicle_status"], "available")
        self.assertNotIn("payment_urls", r.data)

        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.COMPLETED)
        self.assertEqual(rental.vehicle_condition_after["mileage"], 1050)
        self.assertEqual(rental.vehicle_condition_after["battery_level"], 80)
        self.assertIsNotNone(rental.actual_end_time)
        self.assertEqual(rental.booking.vehicle.status, VehicleStatus.AVAILABLE)
        self.assertFalse(Payment.objects.filter(booking=rental.booking).exists())
        self.assertTrue(OutboxEvent.objects.filter(type="rental_completed").exists())

    def test_fees_checkout_creates_pending_additional_fee(self):
        rental = make_rental()
        payload = inspection(late_fee=50000, damage_fee=150000, other_fees=0, damage_description="Scratched fender")
        r = self.client.put(self.url(rental, "checkout-fees"), payload, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(
            r.data["fee_breakdown"],
            {"late_fee": 50000, "damage_fee": 150000, "other_fees": 0, "total_fees": 200000},
        )
        self.assertEqual(r.data["rental"]["status"], "pending_payment")
        self.assertTrue(r.data["checkout_info"]["payment_required"])

        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.PENDING_PAYMENT)
        self.assertEqual(rental.total_fees, 200000)
        self.assertIn("Scratched fender", rental.staff_notes)

        payment = Payment.objects.get(rental=rental)
        self.assertEqual(payment.payment_type, PaymentType.ADDITIONAL_FEE)
        self.assertEqual(payment.amount, 200000)
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.payment_method, PaymentMethod.CASH)

    def test_fees_checkout_omitted_fields_default_to_zero(self):
        rental = make_rental()
        r = self.client.put(self.url(rental, "checkout-fees"), inspection(other_fees=30000), format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["fee_breakdown"]["late_fee"], 0)
        self.assertEqual(r.data["fee_breakdown"]["damage_fee"], 0)
        self.assertEqual(r.data["fee_breakdown"]["total_fees"], 30000)

    def test_fees_checkout_with_zero_fees_completes(self):
        rental = make_rental()
        r = self.client.put(self.url(rental, "checkout-fees"), inspection(), format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["rental"]["status"], "completed")

    def test_fees_checkout_through_gateway_returns_payment_link(self):
        rental = make_rental()
        payload = inspection(damage_fee=150000, payment_method="vnpay")
        r = self.client.put(self.url(rental, "checkout-fees"), payload, format="json")
        self.assertEqual(r.status_code, 200)
        payment = Payment.objects.get(rental=rental)
        self.assertIn(payment.code, r.data["payment_urls"])
        link = r.data["payment_urls"][payment.code]
        self.assertEqual(link["amount"], 150000)
        self.assertEqual(link["payment_url"], payment.vnpay_url)
        self.assertTrue(payment.vnpay_txn_ref)

    def test_outstanding_deposit_keeps_rental_pending_until_paid(self):
        rental = make_rental(deposit=500000)
        deposit = make_payment(rental, amount=500000)
        r = self.client.put(self.url(rental, "checkout-normal"), inspection(), format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["rental"]["status"], "pending_payment")
        self.assertEqual(r.data["checkout_info"]["status_reason"], "Outstanding payments must be settled")

        r = self.client.put(f"/api/v1/payments/{deposit.pk}/confirm", {}, format="json")
        self.assertEqual(r.status_code, 200)
        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.COMPLETED)

    def test_completed_deposit_counts_as_paid(self):
        rental = make_rental(deposit=500000)
        make_payment(rental, amount=500000, status=PaymentStatus.COMPLETED)
        r = self.client.put(self.url(rental, "checkout-normal"), inspection(), format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["rental"]["status"], "completed")
        self.assertEqual(r.data["total_paid"], 500000)

    def test_unsigned_contract_is_forbidden(self):
        rental = make_rental(signed=False)
        r = self.client.put(self.url(rental, "checkout-normal"), inspection(), format="json")
        self.assertEqual(r.status_code, 403)
        self.assertIn("awaiting signature", r.data["detail"])
        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.ACTIVE)

    def test_missing_contract_is_forbidden(self):
        rental = make_rental(contract=False)
        r = self.client.put(self.url(rental, "checkout-fees"), inspection(late_fee=1000), format="json")
        self.assertEqual(r.status_code, 403)
        self.assertIn("no contract", r.data["detail"])
        self.assertFalse(Payment.objects.exists())

    def test_second_checkout_is_rejected_with_current_state(self):
        rental = make_rental()
        r1 = self.client.put(self.url(rental, "checkout-fees"), inspection(late_fee=50000), format="json")
        self.assertEqual(r1.status_code, 200)
        r2 = self.client.put(self.url(rental, "checkout-fees"), inspection(late_fee=50000), format="json")
        self.assertEqual(r2.status_code, 409)
        self.assertEqual(r2.data["current_state"], "pending_payment")
        self.assertEqual(Payment.objects.filter(rental=rental).count(), 1)

    def test_mileage_below_start_aborts_without_changes(self):
        rental = make_rental(mileage=1000)
        r = self.client.put(self.url(rental, "checkout-fees"), inspection(mileage=990, late_fee=50000), format="json")
        self.assertEqual(r.status_code, 400)
        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.ACTIVE)
        self.assertEqual(rental.vehicle_condition_after, {})
        self.assertIsNone(rental.actual_end_time)
        self.assertFalse(Payment.objects.exists())

    def test_battery_out_of_range_is_rejected(self):
        rental = make_rental()
        r = self.client.put(self.url(rental, "checkout-normal"), inspection(battery_level=101), format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["field"], "battery_level")

    def test_negative_fee_is_rejected(self):
        rental = make_rental()
        r = self.client.put(
            self.url(rental, "checkout-fees"), inspection(late_fee=50000, damage_fee=-1), format="json"
        )
        self.assertEqual(r.status_code, 400)
        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.ACTIVE)
        self.assertEqual(rental.total_fees, 0)
        self.assertFalse(Payment.objects.exists())

    def test_missing_battery_level_is_rejected(self):
        rental = make_rental()
        payload = inspection()
        del payload["battery_level"]
        r = self.client.put(self.url(rental, "checkout-normal"), payload, format="json")
        self.assertEqual(r.status_code, 400)

    def test_normal_checkout_rejects_fee_amounts(self):
        rental = make_rental()
        payload = inspection(late_fee=50000, damage_fee=150000)
        r = self.client.put(self.url(rental, "checkout-normal"), payload, format="json")
        self.assertEqual(r.status_code, 400)
        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.ACTIVE)
        self.assertEqual(rental.total_fees, 0)
        self.assertIsNone(rental.actual_end_time)
        self.assertFalse(Payment.objects.exists())

    def test_normal_checkout_accepts_zero_fee_amounts(self):
        rental = make_rental()
        r = self.client.put(self.url(rental, "checkout-normal"), inspection(late_fee=0), format="json")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["rental"]["status"], "completed")

    def test_fees_cannot_be_settled_by_bank_transfer(self):
        rental = make_rental()
        payload = inspection(damage_fee=150000, payment_method="bank_transfer")
        r = self.client.put(self.url(rental, "checkout-fees"), payload, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["field"], "payment_method")
        rental.refresh_from_db()
        self.assertEqual(rental.status, RentalStatus.ACTIVE)
        self.assertFalse(Payment.objects.exists())

    def test_unknown_rental_is_not_found(self):
        r = self.client.put("/api/v1/rentals/9999/checkout-normal", inspection(), format="json")
        self.assertEqual(r.status_code, 404)


class CheckoutInfoTests(APITestCase):
    def test_checkout_info_bundle(self):
        rental = make_rental()
        r = self.client.get(f"/api/v1/rentals/{rental.pk}/checkout-info")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["rental"]["code"], rental.code)
        self.assertEqual(r.data["rental"]["vehicle_condition_before"]["mileage"], 1000)
        self.assertEqual(r.data["rental"]["overdue_hours"], 0)
        self.assertEqual(r.data["customer"]["fullname"], "Tran Minh Anh")
        self.assertEqual(r.data["vehicle"]["battery_capacity"], 48)
        self.assertEqual(r.data["station"]["name"], "District 1 Station")
        self.assertTrue(r.data["contract"]["is_signed"])

    def test_overdue_hours_are_reported_but_never_charged(self):
        rental = make_rental(hours_until_due=-5)
        r = self.client.get(f"/api/v1/rentals/{rental.pk}/checkout-info")
        self.assertEqual(r.data["rental"]["overdue_hours"], 5)

        r = self.client.put(f"/api/v1/rentals/{rental.pk}/checkout-normal", inspection(), format="json")
        self.assertEqual(r.data["fee_breakdown"]["total_fees"], 0)
        self.assertEqual(r.data["rental"]["status"], "completed")

    def test_checkout_info_forbidden_without_signature(self):
        rental = make_rental(signed=False)
        r = self.client.get(f"/api/v1/rentals/{rental.pk}/checkout-info")
        self.assertEqual(r.status_code, 403)
        self.assertFalse(r.data["allowed"])

    def test_rental_detail_includes_contract(self):
        rental = make_rental()
        r = self.client.get(f"/api/v1/rentals/{rental.pk}")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["status"], "active")
        self.assertTrue(r.data["contract"]["is_signed"])
        self.assertEqual(Rental.objects.get(pk=rental.pk).code, r.data["code"])

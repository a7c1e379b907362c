import logging
import uuid
from typing import Dict, Mapping, Optional, Tuple

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from settlement.models import Booking, Payment, PaymentMethod, PaymentStatus, PaymentType, Rental

from . import gateway_reconciler
from .errors import IdempotencyConflict, InvalidStateTransition, NotFound, ValidationError
from .gateway_reconciler import Outcome, ReconciliationResult
from .outbox import record_event
from .rental_state import settle_if_paid
from .vnpay import PaymentGateway, QRData

logger = logging.getLogger(__name__)

# every method must appear in both tables
REDIRECT_METHODS: Dict[PaymentMethod, bool] = {
    PaymentMethod.CASH: False,
    PaymentMethod.QR_CODE: False,
    PaymentMethod.BANK_TRANSFER: False,
    PaymentMethod.VNPAY: True,
}

STAFF_CONFIRMABLE_METHODS: Dict[PaymentMethod, bool] = {
    PaymentMethod.CASH: True,
    PaymentMethod.QR_CODE: False,
    PaymentMethod.BANK_TRANSFER: False,
    PaymentMethod.VNPAY: False,
}

GATEWAY_TEXT_FIELDS = ("vnpay_url", "qr_code_data", "qr_code_image", "vnpay_bank_code", "vnpay_transaction_no")
GATEWAY_NULLABLE_FIELDS = ("vnpay_txn_ref", "qr_created_at", "qr_expires_at")


def requires_redirect(method: str) -> bool:
    return REDIRECT_METHODS[PaymentMethod(method)]


def can_be_settled(method: str) -> bool:
    """True when a payment in `method` can reach completed, by staff or by the gateway."""
    method = PaymentMethod(method)
    return STAFF_CONFIRMABLE_METHODS[method] or REDIRECT_METHODS[method]


def validate_choice(value, choices, field: str) -> str:
    if value not in choices.values:
        raise ValidationError(f"unsupported {field}: {value}", field=field)
    return value


def _append_note(existing: str, note: str) -> str:
    return f"{existing}\n{note}" if existing else note


class PaymentOrchestrator:
    """Creates and mutates Payment records; nothing else writes them.

    The gateway is injected so that one request works against one resolved
    configuration from start to finish.
    """

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    # -- lookups -----------------------------------------------------------

    def _get_booking(self, booking_id) -> Booking:
        try:
            return Booking.objects.get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFound(f"booking {booking_id} not found")

    def _lock_payment(self, payment_id) -> Payment:
        try:
            return Payment.objects.select_for_update().get(pk=payment_id)
        except Payment.DoesNotExist:
            raise NotFound(f"payment {payment_id} not found")

    def _ensure_pending(self, payment: Payment, action: str) -> None:
        if payment.status != PaymentStatus.PENDING:
            raise InvalidStateTransition(
                f"cannot {action} payment {payment.code}: it is {payment.status}", current_state=payment.status
            )

    def _resolve_amount(self, booking: Booking, payment_type: str, amount: Optional[int]) -> int:
        if amount is None:
            if payment_type == PaymentType.DEPOSIT:
                amount = booking.deposit_amount
            elif payment_type == PaymentType.RENTAL_FEE:
                amount = booking.total_price
            elif payment_type == PaymentType.REFUND:
                amount = booking.payments.filter(
                    payment_type=PaymentType.DEPOSIT, status=PaymentStatus.COMPLETED
                ).aggregate(total=Sum("amount"))["total"] or 0
            else:
                raise ValidationError("amount required for additional_fee payments", field="amount")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("amount must be a positive whole number", field="amount")
        return amount

    def _issue_gateway_payload(self, payment: Payment, now) -> QRData:
        qr = self.gateway.issue(
            order_id=payment.code,
            amount=payment.amount,
            order_info=f"Payment {payment.code} for booking {payment.booking.code}",
            now=now,
        )
        payment.vnpay_txn_ref = qr.txn_ref
        payment.vnpay_url = qr.payment_url
        payment.qr_code_data = qr.qr_data
        payment.qr_code_image = qr.qr_image_url
        payment.qr_created_at = qr.created_at
        payment.qr_expires_at = qr.expires_at
        return qr

    def _clear_gateway_payload(self, payment: Payment) -> None:
        for name in GATEWAY_TEXT_FIELDS:
            setattr(payment, name, "")
        for name in GATEWAY_NULLABLE_FIELDS:
            setattr(payment, name, None)

    def _after_completion(self, payment: Payment) -> None:
        rental = Rental.objects.select_for_update().filter(booking_id=payment.booking_id).first()
        if rental is not None and settle_if_paid(rental):
            logger.info(f"Rental {rental.code} completed after payment {payment.code}")

    # -- operations --------------------------------------------------------

    def create_payment(
        self,
        *,
        booking_id,
        payment_type: str,
        payment_method: str,
        amount: Optional[int] = None,
        rental_id=None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        processed_by: str = "",
        idempotency_key: Optional[str] = None,
        request_body: Optional[Dict] = None,
    ) -> Tuple[Payment, Optional[QRData], bool]:
        """Create a pending payment; returns (payment, qr_data, created).

        `created` is False when an earlier request with the same idempotency
        key and body is replayed.
        """
        if idempotency_key:
            existing = Payment.objects.filter(idempotency_key=idempotency_key).first()
            if existing:
                if existing.request_body == request_body:
                    return existing, None, False
                raise IdempotencyConflict("Idempotency key conflict: different payload")

        validate_choice(payment_type, PaymentType, "payment_type")
        validate_choice(payment_method, PaymentMethod, "payment_method")
        if payment_type == PaymentType.ADDITIONAL_FEE and (amount is None or rental_id is None):
            raise ValidationError("additional_fee payments require amount and rental_id")

        booking = self._get_booking(booking_id)
        rental = None
        if rental_id is not None:
            try:
                rental = Rental.objects.get(pk=rental_id)
            except Rental.DoesNotExist:
                raise NotFound(f"rental {rental_id} not found")
            if rental.booking_id != booking.pk:
                raise ValidationError(f"rental {rental.code} does not belong to booking {booking.code}")
        amount = self._resolve_amount(booking, payment_type, amount)

        with transaction.atomic():
            payment = Payment(
                code=f"pmt_{uuid.uuid4().hex[:8]}",
                booking=booking,
                rental=rental,
                amount=amount,
                payment_method=payment_method,
                payment_type=payment_type,
                status=PaymentStatus.PENDING,
                reason=reason or "",
                notes=notes or "",
                processed_by=processed_by or "",
                idempotency_key=idempotency_key,
                request_body=request_body,
            )
            qr = None
            if requires_redirect(payment_method):
                qr = self._issue_gateway_payload(payment, timezone.now())
            payment.save()
            record_event(
                "payment_created",
                {"payment_id": payment.pk, "code": payment.code, "amount": amount, "payment_type": payment_type},
            )

        logger.info(f"Payment {payment.code} created: {payment_type} {amount} via {payment_method}")
        return payment, qr, True

    def confirm_payment(self, payment_id, transaction_id: Optional[str] = None, notes: Optional[str] = None,
                        processed_by: str = "") -> Payment:
        with transaction.atomic():
            payment = self._lock_payment(payment_id)
            self._ensure_pending(payment, "confirm")
            if not STAFF_CONFIRMABLE_METHODS[PaymentMethod(payment.payment_method)]:
                raise ValidationError(
                    f"{payment.payment_method} payments cannot be confirmed by staff", field="payment_method"
                )
            payment.status = PaymentStatus.COMPLETED
            if transaction_id:
                payment.transaction_id = transaction_id
            if notes:
                payment.notes = _append_note(payment.notes, notes)
            if processed_by:
                payment.processed_by = processed_by
            payment.save()
            record_event("payment_completed", {"payment_id": payment.pk, "code": payment.code})
            self._after_completion(payment)

        logger.info(f"Payment {payment.code} confirmed")
        return payment

    def cancel_payment(self, payment_id, reason: str) -> Payment:
        if not reason or not reason.strip():
            raise ValidationError("reason required to cancel a payment", field="reason")
        with transaction.atomic():
            payment = self._lock_payment(payment_id)
            self._ensure_pending(payment, "cancel")
            payment.status = PaymentStatus.CANCELLED
            payment.notes = _append_note(payment.notes, f"Cancelled: {reason.strip()}")
            payment.save()
            record_event("payment_cancelled", {"payment_id": payment.pk, "code": payment.code, "reason": reason})

        logger.info(f"Payment {payment.code} cancelled: {reason}")
        return payment

    def update_payment_method(self, payment_id, new_method: str) -> Tuple[Payment, Optional[QRData]]:
        validate_choice(new_method, PaymentMethod, "payment_method")
        with transaction.atomic():
            payment = self._lock_payment(payment_id)
            self._ensure_pending(payment, "change the method of")
            if payment.payment_method == new_method:
                raise ValidationError(f"payment {payment.code} already uses {new_method}", field="payment_method")
            old_method = payment.payment_method
            payment.payment_method = new_method
            qr = None
            if requires_redirect(new_method):
                qr = self._issue_gateway_payload(payment, timezone.now())
            else:
                self._clear_gateway_payload(payment)
            payment.save()
            record_event(
                "payment_method_changed",
                {"payment_id": payment.pk, "code": payment.code, "from": old_method, "to": new_method},
            )

        logger.info(f"Payment {payment.code} method {old_method} -> {new_method}")
        return payment, qr

    def reconcile_gateway_callback(self, params: Mapping[str, str]) -> Tuple[ReconciliationResult, Payment]:
        """Classify a gateway return and complete the matching payment on success.

        Raises GatewayUnresolved while parameters are still missing, so the
        redirect target can simply be called again.
        """
        result = gateway_reconciler.reconcile(params)

        with transaction.atomic():
            try:
                payment = Payment.objects.select_for_update().get(vnpay_txn_ref=result.txn_ref)
            except Payment.DoesNotExist:
                raise NotFound(f"no payment for transaction reference {result.txn_ref}")

            if not self.gateway.verify(dict(params)):
                logger.warning(f"Rejected callback for {payment.code}: invalid checksum")
                return ReconciliationResult(Outcome.FAILURE, "Invalid checksum", result.parsed_fields), payment

            if result.outcome != Outcome.SUCCESS:
                logger.warning(
                    f"Gateway returned {result.outcome} ({result.parsed_fields['response_code']}) "
                    f"for {payment.code}, left {payment.status}"
                )
                return result, payment

            if payment.status == PaymentStatus.COMPLETED:
                return result, payment
            if payment.status != PaymentStatus.PENDING:
                logger.warning(f"Successful callback for {payment.status} payment {payment.code}, left unchanged")
                return result, payment
            if result.amount != payment.amount:
                logger.warning(
                    f"Callback amount {result.amount} does not match payment {payment.code} amount {payment.amount}"
                )
                return (
                    ReconciliationResult(
                        Outcome.FAILURE, "Paid amount does not match the payment amount", result.parsed_fields
                    ),
                    payment,
                )

            payment.status = PaymentStatus.COMPLETED
            payment.vnpay_transaction_no = result.parsed_fields["transaction_no"]
            payment.vnpay_bank_code = result.parsed_fields["bank_code"]
            payment.transaction_id = result.parsed_fields["transaction_no"]
            payment.save()
            record_event("payment_completed", {"payment_id": payment.pk, "code": payment.code})
            self._after_completion(payment)

        logger.info(f"Payment {payment.code} completed through gateway")
        return result, payment

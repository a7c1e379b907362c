import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from settlement.models import Payment
from settlement.services import contract_gate
from settlement.services.checkout import CheckoutService
from settlement.services.errors import GatewayUnresolved, NotFound, SettlementError
from settlement.services.payment_orchestrator import PaymentOrchestrator
from settlement.services.vnpay import GatewayConfig, VNPayGateway

from .serializers import (
    CancelPaymentSerializer,
    ConfirmPaymentSerializer,
    CreatePaymentSerializer,
    FeesInspectionSerializer,
    PaymentSerializer,
    RentalSerializer,
    UpdatePaymentMethodSerializer,
)

logger = logging.getLogger(__name__)


def build_orchestrator(request) -> PaymentOrchestrator:
    # gateway settings are read once here and carried through the whole request
    config = GatewayConfig.from_settings(client_ip=request.META.get("REMOTE_ADDR"))
    return PaymentOrchestrator(VNPayGateway(config))


def error_response(e: SettlementError) -> Response:
    return Response(e.as_response_body(), status=e.status_code)


class RentalDetailView(APIView):
    def get(self, request, rental_id):
        try:
            rental = contract_gate.get_rental(rental_id)
        except SettlementError as e:
            return error_response(e)
        return Response(RentalSerializer(rental).data)


class CheckoutEligibilityView(APIView):
    def get(self, request, rental_id):
        try:
            decision = contract_gate.can_checkout(rental_id)
        except SettlementError as e:
            return error_response(e)
        return Response(decision.to_dict())


class CheckoutInfoView(APIView):
    def get(self, request, rental_id):
        service = CheckoutService(build_orchestrator(request))
        try:
            info = service.begin_checkout(rental_id)
        except SettlementError as e:
            return error_response(e)
        return Response(info)


class CheckoutNormalView(APIView):
    mode = "normal"
    # fee fields must reach the service so normal mode can refuse them
    serializer_class = FeesInspectionSerializer

    def put(self, request, rental_id):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        fees = {name: data.get(name) for name in ("late_fee", "damage_fee", "other_fees")}

        service = CheckoutService(build_orchestrator(request))
        try:
            result = service.submit_checkout(
                rental_id, data, mode=self.mode, fees=fees, return_staff=data.get("return_staff", "")
            )
        except SettlementError as e:
            logger.info(f"Checkout of rental {rental_id} rejected: {e}")
            return error_response(e)
        return Response(result)


class CheckoutFeesView(CheckoutNormalView):
    mode = "fees"


class PaymentView(APIView):
    def post(self, request):
        serializer = CreatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        orchestrator = build_orchestrator(request)
        try:
            payment, qr, created = orchestrator.create_payment(
                booking_id=data["booking_id"],
                payment_type=data["payment_type"],
                payment_method=data["payment_method"],
                amount=data.get("amount"),
                rental_id=data.get("rental_id"),
                reason=data.get("reason"),
                notes=data.get("notes"),
                processed_by=data.get("processed_by", ""),
                idempotency_key=request.headers.get("Idempotency-Key") or None,
                request_body=request.data,
            )
        except SettlementError as e:
            return error_response(e)

        resp = {
            "payment": PaymentSerializer(payment).data,
            "qr_data": qr.to_dict() if qr else None,
        }
        return Response(resp, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class PaymentDetailView(APIView):
    def get(self, request, payment_id):
        payment = Payment.objects.filter(pk=payment_id).first()
        if payment is None:
            return error_response(NotFound(f"payment {payment_id} not found"))
        return Response(PaymentSerializer(payment).data)


class ConfirmPaymentView(APIView):
    def put(self, request, payment_id):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            payment = build_orchestrator(request).confirm_payment(
                payment_id,
                transaction_id=data.get("transaction_id"),
                notes=data.get("notes"),
                processed_by=data.get("processed_by", ""),
            )
        except SettlementError as e:
            return error_response(e)
        return Response({"payment": PaymentSerializer(payment).data})


class CancelPaymentView(APIView):
    def put(self, request, payment_id):
        serializer = CancelPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payment = build_orchestrator(request).cancel_payment(payment_id, serializer.validated_data["reason"])
        except SettlementError as e:
            return error_response(e)
        return Response({"payment": PaymentSerializer(payment).data})


class PaymentMethodView(APIView):
    def put(self, request, payment_id):
        serializer = UpdatePaymentMethodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payment, qr = build_orchestrator(request).update_payment_method(
                payment_id, serializer.validated_data["payment_method"]
            )
        except SettlementError as e:
            return error_response(e)
        return Response({"payment": PaymentSerializer(payment).data, "qr_data": qr.to_dict() if qr else None})


class VNPayReturnView(APIView):
    """Redirect target the customer's browser lands on after leaving VNPay."""

    def get(self, request):
        params = request.query_params.dict()
        try:
            result, payment = build_orchestrator(request).reconcile_gateway_callback(params)
        except GatewayUnresolved as e:
            logger.info(f"Gateway callback not resolved yet, missing {e.missing}")
            return error_response(e)
        except SettlementError as e:
            logger.warning(f"Gateway callback rejected: {e}")
            return error_response(e)

        resp = {
            "resolved": True,
            **result.to_dict(),
            "payment": {"id": payment.pk, "code": payment.code, "status": payment.status},
        }
        rental = payment.booking.rental if hasattr(payment.booking, "rental") else None
        resp["rental_status"] = rental.status if rental else None
        return Response(resp)

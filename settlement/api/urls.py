from django.urls import path

from .views import (
    CancelPaymentView,
    CheckoutEligibilityView,
    CheckoutFeesView,
    CheckoutInfoView,
    CheckoutNormalView,
    ConfirmPaymentView,
    PaymentDetailView,
    PaymentMethodView,
    PaymentView,
    RentalDetailView,
    VNPayReturnView,
)

urlpatterns = [
    path("rentals/<int:rental_id>", RentalDetailView.as_view(), name="rental-detail"),
    path("rentals/<int:rental_id>/checkout-eligibility", CheckoutEligibilityView.as_view(), name="checkout-eligibility"),
    path("rentals/<int:rental_id>/checkout-info", CheckoutInfoView.as_view(), name="checkout-info"),
    path("rentals/<int:rental_id>/checkout-normal", CheckoutNormalView.as_view(), name="checkout-normal"),
    path("rentals/<int:rental_id>/checkout-fees", CheckoutFeesView.as_view(), name="checkout-fees"),
    path("payments", PaymentView.as_view(), name="payments"),
    path("payments/vnpay-return", VNPayReturnView.as_view(), name="vnpay-return"),
    path("payments/<int:payment_id>", PaymentDetailView.as_view(), name="payment-detail"),
    path("payments/<int:payment_id>/confirm", ConfirmPaymentView.as_view(), name="payment-confirm"),
    path("payments/<int:payment_id>/cancel", CancelPaymentView.as_view(), name="payment-cancel"),
    path("payments/<int:payment_id>/method", PaymentMethodView.as_view(), name="payment-method"),
]

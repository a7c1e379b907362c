import uuid
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from settlement.models import (
    Booking,
    Contract,
    Customer,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Rental,
    RentalStatus,
    Station,
    Vehicle,
    VehicleStatus,
)
from settlement.services.vnpay import sign


def make_rental(*, contract=True, signed=True, status=RentalStatus.ACTIVE, mileage=1000, deposit=0,
                total_price=1200000, hours_until_due=2):
    suffix = uuid.uuid4().hex[:6]
    station = Station.objects.create(name="District 1 Station", address="12 Le Loi, District 1")
    vehicle = Vehicle.objects.create(
        name="VinFast Klara",
        license_plate=f"59A-{suffix}",
        model="Klara S",
        battery_capacity=48,
        status=VehicleStatus.RENTED,
        station=station,
    )
    customer = Customer.objects.create(fullname="Tran Minh Anh", email="anh@example.com", phone="0901234567")
    now = timezone.now()
    booking = Booking.objects.create(
        code=f"BK-{suffix}",
        customer=customer,
        vehicle=vehicle,
        station=station,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(hours=hours_until_due),
        total_price=total_price,
        deposit_amount=deposit,
    )
    rental = Rental.objects.create(
        code=f"RT-{suffix}",
        booking=booking,
        status=status,
        actual_start_time=now - timedelta(days=1),
        pickup_staff="Le Van Binh",
        vehicle_condition_before={
            "mileage": mileage,
            "battery_level": 100,
            "exterior_condition": "excellent",
            "interior_condition": "excellent",
            "notes": "",
        },
        images_before=["https://cdn.example.com/pickup/front.jpg"],
    )
    if contract:
        Contract.objects.create(
            code=f"CT-{suffix}",
            rental=rental,
            status="signed" if signed else "pending",
            staff_signed_at=now - timedelta(days=1),
            customer_signed_at=(now - timedelta(days=1)) if signed else None,
        )
    return rental


def make_payment(rental, *, payment_type=PaymentType.DEPOSIT, method=PaymentMethod.CASH,
                 status=PaymentStatus.PENDING, amount=500000, attach_rental=False):
    return Payment.objects.create(
        code=f"pmt_{uuid.uuid4().hex[:8]}",
        booking=rental.booking,
        rental=rental if attach_rental else None,
        amount=amount,
        payment_method=method,
        payment_type=payment_type,
        status=status,
    )


def inspection(**overrides):
    data = {
        "mileage": 1050,
        "battery_level": 80,
        "exterior_condition": "good",
        "interior_condition": "good",
    }
    data.update(overrides)
    return data


def gateway_callback(payment, response_code="00", amount=None, signed=True, **overrides):
    params = {
        "vnp_Amount": str((payment.amount if amount is None else amount) * 100),
        "vnp_BankCode": "NCB",
        "vnp_BankTranNo": "VNP14512345",
        "vnp_CardType": "ATM",
        "vnp_OrderInfo": f"Payment {payment.code}",
        "vnp_PayDate": "20241018143015",
        "vnp_ResponseCode": response_code,
        "vnp_TmnCode": settings.VNPAY_TMN_CODE,
        "vnp_TransactionNo": "14512345",
        "vnp_TransactionStatus": response_code,
        "vnp_TxnRef": payment.vnpay_txn_ref,
    }
    params.update(overrides)
    if signed:
        params["vnp_SecureHash"] = sign(params, settings.VNPAY_HASH_SECRET)
    return params

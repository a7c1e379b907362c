from django.db import models
from django.utils import timezone


class RentalStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    PENDING_DEPOSIT = "pending_deposit", "Pending deposit"
    PENDING_PAYMENT = "pending_payment", "Pending payment"
    COMPLETED = "completed", "Completed"


class ConditionGrade(models.TextChoices):
    EXCELLENT = "excellent", "Excellent"
    GOOD = "good", "Good"
    FAIR = "fair", "Fair"
    POOR = "poor", "Poor"


class ContractStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SIGNED = "signed", "Signed"
    EXPIRED = "expired", "Expired"
    CANCELLED = "cancelled", "Cancelled"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    QR_CODE = "qr_code", "QR code"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    VNPAY = "vnpay", "VNPay"


class PaymentType(models.TextChoices):
    DEPOSIT = "deposit", "Deposit"
    RENTAL_FEE = "rental_fee", "Rental fee"
    ADDITIONAL_FEE = "additional_fee", "Additional fee"
    REFUND = "refund", "Refund"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class VehicleStatus(models.TextChoices):
    AVAILABLE = "available", "Available"
    RENTED = "rented", "Rented"
    MAINTENANCE = "maintenance", "Maintenance"


class Station(models.Model):
    name = models.CharField(max_length=128)
    address = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.name


class Vehicle(models.Model):
    name = models.CharField(max_length=128)
    license_plate = models.CharField(max_length=32, unique=True)
    model = models.CharField(max_length=64, blank=True)
    battery_capacity = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=16, choices=VehicleStatus.choices, default=VehicleStatus.AVAILABLE)
    station = models.ForeignKey(Station, on_delete=models.PROTECT, related_name="vehicles")

    def __str__(self):
        return self.license_plate


class Customer(models.Model):
    fullname = models.CharField(max_length=128)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)

    def __str__(self):
        return self.fullname


class Booking(models.Model):
    code = models.CharField(max_length=64, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="bookings")
    vehicle = models.ForeignKey(Vehicle, on_delete=models.PROTECT, related_name="bookings")
    station = models.ForeignKey(Station, on_delete=models.PROTECT, related_name="bookings")
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    total_price = models.PositiveIntegerField(default=0)
    deposit_amount = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.code


class Rental(models.Model):
    code = models.CharField(max_length=64, unique=True)
    booking = models.OneToOneField(Booking, on_delete=models.PROTECT, related_name="rental")
    status = models.CharField(max_length=32, choices=RentalStatus.choices, default=RentalStatus.ACTIVE)
    actual_start_time = models.DateTimeField(default=timezone.now)
    actual_end_time = models.DateTimeField(null=True, blank=True)
    pickup_staff = models.CharField(max_length=128, blank=True)
    return_staff = models.CharField(max_length=128, blank=True)
    vehicle_condition_before = models.JSONField(default=dict, blank=True)
    vehicle_condition_after = models.JSONField(default=dict, blank=True)
    images_before = models.JSONField(default=list, blank=True)
    images_after = models.JSONField(default=list, blank=True)
    late_fee = models.PositiveIntegerField(default=0)
    damage_fee = models.PositiveIntegerField(default=0)
    other_fees = models.PositiveIntegerField(default=0)
    total_fees = models.PositiveIntegerField(default=0)
    staff_notes = models.TextField(blank=True)
    customer_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    @property
    def vehicle(self):
        return self.booking.vehicle

    @property
    def customer(self):
        return self.booking.customer

    @property
    def station(self):
        return self.booking.station


class Contract(models.Model):
    code = models.CharField(max_length=64, unique=True)
    rental = models.OneToOneField(Rental, on_delete=models.CASCADE, related_name="contract")
    status = models.CharField(max_length=16, choices=ContractStatus.choices, default=ContractStatus.PENDING)
    staff_signed_at = models.DateTimeField(null=True, blank=True)
    customer_signed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    @property
    def is_signed(self) -> bool:
        return self.staff_signed_at is not None and self.customer_signed_at is not None

    def __str__(self):
        return self.code


class Payment(models.Model):
    code = models.CharField(max_length=64, unique=True)
    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name="payments")
    rental = models.ForeignKey(Rental, on_delete=models.PROTECT, related_name="payments", null=True, blank=True)
    amount = models.PositiveIntegerField()
    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices)
    payment_type = models.CharField(max_length=16, choices=PaymentType.choices)
    status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    transaction_id = models.CharField(max_length=128, blank=True)
    processed_by = models.CharField(max_length=128, blank=True)
    # gateway fields, populated only for vnpay
    vnpay_txn_ref = models.CharField(max_length=64, null=True, blank=True, unique=True)
    vnpay_url = models.TextField(blank=True)
    qr_code_data = models.TextField(blank=True)
    qr_code_image = models.TextField(blank=True)
    vnpay_bank_code = models.CharField(max_length=32, blank=True)
    vnpay_transaction_no = models.CharField(max_length=64, blank=True)
    qr_created_at = models.DateTimeField(null=True, blank=True)
    qr_expires_at = models.DateTimeField(null=True, blank=True)
    idempotency_key = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    request_body = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code


class OutboxEvent(models.Model):
    type = models.CharField(max_length=64)
    payload = models.JSONField()
    status = models.CharField(max_length=32, default="pending")
    created_at = models.DateTimeField(default=timezone.now)
    published_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.type}:{self.status}"

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("fullname", models.CharField(max_length=128)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=32)),
            ],
        ),
        migrations.CreateModel(
            name="OutboxEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(max_length=64)),
                ("payload", models.JSONField()),
                ("status", models.CharField(default="pending", max_length=32)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="Station",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=128)),
                ("address", models.CharField(blank=True, max_length=255)),
            ],
        ),
        migrations.CreateModel(
            name="Vehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=128)),
                ("license_plate", models.CharField(max_length=32, unique=True)),
                ("model", models.CharField(blank=True, max_length=64)),
                ("battery_capacity", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("available", "Available"), ("rented", "Rented"), ("maintenance", "Maintenance")],
                        default="available",
                        max_length=16,
                    ),
                ),
                (
                    "station",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="vehicles", to="settlement.station"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField()),
                ("total_price", models.PositiveIntegerField(default=0)),
                ("deposit_amount", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="settlement.customer"
                    ),
                ),
                (
                    "station",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="settlement.station"
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="settlement.vehicle"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Rental",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("pending_deposit", "Pending deposit"),
                            ("pending_payment", "Pending payment"),
                            ("completed", "Completed"),
                        ],
                        default="active",
                        max_length=32,
                    ),
                ),
                ("actual_start_time", models.DateTimeField(default=django.utils.timezone.now)),
                ("actual_end_time", models.DateTimeField(blank=True, null=True)),
                ("pickup_staff", models.CharField(blank=True, max_length=128)),
                ("return_staff", models.CharField(blank=True, max_length=128)),
                ("vehicle_condition_before", models.JSONField(blank=True, default=dict)),
                ("vehicle_condition_after", models.JSONField(blank=True, default=dict)),
                ("images_before", models.JSONField(blank=True, default=list)),
                ("images_after", models.JSONField(blank=True, default=list)),
                ("late_fee", models.PositiveIntegerField(default=0)),
                ("damage_fee", models.PositiveIntegerField(default=0)),
                ("other_fees", models.PositiveIntegerField(default=0)),
                ("total_fees", models.PositiveIntegerField(default=0)),
                ("staff_notes", models.TextField(blank=True)),
                ("customer_notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT, related_name="rental", to="settlement.booking"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Contract",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("signed", "Signed"),
                            ("expired", "Expired"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("staff_signed_at", models.DateTimeField(blank=True, null=True)),
                ("customer_signed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "rental",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE, related_name="contract", to="settlement.rental"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64, unique=True)),
                ("amount", models.PositiveIntegerField()),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("qr_code", "QR code"),
                            ("bank_transfer", "Bank transfer"),
                            ("vnpay", "VNPay"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=[
                            ("deposit", "Deposit"),
                            ("rental_fee", "Rental fee"),
                            ("additional_fee", "Additional fee"),
                            ("refund", "Refund"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("completed", "Completed"), ("cancelled", "Cancelled")],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("reason", models.TextField(blank=True)),
                ("notes", models.TextField(blank=True)),
                ("transaction_id", models.CharField(blank=True, max_length=128)),
                ("processed_by", models.CharField(blank=True, max_length=128)),
                ("vnpay_txn_ref", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("vnpay_url", models.TextField(blank=True)),
                ("qr_code_data", models.TextField(blank=True)),
                ("qr_code_image", models.TextField(blank=True)),
                ("vnpay_bank_code", models.CharField(blank=True, max_length=32)),
                ("vnpay_transaction_no", models.CharField(blank=True, max_length=64)),
                ("qr_created_at", models.DateTimeField(blank=True, null=True)),
                ("qr_expires_at", models.DateTimeField(blank=True, null=True)),
                ("idempotency_key", models.CharField(blank=True, db_index=True, max_length=128, null=True)),
                ("request_body", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="settlement.booking"
                    ),
                ),
                (
                    "rental",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="settlement.rental",
                    ),
                ),
            ],
        ),
    ]

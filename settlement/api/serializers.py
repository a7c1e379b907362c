from rest_framework import serializers

from settlement.models import ConditionGrade, Contract, Payment, PaymentMethod, PaymentType, Rental


class InspectionSerializer(serializers.Serializer):
    mileage = serializers.IntegerField()
    battery_level = serializers.IntegerField()
    exterior_condition = serializers.ChoiceField(choices=ConditionGrade.choices)
    interior_condition = serializers.ChoiceField(choices=ConditionGrade.choices)
    inspection_notes = serializers.CharField(required=False, allow_blank=True)
    damage_description = serializers.CharField(required=False, allow_blank=True)
    customer_notes = serializers.CharField(required=False, allow_blank=True)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False)
    images = serializers.ListField(child=serializers.CharField(), required=False)
    return_staff = serializers.CharField(required=False, allow_blank=True)


class FeesInspectionSerializer(InspectionSerializer):
    late_fee = serializers.IntegerField(required=False)
    damage_fee = serializers.IntegerField(required=False)
    other_fees = serializers.IntegerField(required=False)


class CreatePaymentSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    payment_type = serializers.ChoiceField(choices=PaymentType.choices)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    rental_id = serializers.IntegerField(required=False, allow_null=True)
    amount = serializers.IntegerField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    processed_by = serializers.CharField(required=False, allow_blank=True)


class ConfirmPaymentSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    processed_by = serializers.CharField(required=False, allow_blank=True)


class CancelPaymentSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)


class UpdatePaymentMethodSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "code",
            "booking_id",
            "rental_id",
            "amount",
            "payment_method",
            "payment_type",
            "status",
            "reason",
            "notes",
            "transaction_id",
            "processed_by",
            "vnpay_txn_ref",
            "vnpay_url",
            "qr_code_data",
            "qr_code_image",
            "vnpay_bank_code",
            "vnpay_transaction_no",
            "qr_created_at",
            "qr_expires_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ContractSummarySerializer(serializers.ModelSerializer):
    is_signed = serializers.BooleanField(read_only=True)

    class Meta:
        model = Contract
        fields = ["code", "status", "staff_signed_at", "customer_signed_at", "is_signed"]


class RentalSerializer(serializers.ModelSerializer):
    contract = serializers.SerializerMethodField()

    class Meta:
        model = Rental
        fields = [
            "id",
            "code",
            "booking_id",
            "status",
            "actual_start_time",
            "actual_end_time",
            "pickup_staff",
            "return_staff",
            "vehicle_condition_before",
            "vehicle_condition_after",
            "images_before",
            "images_after",
            "late_fee",
            "damage_fee",
            "other_fees",
            "total_fees",
            "staff_notes",
            "customer_notes",
            "contract",
        ]

    def get_contract(self, obj):
        try:
            return ContractSummarySerializer(obj.contract).data
        except Contract.DoesNotExist:
            return None

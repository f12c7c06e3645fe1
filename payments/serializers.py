# ==================== PAYMENTS/SERIALIZERS.PY ====================
from rest_framework import serializers
from bookings.models import Booking
from .models import Refund
from .services import EARNING_PERIODS


class IntentCreateSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()


class IntentSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    intent_id = serializers.CharField()
    checkout_key = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()


class PaymentConfirmSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()


class RefundInitiateSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class RefundSerializer(serializers.ModelSerializer):
    booking_id = serializers.IntegerField(source='booking.id', read_only=True)
    driver_name = serializers.CharField(source='booking.driver.get_full_name', read_only=True)

    class Meta:
        model = Refund
        fields = ['id', 'booking_id', 'amount', 'reason', 'gateway_refund_id', 'status',
                  'driver_name', 'created_at', 'updated_at']
        read_only_fields = fields


class PaymentHistorySerializer(serializers.ModelSerializer):
    parking_lot_name = serializers.CharField(source='parking_lot.name', read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'parking_lot', 'parking_lot_name', 'start_time', 'end_time', 'status',
                  'total_price', 'payment_intent_id', 'payment_reference', 'payment_completed_at',
                  'refunded_at']
        read_only_fields = fields


class EarningsQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=EARNING_PERIODS, default='month')

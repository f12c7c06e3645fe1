# ==================== BOOKINGS/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import Booking, BookingStatus
from .state_machine import allowed_targets
from parking.serializers import ParkingLotListSerializer


class BookingCreateSerializer(serializers.Serializer):
    """Input for admission; the booking itself is built by ReservationService"""
    parking_lot_id = serializers.IntegerField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    vehicle_info = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class BookingUpdateSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField(required=False)
    end_time = serializers.DateTimeField(required=False)
    vehicle_info = serializers.CharField(max_length=200, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BookingStatus.choices)


class BookingListSerializer(serializers.ModelSerializer):
    parking_lot_name = serializers.CharField(source='parking_lot.name', read_only=True)
    driver_name = serializers.CharField(source='driver.get_full_name', read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'parking_lot', 'parking_lot_name', 'driver', 'driver_name', 'start_time',
                  'end_time', 'duration', 'status', 'total_price', 'vehicle_info', 'created_at']
        read_only_fields = fields


class BookingDetailSerializer(serializers.ModelSerializer):
    parking_lot = ParkingLotListSerializer(read_only=True)
    driver_name = serializers.CharField(source='driver.get_full_name', read_only=True)
    next_statuses = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = ['id', 'driver', 'driver_name', 'parking_lot', 'start_time', 'end_time', 'duration',
                  'status', 'next_statuses', 'total_price', 'vehicle_info', 'notes', 'payment_intent_id',
                  'payment_reference', 'payment_completed_at', 'refunded_at', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_next_statuses(self, obj):
        return allowed_targets(obj.status)

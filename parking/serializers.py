# ==================== PARKING/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import ParkingLot, CapacityAuditEntry


class ParkingLotListSerializer(serializers.ModelSerializer):
    """Simplified serializer for listing parking lots"""
    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)

    class Meta:
        model = ParkingLot
        fields = ['id', 'name', 'address', 'available_spaces', 'total_spaces', 'price_per_hour',
                  'is_active', 'owner_name']


class ParkingLotDetailSerializer(serializers.ModelSerializer):
    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)
    occupancy_rate = serializers.FloatField(read_only=True)

    class Meta:
        model = ParkingLot
        fields = ['id', 'owner', 'owner_name', 'name', 'address', 'operating_hours', 'amenities',
                  'total_spaces', 'available_spaces', 'occupancy_rate', 'price_per_hour', 'is_active',
                  'created_at', 'updated_at']
        read_only_fields = fields


class ParkingLotCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ParkingLot
        fields = ['id', 'name', 'address', 'operating_hours', 'amenities', 'total_spaces',
                  'price_per_hour', 'is_active']
        read_only_fields = ['id']


class ParkingLotUpdateSerializer(serializers.ModelSerializer):
    """Capacity is not editable here: total_spaces is fixed and available_spaces goes through /spaces/"""

    class Meta:
        model = ParkingLot
        fields = ['name', 'address', 'operating_hours', 'amenities', 'price_per_hour', 'is_active']


class SpacesUpdateSerializer(serializers.Serializer):
    available_spaces = serializers.IntegerField(min_value=0, required=False)
    delta = serializers.IntegerField(required=False)

    def validate(self, data):
        if ('available_spaces' in data) == ('delta' in data):
            raise serializers.ValidationError("Provide exactly one of available_spaces or delta")
        return data


class CapacityAuditEntrySerializer(serializers.ModelSerializer):
    changed_by_name = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = CapacityAuditEntry
        fields = ['id', 'parking_lot', 'previous_available', 'new_available', 'changed_by_name', 'created_at']

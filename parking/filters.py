# ============================= PARKING/FILTERS.PY =============================
import django_filters
from .models import ParkingLot


class ParkingLotFilter(django_filters.FilterSet):
    """Filtering for parking lot listings"""

    price_min = django_filters.NumberFilter(
        field_name='price_per_hour',
        lookup_expr='gte',
        label='Minimum Price Per Hour'
    )
    price_max = django_filters.NumberFilter(
        field_name='price_per_hour',
        lookup_expr='lte',
        label='Maximum Price Per Hour'
    )
    has_space = django_filters.BooleanFilter(
        method='filter_has_space',
        label='Has Available Spaces'
    )

    class Meta:
        model = ParkingLot
        fields = {
            'is_active': ['exact'],
            'owner': ['exact'],
            'created_at': ['gte', 'lte'],
        }

    def filter_has_space(self, queryset, name, value):
        if value:
            return queryset.filter(available_spaces__gt=0)
        return queryset.filter(available_spaces=0)

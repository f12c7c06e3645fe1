# ==================== BOOKINGS/ADMIN.PY ====================
from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'driver', 'parking_lot', 'status', 'start_time', 'end_time', 'total_price', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['driver__username', 'parking_lot__name', 'vehicle_info', 'payment_intent_id']
    # Status and price only change through the booking services
    readonly_fields = ['status', 'duration', 'total_price', 'payment_intent_id', 'payment_reference',
                       'payment_completed_at', 'refunded_at', 'created_at', 'updated_at']

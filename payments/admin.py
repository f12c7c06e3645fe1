# ==================== PAYMENTS/ADMIN.PY ====================
from django.contrib import admin
from .models import Refund


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ['gateway_refund_id', 'booking', 'amount', 'status', 'requested_by', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['gateway_refund_id', 'booking__id', 'booking__payment_intent_id']
    readonly_fields = ['booking', 'amount', 'reason', 'gateway_refund_id', 'requested_by',
                       'created_at', 'updated_at']

    def has_add_permission(self, request):
        # Refunds are created through the gateway only
        return False

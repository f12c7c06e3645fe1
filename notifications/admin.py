# ==================== NOTIFICATIONS/ADMIN.PY ====================
from django.contrib import admin
from .models import Notification

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['id', 'recipient', 'type', 'title', 'is_read', 'created_at']
    list_filter = ['type', 'is_read', 'created_at']
    search_fields = ['recipient__username', 'title']
    readonly_fields = ['id', 'recipient', 'type', 'title', 'message', 'payload', 'created_at']

    def has_add_permission(self, request):
        return False

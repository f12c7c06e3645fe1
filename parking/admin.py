# ==================== PARKING/ADMIN.PY ====================
from django.contrib import admin
from .models import ParkingLot, CapacityAuditEntry

class CapacityAuditInline(admin.TabularInline):
    model = CapacityAuditEntry
    extra = 0
    can_delete = False
    readonly_fields = ['previous_available', 'new_available', 'changed_by', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False

@admin.register(ParkingLot)
class ParkingLotAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'is_active', 'available_spaces', 'total_spaces', 'price_per_hour', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'address', 'owner__username']
    # Capacity changes must go through CapacityStore so they are audited
    readonly_fields = ['available_spaces', 'created_at', 'updated_at']
    inlines = [CapacityAuditInline]
    fieldsets = (
        ('Basic Info', {'fields': ('owner', 'name', 'address', 'operating_hours', 'amenities')}),
        ('Capacity', {'fields': ('total_spaces', 'available_spaces', 'is_active')}),
        ('Pricing', {'fields': ('price_per_hour',)}),
        ('Timestamps', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return self.readonly_fields + ['total_spaces']
        return self.readonly_fields

    def save_model(self, request, obj, form, change):
        if not change:
            obj.available_spaces = obj.total_spaces
        super().save_model(request, obj, form, change)


@admin.register(CapacityAuditEntry)
class CapacityAuditEntryAdmin(admin.ModelAdmin):
    list_display = ['parking_lot', 'previous_available', 'new_available', 'changed_by', 'created_at']
    list_filter = ['created_at']
    readonly_fields = ['parking_lot', 'previous_available', 'new_available', 'changed_by', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

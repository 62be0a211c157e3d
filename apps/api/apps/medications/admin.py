from django.contrib import admin

from .models import Medication, MedicationUsage, RestockRequest


class MedicationUsageInline(admin.TabularInline):
    model = MedicationUsage
    extra = 0
    can_delete = False
    fields = ['used_at', 'kind', 'quantity', 'case', 'treatment_reference', 'veterinarian']
    readonly_fields = fields
    
    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    list_display = [
        'medication_id', 'name', 'strength', 'quantity', 'threshold',
        'expiry_date', 'alert_low_stock', 'alert_expired', 'is_active'
    ]
    list_filter = ['category', 'form', 'is_active', 'alert_low_stock', 'alert_near_expiry', 'alert_expired']
    search_fields = ['medication_id', 'name', 'generic_name', 'manufacturer']
    # quantity moves only through the dispensing ledger
    readonly_fields = ['id', 'medication_id', 'quantity', 'initial_quantity', 'created_at', 'updated_at']
    inlines = [MedicationUsageInline]


@admin.register(RestockRequest)
class RestockRequestAdmin(admin.ModelAdmin):
    list_display = ['medication', 'quantity_requested', 'priority', 'status', 'requested_at', 'received_at']
    list_filter = ['status', 'priority']
    search_fields = ['medication__name', 'medication__medication_id']
    readonly_fields = ['id', 'requested_at', 'resolved_at', 'received_at']

from django.contrib import admin

from .models import Treatment, TreatmentImage, TreatmentMedication, TreatmentProcedure


class TreatmentMedicationInline(admin.TabularInline):
    model = TreatmentMedication
    extra = 0
    can_delete = False
    fields = ['name', 'quantity', 'dosage', 'frequency', 'duration', 'unit_cost', 'is_correction']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class TreatmentProcedureInline(admin.TabularInline):
    model = TreatmentProcedure
    extra = 0
    fields = ['position', 'name', 'duration', 'cost']


class TreatmentImageInline(admin.TabularInline):
    model = TreatmentImage
    extra = 0
    fields = ['image_type', 'asset_key', 'description', 'uploaded_at']
    readonly_fields = fields


@admin.register(Treatment)
class TreatmentAdmin(admin.ModelAdmin):
    list_display = ['treatment_id', 'case', 'assigned_vet', 'treatment_type', 'status', 'outcome', 'total_cost', 'treatment_date']
    list_filter = ['treatment_type', 'status', 'outcome']
    search_fields = ['treatment_id', 'case__case_id', 'diagnosis']
    readonly_fields = [
        'id', 'treatment_id', 'case', 'assigned_vet', 'medication_cost',
        'procedure_cost', 'total_cost', 'created_at', 'updated_at',
    ]
    inlines = [TreatmentMedicationInline, TreatmentProcedureInline, TreatmentImageInline]

"""Treatment serializers."""
from rest_framework import serializers

from apps.core.serializers import NormalizedChoiceField, UserSummarySerializer
from apps.core.vocabulary import TREATMENT_STATUS

from .models import (
    ImageTypeChoices,
    OutcomeChoices,
    Treatment,
    TreatmentImage,
    TreatmentMedication,
    TreatmentProcedure,
    TreatmentTypeChoices,
)


class TreatmentMedicationSerializer(serializers.ModelSerializer):
    medication_id = serializers.UUIDField(source='medication.id', read_only=True)
    line_cost = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = TreatmentMedication
        fields = [
            'id', 'medication_id', 'name', 'quantity', 'dosage', 'frequency',
            'duration', 'notes', 'unit_cost', 'line_cost', 'is_correction',
            'created_at',
        ]
        read_only_fields = fields


class TreatmentProcedureSerializer(serializers.ModelSerializer):
    class Meta:
        model = TreatmentProcedure
        fields = ['id', 'name', 'description', 'duration', 'cost', 'complications', 'success_rate']
        read_only_fields = fields


class TreatmentImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = TreatmentImage
        fields = ['id', 'asset_key', 'url', 'description', 'image_type', 'width', 'height', 'file_size', 'uploaded_at']
        read_only_fields = fields


class TreatmentSerializer(serializers.ModelSerializer):
    """Read serializer. Costs are derived and always read-only."""
    case_id = serializers.CharField(source='case.case_id', read_only=True)
    assigned_vet = UserSummarySerializer(read_only=True)
    medications = TreatmentMedicationSerializer(many=True, read_only=True)
    procedures = TreatmentProcedureSerializer(many=True, read_only=True)
    images = TreatmentImageSerializer(many=True, read_only=True)
    treatment_status = serializers.CharField(source='status', read_only=True)

    class Meta:
        model = Treatment
        fields = [
            'id', 'treatment_id', 'case_id', 'assigned_vet', 'treatment_type',
            'treatment_date', 'diagnosis', 'treatment_plan', 'medications',
            'procedures', 'images', 'vital_signs', 'treatment_status',
            'outcome', 'recovery_notes', 'follow_up_date', 'complications',
            'notes', 'medication_cost', 'procedure_cost', 'total_cost',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class MedicationEntryInputSerializer(serializers.Serializer):
    medication_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    dosage = serializers.CharField(max_length=100)
    frequency = serializers.CharField(max_length=100)
    duration = serializers.CharField(max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ProcedureInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField()
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, default=0)
    complications = serializers.CharField(required=False, allow_blank=True, default='')
    success_rate = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')


class VitalSignsSerializer(serializers.Serializer):
    temperature = serializers.FloatField(required=False)
    heart_rate = serializers.IntegerField(required=False, min_value=0)
    respiratory_rate = serializers.IntegerField(required=False, min_value=0)
    blood_pressure = serializers.CharField(required=False, allow_blank=True)
    weight = serializers.FloatField(required=False, min_value=0)
    recorded_at = serializers.DateTimeField(required=False)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if 'recorded_at' in value:
            value['recorded_at'] = value['recorded_at'].isoformat()
        return value


class TreatmentCreateSerializer(serializers.Serializer):
    case = serializers.UUIDField()
    treatment_type = serializers.ChoiceField(choices=TreatmentTypeChoices.choices)
    treatment_date = serializers.DateTimeField(required=False)
    diagnosis = serializers.CharField()
    treatment_plan = serializers.CharField()
    medications = MedicationEntryInputSerializer(many=True, required=False, default=list)
    procedures = ProcedureInputSerializer(many=True, required=False, default=list)
    vital_signs = VitalSignsSerializer(required=False)
    treatment_status = NormalizedChoiceField(vocabulary=TREATMENT_STATUS, source='status', required=False)
    outcome = serializers.ChoiceField(choices=OutcomeChoices.choices, required=False)
    follow_up_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class TreatmentUpdateSerializer(serializers.Serializer):
    diagnosis = serializers.CharField(required=False)
    treatment_plan = serializers.CharField(required=False)
    procedures = ProcedureInputSerializer(many=True, required=False)
    additional_medications = MedicationEntryInputSerializer(many=True, required=False)
    vital_signs = VitalSignsSerializer(required=False)
    treatment_status = NormalizedChoiceField(vocabulary=TREATMENT_STATUS, source='status', required=False)
    outcome = serializers.ChoiceField(choices=OutcomeChoices.choices, required=False)
    recovery_notes = serializers.CharField(required=False, allow_blank=True)
    follow_up_date = serializers.DateField(required=False, allow_null=True)
    complications = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        locked = {'medications', 'medication_cost', 'procedure_cost', 'total_cost', 'assigned_vet'} & set(self.initial_data)
        if locked:
            raise serializers.ValidationError({
                field: 'This field cannot be changed.' for field in sorted(locked)
            })
        return attrs


class TreatmentImageUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    image_type = serializers.ChoiceField(choices=ImageTypeChoices.choices, default=ImageTypeChoices.OTHER)
    description = serializers.CharField(required=False, allow_blank=True, default='')


class TreatmentReportFilterSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)


class TreatmentFilterSerializer(serializers.Serializer):
    status = NormalizedChoiceField(vocabulary=TREATMENT_STATUS, required=False)

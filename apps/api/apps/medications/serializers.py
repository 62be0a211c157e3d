"""Medication inventory serializers."""
from rest_framework import serializers

from apps.core.serializers import NormalizedChoiceField, UserSummarySerializer
from apps.core.vocabulary import RESTOCK_STATUS

from .models import (
    Medication,
    MedicationUsage,
    RestockPriorityChoices,
    RestockRequest,
)
from .services import compute_alerts


class MedicationSerializer(serializers.ModelSerializer):
    """Read serializer; alerts are recomputed on every read."""
    
    alerts = serializers.SerializerMethodField()
    stock_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    days_until_expiry = serializers.IntegerField(read_only=True)
    
    class Meta:
        model = Medication
        fields = [
            'id', 'medication_id', 'name', 'generic_name', 'description',
            'category', 'form', 'strength', 'quantity', 'initial_quantity',
            'unit', 'threshold', 'batch_number', 'manufacturing_date',
            'expiry_date', 'days_until_expiry', 'manufacturer',
            'supplier_name', 'supplier_email', 'supplier_phone',
            'cost_per_unit', 'stock_value', 'storage_conditions',
            'is_active', 'alerts', 'created_at', 'updated_at',
        ]
        read_only_fields = fields
    
    def get_alerts(self, obj):
        alerts = compute_alerts(obj)
        return {
            'low_stock': alerts.low_stock,
            'near_expiry': alerts.near_expiry,
            'expired': alerts.expired,
        }


class MedicationWriteSerializer(serializers.ModelSerializer):
    """
    Create/update payload.
    
    `quantity` is accepted on create only (opening stock).
    """
    quantity = serializers.IntegerField(min_value=0, required=False)
    
    class Meta:
        model = Medication
        fields = [
            'name', 'generic_name', 'description', 'category', 'form',
            'strength', 'quantity', 'unit', 'threshold', 'batch_number',
            'manufacturing_date', 'expiry_date', 'manufacturer',
            'supplier_name', 'supplier_email', 'supplier_phone',
            'cost_per_unit', 'storage_conditions', 'is_active',
        ]
    
    def validate(self, attrs):
        if self.instance is not None and 'quantity' in attrs:
            raise serializers.ValidationError({
                'quantity': 'Quantity changes must go through dispensing or restock receipt'
            })
        if self.instance is None and 'quantity' not in attrs:
            raise serializers.ValidationError({'quantity': 'This field is required.'})
        return attrs


class MedicationUsageSerializer(serializers.ModelSerializer):
    veterinarian = UserSummarySerializer(read_only=True)
    case_id = serializers.CharField(source='case.case_id', read_only=True, default=None)
    
    class Meta:
        model = MedicationUsage
        fields = [
            'id', 'kind', 'quantity', 'case_id', 'treatment_reference',
            'veterinarian', 'compensates', 'unit_cost', 'notes', 'used_at',
        ]
        read_only_fields = fields


class UseMedicationSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    case = serializers.UUIDField(required=False, allow_null=True)
    treatment_reference = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RestockRequestSerializer(serializers.ModelSerializer):
    medication_id = serializers.CharField(source='medication.medication_id', read_only=True)
    medication_name = serializers.CharField(source='medication.name', read_only=True)
    current_quantity = serializers.IntegerField(source='medication.quantity', read_only=True)
    requested_by = UserSummarySerializer(read_only=True)
    resolved_by = UserSummarySerializer(read_only=True)
    received_by = UserSummarySerializer(read_only=True)
    
    class Meta:
        model = RestockRequest
        fields = [
            'id', 'medication', 'medication_id', 'medication_name', 'current_quantity',
            'quantity_requested', 'priority', 'reason', 'status',
            'requested_by', 'requested_at', 'resolved_by', 'resolved_at',
            'resolution_notes', 'received_by', 'received_at',
        ]
        read_only_fields = fields


class RestockCreateSerializer(serializers.Serializer):
    quantity_requested = serializers.IntegerField(min_value=1)
    priority = serializers.ChoiceField(
        choices=RestockPriorityChoices.choices,
        default=RestockPriorityChoices.MEDIUM
    )
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class RestockResolveSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RestockFilterSerializer(serializers.Serializer):
    status = NormalizedChoiceField(vocabulary=RESTOCK_STATUS, required=False)
    priority = serializers.ChoiceField(choices=RestockPriorityChoices.choices, required=False)


class UsageReportFilterSerializer(serializers.Serializer):
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)
    veterinarian_id = serializers.UUIDField(required=False)
    medication_id = serializers.UUIDField(required=False)

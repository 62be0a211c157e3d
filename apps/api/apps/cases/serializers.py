"""Animal case serializers."""
from rest_framework import serializers

from apps.core.serializers import NormalizedChoiceField, UserSummarySerializer
from apps.core.vocabulary import CASE_STATUS, PRIORITY

from .models import (
    AccessLevelChoices,
    AgeClassChoices,
    Case,
    CaseCollaborator,
    CasePhoto,
    CollaborationComment,
    CollaborationRecord,
    GenderChoices,
)


class CasePhotoSerializer(serializers.ModelSerializer):
    class Meta:
        model = CasePhoto
        fields = ['id', 'asset_key', 'url', 'description', 'width', 'height', 'file_size', 'uploaded_at']
        read_only_fields = fields


class CaseCollaboratorSerializer(serializers.ModelSerializer):
    vet = UserSummarySerializer(read_only=True)

    class Meta:
        model = CaseCollaborator
        fields = ['vet', 'access_level', 'added_at']
        read_only_fields = fields


class CaseListSerializer(serializers.ModelSerializer):
    assigned_vet = UserSummarySerializer(read_only=True)

    class Meta:
        model = Case
        fields = [
            'id', 'case_id', 'animal_type', 'species_scientific_name',
            'priority', 'status', 'location', 'primary_condition',
            'assigned_vet', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CaseDetailSerializer(serializers.ModelSerializer):
    """Full case; status and assignment are always read-only."""
    assigned_vet = UserSummarySerializer(read_only=True)
    collaborators = CaseCollaboratorSerializer(many=True, read_only=True)
    photos = CasePhotoSerializer(many=True, read_only=True)

    class Meta:
        model = Case
        fields = [
            'id', 'case_id', 'animal_type', 'species_scientific_name',
            'age_class', 'gender', 'priority', 'status', 'location',
            'reported_by', 'primary_condition', 'symptoms_observations',
            'initial_treatment_plan', 'additional_notes',
            'estimated_recovery_time', 'assigned_vet', 'assigned_at',
            'collaborators', 'photos', 'completed_at', 'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class CaseCreateSerializer(serializers.Serializer):
    animal_type = serializers.CharField(max_length=100)
    species_scientific_name = serializers.CharField(max_length=200)
    age_class = serializers.ChoiceField(choices=AgeClassChoices.choices)
    gender = serializers.ChoiceField(choices=GenderChoices.choices)
    priority = NormalizedChoiceField(vocabulary=PRIORITY, required=False)
    location = serializers.CharField(max_length=500)
    reported_by = serializers.CharField(max_length=255)
    primary_condition = serializers.CharField(max_length=500)
    symptoms_observations = serializers.CharField()
    initial_treatment_plan = serializers.CharField()
    additional_notes = serializers.CharField(required=False, allow_blank=True)
    estimated_recovery_time = serializers.CharField(max_length=100, required=False, allow_blank=True)


class CaseUpdateSerializer(CaseCreateSerializer):
    """
    Partial update of clinical details.

    status / assigned_vet are rejected rather than silently ignored.
    """

    def validate(self, attrs):
        forbidden = {'status', 'assigned_vet', 'case_id'} & set(self.initial_data)
        if forbidden:
            raise serializers.ValidationError({
                field: 'This field cannot be set directly.' for field in sorted(forbidden)
            })
        return attrs


class CaseFilterSerializer(serializers.Serializer):
    status = NormalizedChoiceField(vocabulary=CASE_STATUS, required=False)
    priority = NormalizedChoiceField(vocabulary=PRIORITY, required=False)
    animal_type = serializers.CharField(required=False)
    assigned_vet = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False)


class AssignCaseSerializer(serializers.Serializer):
    vet_id = serializers.UUIDField()


class CommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = CollaborationComment
        fields = ['id', 'author', 'text', 'is_private', 'is_system', 'created_at']
        read_only_fields = fields


class CommentCreateSerializer(serializers.Serializer):
    text = serializers.CharField(allow_blank=True)
    is_private = serializers.BooleanField(default=False)


class ShareCaseSerializer(serializers.Serializer):
    vet_id = serializers.UUIDField()
    access_level = serializers.ChoiceField(
        choices=AccessLevelChoices.choices,
        default=AccessLevelChoices.VIEW
    )
    message = serializers.CharField(required=False, allow_blank=True, default='')


class TransferCaseSerializer(serializers.Serializer):
    vet_id = serializers.UUIDField()
    reason = serializers.CharField(allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RemoveCollaborationSerializer(serializers.Serializer):
    vet_id = serializers.UUIDField()


class CollaborationRecordSerializer(serializers.ModelSerializer):
    performed_by = UserSummarySerializer(read_only=True)
    target_vet = UserSummarySerializer(read_only=True)
    previous_vet = UserSummarySerializer(read_only=True, allow_null=True)

    class Meta:
        model = CollaborationRecord
        fields = [
            'id', 'action', 'performed_by', 'target_vet', 'previous_vet',
            'access_level', 'reason', 'message', 'created_at',
        ]
        read_only_fields = fields


class PhotoUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    description = serializers.CharField(required=False, allow_blank=True, default='')

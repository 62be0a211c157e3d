"""
Core serializers: current user profile and shared field types.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers


class UserProfileSerializer(serializers.Serializer):
    """Profile of the authenticated user."""
    id = serializers.UUIDField()
    email = serializers.EmailField()
    name = serializers.CharField()
    role = serializers.CharField()
    is_active = serializers.BooleanField()


class UserSummarySerializer(serializers.Serializer):
    """Compact user reference embedded in case/treatment payloads."""
    id = serializers.UUIDField()
    name = serializers.CharField(source='display_name')
    role = serializers.CharField()


class NormalizedChoiceField(serializers.CharField):
    """
    Char field accepting legacy spellings and returning the canonical value.
    
    Usage:
        status = NormalizedChoiceField(vocabulary=TREATMENT_STATUS, required=False)
    """
    
    def __init__(self, vocabulary, **kwargs):
        self.vocabulary = vocabulary
        super().__init__(**kwargs)
    
    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return self.vocabulary.normalize(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)

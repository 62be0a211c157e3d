"""
Animal case models.

- Case: one rescue incident, from intake to closure
- CaseCollaborator: collaborating veterinarian with an access level
- CasePhoto: photo documentation (asset storage keys only)
- CollaborationComment: ordered discussion, public or private
- CollaborationRecord: append-only log of share/transfer/removal
"""
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _


class CaseStatusChoices(models.TextChoices):
    """
    Derived case status.
    
    Only apps.cases.services.assign_case and recompute_case_status write it.
    """
    UNASSIGNED = 'Unassigned', _('Unassigned')
    ASSIGNED = 'Assigned', _('Assigned')
    IN_PROGRESS = 'In Progress', _('In Progress')
    COMPLETED = 'Completed', _('Completed')


class CasePriorityChoices(models.TextChoices):
    LOW = 'Low', _('Low')
    MEDIUM = 'Medium', _('Medium')
    HIGH = 'High', _('High')


class AgeClassChoices(models.TextChoices):
    ADULT = 'Adult', _('Adult')
    JUVENILE = 'Juvenile', _('Juvenile')
    CALF = 'Calf', _('Calf')


class GenderChoices(models.TextChoices):
    MALE = 'Male', _('Male')
    FEMALE = 'Female', _('Female')
    UNKNOWN = 'Unknown', _('Unknown')


class AccessLevelChoices(models.TextChoices):
    """
    VIEW: read and comment
    EDIT / FULL: additionally update clinical details and photos
    """
    VIEW = 'view', _('View')
    EDIT = 'edit', _('Edit')
    FULL = 'full', _('Full')


class CollaborationActionChoices(models.TextChoices):
    SHARED = 'shared', _('Shared')
    TRANSFERRED = 'transferred', _('Transferred')
    COLLABORATION_REMOVED = 'collaboration_removed', _('Collaboration Removed')


class CaseQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_deleted=False)


class Case(models.Model):
    """
    Rescued animal case.
    
    Business Rules:
    - status is derived from assignment and treatments; never client-writable
    - assigned_vet is never also a collaborator
    - cases with treatments are soft-deleted only
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case_id = models.CharField(_('Case ID'), max_length=20, unique=True, editable=False)
    
    # Animal
    animal_type = models.CharField(_('Animal Type'), max_length=100)
    species_scientific_name = models.CharField(_('Scientific Name'), max_length=200)
    age_class = models.CharField(_('Age Class'), max_length=20, choices=AgeClassChoices.choices)
    gender = models.CharField(_('Gender'), max_length=10, choices=GenderChoices.choices)
    priority = models.CharField(
        _('Priority'),
        max_length=10,
        choices=CasePriorityChoices.choices,
        default=CasePriorityChoices.MEDIUM
    )
    
    # Intake
    location = models.CharField(_('Location'), max_length=500)
    reported_by = models.CharField(_('Reported By'), max_length=255)
    primary_condition = models.CharField(_('Primary Condition'), max_length=500)
    symptoms_observations = models.TextField(_('Symptoms / Observations'))
    initial_treatment_plan = models.TextField(_('Initial Treatment Plan'))
    additional_notes = models.TextField(_('Additional Notes'), blank=True)
    estimated_recovery_time = models.CharField(_('Estimated Recovery Time'), max_length=100, blank=True)
    
    # Lifecycle
    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=CaseStatusChoices.choices,
        default=CaseStatusChoices.UNASSIGNED
    )
    assigned_vet = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='assigned_cases'
    )
    assigned_at = models.DateTimeField(null=True, blank=True)
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    collaborating_vets = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through='CaseCollaborator',
        through_fields=('case', 'vet'),
        related_name='collaborating_cases',
        blank=True
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    
    # Soft delete
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_cases'
    )
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    
    objects = CaseQuerySet.as_manager()
    
    class Meta:
        db_table = 'animal_cases'
        ordering = ['-created_at']
        verbose_name = _('Animal Case')
        verbose_name_plural = _('Animal Cases')
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_case_status'),
            models.Index(fields=['assigned_vet', 'status'], name='idx_case_vet_status'),
            models.Index(fields=['priority'], name='idx_case_priority'),
            models.Index(fields=['is_deleted'], name='idx_case_deleted'),
        ]
    
    def __str__(self):
        return f"{self.case_id} {self.animal_type} ({self.status})"
    
    def is_assignee(self, user):
        return user is not None and self.assigned_vet_id is not None and self.assigned_vet_id == user.id
    
    def is_collaborator(self, user):
        if user is None:
            return False
        return self.collaborators.filter(vet_id=user.id).exists()
    
    def collaborator_access(self, user):
        """Access level of `user` as collaborator, or None."""
        if user is None:
            return None
        return self.collaborators.filter(vet_id=user.id).values_list('access_level', flat=True).first()


class CaseCollaborator(models.Model):
    """Collaborating veterinarian on a case."""
    case = models.ForeignKey(Case, on_delete=models.CASCADE, related_name='collaborators')
    vet = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='case_collaborations'
    )
    access_level = models.CharField(
        max_length=10,
        choices=AccessLevelChoices.choices,
        default=AccessLevelChoices.VIEW
    )
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    added_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'animal_case_collaborators'
        ordering = ['added_at']
        constraints = [
            models.UniqueConstraint(fields=['case', 'vet'], name='unique_case_collaborator'),
        ]
    
    def __str__(self):
        return f"{self.case.case_id} <- {self.vet} ({self.access_level})"


class CasePhoto(models.Model):
    """Photo documentation stored in asset storage."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case = models.ForeignKey(Case, on_delete=models.CASCADE, related_name='photos')
    asset_key = models.CharField(max_length=500)
    url = models.URLField(max_length=1000)
    description = models.CharField(max_length=500, blank=True)
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    file_size = models.PositiveIntegerField(null=True, blank=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'animal_case_photos'
        ordering = ['uploaded_at']
    
    def __str__(self):
        return self.asset_key


class CollaborationComment(models.Model):
    """Case discussion entry. Private comments are visible to their author only."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case = models.ForeignKey(Case, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='case_comments'
    )
    text = models.TextField()
    is_private = models.BooleanField(default=False)
    is_system = models.BooleanField(default=False, help_text=_('Generated by a case operation'))
    created_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'animal_case_comments'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['case', 'created_at'], name='idx_comment_case'),
        ]
    
    def __str__(self):
        return f"{self.case.case_id} comment by {self.author}"


class CollaborationRecord(models.Model):
    """
    Append-only collaboration history.
    
    Records are never updated or deleted.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case = models.ForeignKey(Case, on_delete=models.PROTECT, related_name='history')
    action = models.CharField(max_length=30, choices=CollaborationActionChoices.choices)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+'
    )
    target_vet = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+'
    )
    previous_vet = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+'
    )
    access_level = models.CharField(max_length=10, choices=AccessLevelChoices.choices, blank=True)
    reason = models.TextField(blank=True)
    message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'animal_case_collaboration_history'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['case', 'created_at'], name='idx_history_case'),
        ]
    
    def __str__(self):
        return f"{self.case.case_id} {self.action} -> {self.target_vet}"
    
    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError('Collaboration history is append-only')
        super().save(*args, **kwargs)
    
    def delete(self, *args, **kwargs):
        raise ValidationError('Collaboration history cannot be deleted')

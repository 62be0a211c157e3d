"""
Treatment ledger models.

- Treatment: one medical intervention on a case
- TreatmentMedication: immutable medication entry backed by an inventory debit
- TreatmentProcedure: procedure performed (replaceable list)
- TreatmentImage: image documentation (asset storage keys only)
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class TreatmentTypeChoices(models.TextChoices):
    MEDICAL = 'Medical', _('Medical')
    SURGICAL = 'Surgical', _('Surgical')
    EMERGENCY = 'Emergency', _('Emergency')
    REHABILITATION = 'Rehabilitation', _('Rehabilitation')
    PREVENTIVE = 'Preventive', _('Preventive')


class TreatmentStatusChoices(models.TextChoices):
    """
    Treatment state machine:
    - PLANNED -> IN_PROGRESS, CANCELLED
    - IN_PROGRESS -> COMPLETED, CANCELLED, FOLLOW_UP_REQUIRED
    - FOLLOW_UP_REQUIRED -> IN_PROGRESS, COMPLETED, CANCELLED
    - COMPLETED, CANCELLED: terminal
    """
    PLANNED = 'Planned', _('Planned')
    IN_PROGRESS = 'In Progress', _('In Progress')
    COMPLETED = 'Completed', _('Completed')
    CANCELLED = 'Cancelled', _('Cancelled')
    FOLLOW_UP_REQUIRED = 'Follow-up Required', _('Follow-up Required')


TREATMENT_TRANSITIONS = {
    TreatmentStatusChoices.PLANNED: {
        TreatmentStatusChoices.IN_PROGRESS,
        TreatmentStatusChoices.CANCELLED,
    },
    TreatmentStatusChoices.IN_PROGRESS: {
        TreatmentStatusChoices.COMPLETED,
        TreatmentStatusChoices.CANCELLED,
        TreatmentStatusChoices.FOLLOW_UP_REQUIRED,
    },
    TreatmentStatusChoices.FOLLOW_UP_REQUIRED: {
        TreatmentStatusChoices.IN_PROGRESS,
        TreatmentStatusChoices.COMPLETED,
        TreatmentStatusChoices.CANCELLED,
    },
    TreatmentStatusChoices.COMPLETED: set(),
    TreatmentStatusChoices.CANCELLED: set(),
}


class OutcomeChoices(models.TextChoices):
    SUCCESSFUL = 'Successful', _('Successful')
    PARTIALLY_SUCCESSFUL = 'Partially Successful', _('Partially Successful')
    UNSUCCESSFUL = 'Unsuccessful', _('Unsuccessful')
    ONGOING = 'Ongoing', _('Ongoing')


class ImageTypeChoices(models.TextChoices):
    BEFORE = 'before', _('Before')
    DURING = 'during', _('During')
    AFTER = 'after', _('After')
    XRAY = 'xray', _('X-ray')
    SCAN = 'scan', _('Scan')
    OTHER = 'other', _('Other')


class Treatment(models.Model):
    """
    Medical intervention on a case.

    Business Rules:
    - assigned_vet is fixed at creation
    - medication entries are append-only (see TreatmentMedication)
    - costs are recomputed on every save, never taken from input
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    treatment_id = models.CharField(_('Treatment ID'), max_length=20, unique=True, editable=False)
    case = models.ForeignKey(
        'cases.Case',
        on_delete=models.PROTECT,
        related_name='treatments'
    )
    assigned_vet = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='treatments'
    )

    treatment_type = models.CharField(_('Treatment Type'), max_length=20, choices=TreatmentTypeChoices.choices)
    treatment_date = models.DateTimeField(_('Treatment Date'), default=timezone.now)
    diagnosis = models.TextField(_('Diagnosis'))
    treatment_plan = models.TextField(_('Treatment Plan'))
    vital_signs = models.JSONField(
        _('Vital Signs'),
        default=dict,
        blank=True,
        help_text=_('temperature, heart_rate, respiratory_rate, blood_pressure, weight, recorded_at')
    )

    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=TreatmentStatusChoices.choices,
        default=TreatmentStatusChoices.PLANNED
    )
    outcome = models.CharField(
        _('Outcome'),
        max_length=25,
        choices=OutcomeChoices.choices,
        default=OutcomeChoices.ONGOING
    )
    recovery_notes = models.TextField(_('Recovery Notes'), blank=True)
    follow_up_date = models.DateField(_('Follow-up Date'), null=True, blank=True)
    complications = models.TextField(_('Complications'), blank=True)
    notes = models.TextField(_('Notes'), blank=True)

    medication_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), editable=False)
    procedure_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), editable=False)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), editable=False)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'treatments'
        ordering = ['-treatment_date']
        verbose_name = _('Treatment')
        verbose_name_plural = _('Treatments')
        indexes = [
            models.Index(fields=['case', 'status'], name='idx_treatment_case_status'),
            models.Index(fields=['assigned_vet'], name='idx_treatment_vet'),
            models.Index(fields=['-treatment_date'], name='idx_treatment_date'),
        ]

    def __str__(self):
        return f"{self.treatment_id} {self.treatment_type} ({self.status})"

    def recalculate_costs(self):
        if self._state.adding:
            medication_cost = procedure_cost = Decimal('0.00')
        else:
            medication_cost = sum(
                (entry.line_cost for entry in self.medications.all()), Decimal('0.00')
            )
            procedure_cost = sum(
                (procedure.cost for procedure in self.procedures.all()), Decimal('0.00')
            )
        self.medication_cost = medication_cost
        self.procedure_cost = procedure_cost
        self.total_cost = medication_cost + procedure_cost

    def save(self, *args, **kwargs):
        self.recalculate_costs()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'medication_cost', 'procedure_cost', 'total_cost'}
        super().save(*args, **kwargs)


class TreatmentMedication(models.Model):
    """
    Medication administered in a treatment.

    Created only after the matching inventory debit committed; linked to
    that ledger entry and never edited or deleted afterwards. Corrections
    are new entries.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    treatment = models.ForeignKey(Treatment, on_delete=models.PROTECT, related_name='medications')
    position = models.PositiveIntegerField(default=0)
    medication = models.ForeignKey(
        'medications.Medication',
        on_delete=models.PROTECT,
        related_name='treatment_entries'
    )
    usage = models.OneToOneField(
        'medications.MedicationUsage',
        on_delete=models.PROTECT,
        related_name='treatment_entry'
    )
    name = models.CharField(max_length=255, help_text=_('Medication name at time of use'))
    quantity = models.PositiveIntegerField()
    dosage = models.CharField(max_length=100)
    frequency = models.CharField(max_length=100)
    duration = models.CharField(max_length=100)
    notes = models.TextField(blank=True)
    unit_cost = models.DecimalField(max_digits=10, decimal_places=2)
    is_correction = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'treatment_medications'
        ordering = ['position', 'created_at']

    def __str__(self):
        return f"{self.name} x{self.quantity}"

    @property
    def line_cost(self):
        return self.quantity * self.unit_cost

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError('Medication entries cannot be edited once dispensed')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Medication entries cannot be deleted once dispensed')


class TreatmentProcedure(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    treatment = models.ForeignKey(Treatment, on_delete=models.CASCADE, related_name='procedures')
    position = models.PositiveIntegerField(default=0)
    name = models.CharField(max_length=255)
    description = models.TextField()
    duration = models.CharField(max_length=100, blank=True)
    cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    complications = models.TextField(blank=True)
    success_rate = models.CharField(max_length=50, blank=True)

    class Meta:
        db_table = 'treatment_procedures'
        ordering = ['position']
        constraints = [
            models.CheckConstraint(condition=models.Q(cost__gte=0), name='procedure_cost_non_negative'),
        ]

    def __str__(self):
        return self.name


class TreatmentImage(models.Model):
    """Image stored in asset storage."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    treatment = models.ForeignKey(Treatment, on_delete=models.CASCADE, related_name='images')
    asset_key = models.CharField(max_length=500)
    url = models.URLField(max_length=1000)
    description = models.CharField(max_length=500, blank=True)
    image_type = models.CharField(max_length=10, choices=ImageTypeChoices.choices, default=ImageTypeChoices.OTHER)
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
        db_table = 'treatment_images'
        ordering = ['uploaded_at']

    def __str__(self):
        return f"{self.treatment.treatment_id} {self.image_type}"

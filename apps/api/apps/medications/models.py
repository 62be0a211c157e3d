"""
Medication inventory models.

- Medication: stock record with cached alert flags
- MedicationUsage: append-only dispensing ledger (signed quantities)
- RestockRequest: replenishment workflow (Pending -> Approved/Rejected, then received)

Quantity invariant:
    quantity = initial_quantity - sum(usage.quantity) + sum(received restock quantities)
"""
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class MedicationCategoryChoices(models.TextChoices):
    ANTIBIOTIC = 'Antibiotic', _('Antibiotic')
    PAINKILLER = 'Painkiller', _('Painkiller')
    ANTI_INFLAMMATORY = 'Anti-inflammatory', _('Anti-inflammatory')
    ANESTHETIC = 'Anesthetic', _('Anesthetic')
    VACCINE = 'Vaccine', _('Vaccine')
    SUPPLEMENT = 'Supplement', _('Supplement')
    OTHER = 'Other', _('Other')


class MedicationFormChoices(models.TextChoices):
    TABLET = 'Tablet', _('Tablet')
    CAPSULE = 'Capsule', _('Capsule')
    LIQUID = 'Liquid', _('Liquid')
    INJECTION = 'Injection', _('Injection')
    TOPICAL = 'Topical', _('Topical')
    POWDER = 'Powder', _('Powder')
    OTHER = 'Other', _('Other')


class MedicationUnitChoices(models.TextChoices):
    TABLETS = 'tablets', _('Tablets')
    CAPSULES = 'capsules', _('Capsules')
    ML = 'ml', _('Millilitres')
    BOTTLES = 'bottles', _('Bottles')
    VIALS = 'vials', _('Vials')
    AMPULES = 'ampules', _('Ampules')
    GRAMS = 'grams', _('Grams')
    KG = 'kg', _('Kilograms')
    UNITS = 'units', _('Units')


class UsageKindChoices(models.TextChoices):
    """
    DISPENSED entries carry a positive quantity, COMPENSATION entries
    the negated quantity of the dispensing they reverse.
    """
    DISPENSED = 'dispensed', _('Dispensed')
    COMPENSATION = 'compensation', _('Compensation')


class RestockStatusChoices(models.TextChoices):
    PENDING = 'Pending', _('Pending')
    APPROVED = 'Approved', _('Approved')
    REJECTED = 'Rejected', _('Rejected')


class RestockPriorityChoices(models.TextChoices):
    LOW = 'Low', _('Low')
    MEDIUM = 'Medium', _('Medium')
    HIGH = 'High', _('High')
    URGENT = 'Urgent', _('Urgent')


class Medication(models.Model):
    """
    Medication stock record.
    
    `quantity` is only ever changed by conditional UPDATE statements in
    apps.medications.services (debit, credit, receive_restock), never by
    saving an in-memory instance.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    medication_id = models.CharField(_('Medication ID'), max_length=20, unique=True, editable=False)
    
    name = models.CharField(_('Name'), max_length=255)
    generic_name = models.CharField(_('Generic Name'), max_length=255, blank=True)
    description = models.TextField(_('Description'))
    category = models.CharField(_('Category'), max_length=30, choices=MedicationCategoryChoices.choices)
    form = models.CharField(_('Form'), max_length=20, choices=MedicationFormChoices.choices)
    strength = models.CharField(_('Strength'), max_length=50, help_text=_('e.g. 500mg, 10ml'))
    
    quantity = models.PositiveIntegerField(_('Quantity'), default=0)
    initial_quantity = models.PositiveIntegerField(_('Initial Quantity'), default=0, editable=False)
    unit = models.CharField(_('Unit'), max_length=20, choices=MedicationUnitChoices.choices)
    threshold = models.PositiveIntegerField(_('Reorder Threshold'), default=0)
    
    batch_number = models.CharField(_('Batch Number'), max_length=100)
    manufacturing_date = models.DateField(_('Manufacturing Date'))
    expiry_date = models.DateField(_('Expiry Date'))
    manufacturer = models.CharField(_('Manufacturer'), max_length=255)
    supplier_name = models.CharField(_('Supplier Name'), max_length=255, blank=True)
    supplier_email = models.EmailField(_('Supplier Email'), blank=True)
    supplier_phone = models.CharField(_('Supplier Phone'), max_length=50, blank=True)
    cost_per_unit = models.DecimalField(_('Cost Per Unit'), max_digits=10, decimal_places=2)
    storage_conditions = models.JSONField(
        _('Storage Conditions'),
        default=dict,
        blank=True,
        help_text=_('temperature, humidity, special handling')
    )
    is_active = models.BooleanField(_('Active'), default=True)
    
    # Cache of compute_alerts(), refreshed on every mutating write
    alert_low_stock = models.BooleanField(default=False, editable=False)
    alert_near_expiry = models.BooleanField(default=False, editable=False)
    alert_expired = models.BooleanField(default=False, editable=False)
    
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    
    class Meta:
        db_table = 'medications'
        ordering = ['-created_at']
        verbose_name = _('Medication')
        verbose_name_plural = _('Medications')
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='medication_quantity_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['name'], name='idx_medication_name'),
            models.Index(fields=['category'], name='idx_medication_category'),
            models.Index(fields=['expiry_date'], name='idx_medication_expiry'),
            models.Index(fields=['alert_low_stock'], name='idx_medication_low_stock'),
        ]
    
    def __str__(self):
        return f"{self.medication_id} {self.name} ({self.strength})"
    
    def clean(self):
        super().clean()
        if self.manufacturing_date and self.expiry_date and self.expiry_date < self.manufacturing_date:
            raise ValidationError({'expiry_date': 'Expiry date cannot precede manufacturing date'})
    
    @property
    def stock_value(self):
        return self.quantity * self.cost_per_unit
    
    @property
    def days_until_expiry(self):
        return (self.expiry_date - timezone.now().date()).days


class MedicationUsage(models.Model):
    """
    Append-only dispensing ledger entry.
    
    Entries are never updated or deleted; a dispensing is reversed by a
    COMPENSATION entry pointing at it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    medication = models.ForeignKey(
        Medication,
        on_delete=models.PROTECT,
        related_name='usage_log'
    )
    kind = models.CharField(
        max_length=20,
        choices=UsageKindChoices.choices,
        default=UsageKindChoices.DISPENSED
    )
    quantity = models.IntegerField(help_text=_('Positive when dispensed, negative when compensated'))
    case = models.ForeignKey(
        'cases.Case',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='medication_usage'
    )
    treatment_reference = models.CharField(
        max_length=20,
        blank=True,
        help_text=_('Human-readable treatment id (TRT-xxxxx) the debit was made for')
    )
    veterinarian = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='medication_usage'
    )
    compensates = models.OneToOneField(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='compensation'
    )
    unit_cost = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    notes = models.TextField(blank=True)
    used_at = models.DateTimeField(default=timezone.now)
    
    class Meta:
        db_table = 'medication_usage'
        ordering = ['used_at']
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(quantity=0),
                name='medication_usage_quantity_non_zero'
            ),
        ]
        indexes = [
            models.Index(fields=['medication', 'used_at'], name='idx_usage_medication'),
            models.Index(fields=['treatment_reference'], name='idx_usage_treatment_ref'),
        ]
    
    def __str__(self):
        return f"{self.medication_id}: {self.quantity} ({self.kind})"
    
    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError('Medication usage entries are append-only')
        super().save(*args, **kwargs)
    
    def delete(self, *args, **kwargs):
        raise ValidationError('Medication usage entries cannot be deleted')


class RestockRequest(models.Model):
    """
    Request to replenish a medication.
    
    Approval records the decision only; stock increases when the approved
    request is received (received_at set).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    medication = models.ForeignKey(
        Medication,
        on_delete=models.CASCADE,
        related_name='restock_requests'
    )
    quantity_requested = models.PositiveIntegerField()
    priority = models.CharField(
        max_length=10,
        choices=RestockPriorityChoices.choices,
        default=RestockPriorityChoices.MEDIUM
    )
    reason = models.TextField(blank=True)
    status = models.CharField(
        max_length=10,
        choices=RestockStatusChoices.choices,
        default=RestockStatusChoices.PENDING
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='restock_requests'
    )
    requested_at = models.DateTimeField(default=timezone.now)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='resolved_restock_requests'
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(blank=True)
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='received_restock_requests'
    )
    received_at = models.DateTimeField(null=True, blank=True)
    
    class Meta:
        db_table = 'medication_restock_requests'
        ordering = ['-requested_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_requested__gt=0),
                name='restock_quantity_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(received_at__isnull=True) | models.Q(status='Approved'),
                name='restock_received_only_if_approved'
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'priority'], name='idx_restock_status_priority'),
        ]
    
    def __str__(self):
        return f"{self.medication.medication_id} +{self.quantity_requested} ({self.status})"
    
    @property
    def is_received(self):
        return self.received_at is not None

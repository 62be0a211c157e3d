"""
Medication inventory services.

Stock quantity only changes through conditional UPDATE statements issued
here. Each one is linearized by the database per medication row, so
concurrent debits can never drive quantity below zero and no debit is
lost.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.db import transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.utils import timezone

from apps.core.conf import wildcare_setting
from apps.core.exceptions import Conflict, DomainValidationError
from apps.core.lookups import get_or_not_found
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import (
    log_consistency_checkpoint,
    log_debit_blocked,
    log_debit_compensated,
    log_domain_event,
    log_medication_debited,
)
from apps.core.sequences import next_identifier

from .models import (
    Medication,
    MedicationUsage,
    RestockPriorityChoices,
    RestockRequest,
    RestockStatusChoices,
    UsageKindChoices,
)

logger = get_sanitized_logger(__name__)


class InsufficientStockError(Conflict):
    """Raised when a debit asks for more than the current stock."""
    kind = 'insufficient_stock'


MEDICATION_REQUIRED_FIELDS = [
    'name', 'description', 'category', 'form', 'strength', 'quantity', 'unit',
    'threshold', 'batch_number', 'manufacturing_date', 'expiry_date',
    'manufacturer', 'cost_per_unit',
]

# Writable through update_medication; quantity moves only via the ledger
MEDICATION_UPDATABLE_FIELDS = [
    'name', 'generic_name', 'description', 'category', 'form', 'strength',
    'unit', 'threshold', 'batch_number', 'manufacturing_date', 'expiry_date',
    'manufacturer', 'supplier_name', 'supplier_email', 'supplier_phone',
    'cost_per_unit', 'storage_conditions', 'is_active',
]


@dataclass(frozen=True)
class MedicationAlerts:
    low_stock: bool
    near_expiry: bool
    expired: bool

    @property
    def any(self):
        return self.low_stock or self.near_expiry or self.expired


def _validate_positive_quantity(quantity, label='Quantity'):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise DomainValidationError(f'{label} must be a positive integer', {'quantity': quantity})


# ============================================================================
# Alerts
# ============================================================================

def compute_alerts(medication, now=None) -> MedicationAlerts:
    """
    Derive stock and expiry alerts from current state.

    - low_stock: quantity <= threshold
    - near_expiry: expiry within MEDICATION_NEAR_EXPIRY_DAYS and not yet reached
    - expired: expiry date reached
    """
    today = (now or timezone.now()).date()
    horizon = today + timedelta(days=wildcare_setting('MEDICATION_NEAR_EXPIRY_DAYS'))
    expiry = medication.expiry_date
    return MedicationAlerts(
        low_stock=medication.quantity <= medication.threshold,
        near_expiry=today < expiry <= horizon,
        expired=expiry <= today,
    )


def refresh_alert_flags(medication, now=None) -> MedicationAlerts:
    """Recompute alerts and write them to the cached flag columns."""
    alerts = compute_alerts(medication, now=now)
    medication.alert_low_stock = alerts.low_stock
    medication.alert_near_expiry = alerts.near_expiry
    medication.alert_expired = alerts.expired
    medication.save(update_fields=['alert_low_stock', 'alert_near_expiry', 'alert_expired', 'updated_at'])
    return alerts


def medication_alerts(now=None):
    """
    Alert dashboard over active medications.

    Alerts are recomputed here rather than read from the cached flags.
    """
    low_stock, near_expiry, expired = [], [], []
    for medication in Medication.objects.filter(is_active=True).order_by('name'):
        alerts = compute_alerts(medication, now=now)
        if alerts.low_stock:
            low_stock.append(medication)
        if alerts.near_expiry:
            near_expiry.append(medication)
        if alerts.expired:
            expired.append(medication)
    return {
        'low_stock': low_stock,
        'near_expiry': near_expiry,
        'expired': expired,
        'summary': {
            'low_stock_count': len(low_stock),
            'near_expiry_count': len(near_expiry),
            'expired_count': len(expired),
        },
    }


# ============================================================================
# Medication records
# ============================================================================

def get_medication(medication_id) -> Medication:
    return get_or_not_found(Medication, 'Medication', pk=medication_id)


@transaction.atomic
def create_medication(data: dict) -> Medication:
    """
    Create a medication record.

    The opening quantity becomes `initial_quantity`, the base of the
    stock ledger.

    Raises:
        DomainValidationError: missing required fields or negative quantity
    """
    missing = [f for f in MEDICATION_REQUIRED_FIELDS if data.get(f) in (None, '')]
    if missing:
        raise DomainValidationError('Missing required fields', {'missing_fields': missing})

    quantity = data['quantity']
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise DomainValidationError('Quantity must be a non-negative integer')

    fields = {k: v for k, v in data.items() if k in MEDICATION_UPDATABLE_FIELDS}
    medication = Medication(
        medication_id=next_identifier('medication', wildcare_setting('MEDICATION_ID_PREFIX')),
        quantity=quantity,
        initial_quantity=quantity,
        **fields
    )
    medication.full_clean(exclude=['medication_id'])
    alerts = compute_alerts(medication)
    medication.alert_low_stock = alerts.low_stock
    medication.alert_near_expiry = alerts.near_expiry
    medication.alert_expired = alerts.expired
    medication.save()

    log_domain_event(
        'medication_created',
        entity_type='Medication',
        entity_id=medication.medication_id,
        quantity=medication.quantity,
    )
    return medication


@transaction.atomic
def update_medication(medication_id, data: dict) -> Medication:
    """
    Update descriptive fields of a medication.

    Raises:
        DomainValidationError: attempt to write quantity directly
    """
    forbidden = {'quantity', 'initial_quantity', 'medication_id'} & set(data)
    if forbidden:
        raise DomainValidationError(
            'Quantity changes must go through dispensing or restock receipt',
            {'fields': sorted(forbidden)}
        )

    medication = get_or_not_found(
        Medication.objects.select_for_update(), 'Medication', pk=medication_id
    )
    changed = []
    for field in MEDICATION_UPDATABLE_FIELDS:
        if field in data:
            setattr(medication, field, data[field])
            changed.append(field)

    medication.full_clean(exclude=['medication_id'])
    if changed:
        medication.save(update_fields=changed + ['updated_at'])
    refresh_alert_flags(medication)
    return medication


@transaction.atomic
def delete_medication(medication_id):
    """
    Delete a medication that was never dispensed.

    Raises:
        Conflict: the usage ledger is non-empty
    """
    medication = get_or_not_found(
        Medication.objects.select_for_update(), 'Medication', pk=medication_id
    )
    if medication.usage_log.exists():
        raise Conflict(
            'Cannot delete medication that has usage history. Mark it inactive instead.'
        )
    medication_code = medication.medication_id
    medication.restock_requests.all().delete()
    medication.delete()
    log_domain_event('medication_deleted', entity_type='Medication', entity_id=medication_code)


# ============================================================================
# Dispensing ledger
# ============================================================================

def debit(
    medication_id,
    quantity: int,
    *,
    case=None,
    treatment_reference: str = '',
    veterinarian=None,
    notes: str = '',
) -> int:
    """
    Dispense `quantity` units and return the remaining stock.

    The check and decrement happen in a single conditional UPDATE
    (quantity >= n), followed by the ledger append in the same
    transaction.

    Raises:
        DomainValidationError: quantity is not a positive integer
        NotFound: medication does not exist
        InsufficientStockError: quantity exceeds current stock
    """
    _validate_positive_quantity(quantity)
    usage, remaining = _debit(
        medication_id, quantity,
        case=case,
        treatment_reference=treatment_reference,
        veterinarian=veterinarian,
        notes=notes,
    )
    return remaining


def dispense(medication_id, quantity, **context):
    """
    Same as debit() but returns the usage entry as well.

    Used by the treatment ledger, which needs the entry to link and,
    on failure, compensate it.
    """
    _validate_positive_quantity(quantity)
    return _debit(medication_id, quantity, **context)


def _debit(medication_id, quantity, *, case=None, treatment_reference='', veterinarian=None, notes=''):
    with transaction.atomic():
        medication = get_medication(medication_id)
        updated = Medication.objects.filter(
            pk=medication.pk, quantity__gte=quantity
        ).update(quantity=F('quantity') - quantity, updated_at=timezone.now())

        if not updated:
            medication.refresh_from_db(fields=['quantity'])
            metrics.medication_debit_total.labels(result='insufficient_stock').inc()
            log_debit_blocked(medication, quantity, medication.quantity)
            raise InsufficientStockError(
                f'Insufficient stock for {medication.name} ({medication.medication_id}). '
                f'Available: {medication.quantity}, requested: {quantity}',
                {'medication_id': medication.medication_id,
                 'available': medication.quantity,
                 'requested': quantity}
            )

        usage = MedicationUsage.objects.create(
            medication=medication,
            kind=UsageKindChoices.DISPENSED,
            quantity=quantity,
            case=case,
            treatment_reference=treatment_reference,
            veterinarian=veterinarian,
            unit_cost=medication.cost_per_unit,
            notes=notes,
        )
        medication.refresh_from_db(fields=['quantity'])
        refresh_alert_flags(medication)

    metrics.medication_debit_total.labels(result='success').inc()
    log_medication_debited(usage, medication.quantity)
    return usage, medication.quantity


def credit(usage_id, reason: str = '') -> MedicationUsage:
    """
    Reverse a committed dispensing with a compensating ledger entry.

    Raises:
        NotFound: usage entry does not exist
        Conflict: entry is itself a compensation, or already compensated
    """
    with transaction.atomic():
        original = get_or_not_found(
            MedicationUsage.objects.select_for_update(), 'Medication usage', pk=usage_id
        )
        if original.kind != UsageKindChoices.DISPENSED:
            raise Conflict('Only dispensing entries can be compensated')
        if MedicationUsage.objects.filter(compensates=original).exists():
            raise Conflict('Dispensing entry has already been compensated')

        Medication.objects.filter(pk=original.medication_id).update(
            quantity=F('quantity') + original.quantity, updated_at=timezone.now()
        )
        compensation = MedicationUsage.objects.create(
            medication_id=original.medication_id,
            kind=UsageKindChoices.COMPENSATION,
            quantity=-original.quantity,
            case_id=original.case_id,
            treatment_reference=original.treatment_reference,
            veterinarian_id=original.veterinarian_id,
            compensates=original,
            unit_cost=original.unit_cost,
            notes=reason,
        )
        refresh_alert_flags(Medication.objects.get(pk=original.medication_id))

    metrics.medication_debit_compensation_total.inc()
    log_debit_compensated(original, compensation, reason)
    return compensation


# ============================================================================
# Restock workflow
# ============================================================================

@transaction.atomic
def request_restock(medication_id, quantity, priority, reason, requested_by) -> RestockRequest:
    """Open a Pending restock request."""
    _validate_positive_quantity(quantity, 'Quantity requested')
    medication = get_medication(medication_id)
    priority = priority or RestockPriorityChoices.MEDIUM
    if priority not in RestockPriorityChoices.values:
        raise DomainValidationError(f'Invalid priority: {priority}')

    request = RestockRequest.objects.create(
        medication=medication,
        quantity_requested=quantity,
        priority=priority,
        reason=reason or '',
        requested_by=requested_by,
    )
    metrics.medication_restock_total.labels(action='requested').inc()
    log_domain_event(
        'restock_requested',
        entity_type='RestockRequest',
        entity_id=str(request.id),
        entity_ids={'medication_id': medication.medication_id},
        quantity=quantity,
        priority=priority,
    )
    return request


def _get_restock_for_update(medication_id, request_id):
    medication = get_medication(medication_id)
    return get_or_not_found(
        RestockRequest.objects.select_for_update().filter(medication=medication),
        'Restock request',
        pk=request_id,
    )


@transaction.atomic
def resolve_restock(medication_id, request_id, action, approver, notes: str = '') -> RestockRequest:
    """
    Approve or reject a Pending request. Approval does not change stock.

    Raises:
        DomainValidationError: action is not approve/reject
        Conflict: request is no longer Pending
    """
    if action not in ('approve', 'reject'):
        raise DomainValidationError('Invalid action. Must be approve or reject')

    request = _get_restock_for_update(medication_id, request_id)
    if request.status != RestockStatusChoices.PENDING:
        raise Conflict(f'Restock request has already been processed ({request.status})')

    request.status = (
        RestockStatusChoices.APPROVED if action == 'approve' else RestockStatusChoices.REJECTED
    )
    request.resolved_by = approver
    request.resolved_at = timezone.now()
    request.resolution_notes = notes or ''
    request.save(update_fields=['status', 'resolved_by', 'resolved_at', 'resolution_notes'])

    metrics.medication_restock_total.labels(action=request.status.lower()).inc()
    log_domain_event(
        'restock_resolved',
        entity_type='RestockRequest',
        entity_id=str(request.id),
        status=request.status,
    )
    return request


@transaction.atomic
def receive_restock(medication_id, request_id, received_by) -> RestockRequest:
    """
    Book the stock receipt of an Approved request.

    Raises:
        Conflict: request is not Approved, or was already received
    """
    request = _get_restock_for_update(medication_id, request_id)
    if request.status != RestockStatusChoices.APPROVED:
        raise Conflict(f'Only approved requests can be received (status: {request.status})')
    if request.is_received:
        raise Conflict('Restock request has already been received')

    Medication.objects.filter(pk=request.medication_id).update(
        quantity=F('quantity') + request.quantity_requested, updated_at=timezone.now()
    )
    request.received_by = received_by
    request.received_at = timezone.now()
    request.save(update_fields=['received_by', 'received_at'])

    medication = Medication.objects.get(pk=request.medication_id)
    refresh_alert_flags(medication)

    metrics.medication_restock_total.labels(action='received').inc()
    log_domain_event(
        'restock_received',
        entity_type='Medication',
        entity_id=medication.medication_id,
        entity_ids={'restock_request_id': str(request.id)},
        quantity=request.quantity_requested,
        new_quantity=medication.quantity,
    )
    return request


def list_restock_requests(status: Optional[str] = None, priority: Optional[str] = None):
    queryset = RestockRequest.objects.select_related(
        'medication', 'requested_by', 'resolved_by', 'received_by'
    )
    if status:
        queryset = queryset.filter(status=status)
    if priority:
        queryset = queryset.filter(priority=priority)
    return queryset.order_by('-requested_at')


# ============================================================================
# Reporting and consistency
# ============================================================================

def usage_report(start=None, end=None, veterinarian_id=None, medication_id=None):
    """
    Net usage per medication over a period.

    Compensation entries are included, so reversed dispensings net to zero.
    """
    usage = MedicationUsage.objects.all()
    if start:
        usage = usage.filter(used_at__gte=start)
    if end:
        usage = usage.filter(used_at__lte=end)
    if veterinarian_id:
        usage = usage.filter(veterinarian_id=veterinarian_id)
    if medication_id:
        usage = usage.filter(medication_id=medication_id)

    rows = (
        usage.values('medication_id', 'medication__medication_id', 'medication__name')
        .annotate(
            total_used=Sum('quantity'),
            entries=Count('id', filter=Q(kind=UsageKindChoices.DISPENSED)),
            compensations=Count('id', filter=Q(kind=UsageKindChoices.COMPENSATION)),
            veterinarians=Count('veterinarian', distinct=True),
            cases=Count('case', distinct=True),
        )
        .order_by('medication__name')
    )
    report = [
        {
            'medication': str(row['medication_id']),
            'medication_id': row['medication__medication_id'],
            'medication_name': row['medication__name'],
            'total_used': row['total_used'],
            'entries': row['entries'],
            'compensations': row['compensations'],
            'veterinarians': row['veterinarians'],
            'cases': row['cases'],
        }
        for row in rows
    ]
    return {
        'report': report,
        'period': {
            'start': start.isoformat() if start else 'Beginning',
            'end': end.isoformat() if end else 'Present',
        },
        'total_medications': len(report),
    }


def inventory_statistics(now=None):
    """Totals across active medications: stock value, quantity and alert counts."""
    active = Medication.objects.filter(is_active=True)
    totals = active.aggregate(
        total_value=Sum(
            ExpressionWrapper(
                F('quantity') * F('cost_per_unit'),
                output_field=DecimalField(max_digits=14, decimal_places=2)
            )
        ),
        total_quantity=Sum('quantity'),
        medication_count=Count('id'),
    )
    summary = medication_alerts(now=now)['summary']
    return {
        'total_value': totals['total_value'] or 0,
        'total_quantity': totals['total_quantity'] or 0,
        'medication_count': totals['medication_count'],
        **summary,
    }


def expected_quantity(medication) -> int:
    """Quantity implied by the ledger: initial - net usage + received restocks."""
    net_usage = medication.usage_log.aggregate(total=Sum('quantity'))['total'] or 0
    received = medication.restock_requests.filter(
        status=RestockStatusChoices.APPROVED, received_at__isnull=False
    ).aggregate(total=Sum('quantity_requested'))['total'] or 0
    return medication.initial_quantity - net_usage + received


def verify_stock_ledger(medication) -> bool:
    """
    Consistency checkpoint: stored quantity matches the ledger.

    Logs the checkpoint and counts mismatches; never raises.
    """
    medication.refresh_from_db(fields=['quantity'])
    expected = expected_quantity(medication)
    checks = {
        'quantity_matches_ledger': expected == medication.quantity,
        'non_negative': medication.quantity >= 0,
    }
    log_consistency_checkpoint(
        'medication_stock_ledger',
        entity_ids={'medication_id': medication.medication_id},
        checks_passed=checks,
        expected_quantity=expected,
        actual_quantity=medication.quantity,
    )
    if not all(checks.values()):
        metrics.medication_ledger_mismatch_total.inc()
    return all(checks.values())

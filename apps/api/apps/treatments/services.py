"""
Treatment ledger services.

Creating a treatment debits each medication through the inventory. The
debits commit one by one; if any debit or the treatment write fails, the
debits already committed are reversed with compensating credits before
the error propagates. Case status is re-derived after every successful
create and every status change.
"""
from collections import Counter
from decimal import Decimal

from django.db import transaction

from apps.authz.roles import is_officer_or_admin, is_veterinarian
from apps.cases.services import (
    delete_asset_best_effort,
    ensure_can_read,
    get_case,
    recompute_case_status,
)
from apps.core.conf import wildcare_setting
from apps.core.exceptions import Conflict, DomainValidationError, Forbidden
from apps.core.lookups import get_or_not_found
from apps.core.observability import get_sanitized_logger, log_domain_event, metrics
from apps.core.results import ServiceResult
from apps.core.sequences import next_identifier
from apps.integrations.storage import get_asset_storage
from apps.medications import services as inventory

from .models import (
    TREATMENT_TRANSITIONS,
    OutcomeChoices,
    Treatment,
    TreatmentImage,
    TreatmentMedication,
    TreatmentProcedure,
    TreatmentStatusChoices,
    TreatmentTypeChoices,
)

logger = get_sanitized_logger(__name__)

UPDATABLE_FIELDS = [
    'diagnosis',
    'treatment_plan',
    'vital_signs',
    'outcome',
    'recovery_notes',
    'follow_up_date',
    'complications',
    'notes',
]


# ============================================================================
# Access rules
# ============================================================================

def get_treatment(treatment_id) -> Treatment:
    return get_or_not_found(
        Treatment.objects.select_related('case', 'assigned_vet'), 'Treatment', pk=treatment_id
    )


def get_treatment_for_reader(treatment_id, user) -> Treatment:
    treatment = get_treatment(treatment_id)
    ensure_can_read(treatment.case, user)
    return treatment


def ensure_can_author(treatment, user):
    """Vets may modify only their own treatments; officers/admin any."""
    if is_officer_or_admin(user):
        return
    if is_veterinarian(user) and treatment.assigned_vet_id == user.id:
        return
    raise Forbidden('You can only update your own treatments')


def _treatment_owner(case, user):
    """
    Veterinarian owning a new treatment on `case`.

    Raises:
        Forbidden: vet caller is not the case assignee, or caller is not animal care staff
        Conflict: officer/admin caller on a case with no assigned vet
    """
    if is_veterinarian(user):
        if not case.is_assignee(user):
            raise Forbidden('You can only create treatments for cases assigned to you')
        return user
    if is_officer_or_admin(user):
        if case.assigned_vet_id is None:
            raise Conflict('Case must be assigned to a veterinarian before treatments are recorded')
        return case.assigned_vet
    raise Forbidden('Only veterinarians, officers and admins can create treatments')


# ============================================================================
# Medication entries
# ============================================================================

def _validate_medication_entries(entries):
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise DomainValidationError('medications must be a list')
    for index, entry in enumerate(entries):
        missing = [
            key for key in ('medication_id', 'quantity', 'dosage', 'frequency', 'duration')
            if entry.get(key) in (None, '')
        ]
        if missing:
            raise DomainValidationError(
                f'Medication entry {index + 1} is missing: {", ".join(missing)}',
                {'entry': index, 'missing_fields': missing}
            )
    return entries


def _dispense_entries(case, treatment_reference, vet, entries):
    """
    Debit every entry, returning the committed (entry, usage) pairs.

    On failure, already committed debits are compensated and the
    original error is re-raised.
    """
    dispensed = []
    try:
        for entry in entries:
            usage, _remaining = inventory.dispense(
                entry['medication_id'],
                entry['quantity'],
                case=case,
                treatment_reference=treatment_reference,
                veterinarian=vet,
                notes=entry.get('notes', ''),
            )
            dispensed.append((entry, usage))
    except Exception:
        _compensate([usage for _entry, usage in dispensed], treatment_reference)
        raise
    return dispensed


def _compensate(usages, treatment_reference):
    for usage in usages:
        inventory.credit(usage.id, reason=f'Treatment {treatment_reference} not recorded')
    if usages:
        log_domain_event(
            'treatment_debits_compensated',
            entity_type='Treatment',
            entity_id=treatment_reference,
            result='compensated',
            entries=len(usages),
        )


def _attach_medications(treatment, dispensed, start_position=0, is_correction=False):
    for offset, (entry, usage) in enumerate(dispensed):
        TreatmentMedication.objects.create(
            treatment=treatment,
            position=start_position + offset,
            medication_id=usage.medication_id,
            usage=usage,
            name=usage.medication.name,
            quantity=usage.quantity,
            dosage=entry['dosage'],
            frequency=entry['frequency'],
            duration=entry['duration'],
            notes=entry.get('notes', ''),
            unit_cost=usage.unit_cost,
            is_correction=is_correction,
        )


def _replace_procedures(treatment, procedures):
    if not isinstance(procedures, list):
        raise DomainValidationError('procedures must be a list')
    treatment.procedures.all().delete()
    for position, procedure in enumerate(procedures):
        if not procedure.get('name') or not procedure.get('description'):
            raise DomainValidationError(
                f'Procedure {position + 1} requires a name and a description',
                {'entry': position}
            )
        TreatmentProcedure.objects.create(
            treatment=treatment,
            position=position,
            name=procedure['name'],
            description=procedure['description'],
            duration=procedure.get('duration', ''),
            cost=Decimal(str(procedure.get('cost') or 0)),
            complications=procedure.get('complications', ''),
            success_rate=procedure.get('success_rate', ''),
        )


# ============================================================================
# Create / update
# ============================================================================

@metrics.track_duration(metrics.treatment_create_duration_seconds)
def create_treatment(case_id, user, payload: dict) -> Treatment:
    """
    Record a treatment and dispense its medications.

    Raises:
        NotFound: case or a referenced medication missing
        Forbidden: caller may not author treatments on this case
        InsufficientStockError: a medication has insufficient stock (no debit remains)
        DomainValidationError: malformed payload
    """
    case = get_case(case_id)
    vet = _treatment_owner(case, user)

    missing = [f for f in ('treatment_type', 'diagnosis', 'treatment_plan') if not payload.get(f)]
    if missing:
        raise DomainValidationError(
            f'Missing required fields: {", ".join(missing)}',
            {'missing_fields': missing}
        )
    if payload['treatment_type'] not in TreatmentTypeChoices.values:
        raise DomainValidationError(f'Invalid treatment type: {payload["treatment_type"]}')
    initial_status = payload.get('status') or TreatmentStatusChoices.PLANNED
    if initial_status not in TreatmentStatusChoices.values:
        raise DomainValidationError(f'Invalid treatment status: {initial_status}')
    entries = _validate_medication_entries(payload.get('medications'))

    treatment_reference = next_identifier('treatment', wildcare_setting('TREATMENT_ID_PREFIX'))
    try:
        dispensed = _dispense_entries(case, treatment_reference, vet, entries)
    except Exception as e:
        metrics.treatment_created_total.labels(result=getattr(e, 'kind', 'error')).inc()
        raise

    try:
        with transaction.atomic():
            treatment = Treatment(
                treatment_id=treatment_reference,
                case=case,
                assigned_vet=vet,
                treatment_type=payload['treatment_type'],
                diagnosis=payload['diagnosis'],
                treatment_plan=payload['treatment_plan'],
                vital_signs=payload.get('vital_signs') or {},
                status=initial_status,
                outcome=payload.get('outcome') or OutcomeChoices.ONGOING,
                follow_up_date=payload.get('follow_up_date'),
                notes=payload.get('notes', ''),
            )
            if payload.get('treatment_date'):
                treatment.treatment_date = payload['treatment_date']
            treatment.save()
            _attach_medications(treatment, dispensed)
            _replace_procedures(treatment, payload.get('procedures') or [])
            treatment.save()
    except Exception:
        _compensate([usage for _entry, usage in dispensed], treatment_reference)
        metrics.treatment_created_total.labels(result='compensated').inc()
        raise

    recompute_case_status(case.pk)
    metrics.treatment_created_total.labels(result='success').inc()
    log_domain_event(
        'treatment_created',
        entity_type='Treatment',
        entity_id=treatment.treatment_id,
        entity_ids={'case_id': case.case_id, 'vet_id': str(vet.id)},
        medications=len(dispensed),
        total_cost=str(treatment.total_cost),
    )
    return treatment


def validate_transition(current, target):
    """
    Raises:
        Conflict: target is not reachable from current
    """
    current = TreatmentStatusChoices(current)
    target = TreatmentStatusChoices(target)
    if current == target:
        return False
    if target not in TREATMENT_TRANSITIONS[current]:
        raise Conflict(
            f'Invalid status transition: {current} -> {target}',
            {'allowed': sorted(TREATMENT_TRANSITIONS[current])}
        )
    return True


def update_treatment(treatment_id, user, payload: dict) -> Treatment:
    """
    Update a treatment.

    `additional_medications` appends correction entries, each debited like
    on create. Existing medication entries are never modified.

    Raises:
        Forbidden: vet caller does not own the treatment
        Conflict: invalid status transition, or insufficient stock
        DomainValidationError: attempt to edit dispensed entries or costs
    """
    protected = {'medications', 'medication_cost', 'procedure_cost', 'total_cost', 'assigned_vet', 'case'} & set(payload)
    if protected:
        raise DomainValidationError(
            'Dispensed medications, costs and ownership cannot be changed',
            {'fields': sorted(protected)}
        )

    treatment = get_treatment(treatment_id)
    ensure_can_author(treatment, user)

    new_status = payload.get('status')
    if new_status is not None and new_status not in TreatmentStatusChoices.values:
        raise DomainValidationError(f'Invalid treatment status: {new_status}')
    status_changed = new_status is not None and validate_transition(treatment.status, new_status)

    entries = _validate_medication_entries(payload.get('additional_medications'))
    dispensed = _dispense_entries(treatment.case, treatment.treatment_id, treatment.assigned_vet, entries)

    previous_status = treatment.status
    try:
        with transaction.atomic():
            treatment = Treatment.objects.select_for_update().get(pk=treatment.pk)
            # Re-check against the locked row
            if status_changed:
                validate_transition(treatment.status, new_status)
                treatment.status = new_status
            for field in UPDATABLE_FIELDS:
                if field in payload:
                    setattr(treatment, field, payload[field])
            if dispensed:
                _attach_medications(
                    treatment, dispensed,
                    start_position=treatment.medications.count(),
                    is_correction=True,
                )
            if 'procedures' in payload:
                _replace_procedures(treatment, payload['procedures'] or [])
            treatment.full_clean(exclude=['treatment_id', 'case', 'assigned_vet'])
            treatment.save()
    except Exception:
        _compensate([usage for _entry, usage in dispensed], treatment.treatment_id)
        raise

    if status_changed:
        recompute_case_status(treatment.case_id)
        log_domain_event(
            'treatment_status_changed',
            entity_type='Treatment',
            entity_id=treatment.treatment_id,
            from_status=previous_status,
            to_status=treatment.status,
        )
    return treatment


# ============================================================================
# Images
# ============================================================================

def add_treatment_image(treatment_id, user, content: bytes, filename: str,
                        image_type='other', description='',
                        content_type='application/octet-stream') -> TreatmentImage:
    treatment = get_treatment(treatment_id)
    ensure_can_author(treatment, user)

    asset = get_asset_storage().store(
        content, f'treatments/{treatment.treatment_id}', filename, content_type
    )
    image = TreatmentImage(
        treatment=treatment,
        asset_key=asset.key,
        url=asset.url,
        description=description,
        image_type=image_type,
        width=asset.width,
        height=asset.height,
        file_size=asset.bytes,
        uploaded_by=user,
    )
    image.full_clean(exclude=['url'])
    image.save()
    return image


def remove_treatment_image(treatment_id, image_id, user) -> ServiceResult:
    """Remove an image; a storage delete failure is reported as a warning."""
    treatment = get_treatment(treatment_id)
    ensure_can_author(treatment, user)
    image = get_or_not_found(treatment.images.all(), 'Image', pk=image_id)

    asset_key = image.asset_key
    image.delete()
    result = ServiceResult(treatment)
    delete_asset_best_effort(asset_key, result)
    return result


# ============================================================================
# Queries
# ============================================================================

def list_treatments(user, status=None):
    """
    Treatments across cases: vets see the ones they own, officers and admin all.

    Raises:
        Forbidden: caller is neither a veterinarian nor an officer/admin
    """
    queryset = Treatment.objects.filter(case__is_deleted=False)
    if is_veterinarian(user):
        queryset = queryset.filter(assigned_vet=user)
    elif not is_officer_or_admin(user):
        raise Forbidden('Only veterinarians, officers and admins can list treatments')
    if status:
        queryset = queryset.filter(status=status)
    return queryset.select_related('case', 'assigned_vet').prefetch_related(
        'medications', 'procedures', 'images'
    )


def list_treatments_for_case(case_id, user):
    case = get_case(case_id)
    ensure_can_read(case, user)
    return case.treatments.select_related('assigned_vet').prefetch_related(
        'medications', 'procedures', 'images'
    ).order_by('-treatment_date')


def treatment_report(case_id, user, start=None, end=None) -> dict:
    """Summary of a case's treatments, optionally within a date range."""
    treatments = list_treatments_for_case(case_id, user)
    if start:
        treatments = treatments.filter(treatment_date__date__gte=start)
    if end:
        treatments = treatments.filter(treatment_date__date__lte=end)
    treatments = list(treatments)

    total_cost = sum((t.total_cost for t in treatments), Decimal('0.00'))
    medications_used = Counter()
    for treatment in treatments:
        for entry in treatment.medications.all():
            medications_used[entry.name] += entry.quantity

    return {
        'total_treatments': len(treatments),
        'successful_outcomes': sum(1 for t in treatments if t.outcome == OutcomeChoices.SUCCESSFUL),
        'total_cost': total_cost,
        'average_cost': (total_cost / len(treatments)).quantize(Decimal('0.01')) if treatments else Decimal('0.00'),
        'treatment_types': dict(Counter(t.treatment_type for t in treatments)),
        'status_breakdown': dict(Counter(t.status for t in treatments)),
        'medications_used': dict(medications_used),
    }

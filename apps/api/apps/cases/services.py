"""
Case registry services.

Case status is derived state. It is written in exactly two places:
assign_case (Unassigned|Assigned -> Assigned) and recompute_case_status
(from the case's treatments). Both run under a row lock on the case, as
does transfer in apps.cases.collaboration, so assignment and status
never interleave.
"""
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.authz.roles import is_admin, is_officer_or_admin, is_veterinarian
from apps.core.conf import wildcare_setting
from apps.core.exceptions import Conflict, DomainValidationError, Forbidden, InvalidRole
from apps.core.lookups import get_or_not_found
from apps.core.observability import get_sanitized_logger, log_domain_event, metrics
from apps.core.observability.events import log_case_transition
from apps.core.results import ServiceResult
from apps.core.sequences import next_identifier
from apps.integrations.storage import AssetStorageError, get_asset_storage

from .models import (
    AccessLevelChoices,
    Case,
    CasePhoto,
    CaseStatusChoices,
    CollaborationActionChoices,
    CollaborationRecord,
)

logger = get_sanitized_logger(__name__)

User = get_user_model()

CASE_REQUIRED_FIELDS = [
    'animal_type',
    'species_scientific_name',
    'age_class',
    'gender',
    'location',
    'reported_by',
    'primary_condition',
    'symptoms_observations',
    'initial_treatment_plan',
]

# Clinical details; status and assignment are never client-writable
CASE_DETAIL_FIELDS = CASE_REQUIRED_FIELDS + [
    'priority',
    'additional_notes',
    'estimated_recovery_time',
]

# Treatment statuses that keep a case open
OUTSTANDING_TREATMENT_STATUSES = ('Planned', 'In Progress', 'Follow-up Required')
TERMINAL_TREATMENT_STATUSES = ('Completed', 'Cancelled')


# ============================================================================
# Lookups and access rules
# ============================================================================

def get_case(case_id) -> Case:
    return get_or_not_found(Case.objects.active(), 'Case', pk=case_id)


def lock_case(case_id) -> Case:
    """Fetch a case with a row lock. Must be called inside transaction.atomic."""
    return get_or_not_found(Case.objects.active().select_for_update(), 'Case', pk=case_id)


def get_veterinarian(vet_id):
    """
    Resolve an active veterinarian.

    Raises:
        NotFound: user does not exist
        InvalidRole: user is not an active veterinarian
    """
    vet = get_or_not_found(User, 'Veterinarian', pk=vet_id)
    if vet.role != RoleChoices.VETERINARIAN or not vet.is_active:
        raise InvalidRole(f'{vet.display_name} is not an active veterinarian')
    return vet


def can_read_case(case, user) -> bool:
    """Officers and admin read everything; vets only their own and collaborating cases."""
    if is_officer_or_admin(user):
        return True
    if is_veterinarian(user):
        return case.is_assignee(user) or case.is_collaborator(user)
    return case.created_by_id is not None and case.created_by_id == user.id


def ensure_can_read(case, user):
    if not can_read_case(case, user):
        raise Forbidden('Access denied. You must be assigned to or collaborating on this case.')


def ensure_can_edit(case, user):
    """Officers/admin, the assignee, or a collaborator with edit/full access."""
    if is_officer_or_admin(user) or case.is_assignee(user):
        return
    if case.collaborator_access(user) in (AccessLevelChoices.EDIT, AccessLevelChoices.FULL):
        return
    raise Forbidden('Only the assigned veterinarian, an editing collaborator or an officer can modify this case')


def get_case_for_reader(case_id, user) -> Case:
    case = get_case(case_id)
    ensure_can_read(case, user)
    return case


def _transition(case, to_status, trigger, **extra):
    from_status = case.status
    if from_status == to_status:
        return False
    case.status = to_status
    metrics.case_transition_total.labels(
        from_status=from_status, to_status=to_status, trigger=trigger
    ).inc()
    log_case_transition(case, from_status, to_status, trigger, **extra)
    return True


# ============================================================================
# Lifecycle
# ============================================================================

@transaction.atomic
def create_case(data: dict, created_by=None) -> Case:
    """
    Register a new case in status Unassigned.

    Raises:
        DomainValidationError: required clinical fields missing
        ValidationError: invalid choice values (age class, gender, priority)
    """
    missing = [f for f in CASE_REQUIRED_FIELDS if not str(data.get(f) or '').strip()]
    if missing:
        raise DomainValidationError(
            f'Missing required fields: {", ".join(missing)}',
            {'missing_fields': missing}
        )

    fields = {k: v for k, v in data.items() if k in CASE_DETAIL_FIELDS}
    case = Case(
        case_id=next_identifier('case', wildcare_setting('CASE_ID_PREFIX')),
        status=CaseStatusChoices.UNASSIGNED,
        created_by=created_by,
        **fields
    )
    case.full_clean(exclude=['case_id'])
    case.save()

    log_domain_event(
        'case_created',
        entity_type='Case',
        entity_id=case.case_id,
        priority=case.priority,
        animal_type=case.animal_type,
    )
    return case


@transaction.atomic
def assign_case(case_id, vet_id, acting_user) -> Case:
    """
    Assign (or reassign) the case veterinarian.

    Unassigned and Assigned cases become Assigned; a case that is already
    In Progress or Completed keeps its derived status.

    Raises:
        NotFound: case or veterinarian missing
        Forbidden: acting user is neither officer/admin nor the current assignee
        InvalidRole: target is not a veterinarian
    """
    case = lock_case(case_id)
    if not (is_officer_or_admin(acting_user) or case.is_assignee(acting_user)):
        raise Forbidden('Only an officer, an admin or the current assignee can assign this case')

    vet = get_veterinarian(vet_id)
    previous_vet_id = case.assigned_vet_id

    case.assigned_vet = vet
    case.assigned_at = timezone.now()
    case.assigned_by = acting_user
    # The assignee is never also listed as a collaborator
    if case.collaborators.filter(vet=vet).delete()[0]:
        CollaborationRecord.objects.create(
            case=case,
            action=CollaborationActionChoices.COLLABORATION_REMOVED,
            performed_by=acting_user,
            target_vet=vet,
            reason='Assigned as lead veterinarian',
        )
        metrics.collaboration_action_total.labels(
            action=CollaborationActionChoices.COLLABORATION_REMOVED
        ).inc()

    if case.status in (CaseStatusChoices.UNASSIGNED, CaseStatusChoices.ASSIGNED):
        _transition(case, CaseStatusChoices.ASSIGNED, 'assign', vet_id=str(vet.id))
    case.save(update_fields=['assigned_vet', 'assigned_at', 'assigned_by', 'status', 'updated_at'])

    log_domain_event(
        'case_assigned',
        entity_type='Case',
        entity_id=case.case_id,
        entity_ids={
            'vet_id': str(vet.id),
            'previous_vet_id': str(previous_vet_id) if previous_vet_id else '',
        },
    )
    return case


@transaction.atomic
def recompute_case_status(case_id) -> Case:
    """
    Re-derive case status from its treatments.

    - any treatment Planned / In Progress / Follow-up Required -> In Progress
    - at least one treatment and all Completed / Cancelled -> Completed
    - no treatments -> unchanged
    """
    case = lock_case(case_id)
    counts = case.treatments.aggregate(
        total=Count('id'),
        outstanding=Count('id', filter=Q(status__in=OUTSTANDING_TREATMENT_STATUSES)),
    )

    if counts['outstanding']:
        target = CaseStatusChoices.IN_PROGRESS
    elif counts['total']:
        target = CaseStatusChoices.COMPLETED
    else:
        return case

    if _transition(case, target, 'recompute', treatments=counts['total']):
        case.completed_at = timezone.now() if target == CaseStatusChoices.COMPLETED else None
        case.save(update_fields=['status', 'completed_at', 'updated_at'])
    return case


@transaction.atomic
def update_case_details(case_id, data: dict, user) -> Case:
    """
    Update clinical details of a case.

    Raises:
        DomainValidationError: attempt to write status or assignment
        Forbidden: user may not edit this case
    """
    protected = {'status', 'assigned_vet', 'case_id', 'collaborating_vets', 'completed_at'} & set(data)
    if protected:
        raise DomainValidationError(
            'Case status and assignment cannot be set directly',
            {'fields': sorted(protected)}
        )

    case = lock_case(case_id)
    ensure_can_edit(case, user)

    changed = [f for f in CASE_DETAIL_FIELDS if f in data]
    for field in changed:
        setattr(case, field, data[field])
    case.full_clean(exclude=['case_id'])
    if changed:
        case.save(update_fields=changed + ['updated_at'])
    return case


@transaction.atomic
def soft_delete_case(case_id, user) -> Case:
    """
    Hide a case from every listing.

    Raises:
        Forbidden: user is not an admin
        Conflict: case has treatments or dispensed medication
    """
    if not is_admin(user):
        raise Forbidden('Only an admin can delete cases')
    case = lock_case(case_id)
    if case.treatments.exists() or case.medication_usage.exists():
        raise Conflict('Cases with treatments or medication usage cannot be deleted')

    case.is_deleted = True
    case.deleted_at = timezone.now()
    case.deleted_by = user
    case.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by', 'updated_at'])
    log_domain_event('case_deleted', entity_type='Case', entity_id=case.case_id)
    return case


# ============================================================================
# Photos
# ============================================================================

def add_case_photo(case_id, user, content: bytes, filename: str, description: str = '',
                   content_type: str = 'application/octet-stream') -> CasePhoto:
    """
    Store a photo and attach it to the case.

    Raises:
        Forbidden: user may not edit this case
        AssetStorageError: storage backend rejected the upload
    """
    case = get_case(case_id)
    ensure_can_edit(case, user)

    asset = get_asset_storage().store(content, f'cases/{case.case_id}', filename, content_type)
    photo = CasePhoto.objects.create(
        case=case,
        asset_key=asset.key,
        url=asset.url,
        description=description,
        width=asset.width,
        height=asset.height,
        file_size=asset.bytes,
        uploaded_by=user,
    )
    return photo


def remove_case_photo(case_id, photo_id, user) -> ServiceResult:
    """
    Detach a photo; deleting the blob is best-effort.

    A storage failure is returned as a warning, the photo record is
    removed regardless.
    """
    case = get_case(case_id)
    ensure_can_edit(case, user)
    photo = get_or_not_found(case.photos.all(), 'Photo', pk=photo_id)

    asset_key = photo.asset_key
    photo.delete()
    result = ServiceResult(case)
    delete_asset_best_effort(asset_key, result)
    return result


def delete_asset_best_effort(asset_key, result: ServiceResult):
    try:
        get_asset_storage().delete(asset_key)
    except AssetStorageError as e:
        metrics.asset_delete_failures_total.inc()
        logger.warning(
            'Asset deletion failed',
            extra={'event': 'asset_delete_failed', 'asset_key': asset_key, 'error': str(e)}
        )
        result.warn(f'Asset {asset_key} could not be deleted from storage: {e}')


# ============================================================================
# Queries
# ============================================================================

def visible_cases(user):
    """Cases the user may list."""
    queryset = Case.objects.active()
    if is_officer_or_admin(user):
        return queryset
    if is_veterinarian(user):
        return queryset.filter(Q(assigned_vet=user) | Q(collaborators__vet=user)).distinct()
    return queryset.filter(created_by=user)


def list_cases(user, status=None, priority=None, animal_type=None, assigned_vet=None, search=None):
    queryset = visible_cases(user).select_related('assigned_vet')
    if status:
        queryset = queryset.filter(status=status)
    if priority:
        queryset = queryset.filter(priority=priority)
    if animal_type:
        queryset = queryset.filter(animal_type__iexact=animal_type)
    if assigned_vet:
        queryset = queryset.filter(assigned_vet_id=assigned_vet)
    if search:
        queryset = queryset.filter(
            Q(case_id__icontains=search)
            | Q(animal_type__icontains=search)
            | Q(species_scientific_name__icontains=search)
            | Q(location__icontains=search)
            | Q(primary_condition__icontains=search)
        )
    return queryset.order_by('-created_at')


def vet_dashboard_stats(user) -> dict:
    """Case counts by status for the veterinarian's assigned cases."""
    assigned = Case.objects.active().filter(assigned_vet=user)
    by_status = {
        row['status']: row['total']
        for row in assigned.order_by().values('status').annotate(total=Count('id'))
    }
    return {
        'total_assigned': sum(by_status.values()),
        'by_status': {status: by_status.get(status, 0) for status in CaseStatusChoices.values},
        'high_priority_open': assigned.filter(priority='High').exclude(
            status=CaseStatusChoices.COMPLETED
        ).count(),
        'collaborating': Case.objects.active().filter(collaborators__vet=user).count(),
    }

"""
Case collaboration between veterinarians.

Comments, sharing, transfer of ownership and collaboration history.
Sharing and transfer notify the target vet through the case_shared /
case_transferred signals once the change has committed.
"""
from django.contrib.auth import get_user_model
from django.db import transaction

from apps.authz.models import RoleChoices
from apps.core.exceptions import Conflict, DomainValidationError, Forbidden
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import log_collaboration_change
from apps.core.results import ServiceResult

from .models import (
    AccessLevelChoices,
    Case,
    CaseCollaborator,
    CollaborationActionChoices,
    CollaborationComment,
    CollaborationRecord,
)
from .services import ensure_can_read, get_case, get_veterinarian, lock_case
from .signals import case_shared, case_transferred

logger = get_sanitized_logger(__name__)

User = get_user_model()


def _notify(result: ServiceResult, signal, signal_name, **kwargs):
    """Send a notification signal after commit; receiver errors become warnings."""
    def dispatch():
        for receiver, response in signal.send_robust(sender=Case, **kwargs):
            if isinstance(response, Exception):
                metrics.notification_failures_total.labels(signal=signal_name).inc()
                logger.warning(
                    'Notification receiver failed',
                    extra={
                        'event': 'notification_failed',
                        'signal': signal_name,
                        'receiver': getattr(receiver, '__name__', repr(receiver)),
                        'error': str(response),
                    }
                )
                result.warn(f'Notification {signal_name} failed: {response}')

    transaction.on_commit(dispatch)


# ============================================================================
# Comments
# ============================================================================

def add_comment(case_id, vet, text, is_private=False) -> CollaborationComment:
    """
    Append a comment to the case discussion.

    Only the assigned vet and collaborating vets may comment.

    Raises:
        DomainValidationError: empty text
        Forbidden: vet is neither assignee nor collaborator
    """
    if not (text or '').strip():
        raise DomainValidationError('Comment content is required')

    case = get_case(case_id)
    if not (case.is_assignee(vet) or case.is_collaborator(vet)):
        raise Forbidden('Access denied. You must be assigned to or collaborating on this case.')

    comment = CollaborationComment.objects.create(
        case=case,
        author=vet,
        text=text.strip(),
        is_private=bool(is_private),
    )
    metrics.collaboration_action_total.labels(action='comment').inc()
    return comment


def list_comments(case_id, user):
    """Case comments in order; private comments only for their author."""
    case = get_case(case_id)
    ensure_can_read(case, user)
    comments = case.comments.select_related('author')
    return [c for c in comments if not c.is_private or c.author_id == user.id]


# ============================================================================
# Sharing and transfer
# ============================================================================

def share_case(case_id, owner, target_vet_id, access_level=AccessLevelChoices.VIEW, message='') -> ServiceResult:
    """
    Grant a veterinarian collaborator access to the case.

    Raises:
        Forbidden: owner is not the assigned vet
        InvalidRole: target is not an active veterinarian
        Conflict: target already collaborating or already assigned
        DomainValidationError: unknown access level
    """
    if access_level not in AccessLevelChoices.values:
        raise DomainValidationError(
            f'Invalid access level: {access_level}',
            {'allowed': list(AccessLevelChoices.values)}
        )

    with transaction.atomic():
        case = lock_case(case_id)
        if not case.is_assignee(owner):
            raise Forbidden('Only the assigned veterinarian can share this case')

        target = get_veterinarian(target_vet_id)
        if case.is_assignee(target):
            raise Conflict('Veterinarian is already assigned to this case')
        if case.is_collaborator(target):
            raise Conflict('Veterinarian is already collaborating on this case')

        CaseCollaborator.objects.create(
            case=case,
            vet=target,
            access_level=access_level,
            added_by=owner,
        )
        CollaborationRecord.objects.create(
            case=case,
            action=CollaborationActionChoices.SHARED,
            performed_by=owner,
            target_vet=target,
            access_level=access_level,
            message=message or '',
        )

    metrics.collaboration_action_total.labels(action=CollaborationActionChoices.SHARED).inc()
    log_collaboration_change(case, 'shared', owner, target, access_level=access_level)

    result = ServiceResult(case)
    _notify(
        result, case_shared, 'case_shared',
        case=case, target_vet=target, shared_by=owner, access_level=access_level,
    )
    return result


def transfer_case(case_id, current_vet, new_vet_id, reason, notes='') -> ServiceResult:
    """
    Move case ownership to another veterinarian.

    Reassignment, removal of the new vet from collaborators, the
    `transferred` history record and the system comment commit together.

    Raises:
        DomainValidationError: reason missing
        Forbidden: caller is not the assigned vet
        InvalidRole: target is not an active veterinarian
        Conflict: target already owns the case
    """
    if not (reason or '').strip():
        raise DomainValidationError('A reason is required to transfer a case')

    with transaction.atomic():
        case = lock_case(case_id)
        if not case.is_assignee(current_vet):
            raise Forbidden('Only the assigned veterinarian can transfer this case')

        new_vet = get_veterinarian(new_vet_id)
        if case.is_assignee(new_vet):
            raise Conflict('Veterinarian is already assigned to this case')

        previous_vet = case.assigned_vet
        case.assigned_vet = new_vet
        case.save(update_fields=['assigned_vet', 'updated_at'])
        case.collaborators.filter(vet=new_vet).delete()

        CollaborationRecord.objects.create(
            case=case,
            action=CollaborationActionChoices.TRANSFERRED,
            performed_by=current_vet,
            target_vet=new_vet,
            previous_vet=previous_vet,
            reason=reason,
            message=notes or '',
        )

        text = f'Case transferred to {new_vet.display_name}. Reason: {reason}'
        if notes:
            text += f'. Notes: {notes}'
        CollaborationComment.objects.create(
            case=case,
            author=current_vet,
            text=text,
            is_system=True,
        )

    metrics.collaboration_action_total.labels(action=CollaborationActionChoices.TRANSFERRED).inc()
    log_collaboration_change(
        case, 'transferred', current_vet, new_vet,
        previous_vet_id=str(previous_vet.id),
    )

    result = ServiceResult(case)
    _notify(
        result, case_transferred, 'case_transferred',
        case=case, new_vet=new_vet, previous_vet=previous_vet, reason=reason,
    )
    return result


@transaction.atomic
def remove_collaboration(case_id, requesting_vet, target_vet_id) -> Case:
    """
    Remove a collaborator. The assignee removes anyone, a collaborator only themselves.

    Raises:
        Forbidden: caller is neither assignee nor the target
        Conflict: target is not collaborating
    """
    case = lock_case(case_id)
    is_self = str(requesting_vet.id) == str(target_vet_id)
    if not (case.is_assignee(requesting_vet) or is_self):
        raise Forbidden('Only the assigned veterinarian or the collaborator themselves can remove a collaboration')

    collaboration = case.collaborators.select_related('vet').filter(vet_id=target_vet_id).first()
    if collaboration is None:
        raise Conflict('Veterinarian is not collaborating on this case')

    target = collaboration.vet
    collaboration.delete()
    CollaborationRecord.objects.create(
        case=case,
        action=CollaborationActionChoices.COLLABORATION_REMOVED,
        performed_by=requesting_vet,
        target_vet=target,
    )

    metrics.collaboration_action_total.labels(
        action=CollaborationActionChoices.COLLABORATION_REMOVED
    ).inc()
    log_collaboration_change(case, 'collaboration_removed', requesting_vet, target, self_removal=is_self)
    return case


# ============================================================================
# Queries
# ============================================================================

def get_history(case_id, user):
    case = get_case(case_id)
    ensure_can_read(case, user)
    return case.history.select_related('performed_by', 'target_vet', 'previous_vet')


def available_veterinarians(case_id, user):
    """Active veterinarians not yet assigned to or collaborating on the case."""
    case = get_case(case_id)
    ensure_can_read(case, user)
    excluded = list(case.collaborators.values_list('vet_id', flat=True))
    if case.assigned_vet_id:
        excluded.append(case.assigned_vet_id)
    return User.objects.filter(
        role=RoleChoices.VETERINARIAN,
        is_active=True,
    ).exclude(id__in=excluded).order_by('name')


def collaborating_cases(user, status=None):
    """Cases the user collaborates on (not those assigned to them)."""
    queryset = Case.objects.active().filter(collaborators__vet=user).select_related('assigned_vet')
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-updated_at')

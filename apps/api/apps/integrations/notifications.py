"""
Notification hook for case collaboration.

Delivery (email, push) is not wired up yet; receivers record the
notification intent in the structured log.
"""
from django.dispatch import receiver

from apps.cases.signals import case_shared, case_transferred
from apps.core.observability import get_sanitized_logger

logger = get_sanitized_logger(__name__)


@receiver(case_shared, dispatch_uid='notify_vet_case_shared')
def notify_vet_case_shared(sender, case, target_vet, shared_by, access_level, **kwargs):
    logger.info(
        'Notify veterinarian: case shared',
        extra={
            'event': 'notification_case_shared',
            'case_id': case.case_id,
            'recipient_id': str(target_vet.id),
            'shared_by_id': str(shared_by.id),
            'access_level': access_level,
        }
    )


@receiver(case_transferred, dispatch_uid='notify_vet_case_transferred')
def notify_vet_case_transferred(sender, case, new_vet, previous_vet, reason, **kwargs):
    logger.info(
        'Notify veterinarian: case transferred',
        extra={
            'event': 'notification_case_transferred',
            'case_id': case.case_id,
            'recipient_id': str(new_vet.id),
            'previous_vet_id': str(previous_vet.id) if previous_vet else None,
        }
    )

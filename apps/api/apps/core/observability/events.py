"""
Domain events logging helpers.

Provides structured event logging for case, treatment, medication and
tracking operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.
    
    Args:
        event_name: Name of the event (e.g., 'case_transition', 'medication_debited')
        entity_type: Type of entity (e.g., 'Case', 'Medication')
        entity_id: Human-readable or primary ID of the entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, warning, blocked)
        **extra_fields: Additional fields to log (will be sanitized)
    
    Example:
        log_domain_event(
            'medication_debited',
            entity_type='Medication',
            entity_id=medication.medication_id,
            entity_ids={'case_id': case.case_id},
            quantity=3,
            remaining=7
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }
    
    if entity_type:
        event_data['entity_type'] = entity_type
    
    if entity_id:
        event_data['entity_id'] = entity_id
    
    if entity_ids:
        event_data.update(entity_ids)
    
    event_data.update(sanitize_dict(extra_fields))
    
    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'compensated']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.
    
    Used to verify data integrity at critical points, e.g. that a
    medication's quantity still matches its usage ledger.
    
    Example:
        log_consistency_checkpoint(
            'medication_stock_ledger',
            entity_ids={'medication_id': medication.medication_id},
            checks_passed={'quantity_matches_ledger': True, 'non_negative': True},
            expected_quantity=7,
            actual_quantity=7
        )
    """
    all_passed = all(checks_passed.values())
    
    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))
    
    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_case_transition(case, from_status, to_status, trigger, **extra):
    """Log case status transition event."""
    log_domain_event(
        'case_transition',
        entity_type='Case',
        entity_id=case.case_id,
        entity_ids={'case_pk': str(case.pk)},
        from_status=from_status,
        to_status=to_status,
        trigger=trigger,
        **extra
    )


def log_medication_debited(usage, remaining):
    """Log a committed medication debit."""
    log_domain_event(
        'medication_debited',
        entity_type='Medication',
        entity_id=str(usage.medication_id),
        entity_ids={
            'usage_id': str(usage.id),
            'case_id': str(usage.case_id) if usage.case_id else '',
        },
        quantity=usage.quantity,
        remaining=remaining,
        treatment_reference=usage.treatment_reference,
    )


def log_debit_blocked(medication, requested, available):
    """Log a debit refused for insufficient stock."""
    log_domain_event(
        'medication_debit_blocked',
        entity_type='Medication',
        entity_id=medication.medication_id,
        result='blocked',
        requested_qty=requested,
        available_qty=available,
    )


def log_debit_compensated(original_usage, credit_usage, reason):
    """Log a compensating credit for a previously committed debit."""
    log_domain_event(
        'medication_debit_compensated',
        entity_type='Medication',
        entity_id=str(original_usage.medication_id),
        entity_ids={
            'original_usage_id': str(original_usage.id),
            'credit_usage_id': str(credit_usage.id),
        },
        result='compensated',
        quantity=original_usage.quantity,
        reason=reason,
    )


def log_collaboration_change(case, action, actor, target_vet, **extra):
    """Log share / transfer / collaboration removal."""
    log_domain_event(
        'case_collaboration_changed',
        entity_type='Case',
        entity_id=case.case_id,
        entity_ids={
            'actor_id': str(actor.id),
            'target_vet_id': str(target_vet.id),
        },
        action=action,
        **extra
    )


def log_tracking_alerts(state, alerts):
    """Log alerts raised for a tracked case."""
    if not alerts:
        return
    log_domain_event(
        'tracking_alerts_raised',
        entity_type='TrackingState',
        entity_id=state.case.case_id,
        result='warning',
        alert_types=[alert.type for alert in alerts],
        severities=[alert.severity for alert in alerts],
    )

"""
Case collaboration signals.

Sent with send_robust after the collaboration change commits; receiver
failures never undo the change.

Arguments:
    case_shared: case, target_vet, shared_by, access_level
    case_transferred: case, new_vet, previous_vet, reason
"""
from django.dispatch import Signal

case_shared = Signal()
case_transferred = Signal()

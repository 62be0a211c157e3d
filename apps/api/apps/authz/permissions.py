"""
Role-based permissions for the animal care endpoints.

These gate by role only. Case-level rules (assignee, collaborator) are
enforced by the services and surface as Forbidden errors.
"""
from rest_framework import permissions

from .roles import (
    can_intake_cases,
    is_animal_care_staff,
    is_officer_or_admin,
)


class IsAnimalCareStaff(permissions.BasePermission):
    """
    Admin, officers and veterinarians.
    
    Call operators may only create and read cases (see IsCaseIntakeOrCareStaff).
    """
    
    def has_permission(self, request, view):
        return is_animal_care_staff(request.user)


class IsCaseIntakeOrCareStaff(permissions.BasePermission):
    """
    Case endpoints.
    
    - Admin / officers / veterinarians: full access (subject to service rules)
    - Call operator: create and list only
    """
    
    def has_permission(self, request, view):
        if is_animal_care_staff(request.user):
            return True
        if not can_intake_cases(request.user):
            return False
        return getattr(view, 'action', None) in ('create', 'list')


class IsOfficerOrAdmin(permissions.BasePermission):
    """Officers and admin only."""
    
    def has_permission(self, request, view):
        return is_officer_or_admin(request.user)


class MedicationPermission(permissions.BasePermission):
    """
    Medication inventory.
    
    - Read, dispense and restock requests: animal care staff
    - Create / update / delete / resolve / receive: officers and admin
    """
    STAFF_ACTIONS = {
        'list', 'retrieve', 'use', 'usage', 'restock', 'alerts',
        'restock_requests', 'usage_report', 'statistics',
    }
    
    def has_permission(self, request, view):
        if not is_animal_care_staff(request.user):
            return False
        if getattr(view, 'action', None) in self.STAFF_ACTIONS:
            return True
        return is_officer_or_admin(request.user)

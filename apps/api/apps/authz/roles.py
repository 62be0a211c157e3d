"""
Role predicates and legacy role normalization.

Historic clients send several spellings for the same role
("vet", "wildlifeOfficer", "Wildlife-Officer", ...). They are mapped to
RoleChoices once, here, and nowhere else.
"""
from django.core.exceptions import ValidationError

from .models import RoleChoices

OFFICER_ROLES = frozenset([RoleChoices.WILDLIFE_OFFICER, RoleChoices.EMERGENCY_OFFICER])
INTAKE_ROLES = OFFICER_ROLES | {RoleChoices.ADMIN, RoleChoices.CALL_OPERATOR}
ANIMAL_CARE_ROLES = OFFICER_ROLES | {RoleChoices.ADMIN, RoleChoices.VETERINARIAN}

LEGACY_ROLE_ALIASES = {
    'vet': RoleChoices.VETERINARIAN,
    'veterinarian': RoleChoices.VETERINARIAN,
    'wildlifeofficer': RoleChoices.WILDLIFE_OFFICER,
    'wildlife_officer': RoleChoices.WILDLIFE_OFFICER,
    'officer': RoleChoices.WILDLIFE_OFFICER,
    'emergencyofficer': RoleChoices.EMERGENCY_OFFICER,
    'emergency_officer': RoleChoices.EMERGENCY_OFFICER,
    'calloperator': RoleChoices.CALL_OPERATOR,
    'call_operator': RoleChoices.CALL_OPERATOR,
    'admin': RoleChoices.ADMIN,
    'administrator': RoleChoices.ADMIN,
}


def normalize_role(value):
    """
    Map a role string in any historic spelling to RoleChoices.
    
    Raises:
        ValidationError: unknown role
    """
    if value is None:
        raise ValidationError('Role is required')
    key = str(value).strip().lower().replace('-', '_').replace(' ', '_')
    if key in LEGACY_ROLE_ALIASES:
        return RoleChoices(LEGACY_ROLE_ALIASES[key])
    compact = key.replace('_', '')
    if compact in LEGACY_ROLE_ALIASES:
        return RoleChoices(LEGACY_ROLE_ALIASES[compact])
    raise ValidationError(f'Unknown role: {value}')


def is_admin(user):
    return bool(user and user.is_authenticated and user.role == RoleChoices.ADMIN)


def is_officer_or_admin(user):
    return bool(
        user and user.is_authenticated
        and (user.role == RoleChoices.ADMIN or user.role in OFFICER_ROLES)
    )


def is_veterinarian(user):
    return bool(user and user.is_authenticated and user.role == RoleChoices.VETERINARIAN)


def can_intake_cases(user):
    return bool(user and user.is_authenticated and user.role in INTAKE_ROLES)


def is_animal_care_staff(user):
    return bool(user and user.is_authenticated and user.role in ANIMAL_CARE_ROLES)

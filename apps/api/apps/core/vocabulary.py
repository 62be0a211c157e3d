"""
Canonical status vocabularies and legacy-string normalization.

Older clients and imported records use several spellings for the same
state ("in-progress", "in_progress", "InProgress", "resolved", ...).
Those strings are mapped to the canonical value once, at the API
boundary; services only ever see canonical values.
"""
from django.core.exceptions import ValidationError


def _key(value):
    return ''.join(ch for ch in str(value).lower() if ch.isalnum())


class Vocabulary:
    """
    A closed set of canonical values plus legacy aliases.
    
    Lookup ignores case, whitespace and punctuation, so "In Progress",
    "in-progress" and "IN_PROGRESS" all resolve to the same value.
    """
    
    def __init__(self, name, canonical, aliases=None):
        self.name = name
        self.canonical = list(canonical)
        self._lookup = {_key(value): value for value in self.canonical}
        for alias, value in (aliases or {}).items():
            if value not in self.canonical:
                raise ValueError(f'{name}: alias {alias!r} targets unknown value {value!r}')
            self._lookup[_key(alias)] = value
    
    def normalize(self, value):
        """
        Return the canonical value for `value`.
        
        Raises:
            ValidationError: value matches no canonical value or alias
        """
        if value is None or str(value).strip() == '':
            raise ValidationError(f'{self.name} is required')
        try:
            return self._lookup[_key(value)]
        except KeyError:
            raise ValidationError(
                f'Invalid {self.name}: {value!r}. Expected one of: {", ".join(self.canonical)}'
            )


CASE_STATUS = Vocabulary(
    'case status',
    ['Unassigned', 'Assigned', 'In Progress', 'Completed'],
    aliases={
        'pending': 'Unassigned',
        'new': 'Unassigned',
        'open': 'Unassigned',
        'ongoing': 'In Progress',
        'active': 'In Progress',
        'resolved': 'Completed',
        'closed': 'Completed',
        'complete': 'Completed',
        'done': 'Completed',
    },
)

TREATMENT_STATUS = Vocabulary(
    'treatment status',
    ['Planned', 'In Progress', 'Completed', 'Cancelled', 'Follow-up Required'],
    aliases={
        'pending': 'Planned',
        'scheduled': 'Planned',
        'ongoing': 'In Progress',
        'active': 'In Progress',
        'resolved': 'Completed',
        'closed': 'Completed',
        'complete': 'Completed',
        'done': 'Completed',
        'canceled': 'Cancelled',
        'followup': 'Follow-up Required',
        'follow-up': 'Follow-up Required',
        'needs follow-up': 'Follow-up Required',
    },
)

PRIORITY = Vocabulary(
    'priority',
    ['Low', 'Medium', 'High'],
    aliases={'normal': 'Medium', 'urgent': 'High', 'critical': 'High'},
)

RESTOCK_STATUS = Vocabulary(
    'restock status',
    ['Pending', 'Approved', 'Rejected'],
    aliases={'requested': 'Pending', 'accepted': 'Approved', 'declined': 'Rejected', 'denied': 'Rejected'},
)

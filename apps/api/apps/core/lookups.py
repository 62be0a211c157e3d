"""
Entity lookup helpers raising NotFound.
"""
from django.core.exceptions import ValidationError

from .exceptions import NotFound


def get_or_not_found(queryset, label, **lookup):
    """
    Fetch a single object from a model or queryset, or raise NotFound.
    
    Malformed identifiers (e.g. a non-UUID primary key) resolve to
    NotFound as well.
    """
    if isinstance(queryset, type):
        queryset = queryset._default_manager.all()
    try:
        return queryset.get(**lookup)
    except (queryset.model.DoesNotExist, ValidationError, ValueError):
        identifier = next(iter(lookup.values()), None)
        raise NotFound(f'{label} not found: {identifier}')

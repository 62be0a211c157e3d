"""
Human-readable identifier generation.

Identifiers are derived from an atomic per-entity counter rather than from
the most recent record, which races under concurrent creation.
"""
from django.db import IntegrityError, transaction
from django.db.models import F

from .conf import wildcare_setting
from .models import Sequence


def next_value(name: str) -> int:
    """Atomically increment and return the counter for `name`."""
    with transaction.atomic():
        updated = Sequence.objects.filter(name=name).update(last_value=F('last_value') + 1)
        if not updated:
            try:
                with transaction.atomic():
                    Sequence.objects.create(name=name, last_value=1)
                return 1
            except IntegrityError:
                # Another creator inserted the row first
                Sequence.objects.filter(name=name).update(last_value=F('last_value') + 1)
        return Sequence.objects.get(name=name).last_value


def format_identifier(prefix: str, value: int) -> str:
    """Format `value` as PREFIX-00001."""
    padding = wildcare_setting('ID_PADDING')
    return f"{prefix}-{str(value).zfill(padding)}"


def next_identifier(name: str, prefix: str) -> str:
    """Allocate the next human-readable identifier for an entity."""
    return format_identifier(prefix, next_value(name))

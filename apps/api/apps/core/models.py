"""
Core models: per-entity identifier sequences.
"""
from django.db import models


class Sequence(models.Model):
    """
    Monotonic counter backing human-readable identifiers (CASE-00001, TRT-00001, ...).
    
    One row per entity name. Incremented under a row lock, so concurrent
    creators never receive the same value.
    """
    name = models.CharField(max_length=50, unique=True)
    last_value = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)
    
    class Meta:
        db_table = 'core_sequence'
        verbose_name = 'Sequence'
        verbose_name_plural = 'Sequences'
    
    def __str__(self):
        return f"{self.name}: {self.last_value}"

"""
GPS tracking models.

- TrackingState: per-case tracking configuration and last known location
- LocationPoint: bounded location history, oldest points evicted on insert
"""
import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .geo import SafeZone


class TrackingState(models.Model):
    """
    Tracking state of one case.

    `next_sequence` numbers history points; only the most recent
    TRACKING_HISTORY_CAPACITY points are kept.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case = models.OneToOneField('cases.Case', on_delete=models.PROTECT, related_name='tracking')
    is_active = models.BooleanField(_('Active'), default=False)
    device_id = models.CharField(_('Device ID'), max_length=100)

    enabled_at = models.DateTimeField(null=True, blank=True)
    enabled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    disabled_at = models.DateTimeField(null=True, blank=True)
    disabled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    disabled_reason = models.CharField(max_length=500, blank=True)

    safe_zone_latitude = models.FloatField(null=True, blank=True)
    safe_zone_longitude = models.FloatField(null=True, blank=True)
    safe_zone_radius = models.FloatField(null=True, blank=True, help_text=_('meters'))

    last_latitude = models.FloatField(null=True, blank=True)
    last_longitude = models.FloatField(null=True, blank=True)
    last_recorded_at = models.DateTimeField(null=True, blank=True)

    next_sequence = models.PositiveBigIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tracking_states'
        indexes = [
            models.Index(fields=['is_active'], name='idx_tracking_active'),
        ]

    def __str__(self):
        return f"{self.case.case_id} tracking ({'active' if self.is_active else 'inactive'})"

    @property
    def safe_zone(self):
        if self.safe_zone_radius is None or self.safe_zone_latitude is None:
            return None
        return SafeZone(self.safe_zone_latitude, self.safe_zone_longitude, self.safe_zone_radius)

    def set_safe_zone(self, zone):
        self.safe_zone_latitude = zone.latitude if zone else None
        self.safe_zone_longitude = zone.longitude if zone else None
        self.safe_zone_radius = zone.radius if zone else None

    @property
    def has_location(self):
        return self.last_recorded_at is not None


class LocationPoint(models.Model):
    id = models.BigAutoField(primary_key=True)
    tracking = models.ForeignKey(TrackingState, on_delete=models.CASCADE, related_name='points')
    sequence = models.PositiveBigIntegerField()
    latitude = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    longitude = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])
    recorded_at = models.DateTimeField()
    battery_level = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MaxValueValidator(100)]
    )
    signal_strength = models.IntegerField(null=True, blank=True)
    device_id = models.CharField(max_length=100, blank=True)
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        db_table = 'tracking_location_points'
        ordering = ['sequence']
        constraints = [
            models.UniqueConstraint(fields=['tracking', 'sequence'], name='unique_tracking_sequence'),
        ]

    def __str__(self):
        return f"#{self.sequence} ({self.latitude}, {self.longitude})"

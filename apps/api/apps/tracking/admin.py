from django.contrib import admin

from .models import TrackingState


@admin.register(TrackingState)
class TrackingStateAdmin(admin.ModelAdmin):
    list_display = ['case', 'device_id', 'is_active', 'safe_zone_radius', 'last_recorded_at']
    list_filter = ['is_active']
    search_fields = ['case__case_id', 'device_id']
    readonly_fields = ['id', 'next_sequence', 'last_latitude', 'last_longitude', 'last_recorded_at', 'created_at', 'updated_at']

"""
Access to WILDCARE domain settings with defaults.
"""
from django.conf import settings

DEFAULTS = {
    'CASE_ID_PREFIX': 'CASE',
    'TREATMENT_ID_PREFIX': 'TRT',
    'MEDICATION_ID_PREFIX': 'MED',
    'ID_PADDING': 5,
    'MEDICATION_NEAR_EXPIRY_DAYS': 30,
    'TRACKING_HISTORY_CAPACITY': 1000,
    'TRACKING_STALE_HOURS': 6,
    'TRACKING_CRITICAL_HOURS': 24,
    'TRACKING_LOW_BATTERY_PERCENT': 20,
    'ASSET_STORAGE': 'apps.integrations.storage.MinioAssetStorage',
}


def wildcare_setting(name):
    """
    Return a WILDCARE setting, falling back to the built-in default.
    
    Raises:
        KeyError: unknown setting name
    """
    overrides = getattr(settings, 'WILDCARE', {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]

"""
Prometheus metrics registry.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry for the animal care API.
    
    Provides typed access to all application metrics.
    """
    
    def __init__(self):
        self._setup_metrics()
    
    def _setup_metrics(self):
        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )
        
        self.http_request_duration_seconds = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )
        
        self.exceptions_total = Counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )
        
        # ===================================================================
        # Case Metrics
        # ===================================================================
        self.case_transition_total = Counter(
            'case_transition_total',
            'Case status transitions',
            ['from_status', 'to_status', 'trigger']
        )
        
        self.collaboration_action_total = Counter(
            'collaboration_action_total',
            'Case collaboration actions',
            ['action']  # shared, transferred, collaboration_removed
        )
        
        self.notification_failures_total = Counter(
            'notification_failures_total',
            'Notification receivers that raised',
            ['signal']
        )
        
        # ===================================================================
        # Treatment Metrics
        # ===================================================================
        self.treatment_created_total = Counter(
            'treatment_created_total',
            'Treatments created',
            ['result']  # success, insufficient_stock, failure
        )
        
        self.treatment_create_duration_seconds = Histogram(
            'treatment_create_duration_seconds',
            'Duration of treatment creation including debits',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
        )
        
        self.asset_delete_failures_total = Counter(
            'asset_delete_failures_total',
            'Best-effort asset deletions that failed'
        )
        
        # ===================================================================
        # Medication Metrics
        # ===================================================================
        self.medication_debit_total = Counter(
            'medication_debit_total',
            'Medication debits',
            ['result']  # success, insufficient_stock
        )
        
        self.medication_debit_compensation_total = Counter(
            'medication_debit_compensation_total',
            'Compensating credits issued for rolled back debits'
        )
        
        self.medication_restock_total = Counter(
            'medication_restock_total',
            'Restock workflow actions',
            ['action']  # requested, approved, rejected, received
        )
        
        self.medication_ledger_mismatch_total = Counter(
            'medication_ledger_mismatch_total',
            'Medication quantity not matching its usage ledger'
        )
        
        # ===================================================================
        # Tracking Metrics
        # ===================================================================
        self.tracking_location_recorded_total = Counter(
            'tracking_location_recorded_total',
            'Location pings recorded'
        )
        
        self.tracking_alerts_total = Counter(
            'tracking_alerts_total',
            'Tracking alerts raised',
            ['type', 'severity']
        )
    
    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.
        
        Usage:
            @metrics.track_duration(metrics.treatment_create_duration_seconds)
            def create_treatment(case_id, user, payload):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()

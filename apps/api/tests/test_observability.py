"""
Tests for observability layer.

Validates that metrics, logs, and events are emitted correctly
without logging reporter contact details or clinical notes.
"""
import json
import logging
from unittest.mock import MagicMock, Mock, patch

import pytest
from django.db import DatabaseError
from django.http import HttpResponse

from apps.core.observability.correlation import (
    RequestCorrelationMiddleware,
    clear_request_context,
    get_request_id,
)
from apps.core.observability.events import (
    log_consistency_checkpoint,
    log_debit_blocked,
    log_domain_event,
)
from apps.core.observability.logging import (
    SENSITIVE_FIELDS,
    CorrelationFilter,
    SanitizedJSONFormatter,
    sanitize_dict,
)
from apps.core.observability.metrics import metrics


def _request(**meta):
    request = Mock(META=meta, path='/api/v1/cases/', method='GET', resolver_match=None)
    request.user = Mock(is_authenticated=False)
    return request


class TestRequestCorrelation:
    """Test request correlation middleware."""

    def teardown_method(self):
        clear_request_context()

    def test_generates_request_id_if_missing(self):
        middleware = RequestCorrelationMiddleware(lambda r: HttpResponse())
        request = _request()

        middleware.process_request(request)

        assert request.request_id
        assert get_request_id() == request.request_id

    def test_propagates_existing_request_id(self):
        middleware = RequestCorrelationMiddleware(lambda r: HttpResponse())
        request = _request(HTTP_X_REQUEST_ID='test-request-123')

        middleware.process_request(request)

        assert request.request_id == 'test-request-123'

    def test_adds_request_id_to_response_and_clears_context(self):
        middleware = RequestCorrelationMiddleware(lambda r: HttpResponse())
        request = _request(HTTP_X_REQUEST_ID='test-123')
        middleware.process_request(request)

        result = middleware.process_response(request, HttpResponse(status=201))

        assert result['X-Request-ID'] == 'test-123'
        assert get_request_id() is None


class TestSanitization:
    """Reporter details and free-text notes never reach the logs."""

    def test_sanitize_dict_redacts_sensitive_fields(self):
        data = {
            'case_id': 'CASE-00001',
            'reported_by': 'Villager, 077 123 4567',
            'symptoms_observations': 'Deep laceration',
            'email': 'vet@example.com',
            'notes': 'Sedated at 14:00',
            'status': 'Assigned',
        }

        sanitized = sanitize_dict(data)

        assert sanitized['case_id'] == 'CASE-00001'
        assert sanitized['status'] == 'Assigned'
        for key in ('reported_by', 'symptoms_observations', 'email', 'notes'):
            assert sanitized[key] == '[REDACTED]'

    def test_sanitize_dict_handles_nested_objects(self):
        data = {
            'case': {'case_id': 'CASE-00002', 'comments': [{'text': 'Hello', 'author': 'u-1'}]},
            'password': 'hunter2',
        }

        sanitized = sanitize_dict(data)

        assert sanitized['password'] == '[REDACTED]'
        assert sanitized['case']['case_id'] == 'CASE-00002'
        assert sanitized['case']['comments'] == [{'text': '[REDACTED]', 'author': 'u-1'}]

    def test_allowed_fields_not_redacted(self):
        data = {'medication_id': 'MED-00001', 'quantity': 3, 'remaining': 7}
        assert sanitize_dict(data) == data

    def test_key_matching_is_case_insensitive(self):
        assert 'token' in SENSITIVE_FIELDS
        assert sanitize_dict({'Token': 'abc'}) == {'Token': '[REDACTED]'}


class TestStructuredLogging:
    """CorrelationFilter and SanitizedJSONFormatter."""

    def _record(self, **extra):
        record = logging.LogRecord('wildcare', logging.INFO, __file__, 1, 'Case assigned', None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_filter_injects_placeholders_outside_requests(self):
        record = self._record()

        assert CorrelationFilter().filter(record) is True
        assert record.request_id == '-'
        assert record.user_id == '-'

    def test_formatter_redacts_extra_fields(self):
        record = self._record(event='case_assigned', reported_by='Ranger Silva', case_id='CASE-00003')

        payload = json.loads(SanitizedJSONFormatter().format(record))

        assert payload['message'] == 'Case assigned'
        assert payload['event'] == 'case_assigned'
        assert payload['case_id'] == 'CASE-00003'
        assert payload['reported_by'] == '[REDACTED]'


class TestDomainEvents:
    """Test domain event logging."""

    @patch('apps.core.observability.events.logger')
    def test_log_domain_event_structure(self, mock_logger):
        log_domain_event(
            'case_transition',
            entity_type='Case',
            entity_id='CASE-00001',
            entity_ids={'case_pk': 'abc'},
            to_status='Assigned',
        )

        mock_logger.info.assert_called_once()
        extra = mock_logger.info.call_args[1]['extra']
        assert extra['event'] == 'case_transition'
        assert extra['entity_type'] == 'Case'
        assert extra['entity_id'] == 'CASE-00001'
        assert extra['case_pk'] == 'abc'
        assert extra['result'] == 'success'
        assert extra['to_status'] == 'Assigned'

    @patch('apps.core.observability.events.logger')
    def test_extra_fields_are_sanitized(self, mock_logger):
        log_domain_event('comment_added', entity_type='Case', text='Animal is distressed')

        extra = mock_logger.info.call_args[1]['extra']
        assert extra['text'] == '[REDACTED]'

    @patch('apps.core.observability.events.logger')
    def test_blocked_debit_logs_warning(self, mock_logger):
        medication = Mock(medication_id='MED-00004')

        log_debit_blocked(medication, requested=5, available=2)

        mock_logger.warning.assert_called_once()
        extra = mock_logger.warning.call_args[1]['extra']
        assert extra['event'] == 'medication_debit_blocked'
        assert extra['entity_id'] == 'MED-00004'
        assert extra['requested_qty'] == 5
        assert extra['available_qty'] == 2
        assert extra['result'] == 'blocked'

    @patch('apps.core.observability.events.logger')
    def test_failed_checkpoint_logs_error(self, mock_logger):
        log_consistency_checkpoint(
            'medication_stock_ledger',
            entity_ids={'medication_id': 'MED-00001'},
            checks_passed={'quantity_matches_ledger': False, 'non_negative': True},
        )

        mock_logger.error.assert_called_once()
        extra = mock_logger.error.call_args[1]['extra']
        assert extra['status'] == 'failed'
        assert extra['medication_id'] == 'MED-00001'


class TestMetricsRegistry:

    def test_domain_metrics_defined(self):
        for name in (
            'case_transition_total',
            'collaboration_action_total',
            'treatment_created_total',
            'medication_debit_total',
            'medication_debit_compensation_total',
            'tracking_alerts_total',
        ):
            assert hasattr(metrics, name)

    def test_track_duration_observes_on_failure(self):
        histogram = MagicMock()

        @metrics.track_duration(histogram)
        def boom():
            raise RuntimeError('failed')

        with pytest.raises(RuntimeError):
            boom()

        histogram.observe.assert_called_once()


@pytest.mark.django_db
class TestHealthChecks:
    """Test health check endpoints."""

    def test_healthz_returns_200(self, client):
        response = client.get('/healthz')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ok'
        assert 'version' in data

    def test_readyz_checks_database(self, client):
        response = client.get('/readyz')

        assert response.status_code == 200
        assert response.json() == {'status': 'ready', 'checks': {'database': True}}

    @patch('apps.core.observability.health.connection')
    def test_readyz_fails_on_db_error(self, mock_connection, client):
        mock_connection.cursor.side_effect = DatabaseError('DB connection failed')

        response = client.get('/readyz')

        assert response.status_code == 503
        data = response.json()
        assert data['status'] == 'not_ready'
        assert data['checks']['database'] is False

    def test_metrics_endpoint_exposes_prometheus_text(self, client):
        client.get('/healthz')

        response = client.get('/metrics')

        assert response.status_code == 200
        assert b'http_requests_total' in response.content

"""
Medication inventory: dispensing ledger, alerts and restock workflow.

Test coverage:
1. Debit decrements stock and appends a ledger entry
2. Debits beyond stock are rejected without side effects
3. Concurrent debits never oversell
4. Compensation credits restore stock exactly once
5. Low stock / near expiry / expired alerts
6. Restock: request -> approve -> receive, with state guards
7. Quantity is never writable directly
8. Ledger consistency check and usage report

Run against PostgreSQL as well:
    DATABASE_ENGINE=django.db.backends.postgresql DATABASE_HOST=localhost pytest apps/api/tests/test_medication_inventory.py -v
"""
import threading
from datetime import timedelta

import pytest
from django.db import connection
from django.utils import timezone

from apps.core.exceptions import Conflict, DomainValidationError
from apps.medications import services
from apps.medications.models import Medication, MedicationUsage, RestockStatusChoices, UsageKindChoices


# ============================================================================
# Dispensing
# ============================================================================

@pytest.mark.django_db
class TestDebit:
    """debit / credit."""

    def test_debit_decrements_and_logs(self, medication, assigned_case, vet_user):
        remaining = services.debit(
            medication.pk, 3, case=assigned_case, veterinarian=vet_user, notes='Wound flush'
        )

        assert remaining == 7
        medication.refresh_from_db()
        assert medication.quantity == 7
        usage = medication.usage_log.get()
        assert usage.kind == UsageKindChoices.DISPENSED
        assert usage.quantity == 3
        assert usage.case == assigned_case
        assert usage.unit_cost == medication.cost_per_unit

    def test_debit_beyond_stock_rejected(self, make_medication):
        """
        GIVEN 5 units in stock
        WHEN 6 units are debited
        THEN InsufficientStockError is raised and nothing changes
        """
        medication = make_medication(quantity=5)

        with pytest.raises(services.InsufficientStockError) as exc_info:
            services.debit(medication.pk, 6)

        assert exc_info.value.details == {
            'medication_id': medication.medication_id,
            'available': 5,
            'requested': 6,
        }
        medication.refresh_from_db()
        assert medication.quantity == 5
        assert not medication.usage_log.exists()

    def test_sequential_debits_never_oversell(self, make_medication):
        """
        GIVEN 5 units in stock
        WHEN 3 units are debited twice
        THEN exactly one debit succeeds and 2 units remain
        """
        medication = make_medication(quantity=5)

        assert services.debit(medication.pk, 3) == 2
        with pytest.raises(services.InsufficientStockError):
            services.debit(medication.pk, 3)

        medication.refresh_from_db()
        assert medication.quantity == 2
        assert medication.usage_log.count() == 1

    def test_debit_to_exactly_zero(self, make_medication):
        medication = make_medication(quantity=4, threshold=1)
        assert services.debit(medication.pk, 4) == 0

    @pytest.mark.parametrize('quantity', [0, -1, 1.5, True, '2'])
    def test_invalid_quantity_rejected(self, medication, quantity):
        with pytest.raises(DomainValidationError):
            services.debit(medication.pk, quantity)

    def test_credit_restores_stock_once(self, medication):
        usage, _remaining = services.dispense(medication.pk, 4)

        compensation = services.credit(usage.pk, reason='Treatment not recorded')

        medication.refresh_from_db()
        assert medication.quantity == 10
        assert compensation.kind == UsageKindChoices.COMPENSATION
        assert compensation.quantity == -4
        assert compensation.compensates == usage

        with pytest.raises(Conflict):
            services.credit(usage.pk)
        with pytest.raises(Conflict):
            services.credit(compensation.pk)

        medication.refresh_from_db()
        assert medication.quantity == 10


@pytest.mark.django_db(transaction=True)
class TestConcurrentDebit:
    """Conditional UPDATE linearizes concurrent debits."""

    def test_concurrent_debits_do_not_oversell(self, make_medication):
        """
        GIVEN 5 units in stock
        WHEN two threads each debit 3 units at the same time
        THEN exactly one succeeds and the stock ends at 2
        """
        medication = make_medication(quantity=5)
        barrier = threading.Barrier(2)
        outcomes = []

        def worker():
            barrier.wait()
            try:
                services.debit(medication.pk, 3)
                outcomes.append('ok')
            except services.InsufficientStockError:
                outcomes.append('insufficient')
            finally:
                connection.close()

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ['insufficient', 'ok']
        medication.refresh_from_db()
        assert medication.quantity == 2
        assert MedicationUsage.objects.filter(medication=medication).count() == 1

    def test_many_debits_stop_at_zero(self, make_medication):
        """
        GIVEN 3 units in stock
        WHEN six threads each debit 1 unit at the same time
        THEN three succeed, three are rejected and the stock ends at 0
        """
        medication = make_medication(quantity=3, threshold=0)
        barrier = threading.Barrier(6)
        outcomes = []

        def worker():
            barrier.wait()
            try:
                services.debit(medication.pk, 1)
                outcomes.append('ok')
            except services.InsufficientStockError:
                outcomes.append('insufficient')
            finally:
                connection.close()

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ['insufficient'] * 3 + ['ok'] * 3
        medication.refresh_from_db()
        assert medication.quantity == 0
        assert services.verify_stock_ledger(medication)


# ============================================================================
# Alerts
# ============================================================================

@pytest.mark.django_db
class TestAlerts:
    """Stock and expiry alerts."""

    def test_low_stock_flag_follows_debits(self, make_medication):
        """
        GIVEN 5 units and a threshold of 2
        WHEN stock is debited down to 2
        THEN the low stock alert is raised
        """
        medication = make_medication(quantity=5, threshold=2)
        assert not medication.alert_low_stock

        services.debit(medication.pk, 3)

        medication.refresh_from_db()
        assert medication.alert_low_stock
        assert services.compute_alerts(medication).low_stock

    def test_near_expiry_and_expired(self, make_medication):
        today = timezone.now().date()
        soon = make_medication(name='Soon', expiry_date=today + timedelta(days=10))
        gone = make_medication(name='Gone', expiry_date=today)
        fine = make_medication(name='Fine')

        assert services.compute_alerts(soon).near_expiry
        assert not services.compute_alerts(soon).expired
        assert services.compute_alerts(gone).expired
        assert not services.compute_alerts(gone).near_expiry
        assert not services.compute_alerts(fine).any

    def test_alert_dashboard_summary(self, make_medication):
        make_medication(name='Low', quantity=1, threshold=2)
        make_medication(name='Expired', expiry_date=timezone.now().date() - timedelta(days=1))
        make_medication(name='Fine')

        data = services.medication_alerts()

        assert [m.name for m in data['low_stock']] == ['Low']
        assert [m.name for m in data['expired']] == ['Expired']
        assert data['summary'] == {'low_stock_count': 1, 'near_expiry_count': 0, 'expired_count': 1}


# ============================================================================
# Restock workflow
# ============================================================================

@pytest.mark.django_db
class TestRestock:
    """Pending -> Approved/Rejected, then received once."""

    def test_approve_then_receive_adds_stock(self, medication, vet_user, officer_user):
        """
        GIVEN a pending request for 20 units
        WHEN it is approved and received
        THEN stock grows by 20 exactly once
        """
        request = services.request_restock(medication.pk, 20, 'High', 'Outbreak', vet_user)
        assert request.status == RestockStatusChoices.PENDING

        services.resolve_restock(medication.pk, request.pk, 'approve', officer_user)
        medication.refresh_from_db()
        assert medication.quantity == 10

        services.receive_restock(medication.pk, request.pk, officer_user)
        medication.refresh_from_db()
        assert medication.quantity == 30

        with pytest.raises(Conflict):
            services.receive_restock(medication.pk, request.pk, officer_user)
        assert services.verify_stock_ledger(medication)

    def test_rejected_request_cannot_be_received(self, medication, vet_user, officer_user):
        request = services.request_restock(medication.pk, 5, 'Low', '', vet_user)
        services.resolve_restock(medication.pk, request.pk, 'reject', officer_user, 'Not needed')

        with pytest.raises(Conflict):
            services.receive_restock(medication.pk, request.pk, officer_user)

    def test_request_resolved_only_once(self, medication, vet_user, officer_user):
        request = services.request_restock(medication.pk, 5, 'Low', '', vet_user)
        services.resolve_restock(medication.pk, request.pk, 'approve', officer_user)

        with pytest.raises(Conflict):
            services.resolve_restock(medication.pk, request.pk, 'reject', officer_user)

    def test_invalid_action_and_priority(self, medication, vet_user, officer_user):
        with pytest.raises(DomainValidationError):
            services.request_restock(medication.pk, 5, 'Whenever', '', vet_user)

        request = services.request_restock(medication.pk, 5, None, '', vet_user)
        assert request.priority == 'Medium'
        with pytest.raises(DomainValidationError):
            services.resolve_restock(medication.pk, request.pk, 'maybe', officer_user)


# ============================================================================
# Records and ledger
# ============================================================================

@pytest.mark.django_db
class TestMedicationRecords:
    """Medication create/update and ledger consistency."""

    def test_create_assigns_identifier_and_baseline(self, medication):
        assert medication.medication_id == 'MED-00001'
        assert medication.initial_quantity == 10

    def test_missing_fields_rejected(self, medication_data):
        data = medication_data()
        del data['batch_number']

        with pytest.raises(DomainValidationError) as exc_info:
            services.create_medication(data)

        assert exc_info.value.details['missing_fields'] == ['batch_number']
        assert not Medication.objects.exists()

    def test_quantity_not_directly_writable(self, medication):
        with pytest.raises(DomainValidationError):
            services.update_medication(medication.pk, {'quantity': 500})

        medication.refresh_from_db()
        assert medication.quantity == 10

    def test_threshold_update_refreshes_alert(self, medication):
        medication = services.update_medication(medication.pk, {'threshold': 15})
        assert medication.alert_low_stock

    def test_ledger_matches_after_mixed_activity(self, medication, vet_user, officer_user):
        usage, _ = services.dispense(medication.pk, 2)
        services.debit(medication.pk, 3)
        services.credit(usage.pk)
        request = services.request_restock(medication.pk, 4, 'Medium', '', vet_user)
        services.resolve_restock(medication.pk, request.pk, 'approve', officer_user)
        services.receive_restock(medication.pk, request.pk, officer_user)

        medication.refresh_from_db()
        assert medication.quantity == 11
        assert services.expected_quantity(medication) == 11
        assert services.verify_stock_ledger(medication)

    def test_usage_report_nets_compensations(self, make_medication, vet_user):
        medication = make_medication()
        usage, _ = services.dispense(medication.pk, 2, veterinarian=vet_user)
        services.debit(medication.pk, 3, veterinarian=vet_user)
        services.credit(usage.pk)

        report = services.usage_report(medication_id=medication.pk)

        assert report['total_medications'] == 1
        row = report['report'][0]
        assert row['total_used'] == 3
        assert row['entries'] == 2
        assert row['compensations'] == 1
        assert report['period'] == {'start': 'Beginning', 'end': 'Present'}

"""
Treatment ledger: creation with dispensing, status machine and costs.

Test coverage:
1. Create debits each medication and links the ledger entry
2. Insufficient stock on any entry leaves no debit behind (compensation)
3. Failure while persisting the treatment compensates committed debits
4. Ownership: vets author only on their cases, officers on behalf of the assignee
5. Status transitions and derived case status
6. Costs are recomputed, never client-supplied
7. Correction entries via additional_medications
8. Report aggregation
9. Cross-case listing scoped by role
"""
from decimal import Decimal
from unittest import mock

import pytest
from django.urls import reverse
from rest_framework import status as http_status

from apps.cases import services as case_services
from apps.cases.models import CaseStatusChoices
from apps.core.exceptions import Conflict, DomainValidationError, Forbidden
from apps.medications.models import MedicationUsage, UsageKindChoices
from apps.medications.services import InsufficientStockError, verify_stock_ledger
from apps.treatments import services
from apps.treatments.models import Treatment, TreatmentMedication, TreatmentStatusChoices


def _entry(medication, quantity, **extra):
    entry = {
        'medication_id': medication.pk,
        'quantity': quantity,
        'dosage': '5ml',
        'frequency': '2x daily',
        'duration': '5 days',
    }
    entry.update(extra)
    return entry


def _payload(*entries, **extra):
    payload = {
        'treatment_type': 'Medical',
        'diagnosis': 'Infected laceration',
        'treatment_plan': 'Antibiotics and dressing',
        'medications': list(entries),
    }
    payload.update(extra)
    return payload


# ============================================================================
# Creation and dispensing
# ============================================================================

@pytest.mark.django_db
class TestCreateTreatment:
    """create_treatment."""

    def test_create_debits_inventory_and_links_usage(self, assigned_case, vet_user, medication):
        """
        GIVEN medication with 10 units
        WHEN a treatment uses 3 units
        THEN stock is 7 and the entry is linked to its ledger debit
        """
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload(_entry(medication, 3)))

        medication.refresh_from_db()
        assert medication.quantity == 7
        assert treatment.treatment_id == 'TRT-00001'
        assert treatment.assigned_vet == vet_user

        entry = treatment.medications.get()
        assert entry.quantity == 3
        assert entry.usage.kind == UsageKindChoices.DISPENSED
        assert entry.usage.treatment_reference == treatment.treatment_id
        assert entry.usage.case == assigned_case

    def test_create_moves_case_in_progress(self, assigned_case, vet_user):
        services.create_treatment(assigned_case.pk, vet_user, _payload())

        assigned_case.refresh_from_db()
        assert assigned_case.status == CaseStatusChoices.IN_PROGRESS

    def test_insufficient_stock_compensates_earlier_debits(
        self, assigned_case, vet_user, make_medication
    ):
        """
        GIVEN medication A with 10 units and B with 1 unit
        WHEN a treatment asks for 4 of A then 2 of B
        THEN InsufficientStockError is raised, A is back at 10, no treatment exists
        """
        med_a = make_medication(name='Amoxicillin')
        med_b = make_medication(name='Meloxicam', quantity=1, threshold=0)

        with pytest.raises(InsufficientStockError) as exc_info:
            services.create_treatment(
                assigned_case.pk, vet_user, _payload(_entry(med_a, 4), _entry(med_b, 2))
            )

        assert exc_info.value.details['available'] == 1
        med_a.refresh_from_db()
        med_b.refresh_from_db()
        assert med_a.quantity == 10
        assert med_b.quantity == 1
        assert not Treatment.objects.exists()
        assert verify_stock_ledger(med_a)

        kinds = list(med_a.usage_log.order_by('used_at').values_list('kind', 'quantity'))
        assert kinds == [
            (UsageKindChoices.DISPENSED, 4),
            (UsageKindChoices.COMPENSATION, -4),
        ]

    def test_persist_failure_compensates_debits(self, assigned_case, vet_user, medication):
        """
        GIVEN a treatment whose procedures are invalid
        WHEN it is created
        THEN the committed debit is reversed and the error propagates
        """
        payload = _payload(_entry(medication, 3), procedures=[{'name': 'Suture'}])

        with pytest.raises(DomainValidationError):
            services.create_treatment(assigned_case.pk, vet_user, payload)

        medication.refresh_from_db()
        assert medication.quantity == 10
        assert not Treatment.objects.exists()
        assert not TreatmentMedication.objects.exists()
        assert verify_stock_ledger(medication)

    def test_unexpected_error_still_compensates(self, assigned_case, vet_user, medication):
        with mock.patch(
            'apps.treatments.services._attach_medications',
            side_effect=RuntimeError('disk full')
        ):
            with pytest.raises(RuntimeError):
                services.create_treatment(assigned_case.pk, vet_user, _payload(_entry(medication, 3)))

        medication.refresh_from_db()
        assert medication.quantity == 10

    def test_missing_entry_fields_rejected_before_any_debit(self, assigned_case, vet_user, medication):
        entry = _entry(medication, 3)
        del entry['dosage']

        with pytest.raises(DomainValidationError):
            services.create_treatment(assigned_case.pk, vet_user, _payload(entry))

        assert not MedicationUsage.objects.exists()

    def test_required_fields(self, assigned_case, vet_user):
        with pytest.raises(DomainValidationError) as exc_info:
            services.create_treatment(assigned_case.pk, vet_user, {'treatment_type': 'Medical'})

        assert set(exc_info.value.details['missing_fields']) == {'diagnosis', 'treatment_plan'}


# ============================================================================
# Ownership
# ============================================================================

@pytest.mark.django_db
class TestTreatmentOwnership:
    """Who authors treatments."""

    def test_other_vet_cannot_create(self, assigned_case, second_vet):
        with pytest.raises(Forbidden):
            services.create_treatment(assigned_case.pk, second_vet, _payload())

    def test_officer_creates_on_behalf_of_assignee(self, assigned_case, officer_user, vet_user):
        treatment = services.create_treatment(assigned_case.pk, officer_user, _payload())
        assert treatment.assigned_vet == vet_user

    def test_officer_on_unassigned_case_conflicts(self, make_case, officer_user):
        case = make_case()
        with pytest.raises(Conflict):
            services.create_treatment(case.pk, officer_user, _payload())

    def test_only_owner_updates(self, assigned_case, vet_user, second_vet):
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload())

        with pytest.raises(Forbidden):
            services.update_treatment(treatment.pk, second_vet, {'notes': 'x'})


# ============================================================================
# Status machine
# ============================================================================

@pytest.mark.django_db
class TestTreatmentStatus:
    """Transitions and derived case status."""

    @pytest.mark.parametrize('current,target', [
        ('Planned', 'In Progress'),
        ('Planned', 'Cancelled'),
        ('In Progress', 'Completed'),
        ('In Progress', 'Follow-up Required'),
        ('Follow-up Required', 'In Progress'),
        ('Follow-up Required', 'Completed'),
    ])
    def test_valid_transitions(self, current, target):
        assert services.validate_transition(current, target) is True

    @pytest.mark.parametrize('current,target', [
        ('Planned', 'Completed'),
        ('Completed', 'In Progress'),
        ('Cancelled', 'Planned'),
        ('In Progress', 'Planned'),
    ])
    def test_invalid_transitions(self, current, target):
        with pytest.raises(Conflict):
            services.validate_transition(current, target)

    def test_same_status_is_a_no_op(self):
        assert services.validate_transition('Planned', 'Planned') is False

    def test_completing_last_treatment_completes_case(self, assigned_case, vet_user):
        """
        GIVEN a single In Progress treatment
        WHEN it is marked Completed
        THEN the case becomes Completed
        """
        treatment = services.create_treatment(
            assigned_case.pk, vet_user, _payload(status=TreatmentStatusChoices.IN_PROGRESS)
        )

        services.update_treatment(treatment.pk, vet_user, {'status': 'Completed', 'outcome': 'Successful'})

        assigned_case.refresh_from_db()
        assert assigned_case.status == CaseStatusChoices.COMPLETED

    def test_follow_up_keeps_case_in_progress(self, assigned_case, vet_user):
        treatment = services.create_treatment(
            assigned_case.pk, vet_user, _payload(status=TreatmentStatusChoices.IN_PROGRESS)
        )

        services.update_treatment(treatment.pk, vet_user, {'status': 'Follow-up Required'})

        assigned_case.refresh_from_db()
        assert assigned_case.status == CaseStatusChoices.IN_PROGRESS

    def test_invalid_transition_leaves_treatment_unchanged(self, assigned_case, vet_user):
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload())

        with pytest.raises(Conflict):
            services.update_treatment(treatment.pk, vet_user, {'status': 'Completed'})

        treatment.refresh_from_db()
        assert treatment.status == TreatmentStatusChoices.PLANNED


# ============================================================================
# Costs and corrections
# ============================================================================

@pytest.mark.django_db
class TestTreatmentCosts:
    """Costs derive from entries and procedures."""

    def test_costs_are_computed(self, assigned_case, vet_user, medication):
        """
        GIVEN 3 units at 2.50 and a procedure costing 40
        WHEN the treatment is created
        THEN medication_cost is 7.50 and total_cost 47.50
        """
        payload = _payload(
            _entry(medication, 3),
            procedures=[{'name': 'Wound debridement', 'description': 'Remove necrotic tissue', 'cost': '40.00'}],
        )

        treatment = services.create_treatment(assigned_case.pk, vet_user, payload)

        assert treatment.medication_cost == Decimal('7.50')
        assert treatment.procedure_cost == Decimal('40.00')
        assert treatment.total_cost == Decimal('47.50')

    def test_costs_cannot_be_written(self, assigned_case, vet_user):
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload())

        with pytest.raises(DomainValidationError):
            services.update_treatment(treatment.pk, vet_user, {'total_cost': '1.00'})

    def test_dispensed_entries_cannot_be_replaced(self, assigned_case, vet_user, medication):
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload(_entry(medication, 3)))

        with pytest.raises(DomainValidationError):
            services.update_treatment(treatment.pk, vet_user, {'medications': []})

    def test_correction_entry_debits_and_appends(self, assigned_case, vet_user, medication):
        """
        GIVEN a treatment that dispensed 3 units
        WHEN 2 more units are added as a correction
        THEN stock is 5, the original entry is untouched, costs include both
        """
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload(_entry(medication, 3)))

        treatment = services.update_treatment(
            treatment.pk, vet_user, {'additional_medications': [_entry(medication, 2)]}
        )

        medication.refresh_from_db()
        assert medication.quantity == 5
        entries = list(treatment.medications.order_by('position'))
        assert [(e.quantity, e.is_correction) for e in entries] == [(3, False), (2, True)]
        assert treatment.medication_cost == Decimal('12.50')


# ============================================================================
# Images
# ============================================================================

@pytest.mark.django_db
class TestTreatmentImages:

    def test_add_and_remove_image(self, assigned_case, vet_user, in_memory_storage):
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload())

        image = services.add_treatment_image(
            treatment.pk, vet_user, b'xray-bytes', 'chest.jpg', image_type='xray'
        )
        assert image.asset_key in in_memory_storage.objects
        assert image.file_size == len(b'xray-bytes')

        result = services.remove_treatment_image(treatment.pk, image.pk, vet_user)

        assert not result.has_warnings
        assert not treatment.images.exists()
        assert in_memory_storage.objects == {}

    def test_delete_failure_is_a_warning(self, assigned_case, vet_user, in_memory_storage):
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload())
        image = services.add_treatment_image(treatment.pk, vet_user, b'bytes', 'leg.jpg')
        in_memory_storage.fail_deletes = True

        result = services.remove_treatment_image(treatment.pk, image.pk, vet_user)

        assert result.has_warnings
        assert not treatment.images.exists()

    def test_unrelated_vet_cannot_upload(self, assigned_case, vet_user, second_vet):
        treatment = services.create_treatment(assigned_case.pk, vet_user, _payload())

        with pytest.raises(Forbidden):
            services.add_treatment_image(treatment.pk, second_vet, b'bytes', 'leg.jpg')


# ============================================================================
# Listing
# ============================================================================

@pytest.fixture
def treatments_by_two_vets(assigned_case, make_case, vet_user, second_vet, officer_user):
    """One Planned treatment by vet_user and one In Progress by second_vet."""
    other_case = make_case(animal_type='Leopard')
    case_services.assign_case(other_case.pk, second_vet.pk, officer_user)
    mine = services.create_treatment(assigned_case.pk, vet_user, _payload())
    theirs = services.create_treatment(
        other_case.pk, second_vet, _payload(status='In Progress')
    )
    return mine, theirs


@pytest.mark.django_db
class TestListTreatments:
    """list_treatments and GET /api/v1/treatments/."""

    def test_vet_sees_only_own_treatments(self, treatments_by_two_vets, vet_user):
        mine, _theirs = treatments_by_two_vets

        assert list(services.list_treatments(vet_user)) == [mine]

    def test_officer_sees_all_treatments(self, treatments_by_two_vets, officer_user):
        assert services.list_treatments(officer_user).count() == 2

    def test_status_filter(self, treatments_by_two_vets, officer_user):
        _mine, theirs = treatments_by_two_vets

        treatments = services.list_treatments(officer_user, status=TreatmentStatusChoices.IN_PROGRESS)

        assert list(treatments) == [theirs]

    def test_call_operator_cannot_list(self, operator_user):
        with pytest.raises(Forbidden):
            services.list_treatments(operator_user)

    def test_list_endpoint(self, treatments_by_two_vets, vet_client, officer_client):
        mine, _theirs = treatments_by_two_vets

        response = vet_client.get(reverse('treatment-list'))
        assert response.status_code == http_status.HTTP_200_OK
        assert [t['id'] for t in response.data['results']] == [str(mine.pk)]

        response = officer_client.get(reverse('treatment-list'), {'status': 'ongoing'})
        assert response.data['count'] == 1
        assert response.data['results'][0]['treatment_status'] == 'In Progress'


# ============================================================================
# Report
# ============================================================================

@pytest.mark.django_db
def test_treatment_report_aggregates(assigned_case, vet_user, medication):
    first = services.create_treatment(
        assigned_case.pk, vet_user, _payload(_entry(medication, 2), status='In Progress')
    )
    services.update_treatment(first.pk, vet_user, {'status': 'Completed', 'outcome': 'Successful'})
    services.create_treatment(
        assigned_case.pk, vet_user, _payload(_entry(medication, 1), treatment_type='Surgical')
    )

    report = services.treatment_report(assigned_case.pk, vet_user)

    assert report['total_treatments'] == 2
    assert report['successful_outcomes'] == 1
    assert report['total_cost'] == Decimal('7.50')
    assert report['treatment_types'] == {'Medical': 1, 'Surgical': 1}
    assert report['status_breakdown'] == {'Completed': 1, 'Planned': 1}
    assert report['medications_used'] == {'Amoxicillin': 3}

"""
Role gating and error rendering at the HTTP boundary.

Test coverage:
1. Unauthenticated requests are rejected
2. Call operators: case intake and listing only
3. Veterinarians: only their own and collaborating cases
4. Medication management restricted to officers/admin
5. Domain errors render as {"error", "error_type"} with the mapped status
"""
import uuid

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework import status as http_status


# ============================================================================
# Authentication
# ============================================================================

@pytest.mark.django_db
@pytest.mark.parametrize('url_name', ['case-list', 'medication-list', 'tracking-alerts'])
def test_unauthenticated_rejected(api_client, url_name):
    response = api_client.get(reverse(url_name))
    assert response.status_code == http_status.HTTP_401_UNAUTHORIZED


# ============================================================================
# Call operator
# ============================================================================

@pytest.mark.django_db
class TestCallOperator:
    """Call operators register cases and see what they registered."""

    def test_operator_creates_and_lists_own_cases(self, operator_client, make_case, case_data):
        make_case()

        response = operator_client.post(reverse('case-list'), case_data(), format='json')
        assert response.status_code == http_status.HTTP_201_CREATED

        response = operator_client.get(reverse('case-list'))
        assert response.status_code == http_status.HTTP_200_OK
        assert response.data['count'] == 1

    def test_operator_cannot_open_case_detail(self, operator_client, assigned_case):
        response = operator_client.get(reverse('case-detail', args=[assigned_case.pk]))
        assert response.status_code == http_status.HTTP_403_FORBIDDEN

    def test_operator_cannot_assign(self, operator_client, make_case, vet_user):
        case = make_case()
        response = operator_client.post(
            reverse('case-assign', args=[case.pk]), {'vet_id': str(vet_user.id)}, format='json'
        )
        assert response.status_code == http_status.HTTP_403_FORBIDDEN

    @pytest.mark.parametrize('url_name', ['medication-list', 'tracking-active', 'case-dashboard'])
    def test_operator_blocked_from_care_endpoints(self, operator_client, url_name):
        response = operator_client.get(reverse(url_name))
        assert response.status_code == http_status.HTTP_403_FORBIDDEN


# ============================================================================
# Veterinarians
# ============================================================================

@pytest.mark.django_db
class TestVeterinarianAccess:
    """Vets reach their own cases only."""

    def test_unrelated_vet_gets_forbidden_error(self, second_vet_client, assigned_case):
        response = second_vet_client.get(reverse('case-detail', args=[assigned_case.pk]))

        assert response.status_code == http_status.HTTP_403_FORBIDDEN
        assert response.data == {
            'error': 'Access denied. You must be assigned to or collaborating on this case.',
            'error_type': 'forbidden',
        }

    def test_vet_list_is_scoped(self, vet_client, assigned_case, make_case):
        make_case()

        response = vet_client.get(reverse('case-list'))

        assert [c['case_id'] for c in response.data['results']] == [assigned_case.case_id]

    def test_dashboard_for_vets(self, vet_client, officer_client, assigned_case):
        response = vet_client.get(reverse('case-dashboard'))
        assert response.status_code == http_status.HTTP_200_OK
        assert response.data['total_assigned'] == 1

        response = officer_client.get(reverse('case-dashboard'))
        assert response.status_code == http_status.HTTP_403_FORBIDDEN

    def test_vet_cannot_manage_medications(self, vet_client, medication_data):
        data = medication_data()
        data['manufacturing_date'] = data['manufacturing_date'].isoformat()
        data['expiry_date'] = data['expiry_date'].isoformat()

        response = vet_client.post(reverse('medication-list'), data, format='json')

        assert response.status_code == http_status.HTTP_403_FORBIDDEN

    def test_only_admin_deletes_cases(self, officer_client, admin_client, make_case):
        case = make_case()

        response = officer_client.delete(reverse('case-detail', args=[case.pk]))
        assert response.status_code == http_status.HTTP_403_FORBIDDEN

        response = admin_client.delete(reverse('case-detail', args=[case.pk]))
        assert response.status_code == http_status.HTTP_204_NO_CONTENT

        response = admin_client.get(reverse('case-detail', args=[case.pk]))
        assert response.status_code == http_status.HTTP_404_NOT_FOUND


# ============================================================================
# Error rendering
# ============================================================================

@pytest.mark.django_db
class TestErrorRendering:
    """Domain errors map to HTTP status codes."""

    def test_not_found(self, officer_client):
        response = officer_client.get(reverse('case-detail', args=[uuid.uuid4()]))

        assert response.status_code == http_status.HTTP_404_NOT_FOUND
        assert response.data['error_type'] == 'not_found'

    def test_invalid_role_is_bad_request(self, officer_client, make_case, officer_user):
        case = make_case()

        response = officer_client.post(
            reverse('case-assign', args=[case.pk]), {'vet_id': str(officer_user.id)}, format='json'
        )

        assert response.status_code == http_status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'invalid_role'

    def test_invalid_transition_is_conflict(self, vet_client, assigned_case):
        response = vet_client.post(reverse('treatment-list'), {
            'case': str(assigned_case.pk),
            'treatment_type': 'Medical',
            'diagnosis': 'Dehydration',
            'treatment_plan': 'Fluids',
        }, format='json')
        assert response.status_code == http_status.HTTP_201_CREATED

        response = vet_client.patch(
            reverse('treatment-detail', args=[response.data['id']]),
            {'treatment_status': 'Completed'},
            format='json'
        )

        assert response.status_code == http_status.HTTP_409_CONFLICT
        assert response.data['error_type'] == 'conflict'
        assert response.data['details']['allowed'] == ['Cancelled', 'In Progress']

    def test_missing_intake_fields_is_bad_request(self, officer_client):
        response = officer_client.post(reverse('case-list'), {'animal_type': 'Elephant'}, format='json')

        assert response.status_code == http_status.HTTP_400_BAD_REQUEST
        assert 'location' in response.data

    def test_request_id_header_echoed(self, officer_client):
        response = officer_client.get(reverse('case-list'), HTTP_X_REQUEST_ID='req-123')
        assert response['X-Request-ID'] == 'req-123'


# ============================================================================
# Photos over HTTP
# ============================================================================

@pytest.mark.django_db
def test_photo_upload_and_delete_with_storage_warning(vet_client, assigned_case, in_memory_storage):
    """
    GIVEN a photo uploaded to a case
    WHEN storage fails to delete it
    THEN the DELETE succeeds and reports a warning
    """
    upload = SimpleUploadedFile('leg.jpg', b'fake-bytes', content_type='image/jpeg')
    response = vet_client.post(
        reverse('case-photos', args=[assigned_case.pk]),
        {'file': upload, 'description': 'Left foreleg'},
        format='multipart'
    )
    assert response.status_code == http_status.HTTP_201_CREATED
    photo_id = response.data['id']

    in_memory_storage.fail_deletes = True
    response = vet_client.delete(reverse('case-photo-remove', args=[assigned_case.pk, photo_id]))

    assert response.status_code == http_status.HTTP_200_OK
    assert response.data['case']['photos'] == []
    assert len(response.data['warnings']) == 1


@pytest.mark.django_db
def test_current_user_profile(vet_client, vet_user):
    response = vet_client.get(reverse('current_user'))

    assert response.status_code == http_status.HTTP_200_OK
    assert response.data['email'] == 'vet1@test.com'
    assert response.data['role'] == 'veterinarian'
    assert response.data['name'] == 'Dr. Vera Vet'

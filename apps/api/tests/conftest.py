"""
Global test fixtures for pytest.

Provides reusable fixtures for API and service testing:
- Staff users and authenticated API clients by role
- Case and medication factories going through the services
- In-memory asset storage reset between tests
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.authz.models import RoleChoices, User
from apps.cases import services as case_services
from apps.integrations.storage import InMemoryAssetStorage
from apps.medications import services as inventory


# ============================================================================
# Asset storage
# ============================================================================

@pytest.fixture(autouse=True)
def in_memory_storage():
    """Fresh in-memory asset storage for every test."""
    InMemoryAssetStorage.reset()
    yield InMemoryAssetStorage
    InMemoryAssetStorage.reset()


# ============================================================================
# Users
# ============================================================================

def _create_user(email, role, name, **extra):
    return User.objects.create_user(
        email=email,
        password='testpass123',
        name=name,
        role=role,
        is_active=True,
        **extra
    )


@pytest.fixture
def admin_user(db):
    return _create_user('admin@test.com', RoleChoices.ADMIN, 'Ada Admin', is_staff=True)


@pytest.fixture
def officer_user(db):
    """Wildlife officer: intake, assignment, inventory management."""
    return _create_user('officer@test.com', RoleChoices.WILDLIFE_OFFICER, 'Olu Officer')


@pytest.fixture
def emergency_officer_user(db):
    return _create_user('emergency@test.com', RoleChoices.EMERGENCY_OFFICER, 'Emi Emergency')


@pytest.fixture
def vet_user(db):
    return _create_user(
        'vet1@test.com', RoleChoices.VETERINARIAN, 'Dr. Vera Vet', specialization='Large mammals'
    )


@pytest.fixture
def second_vet(db):
    return _create_user(
        'vet2@test.com', RoleChoices.VETERINARIAN, 'Dr. Sam Second', specialization='Birds'
    )


@pytest.fixture
def third_vet(db):
    return _create_user('vet3@test.com', RoleChoices.VETERINARIAN, 'Dr. Tia Third')


@pytest.fixture
def operator_user(db):
    """Call operator: case intake only."""
    return _create_user('operator@test.com', RoleChoices.CALL_OPERATOR, 'Cal Operator')


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def client_for():
    """Build an API client authenticated as the given user."""
    def _client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client_for


@pytest.fixture
def admin_client(client_for, admin_user):
    return client_for(admin_user)


@pytest.fixture
def officer_client(client_for, officer_user):
    return client_for(officer_user)


@pytest.fixture
def vet_client(client_for, vet_user):
    return client_for(vet_user)


@pytest.fixture
def second_vet_client(client_for, second_vet):
    return client_for(second_vet)


@pytest.fixture
def operator_client(client_for, operator_user):
    return client_for(operator_user)


# ============================================================================
# Domain factories
# ============================================================================

def case_payload(**overrides):
    """Complete intake data for a new case."""
    data = {
        'animal_type': 'Elephant',
        'species_scientific_name': 'Elephas maximus',
        'age_class': 'Adult',
        'gender': 'Female',
        'location': 'Minneriya National Park',
        'reported_by': 'Ranger station 4',
        'primary_condition': 'Leg injury',
        'symptoms_observations': 'Limping, swelling on left foreleg',
        'initial_treatment_plan': 'Sedate, clean and dress wound',
        'priority': 'High',
    }
    data.update(overrides)
    return data


def medication_payload(**overrides):
    """Complete data for a new medication record."""
    today = timezone.now().date()
    data = {
        'name': 'Amoxicillin',
        'description': 'Broad spectrum antibiotic',
        'category': 'Antibiotic',
        'form': 'Liquid',
        'strength': '250mg/5ml',
        'quantity': 10,
        'unit': 'ml',
        'threshold': 2,
        'batch_number': 'AMX-2024-01',
        'manufacturing_date': today - timedelta(days=90),
        'expiry_date': today + timedelta(days=365),
        'manufacturer': 'VetPharma',
        'cost_per_unit': Decimal('2.50'),
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_case(officer_user):
    """Create a case through the registry (status Unassigned)."""
    def _make_case(created_by=None, **overrides):
        return case_services.create_case(case_payload(**overrides), created_by=created_by or officer_user)
    return _make_case


@pytest.fixture
def assigned_case(make_case, officer_user, vet_user):
    """Case assigned to vet_user."""
    case = make_case()
    return case_services.assign_case(case.pk, vet_user.pk, officer_user)


@pytest.fixture
def make_medication(db):
    """Create a medication through the inventory."""
    def _make_medication(**overrides):
        return inventory.create_medication(medication_payload(**overrides))
    return _make_medication


@pytest.fixture
def medication(make_medication):
    """Medication with 10 units in stock and a low-stock threshold of 2."""
    return make_medication()


@pytest.fixture
def case_data():
    """Intake payload builder, see case_payload."""
    return case_payload


@pytest.fixture
def medication_data():
    """Medication payload builder, see medication_payload."""
    return medication_payload

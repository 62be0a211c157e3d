"""Medication inventory URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import MedicationViewSet

router = SimpleRouter()
router.register(r'', MedicationViewSet, basename='medication')

urlpatterns = [
    path('', include(router.urls)),
]

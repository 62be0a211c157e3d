"""Treatment URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import TreatmentViewSet

router = SimpleRouter()
router.register(r'', TreatmentViewSet, basename='treatment')

urlpatterns = [
    path('', include(router.urls)),
]

"""Animal case URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import CaseViewSet

router = SimpleRouter()
router.register(r'', CaseViewSet, basename='case')

urlpatterns = [
    path('', include(router.urls)),
]

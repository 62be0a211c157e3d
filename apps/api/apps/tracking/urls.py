"""GPS tracking URLs."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import TrackingViewSet

router = SimpleRouter()
router.register(r'', TrackingViewSet, basename='tracking')

urlpatterns = [
    path('', include(router.urls)),
]

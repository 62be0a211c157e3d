"""
Core views - current user profile.
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import UserProfileSerializer


class CurrentUserView(APIView):
    """
    Current authenticated user profile endpoint.
    
    GET /api/auth/me/ - Returns id, email, name and role of the caller.
    
    Clients use the role to decide which screens to show; the API remains
    the authorization authority.
    """
    permission_classes = [IsAuthenticated]
    
    def get(self, request):
        user = request.user
        serializer = UserProfileSerializer({
            'id': user.id,
            'email': user.email,
            'name': user.display_name,
            'role': user.role,
            'is_active': user.is_active,
        })
        return Response(serializer.data, status=status.HTTP_200_OK)

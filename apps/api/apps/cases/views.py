"""Animal case views."""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import IsAnimalCareStaff, IsCaseIntakeOrCareStaff
from apps.authz.roles import is_veterinarian
from apps.core.exceptions import Forbidden
from apps.core.serializers import UserSummarySerializer

from . import collaboration, services
from .serializers import (
    AssignCaseSerializer,
    CaseCreateSerializer,
    CaseDetailSerializer,
    CaseFilterSerializer,
    CaseListSerializer,
    CasePhotoSerializer,
    CaseUpdateSerializer,
    CollaborationRecordSerializer,
    CommentCreateSerializer,
    CommentSerializer,
    PhotoUploadSerializer,
    RemoveCollaborationSerializer,
    ShareCaseSerializer,
    TransferCaseSerializer,
)


class CaseViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Animal cases and collaboration.

    Endpoints:
    - GET/POST /api/v1/cases/
    - GET/PATCH/DELETE /api/v1/cases/{id}/
    - POST /api/v1/cases/{id}/assign/
    - GET/POST /api/v1/cases/{id}/comments/
    - POST /api/v1/cases/{id}/share/
    - POST /api/v1/cases/{id}/transfer/
    - POST /api/v1/cases/{id}/remove-collaboration/
    - GET /api/v1/cases/{id}/history/
    - GET /api/v1/cases/{id}/available-vets/
    - POST /api/v1/cases/{id}/photos/
    - DELETE /api/v1/cases/{id}/photos/{photo_id}/
    - GET /api/v1/cases/collaborating/
    - GET /api/v1/cases/dashboard/
    """
    permission_classes = [IsCaseIntakeOrCareStaff]
    serializer_class = CaseListSerializer

    def get_queryset(self):
        filters = CaseFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return services.list_cases(self.request.user, **filters.validated_data)

    def create(self, request, *args, **kwargs):
        serializer = CaseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = services.create_case(serializer.validated_data, created_by=request.user)
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        case = services.get_case_for_reader(pk, request.user)
        return Response(CaseDetailSerializer(case).data)

    def partial_update(self, request, pk=None):
        serializer = CaseUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        case = services.update_case_details(pk, serializer.validated_data, request.user)
        return Response(CaseDetailSerializer(case).data)

    def destroy(self, request, pk=None):
        services.soft_delete_case(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        """
        Assign or reassign the case veterinarian.

        POST /api/v1/cases/{id}/assign/
        {"vet_id": "uuid"}
        """
        serializer = AssignCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = services.assign_case(pk, serializer.validated_data['vet_id'], request.user)
        return Response(CaseDetailSerializer(case).data)

    @action(detail=True, methods=['get', 'post'])
    def comments(self, request, pk=None):
        if request.method == 'GET':
            comments = collaboration.list_comments(pk, request.user)
            return Response({'comments': CommentSerializer(comments, many=True).data})

        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = collaboration.add_comment(
            pk,
            request.user,
            serializer.validated_data['text'],
            serializer.validated_data['is_private'],
        )
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def share(self, request, pk=None):
        serializer = ShareCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = collaboration.share_case(
            pk,
            request.user,
            data['vet_id'],
            access_level=data['access_level'],
            message=data['message'],
        )
        return Response({
            'case': CaseDetailSerializer(result.instance).data,
            'warnings': result.warnings,
        })

    @action(detail=True, methods=['post'])
    def transfer(self, request, pk=None):
        serializer = TransferCaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = collaboration.transfer_case(
            pk,
            request.user,
            data['vet_id'],
            data['reason'],
            notes=data['notes'],
        )
        return Response({
            'case': CaseDetailSerializer(result.instance).data,
            'warnings': result.warnings,
        })

    @action(detail=True, methods=['post'], url_path='remove-collaboration')
    def remove_collaboration(self, request, pk=None):
        serializer = RemoveCollaborationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = collaboration.remove_collaboration(pk, request.user, serializer.validated_data['vet_id'])
        return Response(CaseDetailSerializer(case).data)

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        records = collaboration.get_history(pk, request.user)
        return Response({'history': CollaborationRecordSerializer(records, many=True).data})

    @action(detail=True, methods=['get'], url_path='available-vets')
    def available_vets(self, request, pk=None):
        vets = collaboration.available_veterinarians(pk, request.user)
        return Response({'veterinarians': UserSummarySerializer(vets, many=True).data})

    @action(detail=True, methods=['post'])
    def photos(self, request, pk=None):
        serializer = PhotoUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data['file']
        photo = services.add_case_photo(
            pk,
            request.user,
            upload.read(),
            upload.name,
            description=serializer.validated_data['description'],
            content_type=getattr(upload, 'content_type', None) or 'application/octet-stream',
        )
        return Response(CasePhotoSerializer(photo).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=['delete'],
        url_path=r'photos/(?P<photo_id>[^/.]+)',
        url_name='photo-remove'
    )
    def remove_photo(self, request, pk=None, photo_id=None):
        result = services.remove_case_photo(pk, photo_id, request.user)
        return Response({
            'case': CaseDetailSerializer(result.instance).data,
            'warnings': result.warnings,
        })

    @action(detail=False, methods=['get'], permission_classes=[IsAnimalCareStaff])
    def collaborating(self, request):
        filters = CaseFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        cases = collaboration.collaborating_cases(request.user, status=filters.validated_data.get('status'))
        return Response({'cases': CaseListSerializer(cases, many=True).data})

    @action(detail=False, methods=['get'], permission_classes=[IsAnimalCareStaff])
    def dashboard(self, request):
        if not is_veterinarian(request.user):
            raise Forbidden('The dashboard is available to veterinarians only')
        return Response(services.vet_dashboard_stats(request.user))

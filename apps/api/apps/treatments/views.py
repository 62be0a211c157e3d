"""Treatment views."""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import IsAnimalCareStaff

from . import services
from .serializers import (
    TreatmentCreateSerializer,
    TreatmentFilterSerializer,
    TreatmentImageSerializer,
    TreatmentImageUploadSerializer,
    TreatmentReportFilterSerializer,
    TreatmentSerializer,
    TreatmentUpdateSerializer,
)


class TreatmentViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Treatment ledger.

    Endpoints:
    - GET/POST /api/v1/treatments/
    - GET/PATCH /api/v1/treatments/{id}/
    - GET /api/v1/treatments/by-case/{case_id}/
    - GET /api/v1/treatments/report/{case_id}/
    - POST /api/v1/treatments/{id}/images/
    - DELETE /api/v1/treatments/{id}/images/{image_id}/
    """
    permission_classes = [IsAnimalCareStaff]
    serializer_class = TreatmentSerializer

    def get_queryset(self):
        filters = TreatmentFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return services.list_treatments(self.request.user, **filters.validated_data)

    def create(self, request):
        """
        Create a treatment; medications are dispensed from inventory.

        POST /api/v1/treatments/
        {
            "case": "uuid",
            "treatment_type": "Medical",
            "diagnosis": "...",
            "treatment_plan": "...",
            "medications": [{"medication_id": "uuid", "quantity": 3,
                             "dosage": "5ml", "frequency": "2x daily", "duration": "5 days"}]
        }
        """
        serializer = TreatmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payload = dict(serializer.validated_data)
        case_id = payload.pop('case')
        treatment = services.create_treatment(case_id, request.user, payload)
        return Response(TreatmentSerializer(treatment).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        treatment = services.get_treatment_for_reader(pk, request.user)
        return Response(TreatmentSerializer(treatment).data)

    def partial_update(self, request, pk=None):
        serializer = TreatmentUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        treatment = services.update_treatment(pk, request.user, dict(serializer.validated_data))
        return Response(TreatmentSerializer(treatment).data)

    @action(detail=False, methods=['get'], url_path=r'by-case/(?P<case_id>[^/.]+)')
    def by_case(self, request, case_id=None):
        treatments = services.list_treatments_for_case(case_id, request.user)
        return Response({
            'treatments': TreatmentSerializer(treatments, many=True).data,
            'count': treatments.count(),
        })

    @action(detail=False, methods=['get'], url_path=r'report/(?P<case_id>[^/.]+)')
    def report(self, request, case_id=None):
        filters = TreatmentReportFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        report = services.treatment_report(
            case_id,
            request.user,
            start=filters.validated_data.get('start_date'),
            end=filters.validated_data.get('end_date'),
        )
        return Response({'report': report})

    @action(detail=True, methods=['post'])
    def images(self, request, pk=None):
        serializer = TreatmentImageUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data['file']
        image = services.add_treatment_image(
            pk,
            request.user,
            upload.read(),
            upload.name,
            image_type=serializer.validated_data['image_type'],
            description=serializer.validated_data['description'],
            content_type=getattr(upload, 'content_type', None) or 'application/octet-stream',
        )
        return Response(TreatmentImageSerializer(image).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=['delete'],
        url_path=r'images/(?P<image_id>[^/.]+)',
        url_name='image-remove'
    )
    def remove_image(self, request, pk=None, image_id=None):
        result = services.remove_treatment_image(pk, image_id, request.user)
        return Response({
            'treatment': TreatmentSerializer(result.instance).data,
            'warnings': result.warnings,
        })

"""Medication inventory views."""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import MedicationPermission
from apps.cases.models import Case
from apps.core.lookups import get_or_not_found

from . import services
from .models import Medication
from .serializers import (
    MedicationSerializer,
    MedicationUsageSerializer,
    MedicationWriteSerializer,
    RestockCreateSerializer,
    RestockFilterSerializer,
    RestockRequestSerializer,
    RestockResolveSerializer,
    UsageReportFilterSerializer,
    UseMedicationSerializer,
)


class MedicationViewSet(viewsets.ModelViewSet):
    """
    Medication inventory.
    
    Endpoints:
    - GET/POST /api/v1/medications/
    - GET/PATCH/DELETE /api/v1/medications/{id}/
    - POST /api/v1/medications/{id}/use/ - dispense stock
    - GET /api/v1/medications/{id}/usage/ - usage ledger + ledger check
    - POST /api/v1/medications/{id}/restock/ - request restock
    - POST /api/v1/medications/{id}/restock/{request_id}/ - approve/reject
    - POST /api/v1/medications/{id}/restock/{request_id}/receive/ - book receipt
    - GET /api/v1/medications/alerts/
    - GET /api/v1/medications/restock-requests/
    - GET /api/v1/medications/usage-report/
    - GET /api/v1/medications/statistics/
    """
    permission_classes = [MedicationPermission]
    search_fields = ['name', 'generic_name', 'medication_id', 'manufacturer']
    ordering_fields = ['name', 'quantity', 'expiry_date', 'created_at']
    ordering = ['-created_at']
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    
    def get_queryset(self):
        queryset = Medication.objects.all()
        params = self.request.query_params
        
        for field in ('category', 'form'):
            if params.get(field):
                queryset = queryset.filter(**{field: params[field]})
        if params.get('is_active') is not None:
            queryset = queryset.filter(is_active=params['is_active'].lower() == 'true')
        if params.get('low_stock') == 'true':
            queryset = queryset.filter(alert_low_stock=True)
        if params.get('near_expiry') == 'true':
            queryset = queryset.filter(alert_near_expiry=True)
        if params.get('expired') == 'true':
            queryset = queryset.filter(alert_expired=True)
        return queryset
    
    def get_serializer_class(self):
        if self.action in ('create', 'partial_update'):
            return MedicationWriteSerializer
        return MedicationSerializer
    
    def create(self, request, *args, **kwargs):
        serializer = MedicationWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        medication = services.create_medication(serializer.validated_data)
        return Response(MedicationSerializer(medication).data, status=status.HTTP_201_CREATED)
    
    def partial_update(self, request, *args, **kwargs):
        medication = self.get_object()
        serializer = MedicationWriteSerializer(medication, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        medication = services.update_medication(medication.pk, serializer.validated_data)
        return Response(MedicationSerializer(medication).data)
    
    def destroy(self, request, *args, **kwargs):
        medication = self.get_object()
        services.delete_medication(medication.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
    
    @action(detail=True, methods=['post'])
    def use(self, request, pk=None):
        """
        Dispense stock outside a treatment.
        
        POST /api/v1/medications/{id}/use/
        {"quantity": 2, "case": "uuid", "notes": "..."}
        """
        serializer = UseMedicationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        
        case = None
        if data.get('case'):
            case = get_or_not_found(Case.objects.active(), 'Case', pk=data['case'])
        
        remaining = services.debit(
            pk,
            data['quantity'],
            case=case,
            treatment_reference=data['treatment_reference'],
            veterinarian=request.user,
            notes=data['notes'],
        )
        medication = services.get_medication(pk)
        return Response({
            'remaining_quantity': remaining,
            'low_stock_alert': services.compute_alerts(medication).low_stock,
        })
    
    @action(detail=True, methods=['get'])
    def usage(self, request, pk=None):
        medication = self.get_object()
        entries = medication.usage_log.select_related('case', 'veterinarian').order_by('used_at')
        return Response({
            'usage': MedicationUsageSerializer(entries, many=True).data,
            'expected_quantity': services.expected_quantity(medication),
            'ledger_consistent': services.verify_stock_ledger(medication),
        })
    
    @action(detail=True, methods=['post'])
    def restock(self, request, pk=None):
        serializer = RestockCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        restock_request = services.request_restock(
            pk,
            data['quantity_requested'],
            data['priority'],
            data['reason'],
            request.user,
        )
        return Response(
            RestockRequestSerializer(restock_request).data,
            status=status.HTTP_201_CREATED
        )
    
    @action(
        detail=True,
        methods=['post', 'patch'],
        url_path=r'restock/(?P<request_id>[^/.]+)',
        url_name='restock-resolve'
    )
    def resolve_restock(self, request, pk=None, request_id=None):
        serializer = RestockResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        restock_request = services.resolve_restock(
            pk,
            request_id,
            serializer.validated_data['action'],
            request.user,
            serializer.validated_data['notes'],
        )
        return Response(RestockRequestSerializer(restock_request).data)
    
    @action(
        detail=True,
        methods=['post'],
        url_path=r'restock/(?P<request_id>[^/.]+)/receive',
        url_name='restock-receive'
    )
    def receive_restock(self, request, pk=None, request_id=None):
        restock_request = services.receive_restock(pk, request_id, request.user)
        return Response(RestockRequestSerializer(restock_request).data)
    
    @action(detail=False, methods=['get'])
    def alerts(self, request):
        data = services.medication_alerts()
        return Response({
            'low_stock': MedicationSerializer(data['low_stock'], many=True).data,
            'near_expiry': MedicationSerializer(data['near_expiry'], many=True).data,
            'expired': MedicationSerializer(data['expired'], many=True).data,
            'summary': data['summary'],
        })
    
    @action(detail=False, methods=['get'], url_path='restock-requests')
    def restock_requests(self, request):
        filters = RestockFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        requests = services.list_restock_requests(**filters.validated_data)
        return Response({
            'restock_requests': RestockRequestSerializer(requests, many=True).data,
            'total': requests.count(),
        })
    
    @action(detail=False, methods=['get'], url_path='usage-report')
    def usage_report(self, request):
        filters = UsageReportFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data
        return Response(services.usage_report(
            start=data.get('start_date'),
            end=data.get('end_date'),
            veterinarian_id=data.get('veterinarian_id'),
            medication_id=data.get('medication_id'),
        ))
    
    @action(detail=False, methods=['get'])
    def statistics(self, request):
        return Response(services.inventory_statistics())

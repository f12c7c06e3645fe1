# ============================= PARKING LOT VIEWS =============================
from django.db.models import Sum
from rest_framework import viewsets, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from users.identity import Actor
from utils.exceptions import Forbidden
from utils.permissions import IsOwnerRole
from .models import ParkingLot
from .filters import ParkingLotFilter
from .serializers import (
    ParkingLotListSerializer,
    ParkingLotDetailSerializer,
    ParkingLotCreateSerializer,
    ParkingLotUpdateSerializer,
    SpacesUpdateSerializer,
    CapacityAuditEntrySerializer,
)
from .services import CapacityStore


class ParkingLotViewSet(viewsets.ModelViewSet):
    """Parking lot listing, creation and capacity management"""

    queryset = ParkingLot.objects.select_related('owner')
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter
    ]
    filterset_class = ParkingLotFilter
    search_fields = ['name', 'address', 'amenities']
    ordering_fields = ['created_at', 'price_per_hour', 'available_spaces']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'list':
            return ParkingLotListSerializer
        elif self.action == 'create':
            return ParkingLotCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return ParkingLotUpdateSerializer
        return ParkingLotDetailSerializer

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            permission_classes = [permissions.AllowAny]
        elif self.action == 'create':
            permission_classes = [permissions.IsAuthenticated, IsOwnerRole]
        else:
            permission_classes = [permissions.IsAuthenticated]
        return [permission() for permission in permission_classes]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lot = CapacityStore().create_lot(Actor.from_user(request.user), **serializer.validated_data)
        return Response(ParkingLotDetailSerializer(lot).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        if self.request.user != serializer.instance.owner:
            raise Forbidden("You can only edit your own parking lots")
        # Price changes never touch existing bookings: their total is frozen.
        serializer.save()

    @action(detail=True, methods=['put'])
    def spaces(self, request, pk=None):
        """Set or adjust the live available-space count

        Body: { "available_spaces": 4 } or { "delta": -1 }
        """
        serializer = SpacesUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        store = CapacityStore()
        actor = Actor.from_user(request.user)
        if 'delta' in serializer.validated_data:
            lot = store.adjust_available_spaces(actor, pk, serializer.validated_data['delta'])
        else:
            lot = store.set_available_spaces(actor, pk, serializer.validated_data['available_spaces'])
        return Response(ParkingLotDetailSerializer(lot).data)

    @action(detail=True, methods=['get'])
    def capacity_history(self, request, pk=None):
        entries = CapacityStore.history(Actor.from_user(request.user), pk)
        return Response(CapacityAuditEntrySerializer(entries, many=True).data)

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """Booking statistics for the lot owner"""
        lot = self.get_object()
        if request.user != lot.owner:
            raise Forbidden()

        bookings = lot.bookings.all()
        paid = bookings.filter(status__in=['PAID', 'ACTIVE', 'COMPLETED'])

        return Response({
            'total_bookings': bookings.count(),
            'pending_bookings': bookings.filter(status='PENDING').count(),
            'active_bookings': bookings.filter(status='ACTIVE').count(),
            'completed_bookings': bookings.filter(status='COMPLETED').count(),
            'cancelled_bookings': bookings.filter(status='CANCELLED').count(),
            'total_revenue': paid.aggregate(total=Sum('total_price'))['total'] or 0,
            'available_spaces': lot.available_spaces,
            'total_spaces': lot.total_spaces,
            'occupancy_rate': lot.occupancy_rate,
        })

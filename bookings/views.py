# ============================= BOOKINGS VIEWS =============================
from rest_framework import viewsets, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from users.identity import Actor
from utils.permissions import IsDriverRole, IsOwnerOrDriver, IsOwnerRole
from .models import Booking
from .serializers import (
    BookingCreateSerializer,
    BookingUpdateSerializer,
    BookingStatusSerializer,
    BookingListSerializer,
    BookingDetailSerializer,
)
from .services import ReservationService
from .state_machine import BookingStateMachine


class BookingViewSet(viewsets.ModelViewSet):
    """Booking admission, edits and lifecycle transitions"""

    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter
    ]
    filterset_fields = ['status', 'parking_lot']
    search_fields = ['parking_lot__name', 'parking_lot__address', 'vehicle_info']
    ordering_fields = ['created_at', 'start_time', 'total_price']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'create':
            return BookingCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return BookingUpdateSerializer
        elif self.action in ['list', 'owner_bookings']:
            return BookingListSerializer
        return BookingDetailSerializer

    def get_permissions(self):
        if self.action == 'create':
            permission_classes = [permissions.IsAuthenticated, IsDriverRole]
        elif self.action == 'owner_bookings':
            permission_classes = [permissions.IsAuthenticated, IsOwnerRole]
        else:
            permission_classes = [permissions.IsAuthenticated, IsOwnerOrDriver]
        return [permission() for permission in permission_classes]

    def get_queryset(self):
        user = self.request.user
        queryset = Booking.objects.select_related('parking_lot', 'parking_lot__owner', 'driver')
        if self.action == 'list':
            # Drivers see their own bookings
            return queryset.filter(driver=user)
        if self.action == 'owner_bookings':
            return queryset.filter(parking_lot__owner=user)
        return queryset

    @action(detail=False, methods=['get'])
    def owner_bookings(self, request):
        """Bookings made at the lots the current user owns"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = ReservationService().try_reserve(
            Actor.from_user(request.user),
            data['parking_lot_id'],
            data['start_time'],
            data['end_time'],
            vehicle_info=data['vehicle_info'],
            notes=data['notes'],
        )
        return Response(BookingDetailSerializer(booking).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data, partial=kwargs.pop('partial', False))
        serializer.is_valid(raise_exception=True)

        booking = ReservationService().update_booking(
            Actor.from_user(request.user), kwargs['pk'], **serializer.validated_data
        )
        return Response(BookingDetailSerializer(booking).data)

    def destroy(self, request, *args, **kwargs):
        ReservationService().delete_booking(Actor.from_user(request.user), kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['patch'], url_path='status')
    def update_status(self, request, pk=None):
        """Move a booking through its lifecycle

        Body: { "status": "CONFIRMED|ACTIVE|COMPLETED|CANCELLED" }
        """
        booking = self.get_object()
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = BookingStateMachine().transition(
            booking.pk, serializer.validated_data['status'], Actor.from_user(request.user)
        )
        return Response(BookingDetailSerializer(booking).data)

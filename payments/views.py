# ==================== PAYMENTS/VIEWS.PY ====================
from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response

from users.identity import Actor
from utils.permissions import IsOwnerRole
from bookings.serializers import BookingDetailSerializer
from .models import Refund
from .serializers import (
    IntentCreateSerializer, IntentSerializer, PaymentConfirmSerializer,
    RefundInitiateSerializer, RefundSerializer, PaymentHistorySerializer,
    EarningsQuerySerializer,
)
from .services import PaymentCoordinator


class PaymentViewSet(viewsets.ViewSet):
    """Payment intents, confirmation, refunds and earnings"""
    permission_classes = [permissions.IsAuthenticated]

    def get_permissions(self):
        if self.action in ['refund', 'earnings']:
            return [permissions.IsAuthenticated(), IsOwnerRole()]
        return super().get_permissions()

    @action(detail=False, methods=['post'], url_path='create-intent')
    def create_intent(self, request):
        """Start paying for a booking

        Body: { "booking_id": 1 }
        """
        serializer = IntentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handle = PaymentCoordinator().create_intent(
            Actor.from_user(request.user), serializer.validated_data['booking_id']
        )
        return Response(IntentSerializer(handle).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def confirm(self, request):
        """Check with the gateway that the booking's payment went through

        Body: { "booking_id": 1 }
        """
        serializer = PaymentConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = PaymentCoordinator().confirm_payment(
            Actor.from_user(request.user), serializer.validated_data['booking_id']
        )
        return Response(BookingDetailSerializer(booking).data)

    @action(detail=False, methods=['get'])
    def history(self, request):
        bookings = PaymentCoordinator.payment_history(Actor.from_user(request.user))
        return Response(PaymentHistorySerializer(bookings, many=True).data)

    @action(detail=False, methods=['post'])
    def refund(self, request):
        """Refund a paid booking (lot owner)

        Body: { "booking_id": 1, "reason": "Lot closed for maintenance" }
        """
        serializer = RefundInitiateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handle = PaymentCoordinator().on_refund_requested(
            Actor.from_user(request.user),
            serializer.validated_data['booking_id'],
            serializer.validated_data['reason'],
        )
        refund = Refund.objects.select_related('booking__driver').get(gateway_refund_id=handle.refund_id)
        return Response(RefundSerializer(refund).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def earnings(self, request):
        """Per-lot earnings; ?period=week|month|year"""
        serializer = EarningsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        period = serializer.validated_data['period']
        return Response({
            'period': period,
            'earnings': PaymentCoordinator.owner_earnings(Actor.from_user(request.user), period),
        })

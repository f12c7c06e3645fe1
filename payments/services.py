# ==================== PAYMENTS/SERVICES.PY ====================
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from bookings.models import Booking, BookingStatus, PAID_STATUSES
from bookings.state_machine import BookingStateMachine
from users.identity import Actor
from utils.exceptions import (
    AlreadyPaid, Forbidden, IllegalTransition, NotFound, PaymentFailed, ValidationError
)
from .gateway import get_payment_gateway
from .models import Refund

logger = logging.getLogger(__name__)

# Paid bookings that still count as earned revenue
EARNING_STATUSES = (BookingStatus.PAID, BookingStatus.ACTIVE, BookingStatus.COMPLETED)
EARNING_PERIODS = ('week', 'month', 'year')


@dataclass(frozen=True)
class IntentHandle:
    booking_id: int
    intent_id: str
    checkout_key: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class RefundHandle:
    booking_id: int
    refund_id: str
    status: str
    amount: Decimal


class PaymentCoordinator:
    """Mediates between bookings and the payment gateway.

    Status changes caused by money moving are made here on behalf of the
    gateway actor, always with the booking row locked, so a redelivered
    webhook and a client-side confirmation can race without double effects.
    """

    def __init__(self, gateway=None, state_machine=None):
        self.gateway = gateway or get_payment_gateway()
        self.state_machine = state_machine or BookingStateMachine()

    @transaction.atomic
    def create_intent(self, actor, booking_id):
        booking = self.state_machine.lock_booking(booking_id)
        if not actor.is_driver_of(booking):
            raise Forbidden('You can only pay for your own bookings')
        if booking.status in PAID_STATUSES:
            raise AlreadyPaid()
        if booking.status == BookingStatus.CANCELLED:
            raise IllegalTransition(booking.status, BookingStatus.PAID, 'Cancelled bookings cannot be paid')

        # Nothing is written if the gateway call fails
        intent = self.gateway.create_payment_intent(booking, booking.total_price, settings.PAYMENT_CURRENCY)

        if booking.payment_intent_id and booking.payment_intent_id != intent.intent_id:
            logger.info(f"Booking {booking.id} intent {booking.payment_intent_id} replaced by {intent.intent_id}")
        booking.payment_intent_id = intent.intent_id
        booking.save(update_fields=['payment_intent_id', 'updated_at'])

        logger.info(f"Payment intent {intent.intent_id} created for booking {booking.id}: "
                    f"{intent.amount} {intent.currency}")
        return IntentHandle(
            booking_id=booking.id,
            intent_id=intent.intent_id,
            checkout_key=intent.checkout_key,
            amount=intent.amount,
            currency=intent.currency,
        )

    @transaction.atomic
    def on_intent_succeeded(self, intent_id, payment_reference=None):
        """Record a successful payment; safe to call any number of times per intent"""
        try:
            booking = Booking.objects.select_for_update().get(payment_intent_id=intent_id)
        except Booking.DoesNotExist:
            logger.warning(f"Payment succeeded for unknown intent {intent_id}")
            return None

        if booking.status in PAID_STATUSES:
            logger.info(f"Intent {intent_id} already recorded on booking {booking.id} ({booking.status})")
            return booking

        if payment_reference:
            booking.payment_reference = payment_reference
            booking.save(update_fields=['payment_reference'])

        return self.state_machine.apply(booking, BookingStatus.PAID, Actor.gateway())

    def confirm_payment(self, actor, booking_id):
        """Client-side confirmation: ask the gateway whether the booking's intent was paid"""
        try:
            booking = Booking.objects.get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFound('Booking not found')
        if not actor.is_driver_of(booking):
            raise Forbidden('You can only confirm payments for your own bookings')
        if not booking.payment_intent_id:
            raise ValidationError('No payment has been started for this booking')
        if booking.status in PAID_STATUSES:
            return booking

        intent_status = self.gateway.fetch_intent_status(booking.payment_intent_id)
        if not intent_status.paid:
            raise PaymentFailed('Payment not completed')

        return self.on_intent_succeeded(intent_status.intent_id, intent_status.payment_reference)

    @transaction.atomic
    def on_refund_requested(self, actor, booking_id, reason=''):
        booking = self.state_machine.lock_booking(booking_id)
        if not actor.is_owner_of(booking):
            raise Forbidden('Only the parking lot owner can refund a booking')
        if not booking.payment_intent_id:
            raise ValidationError('Booking has no payment to refund')
        if booking.status != BookingStatus.PAID:
            raise IllegalTransition(booking.status, BookingStatus.REFUNDED)

        # The row stays locked while the gateway works; a failure rolls everything back
        gateway_refund = self.gateway.refund(
            booking.payment_intent_id, booking.total_price, reason,
            payment_reference=booking.payment_reference,
        )

        refund = Refund.objects.create(
            booking=booking,
            amount=gateway_refund.amount,
            reason=reason,
            gateway_refund_id=gateway_refund.refund_id,
            status=gateway_refund.status if gateway_refund.status in ('processed', 'failed') else 'pending',
            requested_by_id=actor.user_id,
        )
        self.state_machine.apply(booking, BookingStatus.REFUNDED, Actor.gateway(), refund=refund)

        logger.info(f"Booking {booking.id} refunded by {actor}: {refund.gateway_refund_id} ({refund.amount})")
        return RefundHandle(
            booking_id=booking.id,
            refund_id=refund.gateway_refund_id,
            status=refund.status,
            amount=refund.amount,
        )

    @transaction.atomic
    def update_refund_status(self, gateway_refund_id, status):
        """Track the gateway's later verdict on a refund; the booking stays REFUNDED

        A failed refund is flagged to the lot owner for manual follow-up.
        """
        refund = (
            Refund.objects.select_for_update()
            .select_related('booking__parking_lot')
            .filter(gateway_refund_id=gateway_refund_id)
            .first()
        )
        if refund is None:
            logger.warning(f"Refund status {status} for unknown refund {gateway_refund_id}")
            return False
        if refund.status == status:
            return True

        refund.status = status
        refund.save(update_fields=['status', 'updated_at'])
        if status == 'failed':
            logger.error(
                f"Refund {gateway_refund_id} for booking {refund.booking_id} failed at the gateway; "
                f"booking stays REFUNDED and needs manual handling"
            )
            self.state_machine.notifier.notify_refund_failed(refund.booking, refund)
        return True

    @staticmethod
    def payment_history(actor):
        return (
            Booking.objects.filter(driver_id=actor.user_id, status__in=PAID_STATUSES)
            .select_related('parking_lot')
            .order_by('-payment_completed_at')
        )

    @staticmethod
    def earnings_period_start(period, now=None):
        now = timezone.localtime(now or timezone.now())
        if period == 'week':
            return now - timedelta(days=7)
        if period == 'month':
            return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if period == 'year':
            return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        raise ValidationError(f"Period must be one of: {', '.join(EARNING_PERIODS)}")

    @classmethod
    def owner_earnings(cls, actor, period='month'):
        """Per-lot earnings for the owner's lots since the start of the period"""
        start = cls.earnings_period_start(period)
        rows = (
            Booking.objects.filter(
                parking_lot__owner_id=actor.user_id,
                status__in=EARNING_STATUSES,
                payment_completed_at__gte=start,
            )
            .values('parking_lot_id', 'parking_lot__name')
            .annotate(total_earnings=Sum('total_price'), total_bookings=Count('id'))
            .order_by('parking_lot_id')
        )
        return [
            {
                'parking_lot': {'id': row['parking_lot_id'], 'name': row['parking_lot__name']},
                'total_earnings': row['total_earnings'] or Decimal('0.00'),
                'total_bookings': row['total_bookings'],
            }
            for row in rows
        ]

# ==================== BOOKINGS/STATE_MACHINE.PY ====================
"""Booking lifecycle.

    PENDING -> CONFIRMED -> PAID -> ACTIVE -> COMPLETED
    PENDING ------------->  PAID -> REFUNDED
    PENDING | CONFIRMED | ACTIVE -> CANCELLED

Each target status has one legal set of source statuses and one
authorization predicate. Everything that changes a booking's status goes
through ``BookingStateMachine.apply`` so the rules live in one place.
"""
import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet

from django.db import transaction
from django.utils import timezone

from utils.exceptions import Forbidden, IllegalTransition, NotFound
from .models import Booking, BookingStatus

logger = logging.getLogger(__name__)


def _lot_owner(booking, actor, source):
    return actor.is_owner_of(booking)


def _gateway(booking, actor, source):
    return actor.is_gateway


def _may_cancel(booking, actor, source):
    if actor.is_owner_of(booking):
        return True
    # Drivers and the expiry job may only withdraw a request nobody confirmed yet
    if source == BookingStatus.PENDING:
        return actor.is_driver_of(booking) or actor.is_system
    return False


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[str]
    allowed: Callable
    denied_message: str


TRANSITIONS = {
    BookingStatus.CONFIRMED: Transition(
        frozenset({BookingStatus.PENDING}), _lot_owner,
        'Only parking lot owners can confirm bookings'),
    BookingStatus.PAID: Transition(
        frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED}), _gateway,
        'Bookings are marked paid by the payment gateway only'),
    BookingStatus.ACTIVE: Transition(
        frozenset({BookingStatus.PAID}), _lot_owner,
        'Only parking lot owners can activate bookings'),
    BookingStatus.COMPLETED: Transition(
        frozenset({BookingStatus.ACTIVE}), _lot_owner,
        'Only parking lot owners can complete bookings'),
    BookingStatus.CANCELLED: Transition(
        frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE}), _may_cancel,
        'Only the lot owner can cancel a booking once it is confirmed'),
    BookingStatus.REFUNDED: Transition(
        frozenset({BookingStatus.PAID}), _gateway,
        'Bookings are marked refunded by the payment gateway only'),
}


def allowed_targets(status):
    return [target for target, rule in TRANSITIONS.items() if status in rule.sources]


class BookingStateMachine:

    def __init__(self, notifier=None):
        if notifier is None:
            from notifications.services import NotificationService
            notifier = NotificationService()
        self.notifier = notifier

    @staticmethod
    def lock_booking(booking_id):
        try:
            return Booking.objects.select_for_update().get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFound('Booking not found')

    @transaction.atomic
    def transition(self, booking_id, target, actor):
        booking = self.lock_booking(booking_id)
        is_party = actor.is_driver_of(booking) or actor.is_owner_of(booking)
        if not (is_party or actor.is_gateway or actor.is_system):
            # Outsiders learn nothing about the booking, not even its status
            logger.warning(f"{actor} is not a party to booking {booking.id}")
            raise Forbidden("You are not part of this booking")
        return self.apply(booking, target, actor)

    def apply(self, booking, target, actor, refund=None):
        """Move a booking that the caller already holds locked to ``target``"""
        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("BookingStateMachine.apply must run inside a transaction")

        rule = TRANSITIONS.get(target)
        source = booking.status
        if rule is None or source not in rule.sources:
            logger.warning(f"Illegal transition {source} -> {target} on booking {booking.id} by {actor}")
            raise IllegalTransition(source, target)

        if not rule.allowed(booking, actor, source):
            logger.warning(f"{actor} may not move booking {booking.id} {source} -> {target}")
            raise Forbidden(rule.denied_message)

        now = timezone.now()
        booking.status = target
        update_fields = ['status', 'updated_at']
        if target == BookingStatus.PAID:
            booking.payment_completed_at = now
            update_fields.append('payment_completed_at')
        elif target == BookingStatus.REFUNDED:
            booking.refunded_at = now
            update_fields.append('refunded_at')
        booking.save(update_fields=update_fields)

        if target == BookingStatus.PAID:
            self.notifier.notify_payment_processed(booking)
        elif target == BookingStatus.REFUNDED:
            self.notifier.notify_refund_processed(booking, refund)
        else:
            self.notifier.notify_status_changed(booking, source, actor)

        logger.info(f"Booking {booking.id} {source} -> {target} by {actor}")
        return booking

    def confirm(self, booking_id, actor):
        return self.transition(booking_id, BookingStatus.CONFIRMED, actor)

    def activate(self, booking_id, actor):
        return self.transition(booking_id, BookingStatus.ACTIVE, actor)

    def complete(self, booking_id, actor):
        return self.transition(booking_id, BookingStatus.COMPLETED, actor)

    def cancel(self, booking_id, actor):
        return self.transition(booking_id, BookingStatus.CANCELLED, actor)

# ==================== BOOKINGS/SERVICES.PY ====================
import logging
from django.db import transaction
from django.utils import timezone

from parking.services import CapacityStore
from utils.exceptions import CapacityExceeded, Forbidden, NotMutable, ValidationError
from .models import Booking, BookingStatus, OCCUPYING_STATUSES
from .state_machine import BookingStateMachine

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('start_time', 'end_time', 'vehicle_info', 'notes')


class ReservationService:
    """Admission of new bookings and edits of still-pending ones.

    Admission counts the bookings that overlap the requested window and
    compares that count with the lot's available_spaces. It never drains the
    counter: two bookings on disjoint windows never compete for a space. The
    lot row stays locked from the count until the insert commits, which is
    what keeps concurrent requests from overbooking the same window.
    """

    def __init__(self, notifier=None):
        if notifier is None:
            from notifications.services import NotificationService
            notifier = NotificationService()
        self.notifier = notifier

    @staticmethod
    def validate_window(start_time, end_time):
        if start_time is None or end_time is None:
            raise ValidationError('Start time and end time are required')
        if timezone.is_naive(start_time) or timezone.is_naive(end_time):
            raise ValidationError('Start time and end time must include a timezone')
        if end_time <= start_time:
            raise ValidationError('End time must be after start time')
        if start_time < timezone.now():
            raise ValidationError('Start time cannot be in the past')

    @staticmethod
    def count_overlapping(lot, start_time, end_time, exclude_booking_id=None):
        """Occupying bookings whose [start, end) intersects [start_time, end_time)"""
        overlapping = Booking.objects.filter(
            parking_lot=lot,
            status__in=OCCUPYING_STATUSES,
            start_time__lt=end_time,
            end_time__gt=start_time,
        )
        if exclude_booking_id is not None:
            overlapping = overlapping.exclude(pk=exclude_booking_id)
        return overlapping.count()

    def _admit(self, lot, start_time, end_time, exclude_booking_id=None):
        if not lot.is_active:
            raise ValidationError('Parking lot is not active')
        if lot.available_spaces <= 0:
            raise CapacityExceeded('No available spaces in this parking lot')

        overlapping = self.count_overlapping(lot, start_time, end_time, exclude_booking_id)
        if overlapping >= lot.available_spaces:
            logger.info(f"Lot {lot.id} full for {start_time} - {end_time}: "
                        f"{overlapping} overlapping, {lot.available_spaces} available")
            raise CapacityExceeded()

    def try_reserve(self, actor, lot_id, start_time, end_time, vehicle_info='', notes=''):
        """Admit a reservation and create it as PENDING, or raise"""
        if actor.user_id is None or actor.role not in ('driver', 'both'):
            raise Forbidden('Only drivers can book parking')
        self.validate_window(start_time, end_time)

        with transaction.atomic():
            lot = CapacityStore.lock_lot(lot_id)
            self._admit(lot, start_time, end_time)

            booking = Booking(
                driver_id=actor.user_id,
                parking_lot=lot,
                start_time=start_time,
                end_time=end_time,
                vehicle_info=vehicle_info or '',
                notes=notes or '',
                status=BookingStatus.PENDING,
            )
            booking.freeze_price(lot)
            booking.save()

            self.notifier.notify_booking_created(booking)

        logger.info(f"Booking {booking.id} admitted at lot {lot.id} for {actor}: {booking.total_price}")
        return booking

    @transaction.atomic
    def update_booking(self, actor, booking_id, **changes):
        """Edit a PENDING booking; a new window is re-admitted and re-priced"""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        booking = BookingStateMachine.lock_booking(booking_id)
        if not actor.is_driver_of(booking):
            raise Forbidden('You can only update your own bookings')
        if booking.status != BookingStatus.PENDING:
            raise NotMutable('You can only update pending bookings')

        start_time = changes.get('start_time') or booking.start_time
        end_time = changes.get('end_time') or booking.end_time
        window_changed = start_time != booking.start_time or end_time != booking.end_time

        if window_changed:
            self.validate_window(start_time, end_time)
            lot = CapacityStore.lock_lot(booking.parking_lot_id)
            self._admit(lot, start_time, end_time, exclude_booking_id=booking.id)
            booking.start_time = start_time
            booking.end_time = end_time
            booking.freeze_price(lot)

        for field in ('vehicle_info', 'notes'):
            if changes.get(field) is not None:
                setattr(booking, field, changes[field])

        booking.save()
        logger.info(f"Booking {booking.id} updated by {actor}" + (" (new window)" if window_changed else ""))
        return booking

    @transaction.atomic
    def delete_booking(self, actor, booking_id):
        booking = BookingStateMachine.lock_booking(booking_id)
        if not actor.is_driver_of(booking):
            raise Forbidden('You can only delete your own bookings')
        if booking.status != BookingStatus.PENDING:
            raise NotMutable('You can only delete pending bookings')

        booking.delete()
        logger.info(f"Booking {booking_id} deleted by {actor}")

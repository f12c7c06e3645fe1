# ==================== BOOKINGS/TASKS.PY (CELERY TASKS) ====================
from celery import shared_task
from django.conf import settings
from django.utils import timezone
from datetime import timedelta
import logging

from users.identity import Actor
from utils.exceptions import IllegalTransition, NotFound
from .models import Booking, BookingStatus
from .state_machine import BookingStateMachine

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_pending_bookings():
    """Cancel PENDING bookings nobody confirmed within PENDING_BOOKING_EXPIRY_MINUTES

    Disabled when the setting is empty. Returns the number of bookings cancelled.
    """
    expiry_minutes = getattr(settings, 'PENDING_BOOKING_EXPIRY_MINUTES', None)
    if not expiry_minutes:
        return 0

    cutoff = timezone.now() - timedelta(minutes=expiry_minutes)
    stale_ids = list(
        Booking.objects.filter(status=BookingStatus.PENDING, created_at__lte=cutoff)
        .values_list('id', flat=True)
    )

    machine = BookingStateMachine()
    expired = 0
    for booking_id in stale_ids:
        try:
            machine.cancel(booking_id, Actor.system())
            expired += 1
        except (IllegalTransition, NotFound):
            # Confirmed, paid or deleted since the query ran
            logger.info(f"Booking {booking_id} left PENDING before expiry")

    if expired:
        logger.info(f"Expired {expired} stale pending bookings")
    return expired

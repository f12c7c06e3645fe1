# ==================== NOTIFICATIONS/SERVICES.PY ====================
import logging
from django.apps import apps
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from utils.exceptions import Forbidden, NotFound
from .models import Notification

logger = logging.getLogger(__name__)


def get_connection_registry():
    return apps.get_app_config('notifications').registry


class NotificationService:
    """Persists notifications and fans them out to live connections"""

    STATUS_MESSAGES = {
        'CONFIRMED': ('BOOKING_CONFIRMED', 'Booking Confirmed', 'Your booking has been confirmed!'),
        'ACTIVE': ('BOOKING_CONFIRMED', 'Booking Active', 'Your booking is now active.'),
        'COMPLETED': ('BOOKING_COMPLETED', 'Booking Completed',
                      'Your booking has been completed. You can now leave a review.'),
        'CANCELLED': ('BOOKING_CANCELLED', 'Booking Cancelled', 'Your booking has been cancelled.'),
    }

    def __init__(self, registry=None):
        self.registry = registry or get_connection_registry()

    def notify(self, recipient_id, notification_type, title, message, payload=None):
        """Store a notification and push it to the recipient once committed.

        The row is the durable record; the push is advisory and never raises.
        """
        notification = Notification.objects.create(
            recipient_id=recipient_id,
            type=notification_type,
            title=title,
            message=message,
            payload=payload or {},
        )
        transaction.on_commit(lambda: self._deliver(notification))
        return notification

    def _deliver(self, notification):
        try:
            delivered = self.registry.publish(notification.recipient_id, {
                'event': 'notification',
                'notification': notification.as_message(),
            })
        except Exception as e:
            logger.error(f"Error delivering notification {notification.id}: {str(e)}")
            return
        if delivered:
            logger.info(f"Notification sent to user {notification.recipient_id}: {notification.title}")
        else:
            logger.debug(f"User {notification.recipient_id} offline, notification {notification.id} stored only")

    def broadcast_capacity_change(self, lot_id, new_available, total_spaces):
        """Fire-and-forget push to everyone watching a lot"""
        message = {
            'event': 'parking_spaces_updated',
            'parkingLotId': lot_id,
            'availableSpaces': new_available,
            'totalSpaces': total_spaces,
            'updatedAt': timezone.now().isoformat(),
        }
        try:
            delivered = self.registry.broadcast_lot(lot_id, message)
        except Exception as e:
            logger.error(f"Error broadcasting capacity of lot {lot_id}: {str(e)}")
            return 0
        logger.info(f"Parking spaces updated: Lot {lot_id} -> {new_available} spaces ({delivered} subscribers)")
        return delivered

    def mark_read(self, notification_id, requesting_user_id):
        try:
            notification = Notification.objects.get(pk=notification_id)
        except (Notification.DoesNotExist, DjangoValidationError):
            raise NotFound('Notification not found')

        if notification.recipient_id != requesting_user_id:
            raise Forbidden('You can only mark your own notifications as read')

        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return notification

    def list_for_user(self, user_id, limit=20):
        return list(Notification.objects.filter(recipient_id=user_id)[:limit])

    def unread_count(self, user_id):
        return Notification.objects.filter(recipient_id=user_id, is_read=False).count()

    # Booking lifecycle messages

    def _booking_payload(self, booking, **extra):
        payload = {'bookingId': booking.id, 'parkingLotId': booking.parking_lot_id}
        payload.update(extra)
        return payload

    def notify_booking_created(self, booking):
        lot = booking.parking_lot
        self.notify(
            lot.owner_id,
            'BOOKING_CREATED',
            'New Booking Request',
            f"{booking.driver.get_username()} has requested to book {lot.name}",
            self._booking_payload(booking, userId=booking.driver_id),
        )
        self.notify(
            booking.driver_id,
            'BOOKING_CREATED',
            'Booking Request Submitted',
            f"Your booking request for {lot.name} is pending approval",
            self._booking_payload(booking),
        )

    def notify_status_changed(self, booking, previous_status, actor):
        lot = booking.parking_lot
        notification_type, title, message = self.STATUS_MESSAGES[booking.status]
        payload = self._booking_payload(booking, previousStatus=previous_status, newStatus=booking.status)

        if booking.status == 'CANCELLED':
            # Tell whoever did not cancel; system expiry tells the driver.
            if actor.is_driver_of(booking):
                recipient_id = lot.owner_id
                message = f"{booking.driver.get_username()} cancelled their booking."
            else:
                recipient_id = booking.driver_id
        else:
            recipient_id = booking.driver_id

        self.notify(recipient_id, notification_type, title, f"{message} ({lot.name})", payload)

    def notify_payment_processed(self, booking):
        lot = booking.parking_lot
        payload = self._booking_payload(booking, amount=str(booking.total_price))
        self.notify(
            booking.driver_id,
            'PAYMENT_PROCESSED',
            'Payment Processed',
            f"Payment of {booking.total_price} processed successfully for {lot.name}",
            payload,
        )
        self.notify(
            lot.owner_id,
            'PAYMENT_PROCESSED',
            'Payment Received',
            f"Payment of {booking.total_price} received for booking at {lot.name}",
            payload,
        )

    def notify_refund_processed(self, booking, refund=None):
        lot = booking.parking_lot
        amount = refund.amount if refund is not None else booking.total_price
        refund_id = refund.gateway_refund_id if refund is not None else None
        payload = self._booking_payload(booking, refundAmount=str(amount), refundId=refund_id)
        self.notify(
            booking.driver_id,
            'PAYMENT_PROCESSED',
            'Refund Processed',
            f"Your refund of {amount} for {lot.name} has been processed",
            payload,
        )
        self.notify(
            lot.owner_id,
            'PAYMENT_PROCESSED',
            'Booking Refunded',
            f"Booking #{booking.id} at {lot.name} was refunded",
            payload,
        )

    def notify_refund_failed(self, booking, refund):
        lot = booking.parking_lot
        self.notify(
            lot.owner_id,
            'PAYMENT_PROCESSED',
            'Refund Failed',
            f"Refund {refund.gateway_refund_id} of {refund.amount} for booking #{booking.id} "
            f"at {lot.name} failed and needs manual handling",
            self._booking_payload(booking, refundAmount=str(refund.amount), refundId=refund.gateway_refund_id),
        )

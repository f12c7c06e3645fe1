# ==================== PARKING/SERVICES.PY ====================
import logging
from django.db import transaction

from utils.exceptions import Forbidden, NotFound, ValidationError
from .models import ParkingLot, CapacityAuditEntry

logger = logging.getLogger(__name__)


class CapacityStore:
    """Owner of ParkingLot.available_spaces and its audit trail.

    Every change locks the lot row, writes the audit entry in the same
    transaction and broadcasts the new count only after commit.
    """

    def __init__(self, notifier=None):
        if notifier is None:
            from notifications.services import NotificationService
            notifier = NotificationService()
        self.notifier = notifier

    @staticmethod
    def lock_lot(lot_id):
        try:
            return ParkingLot.objects.select_for_update().get(pk=lot_id)
        except ParkingLot.DoesNotExist:
            raise NotFound('Parking lot not found')

    @transaction.atomic
    def create_lot(self, actor, **fields):
        """Create a lot with every space available"""
        if not fields.get('total_spaces') or fields['total_spaces'] < 1:
            raise ValidationError('A parking lot needs at least one space')
        fields.pop('available_spaces', None)
        lot = ParkingLot.objects.create(
            owner_id=actor.user_id,
            available_spaces=fields['total_spaces'],
            **fields
        )
        logger.info(f"Parking lot {lot.id} created by {actor} with {lot.total_spaces} spaces")
        return lot

    @transaction.atomic
    def set_available_spaces(self, actor, lot_id, new_available):
        lot = self.lock_lot(lot_id)
        if not actor.owns_lot(lot):
            raise Forbidden('Not authorized to update this parking lot')
        return self._apply(lot, new_available, actor)

    @transaction.atomic
    def adjust_available_spaces(self, actor, lot_id, delta):
        """Relative change, e.g. -1 when a walk-in car parks and +1 when it leaves"""
        lot = self.lock_lot(lot_id)
        if not actor.owns_lot(lot):
            raise Forbidden('Not authorized to update this parking lot')
        return self._apply(lot, lot.available_spaces + delta, actor)

    def _apply(self, lot, new_available, actor):
        if new_available < 0:
            raise ValidationError('Available spaces cannot be negative')
        if new_available > lot.total_spaces:
            raise ValidationError('Available spaces cannot exceed total spaces')

        previous = lot.available_spaces
        if previous == new_available:
            return lot

        lot.available_spaces = new_available
        lot.save(update_fields=['available_spaces', 'updated_at'])
        CapacityAuditEntry.objects.create(
            parking_lot=lot,
            previous_available=previous,
            new_available=new_available,
            changed_by_id=actor.user_id,
        )

        lot_id, total = lot.id, lot.total_spaces
        transaction.on_commit(
            lambda: self.notifier.broadcast_capacity_change(lot_id, new_available, total)
        )
        logger.info(f"Lot {lot.id} available spaces {previous} -> {new_available} by {actor}")
        return lot

    @staticmethod
    def history(actor, lot_id, limit=50):
        try:
            lot = ParkingLot.objects.get(pk=lot_id)
        except ParkingLot.DoesNotExist:
            raise NotFound('Parking lot not found')
        if not actor.owns_lot(lot):
            raise Forbidden('Only the lot owner can view its capacity history')
        return list(lot.capacity_audit.all()[:limit])

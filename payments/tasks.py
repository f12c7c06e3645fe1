# ==================== PAYMENTS/TASKS.PY (CELERY TASKS) ====================
from celery import shared_task
from django.utils import timezone
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

# Give the webhook a chance before polling the gateway
RECONCILE_GRACE_MINUTES = 10


@shared_task
def reconcile_payment_intents():
    """Feed intents the gateway reports paid, but whose webhook never arrived, into the coordinator"""
    from bookings.models import Booking, BookingStatus
    from utils.exceptions import GatewayUnavailable, IllegalTransition
    from .services import PaymentCoordinator

    cutoff = timezone.now() - timedelta(minutes=RECONCILE_GRACE_MINUTES)
    intent_ids = list(
        Booking.objects.filter(
            status__in=[BookingStatus.PENDING, BookingStatus.CONFIRMED],
            payment_intent_id__isnull=False,
            updated_at__lte=cutoff,
        ).values_list('payment_intent_id', flat=True)
    )
    if not intent_ids:
        return 0

    coordinator = PaymentCoordinator()
    reconciled = 0
    for intent_id in intent_ids:
        try:
            intent_status = coordinator.gateway.fetch_intent_status(intent_id)
        except GatewayUnavailable:
            logger.warning("Gateway unavailable, stopping reconciliation until next run")
            break

        if not intent_status.paid:
            continue
        try:
            coordinator.on_intent_succeeded(intent_id, intent_status.payment_reference)
            reconciled += 1
        except IllegalTransition as e:
            logger.error(f"Paid intent {intent_id} not applied: {e.detail}")

    if reconciled:
        logger.info(f"Reconciled {reconciled} payment intents")
    return reconciled

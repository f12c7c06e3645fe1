# ==================== PAYMENTS/WEBHOOKS.PY ====================
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
import json
import logging

from utils.exceptions import GatewayUnavailable, IllegalTransition
from .gateway import get_payment_gateway
from .services import PaymentCoordinator

logger = logging.getLogger(__name__)

PAYMENT_SUCCESS_EVENTS = ('payment.captured', 'order.paid')
REFUND_EVENTS = {
    'refund.processed': 'processed',
    'refund.failed': 'failed',
}


def _entity(payload, name):
    wrapper = payload.get(name) if isinstance(payload, dict) else None
    entity = wrapper.get('entity') if isinstance(wrapper, dict) else None
    return entity if isinstance(entity, dict) else {}


@csrf_exempt
@require_POST
def razorpay_webhook(request):
    """Handle Razorpay webhooks; redeliveries are harmless"""
    gateway = get_payment_gateway()

    # Verify webhook signature
    webhook_signature = request.META.get('HTTP_X_RAZORPAY_SIGNATURE')
    if not gateway.verify_webhook_signature(request.body, webhook_signature):
        logger.warning("Rejected webhook with invalid signature")
        return JsonResponse({'status': 'invalid_signature'}, status=400)

    try:
        webhook_data = json.loads(request.body)
    except ValueError:
        return JsonResponse({'status': 'invalid_payload'}, status=400)
    if not isinstance(webhook_data, dict):
        return JsonResponse({'status': 'invalid_payload'}, status=400)

    event = webhook_data.get('event')
    payload = webhook_data.get('payload', {})
    coordinator = PaymentCoordinator(gateway=gateway)

    if event in PAYMENT_SUCCESS_EVENTS:
        payment = _entity(payload, 'payment')
        order_id = payment.get('order_id') or _entity(payload, 'order').get('id')
        if not order_id:
            logger.warning(f"{event} webhook without an order id")
            return JsonResponse({'status': 'ignored'})
        try:
            coordinator.on_intent_succeeded(order_id, payment.get('id'))
        except IllegalTransition as e:
            # Paid after the booking was cancelled; needs a manual refund
            logger.error(f"Payment {payment.get('id')} for order {order_id} not applied: {e.detail}")
        except GatewayUnavailable:
            return JsonResponse({'status': 'retry'}, status=503)

    elif event in REFUND_EVENTS:
        refund = _entity(payload, 'refund')
        coordinator.update_refund_status(refund.get('id'), REFUND_EVENTS[event])

    else:
        logger.info(f"Ignoring webhook event {event}")

    return JsonResponse({'status': 'success'})

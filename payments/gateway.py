# ==================== PAYMENTS/GATEWAY.PY ====================
"""Payment gateway adapters.

A payment intent is whatever the gateway uses to collect one booking's
amount; for Razorpay that is an order. The rest of the app only talks to
``PaymentGateway`` and gets the configured one from ``get_payment_gateway``.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from utils.exceptions import GatewayUnavailable, PaymentFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayIntent:
    intent_id: str
    checkout_key: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class GatewayRefund:
    refund_id: str
    status: str
    amount: Decimal


@dataclass(frozen=True)
class GatewayIntentStatus:
    intent_id: str
    paid: bool
    payment_reference: Optional[str] = None


def to_minor_units(amount):
    """Rupees to paise"""
    return int((Decimal(amount) * 100).quantize(Decimal('1')))


def from_minor_units(amount):
    return (Decimal(amount) / 100).quantize(Decimal('0.01'))


class PaymentGateway:
    """Interface every gateway adapter implements"""

    def create_payment_intent(self, booking, amount, currency):
        raise NotImplementedError

    def fetch_intent_status(self, intent_id):
        raise NotImplementedError

    def refund(self, intent_id, amount, reason, payment_reference=None):
        raise NotImplementedError

    def verify_webhook_signature(self, body, signature):
        raise NotImplementedError


class RazorpayGateway(PaymentGateway):
    """Razorpay integration; one order per booking payment"""

    def __init__(self, key_id=None, key_secret=None, webhook_secret=None):
        import razorpay

        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.webhook_secret = webhook_secret or settings.RAZORPAY_WEBHOOK_SECRET
        self.errors = razorpay.errors
        self.client = razorpay.Client(
            auth=(self.key_id, key_secret or settings.RAZORPAY_KEY_SECRET)
        )

    def _call(self, operation, func, *args, **kwargs):
        """Run an SDK call, translating its failures into API errors"""
        try:
            return func(*args, **kwargs)
        except self.errors.BadRequestError as e:
            logger.warning(f"Razorpay rejected {operation}: {str(e)}")
            raise PaymentFailed(f"Payment gateway rejected the request: {str(e)}")
        except (self.errors.ServerError, self.errors.GatewayError, requests.RequestException) as e:
            logger.error(f"Razorpay unavailable during {operation}: {str(e)}")
            raise GatewayUnavailable()

    def create_payment_intent(self, booking, amount, currency):
        order_data = {
            'amount': to_minor_units(amount),  # Amount in paise
            'currency': currency,
            'receipt': f'booking_{booking.id}',
            'notes': {
                'booking_id': str(booking.id),
                'driver_id': str(booking.driver_id),
                'parking_lot_id': str(booking.parking_lot_id),
            }
        }
        order = self._call('order.create', self.client.order.create, data=order_data)
        logger.info(f"Razorpay order created: {order['id']} for booking {booking.id}")

        return GatewayIntent(
            intent_id=order['id'],
            checkout_key=self.key_id,
            amount=from_minor_units(order['amount']),
            currency=order['currency'],
        )

    def _captured_payment(self, order_id):
        payments = self._call('order.payments', self.client.order.payments, order_id)
        for payment in payments.get('items', []):
            if payment.get('status') == 'captured':
                return payment
        return None

    def fetch_intent_status(self, intent_id):
        order = self._call('order.fetch', self.client.order.fetch, intent_id)
        if order.get('status') != 'paid':
            return GatewayIntentStatus(intent_id=intent_id, paid=False)

        payment = self._captured_payment(intent_id)
        return GatewayIntentStatus(
            intent_id=intent_id,
            paid=True,
            payment_reference=payment['id'] if payment else None,
        )

    def refund(self, intent_id, amount, reason, payment_reference=None):
        if not payment_reference:
            payment = self._captured_payment(intent_id)
            if payment is None:
                raise PaymentFailed("No captured payment found for this order")
            payment_reference = payment['id']

        refund_data = {
            'amount': to_minor_units(amount),
            'notes': {'order_id': intent_id, 'reason': reason[:250]},
        }
        refund = self._call('payment.refund', self.client.payment.refund, payment_reference, refund_data)
        logger.info(f"Refund created: {refund['id']} for payment {payment_reference}")

        return GatewayRefund(
            refund_id=refund['id'],
            status=refund.get('status', 'pending'),
            amount=from_minor_units(refund['amount']),
        )

    def verify_webhook_signature(self, body, signature):
        if not signature or not self.webhook_secret:
            return False
        if isinstance(body, bytes):
            body = body.decode('utf-8')
        try:
            self.client.utility.verify_webhook_signature(body, signature, self.webhook_secret)
            return True
        except self.errors.SignatureVerificationError:
            logger.warning("Razorpay webhook signature mismatch")
            return False


def get_payment_gateway():
    """Instantiate the gateway named by PAYMENT_GATEWAY_CLASS"""
    return import_string(settings.PAYMENT_GATEWAY_CLASS)()

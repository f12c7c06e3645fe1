# ==================== PAYMENTS/MODELS.PY ====================
from django.db import models
from bookings.models import Booking


class Refund(models.Model):
    """Gateway refund of a paid booking; written only after the gateway accepted it"""
    REFUND_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('processed', 'Processed'),
        ('failed', 'Failed'),
    )

    booking = models.OneToOneField(Booking, on_delete=models.CASCADE, related_name='refund')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    reason = models.CharField(max_length=255, blank=True)

    # Gateway
    gateway_refund_id = models.CharField(max_length=100, unique=True)
    status = models.CharField(max_length=20, choices=REFUND_STATUS_CHOICES, default='pending')

    requested_by = models.ForeignKey(
        'users.CustomUser',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='requested_refunds'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Refund {self.gateway_refund_id} for Booking {self.booking_id} - ₹{self.amount}"

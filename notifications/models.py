import uuid

from django.db import models
from users.models import CustomUser


class Notification(models.Model):
    TYPE_CHOICES = (
        ('BOOKING_CREATED', 'Booking Created'),
        ('BOOKING_CONFIRMED', 'Booking Confirmed'),
        ('BOOKING_CANCELLED', 'Booking Cancelled'),
        ('BOOKING_COMPLETED', 'Booking Completed'),
        ('PAYMENT_PROCESSED', 'Payment Processed'),
        ('PARKING_UPDATED', 'Parking Lot Updated'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=30, choices=TYPE_CHOICES, db_index=True)
    title = models.CharField(max_length=200)
    message = models.TextField()
    payload = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read']),
        ]

    def __str__(self):
        return f"{self.type} for {self.recipient_id}: {self.title}"

    def as_message(self):
        """Wire representation pushed to live connections"""
        return {
            'id': str(self.id),
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.payload,
            'userId': self.recipient_id,
            'read': self.is_read,
            'timestamp': self.created_at.isoformat() if self.created_at else None,
        }

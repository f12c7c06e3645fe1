import math
from decimal import Decimal, ROUND_HALF_UP
from django.db import models
from users.models import CustomUser
from parking.models import ParkingLot


class BookingStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending Approval'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    PAID = 'PAID', 'Paid'
    ACTIVE = 'ACTIVE', 'Active - Vehicle Parked'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'
    REFUNDED = 'REFUNDED', 'Refunded'


# Statuses that hold a space for their time window during admission
OCCUPYING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE)
TERMINAL_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REFUNDED)
# Statuses reached only after the gateway confirmed payment
PAID_STATUSES = (BookingStatus.PAID, BookingStatus.ACTIVE, BookingStatus.COMPLETED, BookingStatus.REFUNDED)


class Booking(models.Model):
    # Relations
    driver = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='driver_bookings')
    parking_lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='bookings')

    # Booking window, half-open [start_time, end_time)
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    duration = models.PositiveIntegerField(help_text="Minutes, rounded up")
    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.PENDING,
                              db_index=True)

    # Frozen at admission (or when a pending booking's window changes)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    vehicle_info = models.CharField(max_length=200, blank=True)
    notes = models.TextField(max_length=500, blank=True)

    # Payment
    payment_intent_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    payment_reference = models.CharField(max_length=100, null=True, blank=True)
    payment_completed_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['driver', 'status']),
            models.Index(fields=['parking_lot', 'status', 'start_time', 'end_time']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='booking_end_after_start',
            ),
        ]

    def __str__(self):
        return f"Booking {self.id} - driver {self.driver_id} at lot {self.parking_lot_id} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def is_review_eligible(self):
        return self.status == BookingStatus.COMPLETED

    @staticmethod
    def compute_duration(start_time, end_time):
        """Length of the window in whole minutes, rounded up"""
        return math.ceil((end_time - start_time).total_seconds() / 60)

    @staticmethod
    def compute_price(duration_minutes, price_per_hour):
        hours = Decimal(duration_minutes) / Decimal(60)
        return (hours * Decimal(price_per_hour)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    def freeze_price(self, lot):
        """Derive duration and total price from the window and the lot's current rate"""
        self.duration = self.compute_duration(self.start_time, self.end_time)
        self.total_price = self.compute_price(self.duration, lot.price_per_hour)
        return self.total_price

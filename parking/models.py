# parking/models.py

from django.db import models
from django.core.validators import MinValueValidator
from users.models import CustomUser


class ParkingLot(models.Model):
    owner = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='owned_parking_lots')

    name = models.CharField(max_length=100)
    address = models.CharField(max_length=500)
    operating_hours = models.CharField(max_length=100, blank=True)
    amenities = models.CharField(max_length=500, blank=True)

    # Capacity. total_spaces is fixed once the lot exists; available_spaces
    # only changes through parking.services.CapacityStore.
    total_spaces = models.IntegerField(validators=[MinValueValidator(1)])
    available_spaces = models.IntegerField(validators=[MinValueValidator(0)])

    price_per_hour = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'is_active']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_spaces__gte=0),
                name='parking_lot_available_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(available_spaces__lte=models.F('total_spaces')),
                name='parking_lot_available_within_total',
            ),
        ]

    def __str__(self):
        return f"{self.name} - {self.address}"

    @property
    def occupancy_rate(self):
        if self.total_spaces <= 0:
            return 0
        return round((self.total_spaces - self.available_spaces) / self.total_spaces * 100, 2)


class CapacityAuditEntry(models.Model):
    """Append-only trail of every available_spaces change"""
    parking_lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='capacity_audit')
    previous_available = models.IntegerField()
    new_available = models.IntegerField()
    changed_by = models.ForeignKey(CustomUser, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='capacity_changes')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'Capacity audit entries'

    def __str__(self):
        return f"Lot {self.parking_lot_id}: {self.previous_available} -> {self.new_available}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Capacity audit entries cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Capacity audit entries cannot be deleted")

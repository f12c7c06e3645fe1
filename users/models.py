from django.db import models
from django.contrib.auth.models import AbstractUser


class CustomUser(AbstractUser):
    USER_TYPE_CHOICES = (
        ('owner', 'Parking Lot Owner'),
        ('driver', 'Driver'),
        ('both', 'Both'),
    )

    user_type = models.CharField(max_length=10, choices=USER_TYPE_CHOICES, default='driver')
    phone_number = models.CharField(max_length=20, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.username} ({self.get_user_type_display()})"

    @property
    def is_driver(self):
        return self.user_type in ('driver', 'both')

    @property
    def is_owner(self):
        return self.user_type in ('owner', 'both')

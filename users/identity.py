# ==================== USERS/IDENTITY.PY ====================
"""Caller identity handed to the booking engine.

The HTTP layer authenticates the request (SimpleJWT) and turns the user into
an ``Actor``. Non-human callers (the payment gateway and scheduled jobs) get
their own roles so the state machine can authorize them like anyone else.
"""
from dataclasses import dataclass
from typing import Optional

GATEWAY = 'gateway'
SYSTEM = 'system'


@dataclass(frozen=True)
class Actor:
    user_id: Optional[int]
    role: str

    @classmethod
    def from_user(cls, user):
        return cls(user_id=user.pk, role=user.user_type)

    @classmethod
    def gateway(cls):
        return cls(user_id=None, role=GATEWAY)

    @classmethod
    def system(cls):
        return cls(user_id=None, role=SYSTEM)

    @property
    def is_gateway(self):
        return self.role == GATEWAY

    @property
    def is_system(self):
        return self.role == SYSTEM

    def is_driver_of(self, booking):
        return self.user_id is not None and booking.driver_id == self.user_id

    def is_owner_of(self, booking):
        return self.user_id is not None and booking.parking_lot.owner_id == self.user_id

    def owns_lot(self, lot):
        return self.user_id is not None and lot.owner_id == self.user_id

    def __str__(self):
        if self.user_id is None:
            return self.role
        return f"user {self.user_id} ({self.role})"

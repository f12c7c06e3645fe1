from datetime import timedelta
from decimal import Decimal

import pytest
from django.apps import apps
from django.utils import timezone
from rest_framework.test import APIClient

from parking.models import ParkingLot
from users.identity import Actor
from users.models import CustomUser


class RecordingChannel:
    """Live connection double that keeps every message it receives"""

    def __init__(self, broken=False):
        self.broken = broken
        self.messages = []

    def send(self, message):
        if self.broken:
            raise ConnectionError("socket closed")
        self.messages.append(message)


def future_window(hours_from_now=1, hours=2):
    start = (timezone.now() + timedelta(hours=hours_from_now)).replace(microsecond=0)
    return start, start + timedelta(hours=hours)


@pytest.fixture
def owner(db):
    return CustomUser.objects.create_user(
        username='owner', password='OwnerPass123', email='owner@example.com', user_type='owner'
    )


@pytest.fixture
def driver(db):
    return CustomUser.objects.create_user(
        username='driver', password='DriverPass123', email='driver@example.com', user_type='driver'
    )


@pytest.fixture
def other_driver(db):
    return CustomUser.objects.create_user(
        username='driver2', password='DriverPass123', email='driver2@example.com', user_type='driver'
    )


@pytest.fixture
def owner_actor(owner):
    return Actor.from_user(owner)


@pytest.fixture
def driver_actor(driver):
    return Actor.from_user(driver)


@pytest.fixture
def lot(owner):
    return ParkingLot.objects.create(
        owner=owner,
        name='Central Garage',
        address='1 Main Street',
        total_spaces=10,
        available_spaces=10,
        price_per_hour=Decimal('5.00'),
    )


@pytest.fixture
def window():
    return future_window()


@pytest.fixture
def registry():
    registry = apps.get_app_config('notifications').registry
    yield registry
    registry.clear()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def driver_client(driver):
    client = APIClient()
    client.force_authenticate(driver)
    return client


@pytest.fixture
def owner_client(owner):
    client = APIClient()
    client.force_authenticate(owner)
    return client

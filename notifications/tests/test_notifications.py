import uuid

import pytest
from django.urls import reverse
from rest_framework import status

from conftest import RecordingChannel
from notifications.models import Notification
from notifications.registry import ConnectionRegistry
from notifications.services import NotificationService
from utils.exceptions import Forbidden, NotFound


@pytest.mark.django_db
def test_notification_is_pushed_after_commit(driver, registry, channel, django_capture_on_commit_callbacks):
    registry.register(driver.id, channel)
    service = NotificationService()

    with django_capture_on_commit_callbacks(execute=True):
        notification = service.notify(driver.id, 'BOOKING_CONFIRMED', 'Booking Confirmed', 'See you soon',
                                      {'bookingId': 1})
        assert channel.messages == []

    assert len(channel.messages) == 1
    pushed = channel.messages[0]
    assert pushed['event'] == 'notification'
    assert pushed['notification']['id'] == str(notification.id)
    assert pushed['notification']['data'] == {'bookingId': 1}
    assert pushed['notification']['userId'] == driver.id


@pytest.mark.django_db
def test_offline_user_keeps_stored_notification(driver, registry, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        NotificationService().notify(driver.id, 'BOOKING_CREATED', 'Hi', 'Stored only')

    assert NotificationService().unread_count(driver.id) == 1


@pytest.mark.django_db
def test_broken_channel_does_not_break_delivery(driver, registry, channel, django_capture_on_commit_callbacks):
    registry.register(driver.id, RecordingChannel(broken=True))
    registry.register(driver.id, channel)

    with django_capture_on_commit_callbacks(execute=True):
        NotificationService().notify(driver.id, 'BOOKING_CREATED', 'Hi', 'Two tabs open')

    assert len(channel.messages) == 1
    assert Notification.objects.count() == 1


@pytest.mark.django_db
def test_mark_read_only_by_recipient(driver, other_driver):
    service = NotificationService()
    notification = service.notify(driver.id, 'BOOKING_CREATED', 'Hi', 'Mine')

    with pytest.raises(Forbidden):
        service.mark_read(notification.id, other_driver.id)
    with pytest.raises(NotFound):
        service.mark_read(uuid.uuid4(), driver.id)
    with pytest.raises(NotFound):
        service.mark_read('not-a-uuid', driver.id)

    assert service.mark_read(notification.id, driver.id).is_read
    assert service.unread_count(driver.id) == 0


def test_registry_routes_by_user_and_lot():
    registry = ConnectionRegistry()
    phone, laptop, watcher = RecordingChannel(), RecordingChannel(), RecordingChannel()
    registry.register(1, phone)
    registry.register(1, laptop)
    registry.register(2, watcher)
    registry.subscribe_lot(10, watcher)

    assert registry.publish(1, {'n': 1}) == 2
    assert registry.broadcast_lot(10, {'lot': 10}) == 1
    assert registry.broadcast_lot(11, {'lot': 11}) == 0

    registry.unregister(watcher)
    assert not registry.is_connected(2)
    assert registry.broadcast_lot(10, {'lot': 10}) == 0
    assert phone.messages == laptop.messages == [{'n': 1}]
    assert watcher.messages == [{'lot': 10}]


@pytest.mark.django_db
def test_notification_endpoints(driver_client, driver, other_driver, api_client):
    service = NotificationService()
    first = service.notify(driver.id, 'BOOKING_CREATED', 'One', 'First')
    service.notify(driver.id, 'BOOKING_CONFIRMED', 'Two', 'Second')
    theirs = service.notify(other_driver.id, 'BOOKING_CREATED', 'Other', 'Not yours')

    listed = driver_client.get(reverse('notification-list'))
    assert listed.status_code == status.HTTP_200_OK
    assert {item['title'] for item in listed.data} == {'One', 'Two'}

    assert driver_client.put(reverse('notification-read', args=[first.id])).status_code == status.HTTP_200_OK
    assert driver_client.get(reverse('notification-unread-count')).data == {'unread_count': 1}
    assert driver_client.put(reverse('notification-read', args=[theirs.id])).status_code == 403

    assert api_client.get(reverse('notification-list')).status_code == status.HTTP_401_UNAUTHORIZED

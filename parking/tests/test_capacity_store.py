from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from parking.models import CapacityAuditEntry, ParkingLot
from parking.services import CapacityStore
from users.identity import Actor
from utils.exceptions import Forbidden, ValidationError


@pytest.mark.django_db
def test_create_lot_starts_fully_available(owner_actor):
    lot = CapacityStore().create_lot(
        owner_actor, name='New Lot', address='9 Dock Road', total_spaces=12,
        price_per_hour=Decimal('4.00'), available_spaces=3,
    )
    assert lot.available_spaces == 12
    assert lot.owner_id == owner_actor.user_id


@pytest.mark.django_db
def test_set_available_spaces_writes_audit_entry(lot, owner_actor, owner):
    CapacityStore().set_available_spaces(owner_actor, lot.id, 4)

    lot.refresh_from_db()
    assert lot.available_spaces == 4
    entry = CapacityAuditEntry.objects.get()
    assert (entry.previous_available, entry.new_available, entry.changed_by) == (10, 4, owner)


@pytest.mark.django_db
def test_unchanged_value_is_not_audited(lot, owner_actor):
    CapacityStore().set_available_spaces(owner_actor, lot.id, lot.available_spaces)
    assert not CapacityAuditEntry.objects.exists()


@pytest.mark.django_db
@pytest.mark.parametrize('value', [-1, 11])
def test_available_spaces_stay_within_bounds(lot, owner_actor, value):
    with pytest.raises(ValidationError):
        CapacityStore().set_available_spaces(owner_actor, lot.id, value)
    lot.refresh_from_db()
    assert lot.available_spaces == 10


@pytest.mark.django_db
def test_adjust_by_delta(lot, owner_actor):
    store = CapacityStore()
    store.adjust_available_spaces(owner_actor, lot.id, -3)
    store.adjust_available_spaces(owner_actor, lot.id, 1)

    lot.refresh_from_db()
    assert lot.available_spaces == 8
    with pytest.raises(ValidationError):
        store.adjust_available_spaces(owner_actor, lot.id, 5)


@pytest.mark.django_db
def test_only_the_owner_changes_capacity(lot, driver_actor):
    with pytest.raises(Forbidden):
        CapacityStore().set_available_spaces(driver_actor, lot.id, 2)
    with pytest.raises(Forbidden):
        CapacityStore.history(driver_actor, lot.id)


@pytest.mark.django_db
def test_audit_entries_are_append_only(lot, owner_actor):
    CapacityStore().set_available_spaces(owner_actor, lot.id, 5)
    entry = CapacityAuditEntry.objects.get()

    entry.new_available = 7
    with pytest.raises(ValueError):
        entry.save()
    with pytest.raises(ValueError):
        entry.delete()


@pytest.mark.django_db
def test_change_is_broadcast_after_commit(lot, owner_actor, registry, channel,
                                          django_capture_on_commit_callbacks):
    registry.subscribe_lot(lot.id, channel)

    with django_capture_on_commit_callbacks(execute=True):
        CapacityStore().set_available_spaces(owner_actor, lot.id, 6)

    assert len(channel.messages) == 1
    message = channel.messages[0]
    assert message['event'] == 'parking_spaces_updated'
    assert (message['parkingLotId'], message['availableSpaces'], message['totalSpaces']) == (lot.id, 6, 10)


@pytest.mark.django_db
def test_rejected_change_is_not_broadcast(lot, owner_actor, registry, channel,
                                          django_capture_on_commit_callbacks):
    registry.subscribe_lot(lot.id, channel)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(ValidationError):
            CapacityStore().set_available_spaces(owner_actor, lot.id, 99)

    assert callbacks == []
    assert channel.messages == []


@pytest.mark.django_db
def test_spaces_endpoint(owner_client, driver_client, lot):
    url = reverse('parking-lot-spaces', args=[lot.id])

    response = owner_client.put(url, {'available_spaces': 7}, format='json')
    assert response.status_code == status.HTTP_200_OK, response.data
    assert response.data['available_spaces'] == 7

    response = owner_client.put(url, {'delta': -2}, format='json')
    assert response.data['available_spaces'] == 5

    assert owner_client.put(url, {'available_spaces': 1, 'delta': 1}, format='json').status_code == 400
    assert driver_client.put(url, {'available_spaces': 1}, format='json').status_code == 403

    history = owner_client.get(reverse('parking-lot-capacity-history', args=[lot.id]))
    assert [entry['new_available'] for entry in history.data] == [5, 7]


@pytest.mark.django_db
def test_create_endpoint_and_capacity_is_not_patchable(owner_client, driver_client):
    body = {'name': 'Harbour Lot', 'address': '4 Pier', 'total_spaces': 8, 'price_per_hour': '2.50'}
    assert driver_client.post(reverse('parking-lot-list'), body, format='json').status_code == 403

    created = owner_client.post(reverse('parking-lot-list'), body, format='json')
    assert created.status_code == status.HTTP_201_CREATED, created.data
    assert created.data['available_spaces'] == 8

    url = reverse('parking-lot-detail', args=[created.data['id']])
    owner_client.patch(url, {'available_spaces': 0, 'price_per_hour': '3.00'}, format='json')
    lot = ParkingLot.objects.get(pk=created.data['id'])
    assert lot.available_spaces == 8
    assert lot.price_per_hour == Decimal('3.00')


@pytest.mark.django_db
def test_lot_listing_is_public(api_client, lot):
    response = api_client.get(reverse('parking-lot-list'), {'has_space': 'true'})
    assert response.status_code == status.HTTP_200_OK
    assert response.data['count'] == 1


@pytest.mark.django_db
def test_stats_only_for_owner(owner_client, driver_client, lot):
    url = reverse('parking-lot-stats', args=[lot.id])
    assert driver_client.get(url).status_code == status.HTTP_403_FORBIDDEN

    response = owner_client.get(url)
    assert response.status_code == status.HTTP_200_OK
    assert response.data['total_bookings'] == 0
    assert response.data['available_spaces'] == 10


def test_actor_ownership_checks():
    lot = ParkingLot(owner_id=3)
    assert Actor(3, 'owner').owns_lot(lot)
    assert not Actor(4, 'owner').owns_lot(lot)
    assert not Actor.system().owns_lot(lot)

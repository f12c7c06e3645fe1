import threading
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import connection
from django.utils import timezone

from bookings.models import Booking, BookingStatus
from bookings.services import ReservationService
from parking.models import ParkingLot
from users.identity import Actor
from users.models import CustomUser
from utils.exceptions import CapacityExceeded, Forbidden, NotFound, NotMutable, ValidationError
from conftest import future_window


def make_driver(name):
    return CustomUser.objects.create_user(username=name, password='pass', user_type='driver')


@pytest.fixture
def small_lot(owner):
    return ParkingLot.objects.create(
        owner=owner, name='Corner Lot', address='2 Side Street',
        total_spaces=2, available_spaces=2, price_per_hour=Decimal('3.00'),
    )


@pytest.mark.django_db
def test_only_capacity_many_drivers_get_the_same_window(small_lot, window):
    service = ReservationService()
    start, end = window
    outcomes = []
    for name in ('d1', 'd2', 'd3'):
        actor = Actor.from_user(make_driver(name))
        try:
            outcomes.append(service.try_reserve(actor, small_lot.id, start, end))
        except CapacityExceeded:
            outcomes.append(None)

    admitted = [b for b in outcomes if b is not None]
    assert len(admitted) == 2
    assert outcomes[2] is None
    assert all(b.status == BookingStatus.PENDING for b in admitted)
    small_lot.refresh_from_db()
    # Admission never drains the counter
    assert small_lot.available_spaces == 2


@pytest.mark.django_db
def test_disjoint_windows_do_not_compete(small_lot):
    service = ReservationService()
    start, end = future_window(hours_from_now=1, hours=2)
    for name in ('d1', 'd2'):
        service.try_reserve(Actor.from_user(make_driver(name)), small_lot.id, start, end)

    # Back-to-back with the full window: [end, end + 1h) does not overlap [start, end)
    later = service.try_reserve(Actor.from_user(make_driver('d3')), small_lot.id, end, end + timedelta(hours=1))
    assert later.status == BookingStatus.PENDING


@pytest.mark.django_db
def test_cancelled_and_paid_bookings_do_not_occupy(small_lot, window):
    service = ReservationService()
    start, end = window
    first = service.try_reserve(Actor.from_user(make_driver('d1')), small_lot.id, start, end)
    second = service.try_reserve(Actor.from_user(make_driver('d2')), small_lot.id, start, end)
    Booking.objects.filter(pk=first.pk).update(status=BookingStatus.CANCELLED)
    Booking.objects.filter(pk=second.pk).update(status=BookingStatus.PAID)

    third = service.try_reserve(Actor.from_user(make_driver('d3')), small_lot.id, start, end)
    assert third.pk is not None


@pytest.mark.django_db
def test_zero_available_rejects_any_window(small_lot, window, driver_actor):
    ParkingLot.objects.filter(pk=small_lot.pk).update(available_spaces=0)

    with pytest.raises(CapacityExceeded):
        ReservationService().try_reserve(driver_actor, small_lot.id, *window)
    assert Booking.objects.count() == 0


@pytest.mark.django_db
def test_inactive_or_missing_lot(lot, window, driver_actor):
    ParkingLot.objects.filter(pk=lot.pk).update(is_active=False)
    service = ReservationService()

    with pytest.raises(ValidationError):
        service.try_reserve(driver_actor, lot.id, *window)
    with pytest.raises(NotFound):
        service.try_reserve(driver_actor, 999999, *window)


@pytest.mark.django_db
@pytest.mark.parametrize('shift', [timedelta(0), timedelta(hours=-1)])
def test_empty_or_reversed_window_is_rejected(lot, driver_actor, shift):
    start = timezone.now() + timedelta(hours=2)
    with pytest.raises(ValidationError):
        ReservationService().try_reserve(driver_actor, lot.id, start, start + shift)


@pytest.mark.django_db
def test_window_in_the_past_is_rejected(lot, driver_actor):
    start = timezone.now() - timedelta(hours=1)
    with pytest.raises(ValidationError):
        ReservationService().try_reserve(driver_actor, lot.id, start, start + timedelta(hours=2))


@pytest.mark.django_db
def test_owner_role_cannot_reserve(lot, window, owner_actor):
    with pytest.raises(Forbidden):
        ReservationService().try_reserve(owner_actor, lot.id, *window)


@pytest.mark.django_db
def test_price_is_frozen_at_admission(owner, driver_actor):
    lot = ParkingLot.objects.create(
        owner=owner, name='Rate Lot', address='3 Rate Road',
        total_spaces=5, available_spaces=5, price_per_hour=Decimal('3.00'),
    )
    booking = ReservationService().try_reserve(driver_actor, lot.id, *future_window(hours=2))
    assert booking.total_price == Decimal('6.00')
    assert booking.duration == 120

    lot.price_per_hour = Decimal('5.00')
    lot.save()

    booking.refresh_from_db()
    assert booking.total_price == Decimal('6.00')


def test_partial_minutes_round_up():
    start = timezone.now()
    assert Booking.compute_duration(start, start + timedelta(minutes=30, seconds=1)) == 31
    assert Booking.compute_price(90, Decimal('3.00')) == Decimal('4.50')


@pytest.mark.django_db
def test_creation_notifies_owner_and_driver(lot, driver, window, driver_actor):
    booking = ReservationService().try_reserve(driver_actor, lot.id, *window)

    titles = {(n.recipient_id, n.title) for n in booking.parking_lot.owner.notifications.all()}
    assert (lot.owner_id, 'New Booking Request') in titles
    assert driver.notifications.get().title == 'Booking Request Submitted'


@pytest.mark.django_db
def test_update_pending_booking_reprices_new_window(lot, driver_actor):
    service = ReservationService()
    start, end = future_window(hours=1)
    booking = service.try_reserve(driver_actor, lot.id, start, end)
    assert booking.total_price == Decimal('5.00')

    updated = service.update_booking(driver_actor, booking.id, end_time=end + timedelta(hours=2), notes='Gate B')
    assert updated.total_price == Decimal('15.00')
    assert updated.notes == 'Gate B'


@pytest.mark.django_db
def test_update_readmits_without_counting_itself(small_lot, window):
    service = ReservationService()
    start, end = window
    first_actor = Actor.from_user(make_driver('d1'))
    first = service.try_reserve(first_actor, small_lot.id, start, end)
    service.try_reserve(Actor.from_user(make_driver('d2')), small_lot.id, start, end)

    # Shrinking within the same window must not collide with itself
    service.update_booking(first_actor, first.id, end_time=end - timedelta(minutes=30))

    other = service.try_reserve(Actor.from_user(make_driver('d3')), small_lot.id, end + timedelta(hours=1),
                                end + timedelta(hours=2))
    with pytest.raises(CapacityExceeded):
        service.update_booking(Actor.from_user(other.driver), other.id, start_time=start, end_time=end)


@pytest.mark.django_db
def test_only_pending_bookings_are_mutable(lot, window, driver_actor, other_driver):
    service = ReservationService()
    booking = service.try_reserve(driver_actor, lot.id, *window)

    with pytest.raises(Forbidden):
        service.update_booking(Actor.from_user(other_driver), booking.id, notes='mine now')
    with pytest.raises(Forbidden):
        service.delete_booking(Actor.from_user(other_driver), booking.id)

    Booking.objects.filter(pk=booking.pk).update(status=BookingStatus.CONFIRMED)
    with pytest.raises(NotMutable):
        service.update_booking(driver_actor, booking.id, notes='too late')
    with pytest.raises(NotMutable):
        service.delete_booking(driver_actor, booking.id)


@pytest.mark.django_db
def test_delete_pending_booking(lot, window, driver_actor):
    service = ReservationService()
    booking = service.try_reserve(driver_actor, lot.id, *window)

    service.delete_booking(driver_actor, booking.id)
    assert not Booking.objects.filter(pk=booking.pk).exists()


@pytest.mark.django_db(transaction=True)
def test_concurrent_requests_never_overbook(small_lot, window):
    drivers = [make_driver(f'racer{i}') for i in range(6)]
    start, end = window
    results = []
    barrier = threading.Barrier(len(drivers))

    def attempt(user):
        barrier.wait()
        try:
            ReservationService().try_reserve(Actor.from_user(user), small_lot.id, start, end)
            results.append('ok')
        except CapacityExceeded:
            results.append('full')
        finally:
            connection.close()

    threads = [threading.Thread(target=attempt, args=(user,)) for user in drivers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count('ok') == 2
    assert results.count('full') == 4

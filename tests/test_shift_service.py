from datetime import timedelta

import pytest

from smenuberu.core.errors import ForbiddenError, NotFoundError, PreconditionFailedError
from smenuberu.models.booking import BookingModel, BookingStatus, UserGeoPingModel
from smenuberu.services.booking_service import BookingService
from smenuberu.services.shift_service import ShiftService

from conftest import BASE_TIME, OBJECT_LAT, OBJECT_LNG, make_object, make_ping, make_slot, make_user


@pytest.fixture
def shift(db, clock):
    return ShiftService(db, clock)


@pytest.fixture
def setup(db, clock):
    """主管建立的班次 + 已預約的工作者"""
    senior = make_user(db, name="Senior")
    worker = make_user(db, name="Worker")
    slot = make_slot(db, make_object(db, owner=senior), creator=senior, start=BASE_TIME, hours=8)
    BookingService(db, clock).create_booking(worker.id, slot.id)
    return senior, worker, slot


# ---- confirm_start ----

def test_confirm_start(db, clock, shift, setup):
    senior, worker, slot = setup
    make_ping(db, worker, BASE_TIME - timedelta(seconds=30))

    booking = shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)

    assert booking.status == BookingStatus.STARTED
    assert booking.starts_at == BASE_TIME
    assert booking.start_confirmed_at == BASE_TIME
    assert booking.start_confirmed_by_id == senior.id
    assert (booking.start_lat, booking.start_lng) == (OBJECT_LAT, OBJECT_LNG)


def test_confirm_start_window(db, clock, shift, setup):
    senior, worker, slot = setup

    clock.set(BASE_TIME - timedelta(minutes=16))
    make_ping(db, worker, clock.now)
    with pytest.raises(PreconditionFailedError) as exc_info:
        shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)
    assert exc_info.value.message == "too early"
    assert exc_info.value.details == {"earliestAt": (BASE_TIME - timedelta(minutes=15)).isoformat()}

    clock.set(BASE_TIME - timedelta(minutes=14))
    make_ping(db, worker, clock.now)
    assert shift.confirm_start(senior.id, slot.id, worker.performer_qr_token).status == BookingStatus.STARTED


def test_confirm_start_only_once(db, clock, shift, setup):
    senior, worker, slot = setup
    make_ping(db, worker, BASE_TIME)
    shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)

    clock.advance(minutes=1)
    make_ping(db, worker, clock.now)
    with pytest.raises(NotFoundError) as exc_info:
        shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)
    assert exc_info.value.message == "Booking not found"

    booking = db.query(BookingModel).filter(BookingModel.user_id == worker.id).one()
    assert booking.start_confirmed_at == BASE_TIME


def test_confirm_start_requires_slot_creator(db, shift, setup):
    _, worker, slot = setup
    stranger = make_user(db, name="Stranger")
    make_ping(db, worker, BASE_TIME)

    with pytest.raises(ForbiddenError) as exc_info:
        shift.confirm_start(stranger.id, slot.id, worker.performer_qr_token)
    assert exc_info.value.message == "Only slot creator can confirm"


def test_confirm_start_unknown_qr(shift, setup):
    senior, _, slot = setup
    with pytest.raises(NotFoundError) as exc_info:
        shift.confirm_start(senior.id, slot.id, "not-a-token")
    assert exc_info.value.message == "Performer not found"


def test_confirm_start_unknown_slot(shift, setup):
    senior, worker, _ = setup
    with pytest.raises(NotFoundError) as exc_info:
        shift.confirm_start(senior.id, "missing", worker.performer_qr_token)
    assert exc_info.value.message == "Slot not found"


def test_confirm_start_without_booking(db, shift, setup):
    senior, _, slot = setup
    walk_in = make_user(db, name="Walk-in")
    make_ping(db, walk_in, BASE_TIME)
    with pytest.raises(NotFoundError) as exc_info:
        shift.confirm_start(senior.id, slot.id, walk_in.performer_qr_token)
    assert exc_info.value.message == "Booking not found"


def test_confirm_start_needs_fresh_ping(db, shift, setup):
    senior, worker, slot = setup
    make_ping(db, worker, BASE_TIME - timedelta(seconds=121))

    with pytest.raises(PreconditionFailedError) as exc_info:
        shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)
    assert exc_info.value.message == "no fresh geo ping from performer"
    assert exc_info.value.details == {"maxAgeSeconds": 120}


@pytest.mark.parametrize("age_seconds", [119, 120])
def test_confirm_start_accepts_ping_within_max_age(db, shift, setup, age_seconds):
    senior, worker, slot = setup
    make_ping(db, worker, BASE_TIME - timedelta(seconds=age_seconds))

    booking = shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)
    assert booking.status == BookingStatus.STARTED


def test_confirm_start_geofence(db, shift, setup):
    senior, worker, slot = setup
    make_ping(db, worker, BASE_TIME, lat=55.77, lng=37.62)

    with pytest.raises(PreconditionFailedError) as exc_info:
        shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)
    assert exc_info.value.message == "too far from object"
    assert exc_info.value.details["radiusM"] == 200
    assert 2223 <= exc_info.value.details["distanceM"] <= 2225


def test_confirm_start_skips_geofence_without_object_coordinates(db, clock, shift):
    senior = make_user(db, name="Senior")
    worker = make_user(db)
    slot = make_slot(db, make_object(db, owner=senior, lat=None, lng=None), creator=senior)
    BookingService(db, clock).create_booking(worker.id, slot.id)
    make_ping(db, worker, BASE_TIME, lat=10.0, lng=10.0)

    assert shift.confirm_start(senior.id, slot.id, worker.performer_qr_token).status == BookingStatus.STARTED


def test_confirm_start_after_checkin_request(db, clock, shift, setup):
    senior, worker, slot = setup
    shift.request_checkin(worker.id, slot.id, OBJECT_LAT, OBJECT_LNG)

    # 報到時的座標即為新鮮定位
    booking = shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)
    assert booking.status == BookingStatus.STARTED


# ---- confirm_end ----

def _start(db, shift, senior, worker, slot, at=BASE_TIME):
    make_ping(db, worker, at)
    shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)


def test_confirm_end(db, clock, shift, setup):
    senior, worker, slot = setup
    _start(db, shift, senior, worker, slot)

    clock.set(slot.end_time + timedelta(minutes=5))
    make_ping(db, worker, clock.now)
    booking = shift.confirm_end(senior.id, slot.id, worker.performer_qr_token)

    assert booking.status == BookingStatus.ENDED
    assert booking.ends_at == clock.now
    assert booking.end_confirmed_by_id == senior.id
    assert booking.start_confirmed_at == BASE_TIME


def test_confirm_end_window(db, clock, shift, setup):
    senior, worker, slot = setup
    _start(db, shift, senior, worker, slot)

    clock.set(slot.end_time + timedelta(hours=4, minutes=1))
    make_ping(db, worker, clock.now)
    with pytest.raises(PreconditionFailedError) as exc_info:
        shift.confirm_end(senior.id, slot.id, worker.performer_qr_token)
    assert exc_info.value.message == "too late to confirm end"
    assert exc_info.value.details == {"latestAt": (slot.end_time + timedelta(hours=4)).isoformat()}

    clock.set(slot.end_time + timedelta(hours=3, minutes=59))
    make_ping(db, worker, clock.now)
    assert shift.confirm_end(senior.id, slot.id, worker.performer_qr_token).status == BookingStatus.ENDED


def test_confirm_end_only_once(db, clock, shift, setup):
    senior, worker, slot = setup
    _start(db, shift, senior, worker, slot)
    clock.set(slot.end_time)
    make_ping(db, worker, clock.now)
    shift.confirm_end(senior.id, slot.id, worker.performer_qr_token)

    with pytest.raises(NotFoundError):
        shift.confirm_end(senior.id, slot.id, worker.performer_qr_token)


def test_confirm_end_without_start(db, clock, shift, setup):
    senior, worker, slot = setup
    clock.set(slot.end_time)
    make_ping(db, worker, clock.now)

    booking = shift.confirm_end(senior.id, slot.id, worker.performer_qr_token)
    assert booking.status == BookingStatus.ENDED
    assert booking.start_confirmed_at is None


def test_confirm_end_cancelled_booking(db, clock, shift, setup):
    senior, worker, slot = setup
    BookingService(db, clock).cancel_booking(worker.id, slot.id)
    make_ping(db, worker, BASE_TIME)

    with pytest.raises(NotFoundError):
        shift.confirm_end(senior.id, slot.id, worker.performer_qr_token)


# ---- request_checkin ----

def test_request_checkin(db, clock, shift, setup):
    _, worker, slot = setup
    clock.set(BASE_TIME - timedelta(minutes=10))

    booking = shift.request_checkin(worker.id, slot.id, OBJECT_LAT, OBJECT_LNG)

    assert booking.status == BookingStatus.CHECKIN_REQUESTED
    ping = db.query(UserGeoPingModel).filter(UserGeoPingModel.user_id == worker.id).one()
    assert ping.created_at == clock.now


def test_request_checkin_requires_coordinates(shift, setup):
    _, worker, slot = setup
    with pytest.raises(PreconditionFailedError) as exc_info:
        shift.request_checkin(worker.id, slot.id, None, OBJECT_LNG)
    assert exc_info.value.message == "lat/lng required"


def test_request_checkin_not_booked(db, shift, setup):
    _, _, slot = setup
    stranger = make_user(db, name="Stranger")
    with pytest.raises(ForbiddenError) as exc_info:
        shift.request_checkin(stranger.id, slot.id, OBJECT_LAT, OBJECT_LNG)
    assert exc_info.value.message == "not your booked slot"


def test_request_checkin_too_early(clock, shift, setup):
    _, worker, slot = setup
    clock.set(BASE_TIME - timedelta(minutes=16))
    with pytest.raises(PreconditionFailedError) as exc_info:
        shift.request_checkin(worker.id, slot.id, OBJECT_LAT, OBJECT_LNG)
    assert exc_info.value.message == "too early"


def test_request_checkin_radius_is_tighter(db, shift, setup):
    _, worker, slot = setup
    # 約 167 公尺：主管確認可以，自行報到不行
    with pytest.raises(PreconditionFailedError) as exc_info:
        shift.request_checkin(worker.id, slot.id, OBJECT_LAT + 0.0015, OBJECT_LNG)
    assert exc_info.value.details["radiusM"] == 120
    assert db.query(UserGeoPingModel).count() == 0


# ---- 完整流程 ----

def test_full_shift_scenario(db, clock):
    senior = make_user(db, name="Senior")
    worker = make_user(db, name="Worker")
    slot = make_slot(db, make_object(db, owner=senior), creator=senior, start=BASE_TIME, hours=8)
    bookings = BookingService(db, clock)
    shift = ShiftService(db, clock)

    clock.set(BASE_TIME - timedelta(days=1))
    bookings.create_booking(worker.id, slot.id)

    clock.set(BASE_TIME - timedelta(minutes=10))
    shift.request_checkin(worker.id, slot.id, OBJECT_LAT, OBJECT_LNG)
    clock.advance(seconds=30)
    shift.confirm_start(senior.id, slot.id, worker.performer_qr_token)

    clock.set(slot.end_time + timedelta(minutes=3))
    make_ping(db, worker, clock.now - timedelta(seconds=20))
    ended = shift.confirm_end(senior.id, slot.id, worker.performer_qr_token)

    assert ended.status == BookingStatus.ENDED
    assert ended.starts_at == BASE_TIME - timedelta(minutes=10) + timedelta(seconds=30)
    assert ended.ends_at == slot.end_time + timedelta(minutes=3)
    assert bookings.get_booking_state(worker.id) == {slot.id: BookingStatus.ENDED}


def test_request_checkin_unknown_slot(shift, setup):
    _, worker, _ = setup
    with pytest.raises(NotFoundError) as exc_info:
        shift.request_checkin(worker.id, "missing", OBJECT_LAT, OBJECT_LNG)
    assert exc_info.value.message == "slot not found"

from datetime import timedelta

import pytest

from smenuberu.core.errors import ConflictError, ForbiddenError, NotFoundError, PreconditionFailedError
from smenuberu.models.schemas import CreateObjectRequest, CreateSlotRequest, UpdateObjectRequest, UpdateSlotRequest
from smenuberu.models.slot import TaskType
from smenuberu.models.venue import ObjectPhotoModel
from smenuberu.services.booking_service import BookingService
from smenuberu.services.object_service import ObjectService
from smenuberu.services.slot_service import SlotService, round_pay

from conftest import BASE_TIME, make_object, make_slot, make_user


class StubGeocoder:
    def __init__(self, result):
        self.result = result
        self.addresses = []

    def get_coordinates(self, address):
        self.addresses.append(address)
        return self.result


# ---- 工作地點 ----

def test_create_object_geocodes_address(db, clock):
    owner = make_user(db)
    geocoder = StubGeocoder((55.7, 37.6))
    service = ObjectService(db, clock, geocoder)

    created = service.create_object(owner.id, CreateObjectRequest(
        name=" Кухня Центр ", city="Москва", address="Тверская, 10",
        photos=["https://cdn.example.com/1.jpg", "https://cdn.example.com/2.jpg"],
    ))

    assert created.owner_id == owner.id
    assert created.name == "Кухня Центр"
    assert (created.lat, created.lng) == (55.7, 37.6)
    assert created.photos == ["https://cdn.example.com/1.jpg", "https://cdn.example.com/2.jpg"]
    assert geocoder.addresses == ["Москва, Тверская, 10"]


def test_create_object_keeps_given_coordinates(db, clock):
    geocoder = StubGeocoder((1.0, 1.0))
    created = ObjectService(db, clock, geocoder).create_object(
        make_user(db).id,
        CreateObjectRequest(name="A", city="Москва", address="x", lat=55.0, lng=37.0),
    )
    assert (created.lat, created.lng) == (55.0, 37.0)
    assert geocoder.addresses == []


def test_coordinates_must_come_in_pairs(db, clock):
    with pytest.raises(PreconditionFailedError):
        ObjectService(db, clock).create_object(make_user(db).id, CreateObjectRequest(name="A", city="B", lat=55.0))


def test_photos_limited_to_three():
    with pytest.raises(ValueError):
        CreateObjectRequest(name="A", city="B", photos=[f"https://x/{i}.jpg" for i in range(4)])


def test_update_object_replaces_and_clears_photos(db, clock):
    owner = make_user(db)
    service = ObjectService(db, clock)
    created = service.create_object(owner.id, CreateObjectRequest(
        name="A", city="B", photos=["https://x/1.jpg", "https://x/2.jpg"],
    ))

    updated = service.update_object(owner.id, created.id, UpdateObjectRequest(photos=["https://x/3.jpg"]))
    assert updated.photos == ["https://x/3.jpg"]

    renamed = service.update_object(owner.id, created.id, UpdateObjectRequest(name="C"))
    assert renamed.name == "C"
    assert renamed.photos == ["https://x/3.jpg"]

    cleared = service.update_object(owner.id, created.id, UpdateObjectRequest(photos=None))
    assert cleared.photos == []
    assert db.query(ObjectPhotoModel).count() == 0


def test_only_owner_can_modify_object(db, clock):
    owner = make_user(db)
    other = make_user(db, name="Other")
    work_object = make_object(db, owner=owner)
    service = ObjectService(db, clock)

    with pytest.raises(ForbiddenError):
        service.update_object(other.id, work_object.id, UpdateObjectRequest(name="X"))
    with pytest.raises(ForbiddenError):
        service.delete_object(other.id, work_object.id)


def test_delete_object_with_slots_conflicts(db, clock):
    owner = make_user(db)
    work_object = make_object(db, owner=owner)
    make_slot(db, work_object, creator=owner)

    with pytest.raises(ConflictError) as exc_info:
        ObjectService(db, clock).delete_object(owner.id, work_object.id)
    assert exc_info.value.message == "object has related records"
    assert exc_info.value.details == {"related": {"slots": 1}}


def test_delete_object(db, clock):
    owner = make_user(db)
    service = ObjectService(db, clock)
    created = service.create_object(owner.id, CreateObjectRequest(name="A", city="B", photos=["https://x/1.jpg"]))

    service.delete_object(owner.id, created.id)

    with pytest.raises(NotFoundError):
        service.get_object(created.id)
    assert db.query(ObjectPhotoModel).count() == 0


def test_list_objects_sorted_by_city_and_name(db, clock):
    service = ObjectService(db, clock)
    user = make_user(db)
    for name, city in [("B", "Москва"), ("A", "Москва"), ("C", "Казань")]:
        service.create_object(user.id, CreateObjectRequest(name=name, city=city))
    assert [(o.city, o.name) for o in service.list_objects()] == [("Казань", "C"), ("Москва", "A"), ("Москва", "B")]


# ---- 班次 ----

def _slot_request(object_id, **kwargs):
    data = dict(object_id=object_id, title="Погрузка", date="2026-03-02", start_time="09:00",
                end_time="17:00", pay=3500.5, type=TaskType.LOADER)
    data.update(kwargs)
    return CreateSlotRequest(**data)


def test_round_pay_rounds_half_up():
    assert round_pay(3500.5) == 3501
    assert round_pay(2.5) == 3
    assert round_pay(3499.4) == 3499


def test_create_slot(db, clock):
    owner = make_user(db)
    work_object = make_object(db, owner=owner)

    slot = SlotService(db, clock).create_slot(owner.id, _slot_request(work_object.id))

    assert slot.created_by_id == owner.id
    assert slot.start_time.isoformat() == "2026-03-02T09:00:00"
    assert slot.end_time.isoformat() == "2026-03-02T17:00:00"
    assert slot.date.isoformat() == "2026-03-02T00:00:00"
    assert slot.pay == 3501
    assert slot.published is True


@pytest.mark.parametrize("kwargs,message", [
    ({"date": "02.03.2026"}, "invalid date/startTime/endTime"),
    ({"start_time": "25:00"}, "invalid date/startTime/endTime"),
    ({"end_time": "09:00"}, "endTime must be after startTime"),
    ({"object_id": "missing"}, "object not found"),
])
def test_create_slot_validation(db, clock, kwargs, message):
    owner = make_user(db)
    work_object = make_object(db, owner=owner)
    request = _slot_request(**{"object_id": work_object.id, **kwargs})

    with pytest.raises(PreconditionFailedError) as exc_info:
        SlotService(db, clock).create_slot(owner.id, request)
    assert exc_info.value.message == message


def test_create_slot_on_foreign_object(db, clock):
    owner = make_user(db)
    work_object = make_object(db, owner=owner)
    with pytest.raises(ForbiddenError):
        SlotService(db, clock).create_slot(make_user(db, name="Other").id, _slot_request(work_object.id))


def test_update_slot_revalidates_times(db, clock):
    owner = make_user(db)
    service = SlotService(db, clock)
    slot = service.create_slot(owner.id, _slot_request(make_object(db, owner=owner).id))

    updated = service.update_slot(owner.id, slot.id, UpdateSlotRequest(end_time="18:30", hot=True))
    assert updated.end_time.isoformat() == "2026-03-02T18:30:00"
    assert updated.start_time.isoformat() == "2026-03-02T09:00:00"
    assert updated.hot is True

    with pytest.raises(PreconditionFailedError):
        service.update_slot(owner.id, slot.id, UpdateSlotRequest(start_time="19:00"))
    with pytest.raises(ForbiddenError):
        service.update_slot(make_user(db, name="Other").id, slot.id, UpdateSlotRequest(title="X"))


def test_list_slots_hides_unpublished(db, clock):
    owner = make_user(db)
    work_object = make_object(db, owner=owner)
    visible = make_slot(db, work_object, creator=owner)
    hidden = make_slot(db, work_object, creator=owner, published=False)
    service = SlotService(db, clock)

    cards = service.list_ui()
    assert [card.id for card in cards] == [visible.id]
    assert cards[0].time == "09:00–17:00"
    assert cards[0].date == "2026-03-02"
    assert cards[0].company == "Склад Север"
    assert {s.id for s in service.list_created_by(owner.id)} == {visible.id, hidden.id}


def test_get_object_coordinates(db, clock):
    service = ObjectService(db, clock)
    assert service.get_object_coordinates(make_object(db).id) == (55.75, 37.62)
    assert service.get_object_coordinates(make_object(db, lat=None, lng=None).id) is None


def test_update_slot_times_keep_bookings_apart(db, clock):
    senior = make_user(db, name="Senior")
    worker = make_user(db)
    work_object = make_object(db, owner=senior)
    morning = make_slot(db, work_object, creator=senior, start=BASE_TIME, hours=4)
    evening = make_slot(db, work_object, creator=senior, start=BASE_TIME + timedelta(hours=5), hours=4)
    bookings = BookingService(db, clock)
    bookings.create_booking(worker.id, morning.id)
    bookings.create_booking(worker.id, evening.id)
    service = SlotService(db, clock)

    # 10:00–16:00 會和已預約的 09:00–13:00 重疊
    with pytest.raises(ConflictError) as exc_info:
        service.update_slot(senior.id, evening.id, UpdateSlotRequest(start_time="10:00", end_time="16:00"))
    assert exc_info.value.message == "Time conflict"
    assert exc_info.value.details == {"conflictSlotId": morning.id}

    db.refresh(evening)
    assert evening.start_time == BASE_TIME + timedelta(hours=5)

    moved = service.update_slot(senior.id, evening.id, UpdateSlotRequest(start_time="13:00", end_time="19:00"))
    assert moved.start_time.isoformat() == "2026-03-02T13:00:00"

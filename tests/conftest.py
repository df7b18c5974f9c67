"""
測試共用設定：記憶體 SQLite、固定時鐘與資料工廠
"""
import os

# 必須在匯入 smenuberu 之前設定
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["COOKIE_SECURE"] = "false"

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from smenuberu import config  # noqa: E402
from smenuberu.api.dependencies import get_clock  # noqa: E402
from smenuberu.api.main import api_app  # noqa: E402
from smenuberu.core.database import Base, SessionLocal, engine, get_db  # noqa: E402
from smenuberu.core.security import random_qr_token  # noqa: E402
from smenuberu.models import ObjectModel, SlotModel, TaskType, UserGeoPingModel, UserModel  # noqa: E402
from smenuberu.services.auth_service import AuthService  # noqa: E402

# 2026-03-02 09:00 UTC
BASE_TIME = datetime(2026, 3, 2, 9, 0)

# 莫斯科市中心附近
OBJECT_LAT = 55.75
OBJECT_LNG = 37.62


class FixedClock:
    """可手動前進的時鐘"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime):
        self.now = now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FixedClock(BASE_TIME)


@pytest.fixture
def client(db, clock):
    def override_get_db():
        yield db

    api_app.dependency_overrides[get_db] = override_get_db
    api_app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(api_app)
    finally:
        api_app.dependency_overrides.clear()


def make_user(db, name="Worker", **kwargs) -> UserModel:
    kwargs.setdefault("performer_qr_token", random_qr_token())
    user = UserModel(display_name=name, **kwargs)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_object(db, owner=None, lat=OBJECT_LAT, lng=OBJECT_LNG, name="Склад Север") -> ObjectModel:
    work_object = ObjectModel(
        owner_id=owner.id if owner else None,
        name=name,
        city="Москва",
        address="Дмитровское ш., 1",
        lat=lat,
        lng=lng,
    )
    db.add(work_object)
    db.commit()
    db.refresh(work_object)
    return work_object


def make_slot(db, work_object, creator=None, start=BASE_TIME, hours=8, published=True, title="Погрузка") -> SlotModel:
    slot = SlotModel(
        object_id=work_object.id,
        created_by_id=creator.id if creator else None,
        title=title,
        date=start.replace(hour=0, minute=0),
        start_time=start,
        end_time=start + timedelta(hours=hours),
        pay=3500,
        type=TaskType.LOADER,
        hot=False,
        published=published,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def make_ping(db, user, at, lat=OBJECT_LAT, lng=OBJECT_LNG) -> UserGeoPingModel:
    ping = UserGeoPingModel(user_id=user.id, lat=lat, lng=lng, created_at=at)
    db.add(ping)
    db.commit()
    return ping


def login(client, db, clock, user):
    """建立 session 並把 cookie 放進測試客戶端"""
    token, _ = AuthService(db, clock).create_session(user.id)
    client.cookies.set(config.AUTH_COOKIE_NAME, token)
    return token

"""
FastAPI 依賴注入
"""
from typing import Annotated, Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from smenuberu import config
from smenuberu.core.database import get_db
from smenuberu.core.errors import UnauthorizedError
from smenuberu.core.time_utils import Clock, utc_now
from smenuberu.services.auth_service import AuthService
from smenuberu.services.booking_service import BookingService
from smenuberu.services.dashboard_service import DashboardService
from smenuberu.services.geo_ping_service import GeoPingService
from smenuberu.services.geocoding_service import GeocodingService
from smenuberu.services.object_service import ObjectService
from smenuberu.services.shift_service import ShiftService
from smenuberu.services.slot_service import SlotService
from smenuberu.services.upload_service import UploadService

DbSession = Annotated[Session, Depends(get_db)]


def get_clock() -> Clock:
    """目前時間來源（測試時以 dependency_overrides 替換）"""
    return utc_now


ClockDep = Annotated[Clock, Depends(get_clock)]


def get_session_token(request: Request) -> Optional[str]:
    """從 cookie 取得 session token"""
    return request.cookies.get(config.AUTH_COOKIE_NAME) or None


def get_auth_service(db: DbSession, clock: ClockDep) -> AuthService:
    return AuthService(db, clock)


def get_booking_service(db: DbSession, clock: ClockDep) -> BookingService:
    return BookingService(db, clock)


def get_shift_service(db: DbSession, clock: ClockDep) -> ShiftService:
    return ShiftService(db, clock)


def get_geo_ping_service(db: DbSession, clock: ClockDep) -> GeoPingService:
    return GeoPingService(db, clock)


def get_geocoding_service() -> GeocodingService:
    return GeocodingService()


def get_object_service(
    db: DbSession,
    clock: ClockDep,
    geocoding_service: Annotated[GeocodingService, Depends(get_geocoding_service)],
) -> ObjectService:
    return ObjectService(db, clock, geocoding_service)


def get_slot_service(db: DbSession, clock: ClockDep) -> SlotService:
    return SlotService(db, clock)


def get_upload_service(db: DbSession) -> UploadService:
    return UploadService(db)


def get_dashboard_service(db: DbSession) -> DashboardService:
    return DashboardService(db)


def get_optional_user_id(
    session_token: Annotated[Optional[str], Depends(get_session_token)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> Optional[str]:
    """取得目前登入的使用者ID，未登入時為 None"""
    return auth_service.resolve_session_user_id(session_token)


def get_current_user_id(
    user_id: Annotated[Optional[str], Depends(get_optional_user_id)],
) -> str:
    """取得目前登入的使用者ID，未登入時回應 401"""
    if not user_id:
        raise UnauthorizedError()
    return user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]

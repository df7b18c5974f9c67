"""
班次上下班確認服務

流程：
1. 工作者到場後可自行報到（booked -> checkin_requested）
2. 班次主管（班次建立者）掃描工作者的個人 QR，確認上班（-> started）
3. 下班時同樣掃描 QR 確認下班（-> ended）

主管確認時需同時滿足：時間窗口、工作者最近的定位、與工作地點的距離。
"""
import math
from datetime import timedelta
from typing import Optional
from sqlalchemy.orm import Session

from smenuberu.config import (
    CHECKIN_EARLY_MINUTES,
    CHECKIN_REQUEST_RADIUS_M,
    END_CONFIRM_GRACE_HOURS,
    GEOFENCE_RADIUS_M,
    PING_MAX_AGE_SECONDS,
)
from smenuberu.core import errors
from smenuberu.core.errors import ForbiddenError, NotFoundError, PreconditionFailedError
from smenuberu.core.logger import setup_logger
from smenuberu.core.time_utils import Clock, utc_now
from smenuberu.models.booking import BookingModel, BookingStatus
from smenuberu.models.slot import SlotModel
from smenuberu.models.user import UserModel
from smenuberu.services.geo_ping_service import GeoPingService, haversine_meters, is_valid_coordinate

# 設置 logger
logger = setup_logger(__name__)

START_ELIGIBLE_STATUSES = (BookingStatus.BOOKED, BookingStatus.CHECKIN_REQUESTED)
END_ELIGIBLE_STATUSES = (BookingStatus.STARTED, BookingStatus.BOOKED, BookingStatus.CHECKIN_REQUESTED)


def round_meters(distance: float) -> int:
    """四捨五入到整數公尺（0.5 進位）"""
    return int(math.floor(distance + 0.5))


class ShiftService:
    """班次上下班確認服務"""

    def __init__(self, db: Session, clock: Clock = utc_now, geo_ping_service: Optional[GeoPingService] = None):
        """
        初始化班次確認服務

        參數:
            db: 資料庫會話
            clock: 取得目前 UTC 時間的函數（測試時可替換）
            geo_ping_service: 定位回報服務（可選，未提供時使用同一個會話建立）
        """
        self.db = db
        self.clock = clock
        self.geo_ping_service = geo_ping_service or GeoPingService(db, clock)

    def _get_slot(self, slot_id: str, not_found: str = errors.SLOT_NOT_FOUND) -> SlotModel:
        slot = self.db.query(SlotModel).filter(SlotModel.id == slot_id).first()
        if not slot:
            raise NotFoundError(not_found)
        return slot

    def _resolve_performer(self, qr_token: str) -> UserModel:
        """以個人 QR token 找出工作者"""
        performer = None
        if qr_token:
            performer = self.db.query(UserModel).filter(UserModel.performer_qr_token == qr_token).first()
        if not performer:
            raise NotFoundError(errors.PERFORMER_NOT_FOUND)
        return performer

    def _check_geofence(self, slot: SlotModel, lat: float, lng: float, radius_m: float) -> Optional[int]:
        """檢查座標是否在工作地點半徑內；工作地點沒有座標時略過"""
        work_object = slot.object
        if work_object is None or not work_object.has_coordinates:
            return None

        distance = haversine_meters(lat, lng, work_object.lat, work_object.lng)
        if distance > radius_m:
            raise PreconditionFailedError(
                errors.TOO_FAR,
                {"distanceM": round_meters(distance), "radiusM": radius_m},
            )
        return round_meters(distance)

    def _require_fresh_ping(self, performer_id: str):
        ping = self.geo_ping_service.latest_fresh_ping(performer_id, PING_MAX_AGE_SECONDS)
        if not ping:
            raise PreconditionFailedError(errors.NO_FRESH_PING, {"maxAgeSeconds": PING_MAX_AGE_SECONDS})
        return ping

    def request_checkin(self, performer_id: str, slot_id: str, lat, lng) -> BookingModel:
        """
        工作者到場報到（booked -> checkin_requested）

        參數:
            performer_id: 工作者ID
            slot_id: 班次ID
            lat: 工作者目前緯度
            lng: 工作者目前經度

        返回:
            BookingModel: 更新後的預約
        """
        if not is_valid_coordinate(lat, lng):
            raise PreconditionFailedError(errors.LAT_LNG_REQUIRED)
        lat, lng = float(lat), float(lng)

        now = self.clock()
        try:
            slot = self._get_slot(slot_id, errors.CHECKIN_SLOT_NOT_FOUND)

            booking = (
                self.db.query(BookingModel)
                .filter(
                    BookingModel.slot_id == slot_id,
                    BookingModel.user_id == performer_id,
                    BookingModel.status == BookingStatus.BOOKED,
                )
                .first()
            )
            if not booking:
                raise ForbiddenError(errors.NOT_YOUR_BOOKED_SLOT)

            earliest = slot.start_time - timedelta(minutes=CHECKIN_EARLY_MINUTES)
            if now < earliest:
                raise PreconditionFailedError(errors.TOO_EARLY, {"earliestAt": earliest.isoformat()})

            self._check_geofence(slot, lat, lng, CHECKIN_REQUEST_RADIUS_M)

            # 報到時的座標同時作為一次定位回報
            self.geo_ping_service.add_ping(performer_id, lat, lng)

            updated = (
                self.db.query(BookingModel)
                .filter(BookingModel.id == booking.id, BookingModel.status == BookingStatus.BOOKED)
                .update({BookingModel.status: BookingStatus.CHECKIN_REQUESTED}, synchronize_session=False)
            )
            if updated == 0:
                raise ForbiddenError(errors.NOT_YOUR_BOOKED_SLOT)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(booking)
        logger.info(f"工作者已報到：booking={booking.id} slot={slot_id}")
        return booking

    def confirm_start(self, senior_id: str, slot_id: str, qr_token: str) -> BookingModel:
        """
        主管確認上班

        參數:
            senior_id: 掃描者（必須是班次建立者）
            slot_id: 班次ID
            qr_token: 工作者個人 QR token

        返回:
            BookingModel: 狀態為 started 的預約
        """
        now = self.clock()
        try:
            slot = self._get_slot(slot_id)
            performer = self._resolve_performer(qr_token)

            booking = (
                self.db.query(BookingModel)
                .filter(
                    BookingModel.slot_id == slot_id,
                    BookingModel.user_id == performer.id,
                    BookingModel.status.in_(START_ELIGIBLE_STATUSES),
                    BookingModel.start_confirmed_at.is_(None),
                )
                .order_by(BookingModel.created_at.desc())
                .first()
            )
            if not booking:
                raise NotFoundError(errors.BOOKING_NOT_FOUND)

            if slot.created_by_id != senior_id:
                raise ForbiddenError(errors.ONLY_SLOT_CREATOR)

            earliest = slot.start_time - timedelta(minutes=CHECKIN_EARLY_MINUTES)
            if now < earliest:
                raise PreconditionFailedError(errors.TOO_EARLY, {"earliestAt": earliest.isoformat()})

            ping = self._require_fresh_ping(performer.id)
            self._check_geofence(slot, ping.lat, ping.lng, GEOFENCE_RADIUS_M)

            # 以 start_confirmed_at IS NULL 作為條件，同時掃描時只有一次會成功
            updated = (
                self.db.query(BookingModel)
                .filter(
                    BookingModel.id == booking.id,
                    BookingModel.start_confirmed_at.is_(None),
                    BookingModel.status.in_(START_ELIGIBLE_STATUSES),
                )
                .update(
                    {
                        BookingModel.status: BookingStatus.STARTED,
                        BookingModel.starts_at: now,
                        BookingModel.start_confirmed_at: now,
                        BookingModel.start_confirmed_by_id: senior_id,
                        BookingModel.start_lat: ping.lat,
                        BookingModel.start_lng: ping.lng,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                raise NotFoundError(errors.BOOKING_NOT_FOUND)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(booking)
        logger.info(f"已確認上班：booking={booking.id} slot={slot_id} by={senior_id}")
        return booking

    def confirm_end(self, senior_id: str, slot_id: str, qr_token: str) -> BookingModel:
        """
        主管確認下班

        參數:
            senior_id: 掃描者（必須是班次建立者）
            slot_id: 班次ID
            qr_token: 工作者個人 QR token

        返回:
            BookingModel: 狀態為 ended 的預約
        """
        now = self.clock()
        try:
            slot = self._get_slot(slot_id)
            performer = self._resolve_performer(qr_token)

            booking = (
                self.db.query(BookingModel)
                .filter(
                    BookingModel.slot_id == slot_id,
                    BookingModel.user_id == performer.id,
                    BookingModel.status.in_(END_ELIGIBLE_STATUSES),
                    BookingModel.end_confirmed_at.is_(None),
                )
                .order_by(BookingModel.created_at.desc())
                .first()
            )
            if not booking:
                raise NotFoundError(errors.BOOKING_NOT_FOUND)

            if slot.created_by_id != senior_id:
                raise ForbiddenError(errors.ONLY_SLOT_CREATOR)

            latest = slot.end_time + timedelta(hours=END_CONFIRM_GRACE_HOURS)
            if now > latest:
                raise PreconditionFailedError(errors.TOO_LATE_TO_CONFIRM_END, {"latestAt": latest.isoformat()})

            ping = self._require_fresh_ping(performer.id)
            self._check_geofence(slot, ping.lat, ping.lng, GEOFENCE_RADIUS_M)

            updated = (
                self.db.query(BookingModel)
                .filter(
                    BookingModel.id == booking.id,
                    BookingModel.end_confirmed_at.is_(None),
                    BookingModel.status.in_(END_ELIGIBLE_STATUSES),
                )
                .update(
                    {
                        BookingModel.status: BookingStatus.ENDED,
                        BookingModel.ends_at: now,
                        BookingModel.end_confirmed_at: now,
                        BookingModel.end_confirmed_by_id: senior_id,
                        BookingModel.end_lat: ping.lat,
                        BookingModel.end_lng: ping.lng,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                raise NotFoundError(errors.BOOKING_NOT_FOUND)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(booking)
        logger.info(f"已確認下班：booking={booking.id} slot={slot_id} by={senior_id}")
        return booking

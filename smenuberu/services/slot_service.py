"""
班次管理服務
"""
import math
from datetime import datetime
from typing import List, Tuple
from sqlalchemy.orm import Session, joinedload

from smenuberu.core import errors
from smenuberu.core.errors import ConflictError, ForbiddenError, NotFoundError, PreconditionFailedError
from smenuberu.core.logger import setup_logger
from smenuberu.core.time_utils import Clock, format_date, format_time_range, to_utc_datetime, utc_now
from smenuberu.models.booking import ACTIVE_STATUSES, BookingModel
from smenuberu.models.schemas import CreateSlotRequest, Slot, SlotCard, UpdateSlotRequest
from smenuberu.models.slot import SlotModel
from smenuberu.models.venue import ObjectModel
from smenuberu.services.booking_service import BookingService

# 設置 logger
logger = setup_logger(__name__)


def round_pay(pay: float) -> int:
    """薪資四捨五入到整數（0.5 進位）"""
    if not math.isfinite(pay):
        raise PreconditionFailedError(errors.INVALID_PAY)
    return int(math.floor(pay + 0.5))


def parse_slot_times(date_str: str, start_str: str, end_str: str) -> Tuple[datetime, datetime, datetime]:
    """
    解析班次日期與時間（皆視為 UTC）

    返回:
        Tuple[datetime, datetime, datetime]: (當天 00:00, 開始時間, 結束時間)
    """
    date = to_utc_datetime(date_str, "00:00")
    start_time = to_utc_datetime(date_str, start_str)
    end_time = to_utc_datetime(date_str, end_str)
    if not date or not start_time or not end_time:
        raise PreconditionFailedError(errors.INVALID_SLOT_TIMES)
    if end_time <= start_time:
        raise PreconditionFailedError(errors.END_BEFORE_START)
    return date, start_time, end_time


def to_slot_card(model: SlotModel) -> SlotCard:
    """班次轉為前端列表卡片"""
    work_object = model.object
    return SlotCard(
        id=model.id,
        date=format_date(model.date),
        title=model.title,
        company=work_object.name if work_object else "",
        city=work_object.city if work_object else "",
        address=(work_object.address or "") if work_object else "",
        time=format_time_range(model.start_time, model.end_time),
        pay=model.pay,
        hot=model.hot,
        type=model.type,
        tags=[],
    )


class SlotService:
    """班次管理服務"""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """
        初始化班次服務

        參數:
            db: 資料庫會話
            clock: 取得目前 UTC 時間的函數
        """
        self.db = db
        self.clock = clock

    def _published_query(self):
        return (
            self.db.query(SlotModel)
            .options(joinedload(SlotModel.object))
            .filter(SlotModel.published.is_(True))
        )

    def get_slot(self, slot_id: str) -> SlotModel:
        """取得班次，不存在時拋出 NotFoundError"""
        slot = self.db.query(SlotModel).filter(SlotModel.id == slot_id).first()
        if not slot:
            raise NotFoundError(errors.NOT_FOUND)
        return slot

    def list_slots(self) -> List[SlotCard]:
        """公開班次列表（日期新到舊，同一天依開始時間）"""
        rows = self._published_query().order_by(SlotModel.date.desc(), SlotModel.start_time.asc()).all()
        return [to_slot_card(row) for row in rows]

    def list_ui(self) -> List[SlotCard]:
        """前端首頁班次列表（依時間先後）"""
        rows = self._published_query().order_by(SlotModel.date.asc(), SlotModel.start_time.asc()).all()
        return [to_slot_card(row) for row in rows]

    def get_slot_card(self, slot_id: str) -> SlotCard:
        """取得單一班次卡片"""
        return to_slot_card(self.get_slot(slot_id))

    def list_created_by(self, user_id: str) -> List[Slot]:
        """主管自己建立的班次（含未公開）"""
        rows = (
            self.db.query(SlotModel)
            .filter(SlotModel.created_by_id == user_id)
            .order_by(SlotModel.start_time.asc())
            .all()
        )
        return [Slot.model_validate(row) for row in rows]

    def _get_owned_object(self, user_id: str, object_id: str) -> ObjectModel:
        work_object = self.db.query(ObjectModel).filter(ObjectModel.id == object_id).first()
        if not work_object:
            raise PreconditionFailedError(errors.SLOT_OBJECT_NOT_FOUND)
        if work_object.owner_id is not None and work_object.owner_id != user_id:
            raise ForbiddenError(errors.NOT_OBJECT_OWNER)
        return work_object

    def create_slot(self, user_id: str, data: CreateSlotRequest) -> Slot:
        """
        建立班次（建立者即為該班次主管）

        參數:
            user_id: 建立者ID
            data: 班次資料

        返回:
            Slot: 建立的班次
        """
        date, start_time, end_time = parse_slot_times(data.date, data.start_time, data.end_time)
        pay = round_pay(data.pay)

        try:
            self._get_owned_object(user_id, data.object_id)
            slot = SlotModel(
                object_id=data.object_id,
                created_by_id=user_id,
                title=data.title.strip(),
                date=date,
                start_time=start_time,
                end_time=end_time,
                pay=pay,
                type=data.type,
                hot=data.hot,
                published=data.published,
                created_at=self.clock(),
            )
            self.db.add(slot)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(slot)
        logger.info(f"已建立班次：{slot.id} ({slot.title} {format_date(slot.date)})")
        return Slot.model_validate(slot)

    def _check_booked_performers(self, slot: SlotModel):
        """改時間後，已預約此班次的工作者不可與自己其他預約重疊"""
        rows = (
            self.db.query(BookingModel.user_id)
            .filter(BookingModel.slot_id == slot.id, BookingModel.status.in_(ACTIVE_STATUSES))
            .all()
        )
        bookings = BookingService(self.db, self.clock)
        for row in rows:
            overlap = bookings.find_time_conflict(row.user_id, slot, exclude_slot_id=slot.id)
            if overlap:
                raise ConflictError(errors.TIME_CONFLICT, {"conflictSlotId": overlap.slot_id})

    def update_slot(self, user_id: str, slot_id: str, data: UpdateSlotRequest) -> Slot:
        """更新班次（僅建立者可修改；時間欄位沿用原值補齊後重新驗證）"""
        try:
            slot = self.get_slot(slot_id)
            if slot.created_by_id != user_id:
                raise ForbiddenError(errors.NOT_SLOT_CREATOR)

            if data.date is not None or data.start_time is not None or data.end_time is not None:
                date_str = data.date if data.date is not None else format_date(slot.date)
                start_str = data.start_time if data.start_time is not None else slot.start_time.strftime("%H:%M")
                end_str = data.end_time if data.end_time is not None else slot.end_time.strftime("%H:%M")
                slot.date, slot.start_time, slot.end_time = parse_slot_times(date_str, start_str, end_str)
                self._check_booked_performers(slot)

            if data.title is not None:
                slot.title = data.title.strip()
            if data.pay is not None:
                slot.pay = round_pay(data.pay)
            if data.type is not None:
                slot.type = data.type
            if data.hot is not None:
                slot.hot = data.hot
            if data.published is not None:
                slot.published = data.published

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(slot)
        logger.info(f"已更新班次：{slot_id}")
        return Slot.model_validate(slot)

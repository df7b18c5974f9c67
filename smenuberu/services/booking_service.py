"""
預約管理服務

預約狀態流程：
    (無) -> booked -> cancelled
    booked -> checkin_requested -> started -> ended
"""
from typing import Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from smenuberu.core import errors
from smenuberu.core.errors import ConflictError, ForbiddenError, NotFoundError
from smenuberu.core.logger import setup_logger
from smenuberu.core.time_utils import Clock, utc_now
from smenuberu.models.booking import ACTIVE_STATUSES, BookingModel, BookingStatus
from smenuberu.models.slot import SlotModel
from smenuberu.models.user import UserModel

# 設置 logger
logger = setup_logger(__name__)


class BookingService:
    """預約管理服務"""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """
        初始化預約服務

        參數:
            db: 資料庫會話
            clock: 取得目前 UTC 時間的函數（測試時可替換）
        """
        self.db = db
        self.clock = clock

    def _lock_performer(self, performer_id: str) -> UserModel:
        """鎖定工作者資料列，讓同一位工作者的預約請求依序執行"""
        if self.db.get_bind().dialect.name == "sqlite":
            # SQLite 不支援 FOR UPDATE，先寫入一次取得資料庫寫鎖
            self.db.query(UserModel).filter(UserModel.id == performer_id).update(
                {UserModel.yandex_id: UserModel.yandex_id}, synchronize_session=False
            )
        performer = (
            self.db.query(UserModel)
            .filter(UserModel.id == performer_id)
            .with_for_update()
            .first()
        )
        if not performer:
            raise NotFoundError(errors.USER_NOT_FOUND)
        return performer

    def find_time_conflict(
        self, performer_id: str, slot: SlotModel, exclude_slot_id: Optional[str] = None
    ) -> Optional[BookingModel]:
        """找出與 slot 時段重疊的進行中預約（半開區間 [start, end)）"""
        query = (
            self.db.query(BookingModel)
            .join(SlotModel, BookingModel.slot_id == SlotModel.id)
            .filter(
                BookingModel.user_id == performer_id,
                BookingModel.status.in_(ACTIVE_STATUSES),
                SlotModel.start_time < slot.end_time,
                SlotModel.end_time > slot.start_time,
            )
        )
        if exclude_slot_id:
            query = query.filter(BookingModel.slot_id != exclude_slot_id)
        return query.first()

    def get_active_booking(self, performer_id: str, slot_id: str) -> Optional[BookingModel]:
        """取得工作者在該班次的進行中預約"""
        return (
            self.db.query(BookingModel)
            .filter(
                BookingModel.user_id == performer_id,
                BookingModel.slot_id == slot_id,
                BookingModel.status.in_(ACTIVE_STATUSES),
            )
            .first()
        )

    def create_booking(self, performer_id: str, slot_id: str) -> BookingModel:
        """
        建立預約

        參數:
            performer_id: 工作者ID
            slot_id: 班次ID

        返回:
            BookingModel: 狀態為 booked 的預約

        例外:
            NotFoundError: 班次不存在或未公開
            ConflictError: 已預約此班次，或與其他預約時段重疊
        """
        try:
            self._lock_performer(performer_id)

            slot = self.db.query(SlotModel).filter(SlotModel.id == slot_id).first()
            if not slot or not slot.published:
                raise NotFoundError(errors.SLOT_NOT_FOUND)

            if self.get_active_booking(performer_id, slot_id):
                raise ConflictError(errors.ALREADY_BOOKED)

            overlap = self.find_time_conflict(performer_id, slot)
            if overlap:
                raise ConflictError(errors.TIME_CONFLICT, {"conflictSlotId": overlap.slot_id})

            booking = BookingModel(
                user_id=performer_id,
                slot_id=slot_id,
                status=BookingStatus.BOOKED,
                created_at=self.clock(),
            )
            self.db.add(booking)
            self.db.commit()
        except IntegrityError as e:
            # 部分唯一索引擋下的同時重複預約
            self.db.rollback()
            logger.info(f"重複預約被資料庫擋下：user={performer_id} slot={slot_id}")
            raise ConflictError(errors.ALREADY_BOOKED) from e
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(booking)
        logger.info(f"已建立預約：{booking.id} (user={performer_id}, slot={slot_id})")
        return booking

    def cancel_booking(self, performer_id: str, slot_id: str) -> BookingModel:
        """
        取消預約（僅限 booked 狀態）

        例外:
            NotFoundError: 沒有可取消的預約
        """
        try:
            booking = (
                self.db.query(BookingModel)
                .filter(
                    BookingModel.user_id == performer_id,
                    BookingModel.slot_id == slot_id,
                    BookingModel.status == BookingStatus.BOOKED,
                )
                .first()
            )
            if not booking:
                raise NotFoundError(errors.ACTIVE_BOOKING_NOT_FOUND)

            # 條件式更新，避免與報到 / 確認同時發生時覆蓋狀態
            updated = (
                self.db.query(BookingModel)
                .filter(BookingModel.id == booking.id, BookingModel.status == BookingStatus.BOOKED)
                .update({BookingModel.status: BookingStatus.CANCELLED}, synchronize_session=False)
            )
            if updated == 0:
                raise NotFoundError(errors.ACTIVE_BOOKING_NOT_FOUND)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(booking)
        logger.info(f"已取消預約：{booking.id} (user={performer_id}, slot={slot_id})")
        return booking

    def get_booking_state(self, performer_id: str) -> Dict[str, BookingStatus]:
        """取得工作者所有預約的狀態（slot_id -> status，以最新一筆為準）"""
        rows = (
            self.db.query(BookingModel.slot_id, BookingModel.status)
            .filter(BookingModel.user_id == performer_id)
            .order_by(BookingModel.created_at.asc())
            .all()
        )
        state = {}
        for slot_id, status in rows:
            state[slot_id] = status
        return state

    def list_bookings(self, performer_id: str, status: Optional[BookingStatus] = None) -> List[BookingModel]:
        """取得工作者的預約（新到舊，可依狀態篩選）"""
        query = (
            self.db.query(BookingModel)
            .options(joinedload(BookingModel.slot).joinedload(SlotModel.object))
            .filter(BookingModel.user_id == performer_id)
        )
        if status is not None:
            query = query.filter(BookingModel.status == status)
        return query.order_by(BookingModel.created_at.desc()).all()

    def list_my_bookings(self, performer_id: str, status: Optional[BookingStatus] = None) -> List[BookingModel]:
        """「我的班表」：預設只列出 booked 狀態"""
        return self.list_bookings(performer_id, status or BookingStatus.BOOKED)

    def list_slot_bookings(self, senior_id: str, slot_id: str) -> List[BookingModel]:
        """取得班次的預約名單（僅班次建立者可查看）"""
        slot = self.db.query(SlotModel).filter(SlotModel.id == slot_id).first()
        if not slot:
            raise NotFoundError(errors.SLOT_NOT_FOUND)
        if slot.created_by_id != senior_id:
            raise ForbiddenError(errors.NOT_SLOT_CREATOR_VIEW)

        return (
            self.db.query(BookingModel)
            .filter(BookingModel.slot_id == slot_id)
            .order_by(BookingModel.created_at.asc())
            .all()
        )

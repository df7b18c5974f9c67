"""
預約（booking）與定位回報相關資料模型
"""
from enum import Enum
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index, Enum as SQLEnum, text
from sqlalchemy.orm import relationship
from smenuberu.core.database import Base
from smenuberu.core.time_utils import utc_now
from smenuberu.models.user import generate_id
from smenuberu.models.slot import enum_values


class BookingStatus(str, Enum):
    """預約狀態枚舉

    booked -> cancelled
    booked -> checkin_requested -> started -> ended
    booked -> started -> ended
    """
    BOOKED = "booked"
    CANCELLED = "cancelled"
    CHECKIN_REQUESTED = "checkin_requested"
    STARTED = "started"
    ENDED = "ended"


# 仍佔用工作者時段的狀態
ACTIVE_STATUSES = (BookingStatus.BOOKED, BookingStatus.CHECKIN_REQUESTED, BookingStatus.STARTED)

# 部分唯一索引條件：同一使用者對同一班次只能有一筆進行中的預約
_ACTIVE_WHERE = text("status IN ('booked', 'checkin_requested', 'started')")


class BookingModel(Base):
    """預約資料表模型"""
    __tablename__ = "bookings"

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    slot_id = Column(String, ForeignKey("slots.id"), nullable=False, index=True)
    status = Column(
        SQLEnum(BookingStatus, values_callable=enum_values, native_enum=False, length=32),
        nullable=False,
    )

    # 實際到場 / 離場時間（與班次的預定時間不同）
    starts_at = Column(DateTime, nullable=True)
    ends_at = Column(DateTime, nullable=True)

    start_confirmed_at = Column(DateTime, nullable=True)
    start_confirmed_by_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    start_lat = Column(Float, nullable=True)
    start_lng = Column(Float, nullable=True)

    end_confirmed_at = Column(DateTime, nullable=True)
    end_confirmed_by_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    end_lat = Column(Float, nullable=True)
    end_lng = Column(Float, nullable=True)

    __table_args__ = (
        Index("ix_bookings_user_id_status", "user_id", "status"),
        Index(
            "uq_bookings_active_user_slot",
            "user_id",
            "slot_id",
            unique=True,
            postgresql_where=_ACTIVE_WHERE,
            sqlite_where=_ACTIVE_WHERE,
        ),
    )

    # 關聯
    slot = relationship("SlotModel", back_populates="bookings")
    user = relationship("UserModel", foreign_keys=[user_id])


class UserGeoPingModel(Base):
    """定位回報資料表模型（只新增、不修改）"""
    __tablename__ = "user_geo_pings"

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)

    __table_args__ = (Index("ix_user_geo_pings_user_id_created_at", "user_id", "created_at"),)

    user = relationship("UserModel", back_populates="geo_pings")

"""
班次（slot）相關資料模型
"""
from enum import Enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from smenuberu.core.database import Base
from smenuberu.core.time_utils import utc_now
from smenuberu.models.user import generate_id


class TaskType(str, Enum):
    """工作類型枚舉"""
    DRIVER = "driver"
    PICKER = "picker"
    LOADER = "loader"
    COOK = "cook"
    WAITER = "waiter"
    CLEANER = "cleaner"
    OTHER = "other"


def enum_values(enum_cls):
    """讓 SQLEnum 以 value（小寫字串）寫入資料庫"""
    return [member.value for member in enum_cls]


class SlotModel(Base):
    """班次資料表模型"""
    __tablename__ = "slots"

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    object_id = Column(String, ForeignKey("objects.id"), nullable=False, index=True)
    # 建立者即為該班次的主管，負責確認上下班
    created_by_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String, nullable=False)
    date = Column(DateTime, nullable=False)  # 當天 00:00 UTC
    start_time = Column(DateTime, nullable=False)  # 預定開始時間
    end_time = Column(DateTime, nullable=False)  # 預定結束時間
    pay = Column(Integer, nullable=False)
    type = Column(SQLEnum(TaskType, values_callable=enum_values, native_enum=False, length=16), nullable=False)
    hot = Column(Boolean, default=False, nullable=False)
    published = Column(Boolean, default=True, nullable=False)

    # 關聯
    object = relationship("ObjectModel", back_populates="slots")
    bookings = relationship("BookingModel", back_populates="slot")

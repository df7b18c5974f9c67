"""
工作地點（object）相關資料模型
"""
from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from smenuberu.core.database import Base
from smenuberu.core.time_utils import utc_now
from smenuberu.models.user import generate_id

MAX_OBJECT_PHOTOS = 3


class ObjectModel(Base):
    """工作地點資料表模型"""
    __tablename__ = "objects"

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    owner_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=False)
    address = Column(String, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    type = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)

    # 關聯
    photos = relationship(
        "ObjectPhotoModel",
        back_populates="object",
        cascade="all, delete-orphan",
        order_by="ObjectPhotoModel.position",
    )
    slots = relationship("SlotModel", back_populates="object")

    @property
    def photo_urls(self):
        return [photo.url for photo in self.photos]

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class ObjectPhotoModel(Base):
    """工作地點照片資料表模型"""
    __tablename__ = "object_photos"

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    object_id = Column(String, ForeignKey("objects.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String, nullable=False)
    position = Column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("object_id", "position", name="uq_object_photos_object_position"),)

    object = relationship("ObjectModel", back_populates="photos")

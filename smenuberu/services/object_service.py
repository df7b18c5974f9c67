"""
工作地點管理服務
"""
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from smenuberu.core import errors
from smenuberu.core.errors import ConflictError, ForbiddenError, NotFoundError, PreconditionFailedError
from smenuberu.core.logger import setup_logger
from smenuberu.core.time_utils import Clock, utc_now
from smenuberu.models.schemas import CreateObjectRequest, UpdateObjectRequest, WorkObject
from smenuberu.models.slot import SlotModel
from smenuberu.models.venue import ObjectModel, ObjectPhotoModel
from smenuberu.services.geocoding_service import GeocodingService

# 設置 logger
logger = setup_logger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    """去除前後空白，空字串視為 None"""
    if value is None:
        return None
    value = value.strip()
    return value or None


def to_work_object(model: ObjectModel) -> WorkObject:
    """資料庫模型轉為 API 模型（照片只回傳 URL）"""
    return WorkObject(
        id=model.id,
        owner_id=model.owner_id,
        name=model.name,
        city=model.city,
        address=model.address,
        lat=model.lat,
        lng=model.lng,
        type=model.type,
        logo_url=model.logo_url,
        photos=model.photo_urls,
        created_at=model.created_at,
    )


class ObjectService:
    """工作地點管理服務"""

    def __init__(self, db: Session, clock: Clock = utc_now, geocoding_service: Optional[GeocodingService] = None):
        """
        初始化工作地點服務

        參數:
            db: 資料庫會話
            clock: 取得目前 UTC 時間的函數
            geocoding_service: 地理編碼服務（可選，未提供座標時用地址查詢）
        """
        self.db = db
        self.clock = clock
        self.geocoding_service = geocoding_service

    def _get_model(self, object_id: str) -> ObjectModel:
        model = self.db.query(ObjectModel).filter(ObjectModel.id == object_id).first()
        if not model:
            raise NotFoundError(errors.NOT_FOUND)
        return model

    @staticmethod
    def _check_owner(model: ObjectModel, user_id: str):
        # 沒有擁有者的舊資料任何登入者都可修改
        if model.owner_id is not None and model.owner_id != user_id:
            raise ForbiddenError(errors.NOT_OBJECT_OWNER)

    @staticmethod
    def _check_coordinate_pair(lat, lng):
        if (lat is None) != (lng is None):
            raise PreconditionFailedError(errors.INVALID_COORDINATE_PAIR)

    def _replace_photos(self, model: ObjectModel, urls: Optional[List[str]]):
        """以新的列表取代照片（None 或空列表代表清空）"""
        model.photos.clear()
        # 先刪除舊照片，避免 (object_id, position) 唯一鍵衝突
        self.db.flush()
        for position, url in enumerate(urls or []):
            model.photos.append(ObjectPhotoModel(url=url, position=position, created_at=self.clock()))

    def list_objects(self) -> List[WorkObject]:
        """取得所有工作地點（依城市、名稱排序）"""
        rows = self.db.query(ObjectModel).order_by(ObjectModel.city.asc(), ObjectModel.name.asc()).all()
        return [to_work_object(row) for row in rows]

    def get_object(self, object_id: str) -> WorkObject:
        """取得單一工作地點"""
        return to_work_object(self._get_model(object_id))

    def get_object_coordinates(self, object_id: str) -> Optional[Tuple[float, float]]:
        """取得工作地點座標；沒有座標時回傳 None"""
        model = self._get_model(object_id)
        if not model.has_coordinates:
            return None
        return (model.lat, model.lng)

    def create_object(self, owner_id: str, data: CreateObjectRequest) -> WorkObject:
        """
        建立工作地點

        參數:
            owner_id: 建立者（成為擁有者）
            data: 工作地點資料

        返回:
            WorkObject: 建立的工作地點
        """
        self._check_coordinate_pair(data.lat, data.lng)

        lat, lng = data.lat, data.lng
        address = _clean(data.address)
        if lat is None and address and self.geocoding_service:
            coordinates = self.geocoding_service.get_coordinates(f"{data.city.strip()}, {address}")
            if coordinates:
                lat, lng = coordinates
            else:
                logger.warning(f"無法取得工作地點座標：{address}")

        try:
            model = ObjectModel(
                owner_id=owner_id,
                name=data.name.strip(),
                city=data.city.strip(),
                address=address,
                lat=lat,
                lng=lng,
                type=_clean(data.type),
                logo_url=data.logo_url,
                created_at=self.clock(),
            )
            self.db.add(model)
            self._replace_photos(model, data.photos)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(model)
        logger.info(f"已建立工作地點：{model.id} ({model.name})")
        return to_work_object(model)

    def update_object(self, user_id: str, object_id: str, data: UpdateObjectRequest) -> WorkObject:
        """
        更新工作地點（只更新有傳入的欄位）

        photos：傳入列表代表取代，傳入 null 代表清空，未傳入則不變。
        """
        fields = data.model_fields_set
        if "lat" in fields or "lng" in fields:
            self._check_coordinate_pair(data.lat, data.lng)

        try:
            model = self._get_model(object_id)
            self._check_owner(model, user_id)

            if data.name is not None:
                model.name = data.name.strip()
            if data.city is not None:
                model.city = data.city.strip()
            if "address" in fields:
                model.address = _clean(data.address)
            if "type" in fields:
                model.type = _clean(data.type)
            if "logo_url" in fields:
                model.logo_url = data.logo_url
            if "lat" in fields or "lng" in fields:
                model.lat, model.lng = data.lat, data.lng
            if "photos" in fields:
                self._replace_photos(model, data.photos)

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(model)
        logger.info(f"已更新工作地點：{object_id}")
        return to_work_object(model)

    def delete_object(self, user_id: str, object_id: str):
        """
        刪除工作地點（照片一併刪除）

        例外:
            ConflictError: 仍有班次使用此工作地點
        """
        try:
            model = self._get_model(object_id)
            self._check_owner(model, user_id)

            slots_count = self.db.query(SlotModel).filter(SlotModel.object_id == object_id).count()
            if slots_count > 0:
                raise ConflictError(errors.OBJECT_HAS_RELATED_RECORDS, {"related": {"slots": slots_count}})

            self.db.delete(model)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        logger.info(f"已刪除工作地點：{object_id}")

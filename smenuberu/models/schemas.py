"""
Pydantic 資料模型（用於 API）

對外 JSON 欄位一律使用 camelCase。
"""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from smenuberu.models.slot import TaskType
from smenuberu.models.booking import BookingStatus
from smenuberu.models.venue import MAX_OBJECT_PHOTOS


class ApiModel(BaseModel):
    """API 模型基底：camelCase 別名，也接受 snake_case 欄位名稱"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ValueError("must be an http(s) URL")
    return value


# ---- 使用者 ----

class User(ApiModel):
    """使用者資料模型"""
    id: str
    display_name: Optional[str] = None
    yandex_login: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime


class MeResponse(ApiModel):
    ok: bool = True
    user: Optional[User] = None


class QrTokenResponse(ApiModel):
    ok: bool = True
    qr_token: str


# ---- 工作地點 ----

class ObjectBase(ApiModel):
    address: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90, description="緯度")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="經度")
    type: Optional[str] = None
    logo_url: Optional[str] = None
    photos: Optional[List[str]] = Field(None, max_length=MAX_OBJECT_PHOTOS, description="照片 URL（最多 3 張）")

    @field_validator("logo_url")
    @classmethod
    def _validate_logo_url(cls, value):
        return _check_url(value)

    @field_validator("photos")
    @classmethod
    def _validate_photos(cls, value):
        if value is None:
            return None
        return [_check_url(url) for url in value]


class CreateObjectRequest(ObjectBase):
    """建立工作地點請求"""
    name: str = Field(..., min_length=1, description="名稱")
    city: str = Field(..., min_length=1, description="城市")


class UpdateObjectRequest(ObjectBase):
    """更新工作地點請求（只更新有傳入的欄位；photos 傳 null 代表清空）"""
    name: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1)


class WorkObject(ApiModel):
    """工作地點資料模型"""
    id: str
    owner_id: Optional[str] = None
    name: str
    city: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    type: Optional[str] = None
    logo_url: Optional[str] = None
    photos: List[str] = []
    created_at: datetime


# ---- 班次 ----

class CreateSlotRequest(ApiModel):
    """建立班次請求"""
    object_id: str = Field(..., min_length=1, description="Object.id")
    title: str = Field(..., min_length=1)
    date: str = Field(..., description="YYYY-MM-DD")
    start_time: str = Field(..., description="HH:MM（UTC）")
    end_time: str = Field(..., description="HH:MM（UTC）")
    pay: float = Field(..., description="薪資（整數貨幣單位，會四捨五入）")
    type: TaskType
    hot: bool = False
    published: bool = True


class UpdateSlotRequest(ApiModel):
    """更新班次請求（僅建立者可修改）"""
    title: Optional[str] = Field(None, min_length=1)
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    pay: Optional[float] = None
    type: Optional[TaskType] = None
    hot: Optional[bool] = None
    published: Optional[bool] = None


class Slot(ApiModel):
    """班次完整資料"""
    id: str
    object_id: str
    created_by_id: Optional[str] = None
    title: str
    date: datetime
    start_time: datetime
    end_time: datetime
    pay: int
    type: TaskType
    hot: bool
    published: bool
    created_at: datetime


class SlotCard(ApiModel):
    """班次列表卡片（前端顯示用）"""
    id: str
    date: str
    title: str
    company: str
    city: str
    address: str
    time: str
    pay: int
    hot: bool
    type: TaskType
    tags: List[str] = []


# ---- 預約 ----

class SlotIdRequest(ApiModel):
    slot_id: str


class BookingObject(ApiModel):
    id: str
    name: str
    city: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class BookingSlot(ApiModel):
    id: str
    title: str
    date: datetime
    start_time: datetime
    end_time: datetime
    pay: int
    type: TaskType
    object: Optional[BookingObject] = None


class Booking(ApiModel):
    """預約資料模型"""
    id: str
    user_id: str
    slot_id: str
    status: BookingStatus
    created_at: datetime
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    start_confirmed_at: Optional[datetime] = None
    start_confirmed_by_id: Optional[str] = None
    start_lat: Optional[float] = None
    start_lng: Optional[float] = None
    end_confirmed_at: Optional[datetime] = None
    end_confirmed_by_id: Optional[str] = None
    end_lat: Optional[float] = None
    end_lng: Optional[float] = None
    slot: Optional[BookingSlot] = None


class BookingResponse(ApiModel):
    ok: bool = True
    booking: Booking


class BookingListResponse(ApiModel):
    ok: bool = True
    bookings: List[Booking]


class BookingStateResponse(ApiModel):
    ok: bool = True
    state: Dict[str, BookingStatus]


# ---- 班次確認 ----

class CheckinRequest(ApiModel):
    """工作者到場報到請求"""
    lat: Optional[float] = None
    lng: Optional[float] = None


class ConfirmShiftRequest(ApiModel):
    """主管掃描工作者 QR 後確認"""
    qr_token: str = Field(..., min_length=1)


# ---- 定位 ----

class GeoPingRequest(ApiModel):
    lat: float
    lng: float


class GeoPing(ApiModel):
    id: str
    lat: float
    lng: float
    created_at: datetime


class GeoSuggestItem(ApiModel):
    title: str
    subtitle: str
    value: str


class GeoSuggestResponse(ApiModel):
    ok: bool = True
    items: List[GeoSuggestItem]


# ---- 上傳 ----

class UploadRequest(ApiModel):
    object_id: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)


class UploadResponse(ApiModel):
    ok: bool = True
    upload_url: str
    public_url: str
    key: str


# ---- 儀表板 ----

class DashboardStats(ApiModel):
    objects: int
    active_shifts: int
    applications: int

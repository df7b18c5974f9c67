"""
定位回報服務

記錄工作者裝置回報的座標，並提供「最近 N 秒內的最新定位」查詢，
作為班次確認時的到場證明。
"""
import math
from datetime import timedelta
from typing import Optional
from sqlalchemy.orm import Session

from smenuberu.core.errors import PreconditionFailedError, INVALID_LAT_LNG
from smenuberu.core.logger import setup_logger
from smenuberu.core.time_utils import Clock, utc_now
from smenuberu.models.booking import UserGeoPingModel

# 設置 logger
logger = setup_logger(__name__)

EARTH_RADIUS_M = 6371000


def haversine_meters(a_lat: float, a_lng: float, b_lat: float, b_lng: float) -> float:
    """
    計算兩個座標之間的大圓距離（公尺）

    參數:
        a_lat, a_lng: 第一個點的緯度、經度
        b_lat, b_lng: 第二個點的緯度、經度

    返回:
        float: 距離（公尺）
    """
    d_lat = math.radians(b_lat - a_lat)
    d_lng = math.radians(b_lng - a_lng)
    lat1 = math.radians(a_lat)
    lat2 = math.radians(b_lat)

    x = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(x))


def is_valid_coordinate(lat, lng) -> bool:
    """緯度經度是否為有限數值且在合法範圍內"""
    if lat is None or lng is None:
        return False
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


class GeoPingService:
    """定位回報服務"""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """
        初始化定位回報服務

        參數:
            db: 資料庫會話
            clock: 取得目前 UTC 時間的函數（測試時可替換）
        """
        self.db = db
        self.clock = clock

    def add_ping(self, user_id: str, lat: float, lng: float) -> UserGeoPingModel:
        """新增一筆定位（不 commit，由呼叫端決定交易範圍）"""
        if not is_valid_coordinate(lat, lng):
            raise PreconditionFailedError(INVALID_LAT_LNG)

        ping = UserGeoPingModel(
            user_id=user_id,
            lat=float(lat),
            lng=float(lng),
            created_at=self.clock(),
        )
        self.db.add(ping)
        self.db.flush()
        return ping

    def record_ping(self, user_id: str, lat: float, lng: float) -> UserGeoPingModel:
        """
        記錄定位回報

        參數:
            user_id: 使用者ID
            lat: 緯度
            lng: 經度

        返回:
            UserGeoPingModel: 新增的定位紀錄
        """
        try:
            ping = self.add_ping(user_id, lat, lng)
            self.db.commit()
            self.db.refresh(ping)
            logger.debug(f"已記錄定位：user={user_id} ({ping.lat}, {ping.lng})")
            return ping
        except Exception as e:
            self.db.rollback()
            raise e

    def latest_fresh_ping(self, user_id: str, max_age_seconds: int) -> Optional[UserGeoPingModel]:
        """
        取得使用者在 max_age_seconds 秒內的最新定位

        返回:
            Optional[UserGeoPingModel]: 沒有足夠新的定位時回傳 None
        """
        threshold = self.clock() - timedelta(seconds=max_age_seconds)
        return (
            self.db.query(UserGeoPingModel)
            .filter(
                UserGeoPingModel.user_id == user_id,
                UserGeoPingModel.created_at >= threshold,
            )
            .order_by(UserGeoPingModel.created_at.desc())
            .first()
        )

"""
Yandex 地理服務（Geocoder 與 Geosuggest）
"""
from typing import Dict, List, Optional, Tuple
import requests

from smenuberu import config
from smenuberu.core.errors import UpstreamError
from smenuberu.core.logger import setup_logger

# 設置 logger
logger = setup_logger(__name__)

GEOCODER_URL = "https://geocode-maps.yandex.ru/1.x/"
SUGGEST_URL = "https://suggest-maps.yandex.ru/v1/suggest"
SUGGEST_RESULTS = 5
REQUEST_TIMEOUT = 10

SUGGEST_UPSTREAM_ERROR = "Suggest upstream error"


def _text(value) -> str:
    """Geosuggest 的 title/subtitle 可能是 {"text": ...} 或字串"""
    if isinstance(value, dict):
        value = value.get("text")
    return str(value or "").strip()


class GeocodingService:
    """Yandex 地理服務"""

    def __init__(self, geocoder_api_key: Optional[str] = None, suggest_api_key: Optional[str] = None):
        """
        初始化地理服務

        參數:
            geocoder_api_key: Geocoder API Key（可選，未提供時使用配置中的預設值）
            suggest_api_key: Geosuggest API Key（可選，未提供時使用配置中的預設值）
        """
        self.geocoder_api_key = geocoder_api_key or config.YANDEX_GEOCODER_API_KEY
        self.suggest_api_key = suggest_api_key or config.YANDEX_GEOSUGGEST_API_KEY

    def get_coordinates(self, address: str) -> Optional[Tuple[float, float]]:
        """
        根據地址取得經緯度座標

        參數:
            address: 地址字串

        返回:
            Optional[Tuple[float, float]]: (緯度, 經度) 或 None（如果失敗）
        """
        if not self.geocoder_api_key:
            logger.warning("未設定 YANDEX_GEOCODER_API_KEY，無法取得座標")
            return None
        if not address or not address.strip():
            return None

        try:
            params = {
                "apikey": self.geocoder_api_key,
                "geocode": address,
                "format": "json",
                "lang": "ru_RU",
                "results": 1,
            }

            response = requests.get(GEOCODER_URL, params=params, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()

            data = response.json()
            members = data["response"]["GeoObjectCollection"]["featureMember"]
            if not members:
                logger.warning(f"Geocoder 找不到地址：{address}")
                return None

            # Yandex 的座標順序是「經度 緯度」
            lng_str, lat_str = members[0]["GeoObject"]["Point"]["pos"].split()
            latitude, longitude = float(lat_str), float(lng_str)
            logger.debug(f"成功取得座標：{address} -> ({latitude}, {longitude})")
            return (latitude, longitude)

        except requests.exceptions.RequestException as e:
            logger.error(f"Geocoder API 請求錯誤：{e}", exc_info=True)
            return None
        except (KeyError, ValueError, IndexError, TypeError) as e:
            logger.error(f"解析 Geocoder 回應錯誤：{e}", exc_info=True)
            return None

    def suggest(self, query: str) -> List[Dict[str, str]]:
        """
        地址自動完成

        參數:
            query: 使用者輸入的文字

        返回:
            List[Dict[str, str]]: [{"title", "subtitle", "value"}]；未設定 API Key 時為空列表

        例外:
            UpstreamError: Geosuggest 回應錯誤
        """
        if not self.suggest_api_key:
            return []

        params = {
            "apikey": self.suggest_api_key,
            "text": query,
            "lang": "ru_RU",
            "results": SUGGEST_RESULTS,
        }
        try:
            response = requests.get(SUGGEST_URL, params=params, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Geosuggest API 請求錯誤：{e}")
            raise UpstreamError(SUGGEST_UPSTREAM_ERROR) from e

        try:
            data = response.json()
        except ValueError:
            logger.warning("Geosuggest 回應不是 JSON")
            data = None

        results = data.get("results") if isinstance(data, dict) else None
        items = []
        for raw in results if isinstance(results, list) else []:
            if not isinstance(raw, dict):
                continue
            title = _text(raw.get("title"))
            address = raw.get("address")
            if isinstance(address, dict):
                value = _text(address.get("formatted_address"))
            else:
                value = str(address or "").strip()
            value = value or title
            if title or value:
                items.append({"title": title, "subtitle": _text(raw.get("subtitle")), "value": value})
        return items

"""
地理相關 API 路由
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Query

from smenuberu.api.dependencies import CurrentUserId, get_geo_ping_service, get_geocoding_service
from smenuberu.models.schemas import GeoPing, GeoPingRequest, GeoSuggestItem, GeoSuggestResponse
from smenuberu.services.geo_ping_service import GeoPingService
from smenuberu.services.geocoding_service import GeocodingService

router = APIRouter(prefix="/geo", tags=["地理"])


@router.get("/suggest", response_model=GeoSuggestResponse)
def suggest(
    geocoding_service: Annotated[GeocodingService, Depends(get_geocoding_service)],
    q: str = Query(..., min_length=1),
):
    """地址自動完成"""
    items = geocoding_service.suggest(q)
    return GeoSuggestResponse(items=[GeoSuggestItem(**item) for item in items])


@router.post("/ping", response_model=GeoPing)
def ping(
    data: GeoPingRequest,
    user_id: CurrentUserId,
    geo_ping_service: Annotated[GeoPingService, Depends(get_geo_ping_service)],
):
    """回報目前位置"""
    return GeoPing.model_validate(geo_ping_service.record_ping(user_id, data.lat, data.lng))

"""
儀表板 API 路由
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from smenuberu.api.dependencies import CurrentUserId, get_dashboard_service
from smenuberu.models.schemas import DashboardStats
from smenuberu.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["儀表板"])


@router.get("/stats", response_model=DashboardStats)
def get_stats(
    user_id: CurrentUserId,
    dashboard_service: Annotated[DashboardService, Depends(get_dashboard_service)],
):
    """主管儀表板數字"""
    return dashboard_service.get_stats(user_id)

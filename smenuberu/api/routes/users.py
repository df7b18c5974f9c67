"""
使用者相關 API 路由（工作者個人 QR）
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from smenuberu.api.dependencies import CurrentUserId, get_auth_service
from smenuberu.models.schemas import QrTokenResponse
from smenuberu.services.auth_service import AuthService

router = APIRouter(prefix="/users", tags=["使用者"])


@router.get("/me/qr", response_model=QrTokenResponse)
def get_my_qr(
    user_id: CurrentUserId,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """取得自己的 QR token（主管掃描用）"""
    return QrTokenResponse(qr_token=auth_service.get_or_create_qr_token(user_id))


@router.post("/me/qr/rotate", response_model=QrTokenResponse)
def rotate_my_qr(
    user_id: CurrentUserId,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """重新產生 QR token，舊的立即失效"""
    return QrTokenResponse(qr_token=auth_service.rotate_qr_token(user_id))

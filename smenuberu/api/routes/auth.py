"""
認證相關 API 路由（Yandex OAuth + cookie session）
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from smenuberu import config
from smenuberu.api.dependencies import get_auth_service, get_session_token
from smenuberu.models.schemas import MeResponse, User
from smenuberu.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["認證"])


@router.get("/yandex/start")
def yandex_start(auth_service: Annotated[AuthService, Depends(get_auth_service)]):
    """導向 Yandex 授權頁"""
    url, state_token = auth_service.build_authorize_url()
    response = RedirectResponse(url, status_code=302)
    response.set_cookie(
        config.OAUTH_STATE_COOKIE_NAME,
        state_token,
        max_age=config.OAUTH_STATE_TTL_MINUTES * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
    )
    return response


@router.get("/yandex/callback")
def yandex_callback(
    request: Request,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
):
    """Yandex 授權回呼：建立 session 後導回前端"""
    _, session_token, expires_at = auth_service.complete_login(
        code or "",
        state or "",
        request.cookies.get(config.OAUTH_STATE_COOKIE_NAME),
    )

    response = RedirectResponse(f"{config.WEB_URL}/me", status_code=302)
    response.set_cookie(
        config.AUTH_COOKIE_NAME,
        session_token,
        max_age=config.SESSION_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
    )
    # state 只用一次
    response.delete_cookie(config.OAUTH_STATE_COOKIE_NAME, path="/")
    return response


@router.get("/me", response_model=MeResponse)
def get_me(
    session_token: Annotated[Optional[str], Depends(get_session_token)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """取得目前登入的使用者（未登入時 user 為 null）"""
    user = auth_service.get_session_user(session_token)
    return MeResponse(user=User.model_validate(user) if user else None)


@router.post("/logout")
def logout(
    response: Response,
    session_token: Annotated[Optional[str], Depends(get_session_token)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """登出（沒有 session 也回傳成功）"""
    auth_service.logout(session_token)
    response.delete_cookie(config.AUTH_COOKIE_NAME, path="/")
    return {"ok": True}

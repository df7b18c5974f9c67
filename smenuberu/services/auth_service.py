"""
認證服務

Yandex OAuth 登入、session 管理與工作者個人 QR token。
"""
from datetime import datetime, timedelta
from typing import Optional, Tuple
from urllib.parse import urlencode
import requests
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smenuberu import config
from smenuberu.core import errors
from smenuberu.core.errors import (
    ConfigurationError,
    InternalError,
    NotFoundError,
    PreconditionFailedError,
    UpstreamError,
)
from smenuberu.core.logger import setup_logger
from smenuberu.core.security import (
    create_state_token,
    decode_state_token,
    hash_session_token,
    random_qr_token,
    random_session_token,
    random_state,
)
from smenuberu.core.time_utils import Clock, utc_now
from smenuberu.models.user import OAuthStateModel, SessionModel, UserModel

# 設置 logger
logger = setup_logger(__name__)

REQUEST_TIMEOUT = 10
QR_TOKEN_ATTEMPTS = 3


def avatar_url_from_yandex(default_avatar_id: Optional[str]) -> Optional[str]:
    """Yandex 預設頭像網址"""
    if not default_avatar_id:
        return None
    return f"https://avatars.yandex.net/get-yapic/{default_avatar_id}/islands-200"


class AuthService:
    """認證服務"""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """
        初始化認證服務

        參數:
            db: 資料庫會話
            clock: 取得目前 UTC 時間的函數（測試時可替換）
        """
        self.db = db
        self.clock = clock

    # ---- OAuth ----

    @staticmethod
    def _require_client_credentials() -> Tuple[str, str]:
        if not config.YANDEX_CLIENT_ID or not config.YANDEX_CLIENT_SECRET:
            raise ConfigurationError("YANDEX_CLIENT_ID/SECRET not set")
        return config.YANDEX_CLIENT_ID, config.YANDEX_CLIENT_SECRET

    @staticmethod
    def redirect_uri() -> str:
        return f"{config.API_BASE_URL}/auth/yandex/callback"

    def build_authorize_url(self) -> Tuple[str, str]:
        """
        開始 Yandex 登入

        state 同時存進資料庫與簽章 cookie，回呼時優先以資料庫驗證。

        返回:
            Tuple[str, str]: (授權網址, 要寫入 cookie 的簽章 state)
        """
        client_id, _ = self._require_client_credentials()
        now = self.clock()
        state = random_state()

        try:
            # 順便清掉過期的 state
            self.db.query(OAuthStateModel).filter(OAuthStateModel.expires_at <= now).delete(
                synchronize_session=False
            )
            self.db.add(OAuthStateModel(
                state=state,
                created_at=now,
                expires_at=now + timedelta(minutes=config.OAUTH_STATE_TTL_MINUTES),
            ))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": self.redirect_uri(),
            "state": state,
        }
        url = f"{config.YANDEX_AUTHORIZE_URL}?{urlencode(params)}"
        return url, create_state_token(state, now)

    def verify_state(self, state: str, state_cookie: Optional[str]) -> bool:
        """
        驗證 OAuth state（一次性）

        先查資料庫（使用後刪除），查不到時再比對簽章 cookie。
        """
        if not state:
            return False

        now = self.clock()
        try:
            row = self.db.query(OAuthStateModel).filter(OAuthStateModel.state == state).first()
            if row:
                valid = row.expires_at > now
                self.db.delete(row)
                self.db.commit()
                return valid
        except Exception as e:
            self.db.rollback()
            raise e

        if not state_cookie:
            return False
        return decode_state_token(state_cookie) == state

    def exchange_code_for_token(self, code: str) -> str:
        """以授權碼換取 access token"""
        client_id, client_secret = self._require_client_credentials()
        try:
            response = requests.post(
                config.YANDEX_TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "redirect_uri": self.redirect_uri(),
                },
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            access_token = response.json().get("access_token")
        except requests.exceptions.RequestException as e:
            logger.error(f"Yandex token 交換失敗：{e}", exc_info=True)
            raise UpstreamError("Yandex token exchange failed") from e
        except ValueError as e:
            logger.error(f"解析 Yandex token 回應錯誤：{e}", exc_info=True)
            raise UpstreamError("Yandex token exchange failed") from e

        if not access_token:
            raise UpstreamError("Yandex token exchange failed")
        return access_token

    def fetch_user_info(self, access_token: str) -> dict:
        """取得 Yandex 使用者資訊"""
        try:
            response = requests.get(
                config.YANDEX_USERINFO_URL,
                params={"format": "json"},
                headers={"Authorization": f"OAuth {access_token}"},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            info = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"取得 Yandex 使用者資訊失敗：{e}", exc_info=True)
            raise UpstreamError("Yandex userinfo failed") from e
        except ValueError as e:
            logger.error(f"解析 Yandex 使用者資訊錯誤：{e}", exc_info=True)
            raise UpstreamError("Yandex userinfo failed") from e

        if not isinstance(info, dict) or not info.get("id"):
            raise UpstreamError("Yandex userinfo failed")
        return info

    def upsert_yandex_user(self, info: dict) -> UserModel:
        """依 yandex_id 建立或更新使用者，並補上 QR token"""
        yandex_id = str(info["id"])
        yandex_login = str(info["login"]) if info.get("login") else None
        display_name = info.get("display_name") or info.get("real_name") or yandex_login
        emails = info.get("emails") if isinstance(info.get("emails"), list) else []
        email = info.get("default_email") or (emails[0] if emails else None)

        try:
            user = self.db.query(UserModel).filter(UserModel.yandex_id == yandex_id).first()
            if user is None:
                user = UserModel(yandex_id=yandex_id, created_at=self.clock())
                self.db.add(user)
                logger.info(f"新使用者登入：yandex_id={yandex_id}")

            user.yandex_login = yandex_login
            user.display_name = str(display_name) if display_name else None
            user.email = str(email) if email else None
            user.avatar_url = avatar_url_from_yandex(info.get("default_avatar_id"))
            if not user.performer_qr_token:
                user.performer_qr_token = random_qr_token()

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        self.db.refresh(user)
        return user

    def create_session(self, user_id: str) -> Tuple[str, datetime]:
        """
        建立 session

        返回:
            Tuple[str, datetime]: (原始 session token, 到期時間)；資料庫只保存雜湊值
        """
        now = self.clock()
        raw_token = random_session_token()
        expires_at = now + timedelta(days=config.SESSION_DAYS)

        try:
            self.db.add(SessionModel(
                user_id=user_id,
                token_hash=hash_session_token(raw_token),
                created_at=now,
                expires_at=expires_at,
            ))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

        return raw_token, expires_at

    def complete_login(self, code: str, state: str, state_cookie: Optional[str]) -> Tuple[UserModel, str, datetime]:
        """
        完成 Yandex 登入：驗證 state -> 換 token -> 取使用者資訊 -> 建立 session

        返回:
            Tuple[UserModel, str, datetime]: (使用者, 原始 session token, 到期時間)
        """
        self._require_client_credentials()
        if not code or not state:
            raise PreconditionFailedError(errors.MISSING_CODE_STATE)
        if not self.verify_state(state, state_cookie):
            raise PreconditionFailedError(errors.INVALID_STATE)

        access_token = self.exchange_code_for_token(code)
        info = self.fetch_user_info(access_token)
        user = self.upsert_yandex_user(info)
        raw_token, expires_at = self.create_session(user.id)
        logger.info(f"使用者登入成功：{user.id}")
        return user, raw_token, expires_at

    # ---- Session ----

    def _get_valid_session(self, session_token: Optional[str]) -> Optional[SessionModel]:
        """取得有效 session；過期的 session 會在讀取時刪除"""
        if not session_token:
            return None

        token_hash = hash_session_token(str(session_token))
        session = self.db.query(SessionModel).filter(SessionModel.token_hash == token_hash).first()
        if not session:
            return None

        if session.expires_at <= self.clock():
            try:
                # 重複刪除無害（其他請求可能已刪除）
                self.db.query(SessionModel).filter(SessionModel.token_hash == token_hash).delete(
                    synchronize_session=False
                )
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.warning(f"刪除過期 session 失敗：{e}", exc_info=True)
            return None

        return session

    def resolve_session_user_id(self, session_token: Optional[str]) -> Optional[str]:
        """由 session token 取得使用者ID"""
        session = self._get_valid_session(session_token)
        return session.user_id if session else None

    def get_session_user(self, session_token: Optional[str]) -> Optional[UserModel]:
        """由 session token 取得使用者"""
        session = self._get_valid_session(session_token)
        return session.user if session else None

    def logout(self, session_token: Optional[str]) -> None:
        """登出：刪除 session（不存在也視為成功）"""
        if not session_token:
            return
        try:
            self.db.query(SessionModel).filter(
                SessionModel.token_hash == hash_session_token(str(session_token))
            ).delete(synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise e

    # ---- QR token ----

    def _set_new_qr_token(self, user_id: str) -> str:
        for attempt in range(QR_TOKEN_ATTEMPTS):
            user = self.db.query(UserModel).filter(UserModel.id == user_id).first()
            if not user:
                raise NotFoundError(errors.USER_NOT_FOUND)
            user.performer_qr_token = random_qr_token()
            try:
                self.db.commit()
                return user.performer_qr_token
            except IntegrityError:
                # token 撞號，重新產生
                self.db.rollback()
                logger.warning(f"QR token 重複，重新產生（第 {attempt + 1} 次）")
            except Exception as e:
                self.db.rollback()
                raise e
        raise InternalError(errors.QR_TOKEN_ALLOCATION_FAILED)

    def get_or_create_qr_token(self, user_id: str) -> str:
        """取得工作者 QR token，尚未產生時補上"""
        user = self.db.query(UserModel).filter(UserModel.id == user_id).first()
        if not user:
            raise NotFoundError(errors.USER_NOT_FOUND)
        if user.performer_qr_token:
            return user.performer_qr_token
        return self._set_new_qr_token(user_id)

    def rotate_qr_token(self, user_id: str) -> str:
        """重新產生 QR token（舊的立即失效）"""
        token = self._set_new_qr_token(user_id)
        logger.info(f"使用者已更換 QR token：{user_id}")
        return token

    def resolve_user_by_qr_token(self, qr_token: str) -> Optional[UserModel]:
        """由 QR token 找出使用者"""
        if not qr_token:
            return None
        return self.db.query(UserModel).filter(UserModel.performer_qr_token == qr_token).first()

"""
安全認證相關功能
"""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from smenuberu.config import SECRET_KEY, JWT_ALGORITHM, OAUTH_STATE_TTL_MINUTES


def random_session_token() -> str:
    """產生 session token（64 個十六進位字元）"""
    return secrets.token_hex(32)


def random_state() -> str:
    """產生 OAuth state（32 個十六進位字元）"""
    return secrets.token_hex(16)


def random_qr_token() -> str:
    """產生工作者個人 QR token"""
    return secrets.token_urlsafe(24)


def hash_session_token(token: str) -> str:
    """取得 session token 的雜湊值（以 SECRET_KEY 作為鹽）"""
    return hmac.new(SECRET_KEY.encode("utf-8"), token.encode("utf-8"), hashlib.sha256).hexdigest()


def create_state_token(state: str, now: datetime, expires_delta: Optional[timedelta] = None) -> str:
    """將 OAuth state 簽章後放入 cookie"""
    expire = now + (expires_delta or timedelta(minutes=OAUTH_STATE_TTL_MINUTES))
    return jwt.encode({"state": state, "exp": expire}, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_state_token(token: str) -> Optional[str]:
    """解碼 state cookie，簽章錯誤或過期時回傳 None"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    state = payload.get("state")
    return state if isinstance(state, str) else None

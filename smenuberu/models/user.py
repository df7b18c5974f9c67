"""
使用者與登入 session 相關資料模型
"""
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from smenuberu.core.database import Base
from smenuberu.core.time_utils import utc_now


def generate_id() -> str:
    return str(uuid.uuid4())


class UserModel(Base):
    """使用者資料表模型"""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    display_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    yandex_id = Column(String, unique=True, nullable=True, index=True)
    yandex_login = Column(String, nullable=True)
    # 工作者個人 QR token，由班次主管掃描以確認本人到場
    performer_qr_token = Column(String, unique=True, nullable=True, index=True)

    sessions = relationship("SessionModel", back_populates="user", cascade="all, delete-orphan")
    geo_pings = relationship("UserGeoPingModel", back_populates="user", cascade="all, delete-orphan")


class SessionModel(Base):
    """登入 session 資料表模型（只保存 token 雜湊值）"""
    __tablename__ = "sessions"

    id = Column(String, primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String, unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    user = relationship("UserModel", back_populates="sessions")


class OAuthStateModel(Base):
    """OAuth state 資料表模型（防偽 token 的持久化管道）"""
    __tablename__ = "oauth_states"

    state = Column(String, primary_key=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (Index("ix_oauth_states_expires_at", "expires_at"),)

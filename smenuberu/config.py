"""
應用程式配置設定
"""
import os

# 伺服器設定
API_BASE_URL = os.getenv("API_BASE_URL", "https://smenuberu-api.onrender.com")
WEB_URL = os.getenv("WEB_URL", "http://localhost:3000")
FASTAPI_PORT = int(os.getenv("PORT", os.getenv("FASTAPI_PORT", "8880")))
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "false").lower() == "true"

# 資料庫設定
POSTGRES_USER = os.getenv("POSTGRES_USER", "smenuberu")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "smenuberu")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
POSTGRES_DB = os.getenv("POSTGRES_DB", "smenuberu")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"
)

# 簽章金鑰（OAuth state cookie 與 session token 雜湊共用）
SECRET_KEY = os.getenv("SECRET_KEY", "change-this-secret-in-production")
JWT_ALGORITHM = "HS256"

# Session cookie
AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "smenuberu_session")
SESSION_DAYS = int(os.getenv("SESSION_DAYS", "30"))
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "true").lower() == "true"

# Yandex OAuth
YANDEX_CLIENT_ID = os.getenv("YANDEX_CLIENT_ID", "")
YANDEX_CLIENT_SECRET = os.getenv("YANDEX_CLIENT_SECRET", "")
YANDEX_AUTHORIZE_URL = "https://oauth.yandex.com/authorize"
YANDEX_TOKEN_URL = "https://oauth.yandex.com/token"
YANDEX_USERINFO_URL = "https://login.yandex.ru/info"
OAUTH_STATE_COOKIE_NAME = "yandex_oauth_state"
OAUTH_STATE_TTL_MINUTES = 10

# Yandex 地理服務
YANDEX_GEOSUGGEST_API_KEY = os.getenv("YANDEX_GEOSUGGEST_API_KEY", "")
YANDEX_GEOCODER_API_KEY = os.getenv("YANDEX_GEOCODER_API_KEY", "")

# Yandex Object Storage（S3 相容）
YOS_ENDPOINT = os.getenv("YOS_ENDPOINT", "https://storage.yandexcloud.net")
YOS_REGION = os.getenv("YOS_REGION", "ru-central1")
YOS_ACCESS_KEY_ID = os.getenv("YOS_ACCESS_KEY_ID", "")
YOS_SECRET_ACCESS_KEY = os.getenv("YOS_SECRET_ACCESS_KEY", "")
YOS_BUCKET = os.getenv("YOS_BUCKET", "smenuberu")
YOS_PUBLIC_BASE = os.getenv("YOS_PUBLIC_BASE", "")
UPLOAD_URL_EXPIRES_SECONDS = 120

# 班次確認規則
CHECKIN_EARLY_MINUTES = 15  # 開始前最多提早 15 分鐘
END_CONFIRM_GRACE_HOURS = 4  # 結束後最多 4 小時內確認下班
PING_MAX_AGE_SECONDS = 120  # 定位回報的有效時間
GEOFENCE_RADIUS_M = 200  # 主管確認時的距離上限
CHECKIN_REQUEST_RADIUS_M = 120  # 工作者自行報到時的距離上限

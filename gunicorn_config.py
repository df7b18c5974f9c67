"""
Gunicorn 配置文件

啟動方式：gunicorn -c gunicorn_config.py smenuberu.api.main:api_app
"""
import multiprocessing
import os

# 綁定地址和端口
bind = f"0.0.0.0:{os.getenv('PORT', os.getenv('FASTAPI_PORT', '8880'))}"

# Worker 數量（建議：CPU 核心數 * 2 + 1）
workers = int(os.getenv('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1))

# FastAPI 為 ASGI 應用，使用 uvicorn worker
worker_class = "uvicorn.workers.UvicornWorker"

# 超時設定（秒）
timeout = 120

# Keep-alive 連接時間（秒）
keepalive = 5

# 日誌設定
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# 進程名稱
proc_name = "smenuberu-api"

# 最大請求數（達到後重啟 worker）
max_requests = 1000
max_requests_jitter = 50

# 優雅重啟超時時間
graceful_timeout = 30


def on_starting(server):
    """Gunicorn 啟動時套用統一的日誌格式"""
    from smenuberu.core.logger import setup_gunicorn_logger
    setup_gunicorn_logger()

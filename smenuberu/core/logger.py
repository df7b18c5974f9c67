"""
應用程式日誌配置
"""
import logging
import sys
import os
from typing import Optional, Dict, Any

# 統一日誌格式（用於所有組件：logger, Gunicorn, Uvicorn）
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 日誌級別映射
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _level_from_env(default: str = "INFO") -> int:
    return LOG_LEVELS.get(os.getenv("LOG_LEVEL", default).upper(), logging.INFO)


def _stderr_handler(level: int, format_string: str, date_format: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string, date_format))
    return handler


def setup_logger(
    name: str = "smenuberu",
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    date_format: Optional[str] = None
) -> logging.Logger:
    """
    設置並返回 logger 實例

    參數:
        name: logger 名稱（通常是模組名稱）
        level: 日誌級別（從環境變數 LOG_LEVEL 讀取，預設為 INFO）
        format_string: 日誌格式字串
        date_format: 日期格式字串

    返回:
        logging.Logger: 配置好的 logger 實例
    """
    log_level = LOG_LEVELS.get(level.upper(), logging.INFO) if level else _level_from_env()

    # 確保 root logger 有基本配置（避免日誌丟失）
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.addHandler(_stderr_handler(logging.WARNING, DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT))
        root_logger.setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.propagate = False

    # 重新配置 handler，避免重複輸出
    logger.handlers.clear()
    logger.addHandler(_stderr_handler(
        log_level,
        format_string or DEFAULT_LOG_FORMAT,
        date_format or DEFAULT_DATE_FORMAT,
    ))

    return logger


# 創建預設 logger（用於直接導入）
default_logger = setup_logger("smenuberu")


def setup_gunicorn_logger():
    """
    配置 Gunicorn 的 logger 使用統一的日誌格式
    需要在 Gunicorn 啟動時（on_starting hook）調用
    """
    log_level_value = _level_from_env()

    for name in ("gunicorn.error", "gunicorn.access"):
        gunicorn_logger = logging.getLogger(name)
        gunicorn_logger.setLevel(log_level_value)
        gunicorn_logger.propagate = False
        gunicorn_logger.handlers.clear()
        gunicorn_logger.addHandler(
            _stderr_handler(log_level_value, DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT)
        )


def get_uvicorn_log_config() -> Dict[str, Any]:
    """
    獲取 Uvicorn 的日誌配置（統一格式）

    返回:
        Dict: Uvicorn log_config 字典
    """
    uvicorn_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if uvicorn_level not in LOG_LEVELS:
        uvicorn_level = "INFO"

    formatter = {"format": DEFAULT_LOG_FORMAT, "datefmt": DEFAULT_DATE_FORMAT}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter, "access": formatter},
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
            "access": {
                "formatter": "access",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": uvicorn_level, "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": uvicorn_level, "propagate": False},
            "uvicorn.access": {"handlers": ["access"], "level": uvicorn_level, "propagate": False},
        },
    }

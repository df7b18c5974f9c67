"""
FastAPI 主應用程式
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from smenuberu.core.database import init_db
from smenuberu.core.errors import DomainError, INTERNAL_ERROR
from smenuberu.core.logger import setup_logger
from smenuberu.api.routes import auth, bookings, dashboard, geo, objects, slots, uploads, users

# 設置 logger
logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 初始化資料庫
    init_db()
    logger.info("資料庫初始化完成")
    yield


# 建立 FastAPI 應用程式
api_app = FastAPI(title="Smenuberu API", version="1.0.0", lifespan=lifespan)


@api_app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """領域錯誤 -> {"ok": false, "error": ...}"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 失敗：{exc.message} {exc.details}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@api_app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """資料庫錯誤一律回應 500，不暴露細節"""
    logger.error(f"{request.method} {request.url.path} 資料庫錯誤：{exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"ok": False, "error": INTERNAL_ERROR})


# 註冊路由
api_app.include_router(auth.router)
api_app.include_router(users.router)
api_app.include_router(objects.router)
api_app.include_router(slots.router)
api_app.include_router(bookings.router)
api_app.include_router(geo.router)
api_app.include_router(uploads.router)
api_app.include_router(dashboard.router)


@api_app.get("/health")
def health():
    """健康檢查"""
    return {"ok": True}


@api_app.get("/")
def root():
    """根路徑"""
    return {
        "message": "Smenuberu API",
        "version": "1.0.0",
        "docs": "/docs"
    }

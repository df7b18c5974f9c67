"""
Smenuberu API - 主入口點

注意：此檔案應該通過根目錄的 main.py 或使用 'python -m smenuberu.main' 執行
"""
from datetime import timedelta

import uvicorn

from smenuberu.config import FASTAPI_PORT, SEED_DEMO_DATA
from smenuberu.core.database import SessionLocal, init_db
from smenuberu.core.logger import get_uvicorn_log_config, setup_logger
from smenuberu.core.time_utils import to_utc_datetime, utc_now
from smenuberu.models.slot import SlotModel, TaskType
from smenuberu.models.venue import ObjectModel
from smenuberu.api.main import api_app

# 設置 logger
logger = setup_logger(__name__)

DEMO_DAYS = 14
DEMO_TYPES = [TaskType.DRIVER, TaskType.PICKER, TaskType.LOADER, TaskType.COOK, TaskType.CLEANER]


def create_demo_data(db) -> int:
    """
    建立展示用的工作地點與兩週班次（已有資料時略過）

    返回:
        int: 建立的班次數
    """
    if db.query(ObjectModel).count() > 0:
        logger.info("已有工作地點資料，跳過建立展示資料")
        return 0

    today = utc_now().date()
    count = 0
    try:
        warehouse = ObjectModel(name="Склад Север", city="Москва", address="Дмитровское ш., 1")
        kitchen = ObjectModel(name="Кухня Центр", city="Москва", address="Тверская, 10")
        db.add_all([warehouse, kitchen])
        db.flush()

        for i in range(DEMO_DAYS):
            day = (today + timedelta(days=i)).strftime("%Y-%m-%d")
            templates = [
                (warehouse.id, "Логистика на складе", DEMO_TYPES[i % len(DEMO_TYPES)], "08:00", "15:00",
                 3200 + (i % 3) * 200, i % 5 == 0),
                (warehouse.id, "Сбор заказов", TaskType.PICKER, "15:30", "20:30", 3400 + (i % 2) * 300, i % 7 == 0),
                (kitchen.id, "Помощник на кухне", TaskType.COOK, "10:00", "19:00", 3600 + (i % 4) * 150, i % 6 == 0),
            ]
            for object_id, title, task_type, start, end, pay, hot in templates:
                db.add(SlotModel(
                    object_id=object_id,
                    title=title,
                    date=to_utc_datetime(day, "00:00"),
                    start_time=to_utc_datetime(day, start),
                    end_time=to_utc_datetime(day, end),
                    pay=pay,
                    type=task_type,
                    hot=hot,
                ))
                count += 1
        db.commit()
    except Exception as e:
        db.rollback()
        raise e

    logger.info(f"共建立 {count} 個展示班次")
    return count


def main():
    """主函數"""
    init_db()
    logger.info("資料庫初始化完成")

    if SEED_DEMO_DATA:
        db = SessionLocal()
        try:
            create_demo_data(db)
        finally:
            db.close()

    logger.info(f"啟動 API 伺服器，監聽 http://0.0.0.0:{FASTAPI_PORT}")
    logger.info(f"API 文件：http://localhost:{FASTAPI_PORT}/docs")
    uvicorn.run(
        api_app,
        host="0.0.0.0",
        port=FASTAPI_PORT,
        log_config=get_uvicorn_log_config()
    )


if __name__ == "__main__":
    main()

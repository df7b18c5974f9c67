"""
主管儀表板統計
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

from smenuberu.models.booking import ACTIVE_STATUSES, BookingModel, BookingStatus
from smenuberu.models.schemas import DashboardStats
from smenuberu.models.slot import SlotModel
from smenuberu.models.venue import ObjectModel


class DashboardService:
    """主管儀表板統計"""

    def __init__(self, db: Session):
        self.db = db

    def get_stats(self, user_id: str) -> DashboardStats:
        """
        取得使用者的儀表板數字

        objects: 擁有的工作地點數
        active_shifts: 自己建立、目前有人上班中的班次數
        applications: 自己建立的班次上仍有效的預約數
        """
        objects = self.db.query(func.count(ObjectModel.id)).filter(ObjectModel.owner_id == user_id).scalar()

        active_shifts = (
            self.db.query(func.count(func.distinct(BookingModel.slot_id)))
            .join(SlotModel, BookingModel.slot_id == SlotModel.id)
            .filter(SlotModel.created_by_id == user_id, BookingModel.status == BookingStatus.STARTED)
            .scalar()
        )

        applications = (
            self.db.query(func.count(BookingModel.id))
            .join(SlotModel, BookingModel.slot_id == SlotModel.id)
            .filter(SlotModel.created_by_id == user_id, BookingModel.status.in_(ACTIVE_STATUSES))
            .scalar()
        )

        return DashboardStats(
            objects=objects or 0,
            active_shifts=active_shifts or 0,
            applications=applications or 0,
        )

"""
資料模型模組
"""
from smenuberu.models.user import UserModel, SessionModel, OAuthStateModel
from smenuberu.models.venue import ObjectModel, ObjectPhotoModel
from smenuberu.models.slot import SlotModel, TaskType
from smenuberu.models.booking import (
    BookingModel,
    BookingStatus,
    UserGeoPingModel,
    ACTIVE_STATUSES,
)

__all__ = [
    "UserModel",
    "SessionModel",
    "OAuthStateModel",
    "ObjectModel",
    "ObjectPhotoModel",
    "SlotModel",
    "TaskType",
    "BookingModel",
    "BookingStatus",
    "UserGeoPingModel",
    "ACTIVE_STATUSES",
]

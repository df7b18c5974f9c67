"""
領域錯誤定義

錯誤訊息字串是前端整合的一部分，請勿任意修改。
"""
from typing import Any, Dict, Optional

# NotFound
SLOT_NOT_FOUND = "Slot not found"
CHECKIN_SLOT_NOT_FOUND = "slot not found"
OBJECT_NOT_FOUND = "Object not found"
BOOKING_NOT_FOUND = "Booking not found"
ACTIVE_BOOKING_NOT_FOUND = "Active booking not found"
PERFORMER_NOT_FOUND = "Performer not found"
USER_NOT_FOUND = "User not found"
NOT_FOUND = "not found"

# Conflict
ALREADY_BOOKED = "Already booked"
TIME_CONFLICT = "Time conflict"
OBJECT_HAS_RELATED_RECORDS = "object has related records"

# Forbidden
ONLY_SLOT_CREATOR = "Only slot creator can confirm"
NOT_YOUR_BOOKED_SLOT = "not your booked slot"
NOT_OBJECT_OWNER = "Only object owner can modify"
NOT_SLOT_CREATOR = "Only slot creator can modify"
NOT_SLOT_CREATOR_VIEW = "Only slot creator can view bookings"

# PreconditionFailed
TOO_EARLY = "too early"
TOO_LATE_TO_CONFIRM_END = "too late to confirm end"
TOO_FAR = "too far from object"
NO_FRESH_PING = "no fresh geo ping from performer"
LAT_LNG_REQUIRED = "lat/lng required"
INVALID_LAT_LNG = "invalid lat/lng"
INVALID_COORDINATE_PAIR = "lat and lng must be provided together"
INVALID_PAY = "invalid pay"
INVALID_SLOT_TIMES = "invalid date/startTime/endTime"
END_BEFORE_START = "endTime must be after startTime"
SLOT_OBJECT_NOT_FOUND = "object not found"
MISSING_CODE_STATE = "missing code/state"
INVALID_STATE = "invalid state"

# Storage
UPLOAD_PRESIGN_FAILED = "upload presign failed"

# Unauthorized
UNAUTHORIZED = "Unauthorized"

# Internal
INTERNAL_ERROR = "Internal error"
QR_TOKEN_ALLOCATION_FAILED = "could not allocate qr token"


class DomainError(Exception):
    """領域錯誤基底類別，status_code 對應 HTTP 狀態碼"""
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message, **self.details}


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409


class ForbiddenError(DomainError):
    status_code = 403


class PreconditionFailedError(DomainError):
    """時間、定位或輸入條件不符（可修正後重試）"""
    status_code = 400


class UnauthorizedError(DomainError):
    status_code = 401

    def __init__(self, message: str = UNAUTHORIZED, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ConfigurationError(DomainError):
    """外部服務設定缺漏"""
    status_code = 500


class UpstreamError(DomainError):
    """外部服務回應錯誤"""
    status_code = 502


class StorageError(DomainError):
    """物件儲存服務錯誤"""
    status_code = 500


class InternalError(DomainError):
    """伺服器內部無法完成的操作"""
    status_code = 500

"""
服務層模組
"""
from smenuberu.services.auth_service import AuthService
from smenuberu.services.booking_service import BookingService
from smenuberu.services.dashboard_service import DashboardService
from smenuberu.services.geo_ping_service import GeoPingService
from smenuberu.services.geocoding_service import GeocodingService
from smenuberu.services.object_service import ObjectService
from smenuberu.services.shift_service import ShiftService
from smenuberu.services.slot_service import SlotService
from smenuberu.services.upload_service import UploadService

__all__ = [
    "AuthService",
    "BookingService",
    "DashboardService",
    "GeoPingService",
    "GeocodingService",
    "ObjectService",
    "ShiftService",
    "SlotService",
    "UploadService",
]

"""
班次 API 路由

包含班次 CRUD 與上下班確認流程：
    POST /slots/{id}/start          工作者到場報到
    POST /slots/{id}/confirm-start  主管掃描 QR 確認上班
    POST /slots/{id}/confirm-end    主管掃描 QR 確認下班
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, status

from smenuberu.api.dependencies import (
    CurrentUserId,
    get_booking_service,
    get_shift_service,
    get_slot_service,
)
from smenuberu.models.schemas import (
    Booking,
    BookingListResponse,
    BookingResponse,
    CheckinRequest,
    ConfirmShiftRequest,
    CreateSlotRequest,
    Slot,
    SlotCard,
    UpdateSlotRequest,
)
from smenuberu.services.booking_service import BookingService
from smenuberu.services.shift_service import ShiftService
from smenuberu.services.slot_service import SlotService

router = APIRouter(prefix="/slots", tags=["班次"])

SlotServiceDep = Annotated[SlotService, Depends(get_slot_service)]
ShiftServiceDep = Annotated[ShiftService, Depends(get_shift_service)]


@router.get("", response_model=List[SlotCard])
def list_slots(slot_service: SlotServiceDep):
    """公開班次列表"""
    return slot_service.list_slots()


@router.get("/ui", response_model=List[SlotCard])
def list_slots_ui(slot_service: SlotServiceDep):
    """前端首頁班次卡片"""
    return slot_service.list_ui()


@router.get("/mine", response_model=List[Slot])
def list_my_slots(user_id: CurrentUserId, slot_service: SlotServiceDep):
    """自己建立的班次"""
    return slot_service.list_created_by(user_id)


@router.post("", response_model=Slot, status_code=status.HTTP_201_CREATED)
def create_slot(data: CreateSlotRequest, user_id: CurrentUserId, slot_service: SlotServiceDep):
    """建立班次"""
    return slot_service.create_slot(user_id, data)


@router.get("/{slot_id}", response_model=SlotCard)
def get_slot(slot_id: str, slot_service: SlotServiceDep):
    """取得單一班次"""
    return slot_service.get_slot_card(slot_id)


@router.patch("/{slot_id}", response_model=Slot)
def update_slot(slot_id: str, data: UpdateSlotRequest, user_id: CurrentUserId, slot_service: SlotServiceDep):
    """更新班次（僅建立者）"""
    return slot_service.update_slot(user_id, slot_id, data)


@router.get("/{slot_id}/bookings", response_model=BookingListResponse)
def list_slot_bookings(
    slot_id: str,
    user_id: CurrentUserId,
    booking_service: Annotated[BookingService, Depends(get_booking_service)],
):
    """班次預約名單（僅建立者）"""
    bookings = booking_service.list_slot_bookings(user_id, slot_id)
    return BookingListResponse(bookings=[Booking.model_validate(b) for b in bookings])


@router.post("/{slot_id}/start", response_model=BookingResponse)
def request_checkin(slot_id: str, data: CheckinRequest, user_id: CurrentUserId, shift_service: ShiftServiceDep):
    """工作者到場報到"""
    booking = shift_service.request_checkin(user_id, slot_id, data.lat, data.lng)
    return BookingResponse(booking=Booking.model_validate(booking))


@router.post("/{slot_id}/confirm-start", response_model=BookingResponse)
def confirm_start(slot_id: str, data: ConfirmShiftRequest, user_id: CurrentUserId, shift_service: ShiftServiceDep):
    """主管確認上班"""
    booking = shift_service.confirm_start(user_id, slot_id, data.qr_token)
    return BookingResponse(booking=Booking.model_validate(booking))


@router.post("/{slot_id}/confirm-end", response_model=BookingResponse)
def confirm_end(slot_id: str, data: ConfirmShiftRequest, user_id: CurrentUserId, shift_service: ShiftServiceDep):
    """主管確認下班"""
    booking = shift_service.confirm_end(user_id, slot_id, data.qr_token)
    return BookingResponse(booking=Booking.model_validate(booking))

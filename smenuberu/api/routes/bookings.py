"""
預約 API 路由（皆以 cookie session 的使用者為工作者）
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query

from smenuberu.api.dependencies import CurrentUserId, get_booking_service
from smenuberu.models.booking import BookingStatus
from smenuberu.models.schemas import (
    Booking,
    BookingListResponse,
    BookingResponse,
    BookingStateResponse,
    SlotIdRequest,
)
from smenuberu.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["預約"])

BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]


@router.get("/state", response_model=BookingStateResponse)
def get_booking_state(user_id: CurrentUserId, booking_service: BookingServiceDep):
    """slotId -> 預約狀態"""
    return BookingStateResponse(state=booking_service.get_booking_state(user_id))


@router.post("", response_model=BookingResponse)
def create_booking(data: SlotIdRequest, user_id: CurrentUserId, booking_service: BookingServiceDep):
    """預約班次"""
    booking = booking_service.create_booking(user_id, data.slot_id)
    return BookingResponse(booking=Booking.model_validate(booking))


@router.post("/cancel", response_model=BookingResponse)
def cancel_booking(data: SlotIdRequest, user_id: CurrentUserId, booking_service: BookingServiceDep):
    """取消預約"""
    booking = booking_service.cancel_booking(user_id, data.slot_id)
    return BookingResponse(booking=Booking.model_validate(booking))


@router.get("", response_model=BookingListResponse)
def list_bookings(
    user_id: CurrentUserId,
    booking_service: BookingServiceDep,
    status: Optional[BookingStatus] = Query(None),
):
    """自己的預約（可依狀態篩選）"""
    bookings = booking_service.list_bookings(user_id, status)
    return BookingListResponse(bookings=[Booking.model_validate(b) for b in bookings])


@router.get("/me", response_model=BookingListResponse)
def list_my_bookings(
    user_id: CurrentUserId,
    booking_service: BookingServiceDep,
    status: Optional[BookingStatus] = Query(None),
):
    """我的班表（預設只列出 booked）"""
    bookings = booking_service.list_my_bookings(user_id, status)
    return BookingListResponse(bookings=[Booking.model_validate(b) for b in bookings])

"""
上傳 API 路由（回傳預簽章網址，檔案由前端直接上傳）
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from smenuberu.api.dependencies import CurrentUserId, get_upload_service
from smenuberu.models.schemas import UploadRequest, UploadResponse
from smenuberu.services.upload_service import UploadService

router = APIRouter(prefix="/uploads", tags=["上傳"])

UploadServiceDep = Annotated[UploadService, Depends(get_upload_service)]


@router.post("/object-photo", response_model=UploadResponse)
def presign_object_photo(data: UploadRequest, user_id: CurrentUserId, upload_service: UploadServiceDep):
    """工作地點照片上傳網址"""
    return UploadResponse(**upload_service.presign_object_upload(data.object_id, data.content_type, "photo"))


@router.post("/object-logo", response_model=UploadResponse)
def presign_object_logo(data: UploadRequest, user_id: CurrentUserId, upload_service: UploadServiceDep):
    """工作地點 logo 上傳網址"""
    return UploadResponse(**upload_service.presign_object_upload(data.object_id, data.content_type, "logo"))

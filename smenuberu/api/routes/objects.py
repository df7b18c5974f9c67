"""
工作地點 API 路由
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, status

from smenuberu.api.dependencies import CurrentUserId, get_object_service
from smenuberu.models.schemas import CreateObjectRequest, UpdateObjectRequest, WorkObject
from smenuberu.services.object_service import ObjectService

router = APIRouter(prefix="/objects", tags=["工作地點"])

ObjectServiceDep = Annotated[ObjectService, Depends(get_object_service)]


@router.get("", response_model=List[WorkObject])
def list_objects(object_service: ObjectServiceDep):
    """取得所有工作地點"""
    return object_service.list_objects()


@router.get("/{object_id}", response_model=WorkObject)
def get_object(object_id: str, object_service: ObjectServiceDep):
    """取得單一工作地點"""
    return object_service.get_object(object_id)


@router.post("", response_model=WorkObject, status_code=status.HTTP_201_CREATED)
def create_object(data: CreateObjectRequest, user_id: CurrentUserId, object_service: ObjectServiceDep):
    """建立工作地點（建立者成為擁有者）"""
    return object_service.create_object(user_id, data)


@router.patch("/{object_id}", response_model=WorkObject)
def update_object(
    object_id: str,
    data: UpdateObjectRequest,
    user_id: CurrentUserId,
    object_service: ObjectServiceDep,
):
    """更新工作地點（僅擁有者）"""
    return object_service.update_object(user_id, object_id, data)


@router.delete("/{object_id}")
def delete_object(object_id: str, user_id: CurrentUserId, object_service: ObjectServiceDep):
    """刪除工作地點（仍有班次時回應 409）"""
    object_service.delete_object(user_id, object_id)
    return {"ok": True}

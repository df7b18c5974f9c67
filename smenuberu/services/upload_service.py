"""
上傳服務

產生 Yandex Object Storage（S3 相容）的預簽章 PUT 網址，
前端直接把檔案上傳到儲存空間，再把 publicUrl 寫回工作地點。
"""
import uuid
from typing import Dict
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.orm import Session

from smenuberu import config
from smenuberu.core import errors
from smenuberu.core.errors import NotFoundError, StorageError
from smenuberu.core.logger import setup_logger
from smenuberu.models.venue import ObjectModel

# 設置 logger
logger = setup_logger(__name__)

# 上傳種類 -> 路徑片段
UPLOAD_KINDS = {
    "photo": "photos",
    "logo": "logo",
}


def ext_from_content_type(content_type: str) -> str:
    """由 Content-Type 推斷副檔名"""
    ct = content_type.lower()
    if "png" in ct:
        return "png"
    if "jpeg" in ct or "jpg" in ct:
        return "jpg"
    if "webp" in ct:
        return "webp"
    if "gif" in ct:
        return "gif"
    return "bin"


def public_base(bucket: str) -> str:
    if config.YOS_PUBLIC_BASE:
        return config.YOS_PUBLIC_BASE.rstrip("/")
    return f"https://{bucket}.storage.yandexcloud.net"


def get_storage_client():
    """建立 Object Storage 客戶端，缺少金鑰時拋出 StorageError"""
    if not config.YOS_ACCESS_KEY_ID or not config.YOS_SECRET_ACCESS_KEY:
        logger.error("未設定 YOS_ACCESS_KEY_ID / YOS_SECRET_ACCESS_KEY")
        raise StorageError(errors.UPLOAD_PRESIGN_FAILED, {"message": "Missing storage credentials"})
    return boto3.client(
        "s3",
        endpoint_url=config.YOS_ENDPOINT,
        region_name=config.YOS_REGION,
        aws_access_key_id=config.YOS_ACCESS_KEY_ID,
        aws_secret_access_key=config.YOS_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


class UploadService:
    """上傳服務"""

    def __init__(self, db: Session, client_factory=get_storage_client):
        """
        初始化上傳服務

        參數:
            db: 資料庫會話
            client_factory: 建立 S3 客戶端的函數（測試時可替換）
        """
        self.db = db
        self.client_factory = client_factory

    def presign_object_upload(self, object_id: str, content_type: str, kind: str) -> Dict[str, str]:
        """
        產生工作地點照片 / logo 的上傳網址

        參數:
            object_id: 工作地點ID
            content_type: 檔案 Content-Type
            kind: "photo" 或 "logo"

        返回:
            Dict[str, str]: {"upload_url", "public_url", "key"}
        """
        exists = self.db.query(ObjectModel.id).filter(ObjectModel.id == object_id).first()
        if not exists:
            raise NotFoundError(errors.OBJECT_NOT_FOUND)

        content_type = content_type.strip()
        bucket = config.YOS_BUCKET
        key = f"objects/{object_id}/{UPLOAD_KINDS[kind]}/{uuid.uuid4()}.{ext_from_content_type(content_type)}"

        client = self.client_factory()
        try:
            upload_url = client.generate_presigned_url(
                "put_object",
                Params={"Bucket": bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=config.UPLOAD_URL_EXPIRES_SECONDS,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"產生上傳網址失敗：{key} - {e}", exc_info=True)
            raise StorageError(errors.UPLOAD_PRESIGN_FAILED, {"message": str(e)}) from e

        logger.info(f"已產生上傳網址：{key}")
        return {
            "upload_url": upload_url,
            "public_url": f"{public_base(bucket)}/{key}",
            "key": key,
        }

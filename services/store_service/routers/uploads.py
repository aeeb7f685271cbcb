"""File uploads for product images and fulfillment proof."""

import re
import uuid
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from libs.auth.dependencies import require_distributor, require_roles
from libs.auth.models import AuthUser, Role
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.models import Order
from services.store_service.schemas import UploadResponse
from services.store_service.services.storage import (
    StorageNotConfiguredError,
    storage_service,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["uploads"])
logger = get_logger(__name__)
settings = get_settings()

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "application/pdf": "pdf",
}

_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9_-]+")


def _safe_segment(value: str) -> str:
    return _SAFE_SEGMENT.sub("-", value).strip("-") or "file"


def _extension_for(file: UploadFile) -> str:
    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unsupported file type. Allowed: JPEG, PNG, WEBP, GIF, HEIC, PDF",
        )
    return ALLOWED_CONTENT_TYPES[content_type]


async def _read_limited(file: UploadFile) -> bytes:
    limit = settings.UPLOAD_MAX_BYTES
    # Read at most one byte past the limit
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {limit // (1024 * 1024)} MB limit",
        )
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return data


async def _store(path: str, data: bytes, content_type: str) -> str:
    try:
        return await storage_service.upload(path, data, content_type)
    except StorageNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))


def _timestamp() -> int:
    return int(utc_now().timestamp())


@router.post("/upload", response_model=UploadResponse)
@api_limit
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    folder: Optional[str] = Form(None),
    order_id: Optional[uuid.UUID] = Form(None),
    type: Optional[str] = Form(None),
    current_user: AuthUser = Depends(require_roles(Role.ADMIN, Role.DISTRIBUTOR)),
):
    """Upload an image or PDF. Order documents go under ``orders/{order_id}/``."""
    if (order_id is None) != (type is None):
        raise HTTPException(
            status_code=400, detail="order_id and type must be provided together"
        )

    ext = _extension_for(file)
    data = await _read_limited(file)
    stamp = _timestamp()
    user_part = _safe_segment(current_user.user_id)

    if order_id is not None:
        path = f"orders/{order_id}/{_safe_segment(type)}_{user_part}_{stamp}.{ext}"
    else:
        path = f"{_safe_segment(folder or 'general')}/{user_part}_{stamp}.{ext}"

    url = await _store(path, data, file.content_type)
    return UploadResponse(url=url, path=path)


@router.post("/upload-fulfillment", response_model=UploadResponse)
@api_limit
async def upload_fulfillment_proof(
    request: Request,
    file: UploadFile = File(...),
    order_id: uuid.UUID = Form(...),
    current_user: AuthUser = Depends(require_distributor),
    db: AsyncSession = Depends(get_async_db),
):
    """Upload proof for an order assigned to the calling distributor."""
    order = await db.get(Order, order_id)
    if not order or order.distributor_id != current_user.user_uuid:
        raise HTTPException(status_code=404, detail="Order not found")

    ext = _extension_for(file)
    data = await _read_limited(file)
    path = (
        f"orders/{order_id}/fulfillment_"
        f"{_safe_segment(current_user.user_id)}_{_timestamp()}.{ext}"
    )
    url = await _store(path, data, file.content_type)

    logger.info(
        "Fulfillment proof uploaded for order %s",
        order.order_number,
        extra={"extra_fields": {"path": path}},
    )
    return UploadResponse(url=url, path=path)

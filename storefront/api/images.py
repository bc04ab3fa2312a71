"""
Images API Endpoints
Product/category images (admin) and return photos (customers)

Handlers are sync: the storage client blocks, so FastAPI runs them
in its threadpool.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from storefront.api.errors import http_error, unexpected_error
from storefront.core.auth import TokenUser, get_current_user, require_admin
from storefront.core.exceptions import ServiceError
from storefront.services.image_storage_service import ImageStorageService, decode_image_data

router = APIRouter()


class ImageUploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    folder: str
    image_data: str = Field(..., alias="imageData", description="Base64 or data URL")
    content_type: str = Field("image/jpeg", alias="contentType")


@router.post("")
def upload_image(request: ImageUploadRequest, user: TokenUser = Depends(require_admin)):
    try:
        data = decode_image_data(request.image_data)
        return ImageStorageService().upload_image(
            request.file_name,
            request.folder,
            data,
            request.content_type,
        )

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("uploading image")


@router.post("/returns")
def upload_return_image(
    file: UploadFile = File(...),
    file_name: Optional[str] = Form(None),
    user: TokenUser = Depends(get_current_user)
):
    """Photo attached to a return request; always stored under returns/"""
    try:
        data = file.file.read()
        return ImageStorageService().upload_image(
            file_name or file.filename or 'return-image.jpg',
            'returns',
            data,
            file.content_type or 'image/jpeg',
        )

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("uploading return image")


@router.delete("")
def delete_image(
    file_name: str = Query(..., alias="fileName"),
    folder: str = Query(...),
    user: TokenUser = Depends(require_admin)
):
    try:
        return ImageStorageService().delete_image(file_name, folder)

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("deleting image")

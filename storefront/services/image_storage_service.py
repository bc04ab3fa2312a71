"""
Image Storage Service - product, category and return images

Images live in one Supabase Storage bucket under a folder per use:
    products/<name>-<ms>.jpg
    categories/<name>-<ms>.png
    returns/<name>-<ms>.webp
Objects are immutable (unique names), so they are cached for a year.
"""
import base64
import binascii
import logging
import re
import time
from typing import Any, Dict, Optional

from storefront.core.config import settings
from storefront.core.database import get_supabase
from storefront.core.exceptions import ServiceError, ValidationFailed

logger = logging.getLogger(__name__)

FOLDERS = ('products', 'categories', 'returns')
ALLOWED_CONTENT_TYPES = ('image/jpeg', 'image/jpg', 'image/png', 'image/webp', 'image/gif')
CACHE_SECONDS = 31536000

_DATA_URL_PREFIX = re.compile(r'^data:image/[a-zA-Z0-9.+-]+;base64,')
_TIMESTAMP_SUFFIX = re.compile(r'-\d{13,}.*$')


def sanitize_file_name(file_name: str) -> str:
    """
    Drop query string and directories, keep [a-zA-Z0-9.-]

    Raises ValidationFailed when nothing but dots and dashes is left,
    so '..' can never address the folder itself.
    """
    clean = file_name.split('?')[0]
    clean = clean.split('/')[-1]
    clean = re.sub(r'[^a-zA-Z0-9.-]', '-', clean)
    clean = re.sub(r'--+', '-', clean)
    if not clean.strip('.-'):
        raise ValidationFailed("Invalid file name")
    return clean


def build_unique_file_name(file_name: str, now_ms: Optional[int] = None) -> str:
    """
    <base>-<epoch ms><ext>

    A timestamp suffix from an earlier upload is replaced, not stacked.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    sanitized = sanitize_file_name(file_name)

    if '.' in sanitized:
        extension = '.' + sanitized.rsplit('.', 1)[1]
        base = sanitized.rsplit('.', 1)[0]
    else:
        extension = '.jpg'
        base = sanitized

    base = _TIMESTAMP_SUFFIX.sub('', base or 'image') or 'image'
    return f"{base}-{now_ms}{extension}"


def decode_image_data(data: str) -> bytes:
    """Raw base64 or a data:image/...;base64, URL"""
    payload = _DATA_URL_PREFIX.sub('', data.strip())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailed("Invalid base64 image data")


def public_url(key: str, storage=None) -> str:
    if settings.STORAGE_PUBLIC_URL:
        return f"{settings.STORAGE_PUBLIC_URL.rstrip('/')}/{key}"
    storage = storage or get_supabase().storage
    return storage.from_(settings.STORAGE_BUCKET).get_public_url(key)


class ImageStorageService:

    def __init__(self, supabase_client=None):
        self._supabase = supabase_client

    @property
    def bucket(self):
        client = self._supabase or get_supabase()
        return client.storage.from_(settings.STORAGE_BUCKET)

    @staticmethod
    def _validate(folder: str, content_type: str, size: int):
        if folder not in FOLDERS:
            raise ValidationFailed(f"Invalid folder. Must be one of: {', '.join(FOLDERS)}")
        if (content_type or '').lower() not in ALLOWED_CONTENT_TYPES:
            raise ValidationFailed("Invalid image type. Allowed: JPEG, PNG, WebP, GIF")
        if size == 0:
            raise ValidationFailed("Empty image")
        if size > settings.MAX_IMAGE_BYTES:
            raise ValidationFailed(
                f"Image too large. Maximum size is {settings.MAX_IMAGE_BYTES // (1024 * 1024)} MB"
            )

    def upload_image(self, file_name: str, folder: str, data: bytes,
                     content_type: str = 'image/jpeg') -> Dict[str, Any]:
        """
        Store an image under a unique name

        Returns:
            {'success': True, 'url', 'file_name', 'folder', 'key'}
        """
        if not file_name:
            raise ValidationFailed("Missing required fields: file_name, folder, image data")

        self._validate(folder, content_type, len(data))

        unique_name = build_unique_file_name(file_name)
        key = f"{folder}/{unique_name}"

        try:
            self.bucket.upload(
                key,
                data,
                file_options={
                    'content-type': content_type.lower(),
                    'cache-control': str(CACHE_SECONDS),
                    'upsert': 'true',
                },
            )
        except Exception as e:
            logger.error(f"Image upload failed for {key}: {e}")
            raise ServiceError(f"Failed to upload image: {e}")

        logger.info(f"Image uploaded: {key} ({len(data)} bytes)")

        return {
            'success': True,
            'url': public_url(key, (self._supabase or get_supabase()).storage),
            'file_name': unique_name,
            'folder': folder,
            'key': key,
        }

    def delete_image(self, file_name: str, folder: str) -> Dict[str, Any]:
        """Delete an image; deleting something already gone is not an error"""
        if not file_name or folder not in FOLDERS:
            raise ValidationFailed("Missing or invalid file_name / folder")

        key = f"{folder}/{sanitize_file_name(file_name)}"

        try:
            removed = self.bucket.remove([key])
        except Exception as e:
            logger.error(f"Image delete failed for {key}: {e}")
            raise ServiceError(f"Failed to delete image: {e}")

        if not removed:
            logger.info(f"Image {key} was already absent")

        return {'success': True, 'key': key, 'deleted': bool(removed)}

"""
Local file storage for uploads (work samples, best-practice documents,
dispute attachments) and generated exports.

Files are written under a root directory as <category>/<uuid><ext>; the
relative path is the storage key persisted on the owning row.
"""

import mimetypes
import uuid
from pathlib import Path
from typing import Dict, Any, List, Optional

import aiofiles
import aiofiles.os

from myteacher.core.config import settings
from myteacher.core.exceptions import (
    FileTooLargeError,
    InvalidFileTypeError,
    StorageError,
    StoredFileNotFoundError,
    ValidationFailedError,
)
from myteacher.core.logging_config import logger


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower().lstrip(".")


def guess_mime_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


class LocalStorageService:
    """Async local-disk storage rooted at a single directory"""

    def __init__(self, root: Path):
        self.root = Path(root)

    def resolve_path(self, storage_key: str) -> Path:
        """Absolute path for a key; rejects keys escaping the root"""
        root = self.root.resolve()
        path = (root / storage_key).resolve()
        if root != path and root not in path.parents:
            raise StorageError("Invalid storage key")
        return path

    def validate(self, filename: str, size: int, allowed_extensions: List[str],
                 max_size: Optional[int] = None) -> str:
        if not filename:
            raise ValidationFailedError("A file name is required", field="file")
        ext = file_extension(filename)
        if ext not in allowed_extensions:
            raise InvalidFileTypeError(ext or "(none)", allowed_extensions)
        limit = max_size or settings.MAX_UPLOAD_SIZE
        if size > limit:
            raise FileTooLargeError(size, limit)
        if size == 0:
            raise ValidationFailedError("Uploaded file is empty", field="file")
        return ext

    async def save(self, category: str, filename: str, content: bytes,
                   allowed_extensions: Optional[List[str]] = None) -> Dict[str, Any]:
        if allowed_extensions is not None:
            ext = self.validate(filename, len(content), allowed_extensions)
        else:
            ext = file_extension(filename)

        storage_key = f"{category}/{uuid.uuid4().hex}{'.' + ext if ext else ''}"
        path = self.resolve_path(storage_key)
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"[Storage] Failed to write {storage_key}: {e}", exc_info=True)
            raise StorageError("Failed to store file") from e

        logger.info(f"[Storage] Saved {filename} as {storage_key} ({len(content)} bytes)")
        return {
            "storage_key": storage_key,
            "file_name": Path(filename).name,
            "file_size": len(content),
            "mime_type": guess_mime_type(filename),
        }

    async def exists(self, storage_key: str) -> bool:
        return await aiofiles.os.path.isfile(self.resolve_path(storage_key))

    async def read(self, storage_key: str) -> bytes:
        path = self.resolve_path(storage_key)
        if not await aiofiles.os.path.isfile(path):
            raise StoredFileNotFoundError(storage_key)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, storage_key: str) -> bool:
        """Remove a stored file; missing files are not an error"""
        path = self.resolve_path(storage_key)
        try:
            await aiofiles.os.remove(path)
            return True
        except FileNotFoundError:
            logger.warning(f"[Storage] Delete of missing file {storage_key}")
            return False


def get_upload_storage() -> LocalStorageService:
    return LocalStorageService(settings.UPLOAD_DIR)


def get_export_storage() -> LocalStorageService:
    return LocalStorageService(settings.EXPORT_DIR)

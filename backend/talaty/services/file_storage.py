"""
File Storage

Local-disk storage for uploaded documents: UPLOAD_DIR/<user_id>/<timestamp>_<name>.
The database keeps only the returned path.
"""
from dataclasses import dataclass
from datetime import datetime
import logging
import os
import re

from ..config import UPLOAD_DIR, ALLOWED_FILE_TYPES, MAX_FILE_SIZE_MB
from .errors import ValidationError, StorageError


logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredFile:
    file_name: str     # original client file name
    file_path: str
    file_size: int
    file_type: str     # content type reported by the client


def allowed_extension(filename: str) -> bool:
    if not filename or "." not in filename:
        return False
    return filename.rsplit(".", 1)[1].lower() in ALLOWED_FILE_TYPES


def get_user_upload_dir(user_id: str) -> str:
    """Get upload directory for a user."""
    user_dir = os.path.join(UPLOAD_DIR, user_id)
    os.makedirs(user_dir, exist_ok=True)
    return user_dir


def max_upload_bytes() -> int:
    return MAX_FILE_SIZE_MB * 1024 * 1024


def _too_large() -> ValidationError:
    return ValidationError(f"File too large. Maximum size is {MAX_FILE_SIZE_MB}MB")


def _safe_name(filename: str) -> str:
    name = os.path.basename(filename)
    return re.sub(r"[^A-Za-z0-9._-]", "_", name)


def save_upload(user_id: str, upload) -> StoredFile:
    """
    Persist an uploaded file (FastAPI UploadFile or anything with
    .filename, .file and .content_type).

    Raises:
        ValidationError: missing file, extension not allowed, file too large
        StorageError: the file could not be written
    """
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded")
    if not allowed_extension(upload.filename):
        raise ValidationError(
            f"Invalid file type. Allowed types: {', '.join(ALLOWED_FILE_TYPES)}"
        )

    limit = max_upload_bytes()
    # Starlette sets size when the client sent a length; reject before touching disk
    declared_size = getattr(upload, "size", None)
    if isinstance(declared_size, int) and declared_size > limit:
        raise _too_large()

    timestamp = int(datetime.utcnow().timestamp() * 1000)
    file_path = os.path.join(
        get_user_upload_dir(user_id),
        f"{timestamp}_{_safe_name(upload.filename)}",
    )

    file_size = 0
    try:
        with open(file_path, "wb") as buffer:
            while True:
                chunk = upload.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                file_size += len(chunk)
                if file_size > limit:
                    break
                buffer.write(chunk)
    except OSError as e:
        delete_file(file_path)
        raise StorageError(f"Failed to save file: {e}") from e

    if file_size > limit:
        delete_file(file_path)
        raise _too_large()

    logger.info(f"Stored upload for user {user_id}: {file_path} ({file_size} bytes)")
    return StoredFile(
        file_name=upload.filename,
        file_path=file_path,
        file_size=file_size,
        file_type=upload.content_type or "application/octet-stream",
    )


def delete_file(path: str) -> bool:
    """Remove a stored file. Missing files are not an error."""
    if not path or not os.path.exists(path):
        return False
    try:
        os.remove(path)
        return True
    except OSError as e:
        logger.warning(f"Failed to delete file from storage: {e}")
        return False

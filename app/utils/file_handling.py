"""
File handling utilities for intake uploads
"""
import re
import time
from pathlib import Path
from typing import Optional, Tuple
from fastapi import UploadFile
from app.core.errors import UploadError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """
    Make a client-supplied file name safe for storage.

    Every character outside ``[A-Za-z0-9.-]`` becomes an underscore.
    """
    return _UNSAFE_CHARS.sub("_", filename or "upload")


def validate_content_type(content_type: Optional[str], allowed_types: set) -> str:
    """
    Validate the declared MIME type of an upload.

    Raises:
        UploadError 400: If the type is not allowed
    """
    if content_type not in allowed_types:
        raise UploadError("Invalid file type. Allowed: PDF, JPG, PNG, HEIC")
    return content_type


def validate_file_size(file_size: int, max_size: int) -> None:
    """
    Validate file size is within allowed limit.

    Raises:
        UploadError 400: If file size exceeds maximum
    """
    if file_size > max_size:
        max_mb = max_size // (1024 * 1024)
        raise UploadError(f"File too large. Maximum size is {max_mb}MB")


async def save_uploaded_file(
    file: UploadFile,
    bucket_dir: Path,
    prefix: str,
    allowed_types: set,
    max_file_size: int
) -> Tuple[str, str, int]:
    """
    Save an uploaded file to the bucket directory and return its metadata.

    Args:
        file: FastAPI UploadFile object
        bucket_dir: Root of the storage bucket
        prefix: Folder inside the bucket (e.g. ``intake-uploads``)
        allowed_types: Allowed MIME types
        max_file_size: Maximum file size in bytes

    Returns:
        Tuple of (bucket-relative path, mime_type, size_bytes)

    Raises:
        UploadError 400: If the file type is not allowed or the file is too large
        UploadError 500: If the file could not be written
    """
    mime_type = validate_content_type(file.content_type, allowed_types)
    file_content = await file.read()
    file_size = len(file_content)
    validate_file_size(file_size, max_file_size)

    relative_path = f"{prefix}/{int(time.time() * 1000)}-{sanitize_filename(file.filename)}"
    stored_path = bucket_dir / relative_path
    try:
        stored_path.parent.mkdir(parents=True, exist_ok=True)
        with open(stored_path, 'xb') as f:
            f.write(file_content)
    except OSError as e:
        raise UploadError(f"Upload failed: {e}", status_code=500)

    return relative_path, mime_type, file_size

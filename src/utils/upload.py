# src/utils/upload.py
import os
import re
import secrets
import time
from pathlib import Path
from typing import Tuple

import aiofiles
from fastapi import UploadFile

from core.config import settings
from models.media import FileType
from utils.exceptions import BadRequestException, PayloadTooLargeException
from utils.logger import setup_logger

logger = setup_logger("UPLOAD")

CHUNK_SIZE = 1024 * 1024

ALLOWED_MIME_TYPES = {
    # Images
    "image/jpeg": FileType.IMAGE,
    "image/jpg": FileType.IMAGE,
    "image/png": FileType.IMAGE,
    "image/gif": FileType.IMAGE,
    "image/webp": FileType.IMAGE,
    # Documents
    "application/pdf": FileType.DOCUMENT,
    "application/msword": FileType.DOCUMENT,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileType.DOCUMENT,
    "application/vnd.ms-excel": FileType.DOCUMENT,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileType.DOCUMENT,
    "text/plain": FileType.DOCUMENT,
    # Audio
    "audio/mpeg": FileType.AUDIO,
    "audio/mp3": FileType.AUDIO,
    "audio/wav": FileType.AUDIO,
    "audio/ogg": FileType.AUDIO,
    "audio/webm": FileType.AUDIO,
    "audio/m4a": FileType.AUDIO,
    "audio/x-m4a": FileType.AUDIO,
    # Video
    "video/mp4": FileType.VIDEO,
    "video/mpeg": FileType.VIDEO,
    "video/webm": FileType.VIDEO,
    "video/ogg": FileType.VIDEO,
    "video/quicktime": FileType.VIDEO,
}

SUPPORTED_FORMATS = (
    "Images (JPEG, PNG, GIF, WebP), Documents (PDF, Word, Excel, TXT), "
    "Audio (MP3, WAV, OGG, WebM, M4A), Video (MP4, MPEG, WebM, OGG, MOV)"
)


def classify_mime_type(mime_type: str) -> FileType:
    """Return the media category for an allowed MIME type, else raise 400."""
    normalized = (mime_type or "").split(";")[0].strip().lower()
    file_type = ALLOWED_MIME_TYPES.get(normalized)
    if file_type is None:
        raise BadRequestException(
            f"File type not allowed: {mime_type or 'unknown'}. "
            f"Supported formats: {SUPPORTED_FORMATS}"
        )
    return file_type


def generate_stored_name(original_name: str) -> str:
    """name-<epoch ms>-<random>.ext; collision resistant across uploads."""
    path = Path(original_name or "file")
    stem = re.sub(r"[^A-Za-z0-9_-]+", "-", path.stem).strip("-")[:60] or "file"
    suffix = path.suffix.lower() if re.fullmatch(r"\.[A-Za-z0-9]{1,8}", path.suffix) else ""
    return f"{stem}-{int(time.time() * 1000)}-{secrets.token_hex(6)}{suffix}"


async def save_upload(file: UploadFile) -> Tuple[str, str, int, FileType]:
    """Validate and persist an upload.

    Returns (stored_name, public_url, size_in_bytes, file_type).
    """
    file_type = classify_mime_type(file.content_type)
    max_size = settings.MAX_UPLOAD_SIZE_BYTES

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    stored_name = generate_stored_name(file.filename)
    destination = os.path.join(settings.UPLOAD_DIR, stored_name)

    size = 0
    try:
        async with aiofiles.open(destination, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    raise PayloadTooLargeException(
                        f"File is too large. Maximum file size is "
                        f"{settings.MAX_UPLOAD_SIZE_MB}MB"
                    )
                await out.write(chunk)
    except PayloadTooLargeException:
        remove_stored_file(stored_name)
        raise

    if size == 0:
        remove_stored_file(stored_name)
        raise BadRequestException("Uploaded file is empty")

    logger.info(f"Stored upload {stored_name} ({size} bytes)")
    public_url = f"{settings.UPLOAD_URL_PATH.rstrip('/')}/{stored_name}"
    return stored_name, public_url, size, file_type


def remove_stored_file(stored_name: str) -> None:
    path = os.path.join(settings.UPLOAD_DIR, stored_name)
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")

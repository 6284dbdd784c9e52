"""Local file storage for uploads served back under the public uploads path."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.upload import Upload
from models.user import User
from services.errors import PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
ALLOWED_UPLOAD_EXTENSIONS = {
    ".pdf",
    ".doc",
    ".docx",
    ".txt",
    ".md",
    ".ppt",
    ".pptx",
    ".xls",
    ".xlsx",
    ".csv",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".svg",
    ".mp4",
    ".webm",
    ".mov",
    ".zip",
}


def sanitize_filename(filename: str) -> str:
    base = os.path.basename(filename or "upload")
    safe = "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in base)
    return safe.strip(".") or "upload"


def public_url_for(stored_name: str) -> str:
    return f"{settings.UPLOAD_PUBLIC_BASE_URL.rstrip('/')}/{stored_name}"


async def store_upload(db: AsyncSession, user: User, file: UploadFile) -> Dict[str, Any]:
    """Stream an uploaded file to disk under a generated name and record it."""
    original_filename = sanitize_filename(file.filename or "upload")
    suffix = Path(original_filename).suffix.lower()
    if suffix not in ALLOWED_UPLOAD_EXTENSIONS:
        await file.close()
        raise ValidationError(f"Unsupported file type '{suffix or 'none'}'.")

    max_bytes = int(settings.UPLOAD_MAX_BYTES)
    root = Path(settings.UPLOAD_DIR)
    root.mkdir(parents=True, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}{suffix}"
    destination = root / stored_name

    total_size = 0
    try:
        with destination.open("wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > max_bytes:
                    out.close()
                    destination.unlink(missing_ok=True)
                    raise PayloadTooLargeError(
                        f"File too large. Max upload size is {max_bytes} bytes."
                    )
                out.write(chunk)
    finally:
        await file.close()

    if total_size == 0:
        destination.unlink(missing_ok=True)
        raise ValidationError("Uploaded file is empty.")

    upload = Upload(
        user_id=user.id,
        stored_name=stored_name,
        public_url=public_url_for(stored_name),
        original_filename=original_filename,
        file_size_bytes=total_size,
        mime_type=(file.content_type or "").lower() or None,
    )
    db.add(upload)
    await db.commit()
    logger.info("Stored upload %s (%s bytes) for user %s", stored_name, total_size, user.id)

    return {
        "id": upload.id,
        "url": upload.public_url,
        "file_name": original_filename,
        "size": total_size,
        "mime_type": upload.mime_type,
    }

import os
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import UploadFile, status

from fittrack.core.config import settings
from fittrack.core.logger import get_logger
from fittrack.exceptions.errors import ApplicationException

logger = get_logger("file_upload_util")

CHUNK_SIZE = 1024 * 1024


def safe_filename(name: str) -> str:
    base = os.path.basename(name or "upload")
    return "".join(ch if ch.isalnum() or ch in (".", "_", "-") else "_" for ch in base)[:180]


@asynccontextmanager
async def temporary_upload(upload: UploadFile, uploads_dir: str = None, max_size: int = None):
    """
    Spool an uploaded file to disk and yield its path.

    The file is removed when the block exits, whether it returned normally,
    raised a validation error or failed unexpectedly.
    """
    directory = Path(uploads_dir or settings.UPLOADS_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    limit = max_size or settings.MAX_UPLOAD_SIZE
    path = directory / f"{uuid.uuid4().hex}-{safe_filename(upload.filename)}"

    try:
        total = 0
        with path.open("wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if total > limit:
                    raise ApplicationException("File too large", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
                out.write(chunk)
        logger.debug(f"Stored upload {upload.filename} ({total} bytes) at {path}")
        yield str(path)
    finally:
        await upload.close()
        if path.exists():
            path.unlink()
            logger.debug(f"Removed temporary upload {path}")

"""
Upload "service layer".

This file contains logic that is independent of FastAPI's routing layer:
- Validate image uploads (size + declared content type)
- Store them under the upload directory with a collision-free name
- Remove them again when the surrounding create fails
- Resolve static file requests without escaping the upload directory
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from core.errors import NotFoundError, UploadIOError, ValidationError

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif"}

# URL prefix and stored-path prefix; files are served from /uploads/<name>.
UPLOADS_PREFIX = "uploads"

READ_CHUNK_BYTES = 1024 * 1024  # 1 MiB

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")

logger = logging.getLogger(__name__)


def has_file(file: UploadFile | None) -> bool:
    # Browsers send an empty part with no filename when the input is left blank.
    return file is not None and bool(file.filename)


def safe_filename(filename: str) -> str:
    """
    Keep only the base name and replace anything outside [A-Za-z0-9._-].
    """
    base = Path((filename or "").replace("\\", "/")).name
    base = _UNSAFE_FILENAME_CHARS.sub("_", base).lstrip(".")
    return base or "upload"


def stored_filename(filename: str) -> str:
    return f"{uuid4().hex[:12]}-{safe_filename(filename)}"


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    buf = bytearray()

    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise ValidationError("Invalid file: file size exceeds maximum allowed size")

    return bytes(buf)


def validate_content_type(file: UploadFile) -> str:
    """
    Check the declared content type; file contents are not sniffed.
    """
    content_type = (file.content_type or "").split(";", 1)[0].strip().lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(f"Invalid file: unsupported file type: {file.content_type or ''}")
    return content_type


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # "xb" refuses to overwrite an existing file.
    fh = open(path, "xb")
    try:
        with fh:
            fh.write(data)
    except OSError:
        path.unlink(missing_ok=True)
        raise


async def save_upload(
    file: UploadFile | None,
    upload_dir: Path,
    *,
    max_bytes: int,
) -> str | None:
    """
    Validate and store an optional image upload.

    Returns the stored relative path (`uploads/<name>`), or None when no
    file was attached.
    """
    if file is None or not has_file(file):
        return None

    if file.size is not None and file.size > max_bytes:
        raise ValidationError("Invalid file: file size exceeds maximum allowed size")
    validate_content_type(file)
    data = await read_upload_bytes(file, max_bytes=max_bytes)

    name = stored_filename(file.filename or "")
    path = upload_dir / name
    try:
        await run_in_threadpool(_write_file, path, data)
    except OSError as exc:
        logger.exception("upload_write_failed path=%s", path)
        raise UploadIOError() from exc

    logger.info("upload_saved path=%s size_bytes=%s", path, len(data))
    return f"{UPLOADS_PREFIX}/{name}"


def remove_upload(stored_path: str | None, upload_dir: Path) -> None:
    """
    Best-effort delete of a stored upload. Never raises.
    """
    if not stored_path:
        return
    path = upload_dir / Path(stored_path).name
    try:
        path.unlink(missing_ok=True)
        logger.info("upload_removed path=%s", path)
    except OSError:
        logger.exception("upload_remove_failed path=%s", path)


def resolve_upload(relative_path: str, upload_dir: Path) -> Path:
    """
    Map a request path under /uploads/ to a file inside `upload_dir`.
    """
    if ".." in relative_path:
        raise ValidationError("Invalid path")

    root = upload_dir.resolve()
    candidate = (root / relative_path.lstrip("/")).resolve()
    if not candidate.is_relative_to(root):
        raise ValidationError("Invalid path")
    if not candidate.is_file():
        raise NotFoundError("File not found")
    return candidate

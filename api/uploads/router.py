"""
Static file endpoint for uploaded images.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from core import settings

from . import service

router = APIRouter()

CACHE_HEADERS = {"Cache-Control": "public, max-age=31536000"}


def get_upload_dir() -> Path:
    return settings.upload_dir()


@router.get("/uploads/{file_path:path}")
async def get_upload(
    file_path: str,
    upload_dir: Path = Depends(get_upload_dir),
) -> FileResponse:
    path = service.resolve_upload(file_path, upload_dir)
    return FileResponse(path, headers=CACHE_HEADERS)

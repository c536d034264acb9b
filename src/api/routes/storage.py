"""
Public object serving for the local object store.

Mirrors the hosted bucket's public URL shape so stored URLs stay valid
whichever store wrote them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from src.api.deps import Settings, get_rules, get_settings
from src.rules.models import Rules

router = APIRouter()


@router.get("/{bucket}/{key:path}")
async def get_object(
    bucket: str,
    key: str,
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> FileResponse:
    if bucket != rules.uploads.bucket or ".." in key:
        raise HTTPException(status_code=404, detail="Object not found")

    path = settings.storage_dir / bucket / key
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Object not found")

    return FileResponse(path, headers={"Cache-Control": "public, max-age=31536000, immutable"})

"""
Public logo URLs.

GET /blobs/{key}   — serve an uploaded logo
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from app.services.blobs import LocalBlobStorage, get_blob_storage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/blobs/{key:path}")
def get_blob(key: str, blobs: LocalBlobStorage = Depends(get_blob_storage)):
    try:
        path = blobs.path_for(key)
    except ValueError:
        raise HTTPException(status_code=404, detail="Not found")
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(path)

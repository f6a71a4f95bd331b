"""
Blob read endpoint.

GET /api/blobs/{key}  — signed (expires + signature) or by a known user
"""
from __future__ import annotations

import logging
import mimetypes
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response

from receipt_tracker.dependencies import USER_HEADER, get_blob_store, get_user_id
from receipt_tracker.pipeline.storage import LocalBlobStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/blobs/{key}")
def read_blob(
    key: str,
    expires: Optional[int] = None,
    signature: Optional[str] = None,
    x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER),
    store: LocalBlobStore = Depends(get_blob_store),
):
    if expires is not None or signature is not None:
        if expires is None or not signature or not store.verify(key, expires, signature):
            logger.warning("Rejected blob read for %s: bad or expired signature", key)
            raise HTTPException(status_code=403, detail="Signature invalid or expired")
    else:
        get_user_id(x_user_id)

    try:
        data = store.open(key)
    except KeyError:
        raise HTTPException(status_code=404, detail="Blob not found")

    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)

"""
FastAPI dependencies shared by the routers.
"""
from __future__ import annotations

from typing import AsyncIterator

import httpx
from fastapi import Header, HTTPException

from receipt_tracker.config import settings
from receipt_tracker.pipeline import ReceiptWorkflow, build_workflow
from receipt_tracker.pipeline.storage import LocalBlobStore

USER_HEADER = "X-User-Id"


def get_user_id(x_user_id: str | None = Header(default=None, alias=USER_HEADER)) -> str:
    """Caller identity, as forwarded by the authentication layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized: no user")
    return x_user_id.strip()


def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore(
        root=settings.UPLOAD_DIR,
        base_url=settings.PUBLIC_BASE_URL,
        signing_key=settings.BLOB_SIGNING_KEY,
    )


async def get_workflow() -> AsyncIterator[ReceiptWorkflow]:
    config = settings.analysis_config()
    async with httpx.AsyncClient(timeout=config.request_timeout) as http:
        yield build_workflow(
            store=get_blob_store(),
            http=http,
            config=config,
            ttl_seconds=settings.SIGNED_URL_TTL_SECONDS,
            max_bytes=settings.MAX_UPLOAD_BYTES,
        )

"""
Upload endpoint.

POST /api/upload-and-analyze — store image → analyze → canonical receipt
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from receipt_tracker.config import settings
from receipt_tracker.dependencies import get_user_id, get_workflow
from receipt_tracker.pipeline import ReceiptWorkflow
from receipt_tracker.pipeline.errors import InvalidUpload, ReceiptWorkflowError
from receipt_tracker.schemas import UploadResponse, WorkflowState

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/upload-and-analyze", response_model=UploadResponse)
async def upload_and_analyze(
    image: UploadFile = File(...),
    user_id: str = Depends(get_user_id),
    workflow: ReceiptWorkflow = Depends(get_workflow),
):
    # One byte past the limit is enough to tell an oversize upload.
    limit = settings.MAX_UPLOAD_BYTES
    data = await image.read(limit + 1)
    logger.info(
        "Upload: user=%s file=%s type=%s len=%d",
        user_id, image.filename, image.content_type, len(data),
    )
    if len(data) > limit:
        exc = InvalidUpload(f"image exceeds {limit} bytes")
        raise HTTPException(
            status_code=exc.status_code,
            detail={"success": False, "state": WorkflowState.UPLOAD_FAILED.value, **exc.to_dict()},
        )

    try:
        receipt = await workflow.run(data, image.content_type or "", image.filename or "")
    except ReceiptWorkflowError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"success": False, "state": workflow.state.value, **exc.to_dict()},
        ) from exc

    return UploadResponse(state=workflow.state, receipt=receipt)

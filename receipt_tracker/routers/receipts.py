"""
Receipt persistence endpoints.

POST /api/receipts        — store a reviewed receipt with its category
GET  /api/receipts        — list the caller's receipts
GET  /api/receipts/{id}   — get one receipt
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from receipt_tracker.database import get_db
from receipt_tracker.dependencies import get_user_id
from receipt_tracker.pipeline.persister import (
    ReceiptNotFound,
    get_receipt,
    list_receipts,
    save_receipt,
)
from receipt_tracker.schemas import ReceiptCreate, ReceiptOut

logger = logging.getLogger(__name__)
router = APIRouter()


# ── POST /api/receipts ───────────────────────────────────────────────────
@router.post("/receipts", response_model=ReceiptOut, status_code=201)
def create_receipt(
    req: ReceiptCreate,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return save_receipt(db, user_id, req)


# ── GET /api/receipts ────────────────────────────────────────────────────
@router.get("/receipts", response_model=list[ReceiptOut])
def list_user_receipts(
    year: Optional[int] = Query(default=None, ge=1900, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    if month is not None and year is None:
        raise HTTPException(status_code=400, detail="month requires year")
    rows = list_receipts(db, user_id, year, month)
    logger.info("Found %d receipts for user %s", len(rows), user_id)
    return rows


# ── GET /api/receipts/{receipt_id} ───────────────────────────────────────
@router.get("/receipts/{receipt_id}", response_model=ReceiptOut)
def read_receipt(
    receipt_id: int,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        return get_receipt(db, user_id, receipt_id)
    except ReceiptNotFound:
        logger.warning("Receipt not found: %s", receipt_id)
        raise HTTPException(status_code=404, detail="Receipt not found")

"""
Dashboard aggregates.

GET /api/analytics/monthly-category?year=YYYY&month=MM
GET /api/analytics/daily?year=YYYY&month=MM
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from receipt_tracker.database import get_db
from receipt_tracker.dependencies import get_user_id
from receipt_tracker.pipeline.persister import daily_totals, monthly_category_summary
from receipt_tracker.schemas import DailyTotalsResponse, MonthlyCategoryResponse

logger = logging.getLogger(__name__)
router = APIRouter()


def _year_month(year: Optional[int], month: Optional[int]) -> tuple[int, int]:
    today = date.today()
    return year or today.year, month or today.month


@router.get("/analytics/monthly-category", response_model=MonthlyCategoryResponse)
def monthly_category(
    year: Optional[int] = Query(default=None, ge=1900, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    # Aggregated across all users, as the dashboard card shows it.
    year, month = _year_month(year, month)
    items = monthly_category_summary(db, year, month)
    logger.info("Monthly category analytics %04d-%02d: %d categories", year, month, len(items))
    return MonthlyCategoryResponse(year=year, month=month, items=items)


@router.get("/analytics/daily", response_model=DailyTotalsResponse)
def daily(
    year: Optional[int] = Query(default=None, ge=1900, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    year, month = _year_month(year, month)
    return DailyTotalsResponse(year=year, month=month, days=daily_totals(db, user_id, year, month))

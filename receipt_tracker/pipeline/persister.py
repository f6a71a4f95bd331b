"""
Receipt persister: stores reviewed receipts and reads them back.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from receipt_tracker.models.receipt import ReceiptModel
from receipt_tracker.schemas import (
    CategorySummary,
    DailyTotal,
    ReceiptCreate,
)

logger = logging.getLogger(__name__)

UNCATEGORIZED = "미분류"


class ReceiptNotFound(LookupError):
    pass


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """``[first day, first day of next month)``."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def save_receipt(db: Session, user_id: str, receipt: ReceiptCreate) -> ReceiptModel:
    record = ReceiptModel(
        user_id=user_id,
        store_name=receipt.store_name.strip(),
        total_amount=receipt.total_amount,
        transaction_date=receipt.transaction_date,
        category=receipt.category,
        memo=receipt.memo,
        source_image_url=receipt.source_image_url,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Stored receipt %s for user %s", record.id, user_id)
    return record


def get_receipt(db: Session, user_id: str, receipt_id: int) -> ReceiptModel:
    record = (
        db.query(ReceiptModel)
        .filter(ReceiptModel.id == receipt_id, ReceiptModel.user_id == user_id)
        .first()
    )
    if record is None:
        raise ReceiptNotFound(receipt_id)
    return record


def list_receipts(
    db: Session, user_id: str, year: int | None = None, month: int | None = None
) -> list[ReceiptModel]:
    query = db.query(ReceiptModel).filter(ReceiptModel.user_id == user_id)
    if year is not None and month is not None:
        start, end = month_bounds(year, month)
        query = query.filter(
            ReceiptModel.transaction_date >= start,
            ReceiptModel.transaction_date < end,
        )
    elif year is not None:
        query = query.filter(
            ReceiptModel.transaction_date >= date(year, 1, 1),
            ReceiptModel.transaction_date < date(year + 1, 1, 1),
        )
    return query.order_by(
        ReceiptModel.transaction_date.desc(), ReceiptModel.id.desc()
    ).all()


# ---------------------------------------------------------------------------
# Aggregates for the dashboard
# ---------------------------------------------------------------------------

def monthly_category_summary(db: Session, year: int, month: int) -> list[CategorySummary]:
    """Per-category totals for one month across all users."""
    start, end = month_bounds(year, month)
    rows = (
        db.query(
            ReceiptModel.category,
            func.count(ReceiptModel.id),
            func.sum(ReceiptModel.total_amount),
            func.max(ReceiptModel.transaction_date),
        )
        .filter(
            ReceiptModel.transaction_date >= start,
            ReceiptModel.transaction_date < end,
        )
        .group_by(ReceiptModel.category)
        .all()
    )

    merged: dict[str, CategorySummary] = {}
    for category, frequency, monetary, last_date in rows:
        label = (category or "").strip() or UNCATEGORIZED
        item = merged.setdefault(label, CategorySummary(category=label))
        item.frequency += int(frequency or 0)
        item.monetary += Decimal(str(monetary or 0))
        if last_date and (item.last_transaction_date is None or last_date > item.last_transaction_date):
            item.last_transaction_date = last_date

    for item in merged.values():
        item.monetary = item.monetary.quantize(Decimal("0.01"))
    return sorted(merged.values(), key=lambda i: (-i.monetary, -i.frequency))


def daily_totals(db: Session, user_id: str, year: int, month: int) -> list[DailyTotal]:
    """Per-day totals of one user's receipts, for the calendar view."""
    totals: dict[date, DailyTotal] = {}
    for record in list_receipts(db, user_id, year, month):
        day = totals.setdefault(record.transaction_date, DailyTotal(day=record.transaction_date))
        day.count += 1
        day.total += Decimal(record.total_amount or 0)
    return sorted(totals.values(), key=lambda d: d.day)

"""
Receipt schemas shared by the workflow, persistence and analytics.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from receipt_tracker.schemas.analysis import WorkflowState


# ---------------------------------------------------------------------------
# Canonical receipt (workflow output)
# ---------------------------------------------------------------------------

class CanonicalReceipt(BaseModel):
    """Normalized, storage-ready receipt."""
    store_name: str = ""
    total_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    transaction_date: Optional[date] = None
    source_image_url: str = ""


# ---------------------------------------------------------------------------
# API request / response envelopes
# ---------------------------------------------------------------------------

class UploadResponse(BaseModel):
    success: bool = True
    state: WorkflowState = WorkflowState.NORMALIZED
    receipt: CanonicalReceipt


class ReceiptCreate(CanonicalReceipt):
    """A reviewed receipt plus the label the user picked for it."""
    category: str
    memo: str = ""

    @field_validator("category")
    @classmethod
    def _category_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("category must not be blank")
        return value


class ReceiptOut(ReceiptCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    created_at: datetime


class CategorySummary(BaseModel):
    category: str
    frequency: int = 0
    monetary: Decimal = Decimal("0.00")
    last_transaction_date: Optional[date] = None


class MonthlyCategoryResponse(BaseModel):
    year: int
    month: int
    items: list[CategorySummary] = Field(default_factory=list)


class DailyTotal(BaseModel):
    day: date
    count: int = 0
    total: Decimal = Decimal("0.00")


class DailyTotalsResponse(BaseModel):
    year: int
    month: int
    days: list[DailyTotal] = Field(default_factory=list)

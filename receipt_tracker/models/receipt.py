"""
SQLAlchemy model for receipt persistence.
"""
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, Text

from receipt_tracker.database import Base


class ReceiptModel(Base):
    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    store_name = Column(String, nullable=False, default="")
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    transaction_date = Column(Date, nullable=True, index=True)
    category = Column(String, nullable=False)
    memo = Column(Text, nullable=False, default="")
    source_image_url = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
